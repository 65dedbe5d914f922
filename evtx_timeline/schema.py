"""Schema discovery — the ordered, deduplicated column set of one output table."""

import logging
from typing import Iterable

from evtx_timeline.models import DecodedRecord, NamedItem

logger = logging.getLogger(__name__)

EPOCH_COLUMN = "EpochTime"
TIMESTAMP_COLUMN = "TimeCreated"
MESSAGE_COLUMN = "Message"
FIXED_COLUMNS = (EPOCH_COLUMN, TIMESTAMP_COLUMN, MESSAGE_COLUMN)

UNLABELED_PREFIX = "unlabeled"


class Schema:
    """Ordered set of column names, seeded with the fixed columns.

    Names are kept in first-seen order. The reserved audit-payload name is
    refused so it can never become a column.
    """

    def __init__(self, reserved_header: str = "UserData"):
        self.reserved_header = reserved_header
        self._columns: list[str] = list(FIXED_COLUMNS)
        self._seen: set[str] = set(FIXED_COLUMNS)

    def add(self, name: str) -> bool:
        """Append *name* if unseen. Returns True when a column was added."""
        if name in self._seen or name == self.reserved_header:
            return False
        self._seen.add(name)
        self._columns.append(name)
        return True

    @property
    def columns(self) -> tuple[str, ...]:
        return tuple(self._columns)

    def __contains__(self, name) -> bool:
        return name in self._seen

    def __len__(self) -> int:
        return len(self._columns)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Schema):
            return NotImplemented
        return self._columns == other._columns

    def __repr__(self) -> str:
        return f"Schema({self._columns!r})"


def discover_schema(records: Iterable[DecodedRecord], reserved_header: str = "UserData") -> Schema:
    """Pass 1: collect header and named payload field names across all records.

    Unnamed payload items are not counted here; the flattening pass reports
    the ``unlabeledN`` names it synthesizes and commits them via ``Schema.add``.
    """
    schema = Schema(reserved_header)
    for record in records:
        for name, _text in record.header:
            schema.add(name)
        for item in record.payload:
            if isinstance(item, NamedItem):
                schema.add(item.name)
    logger.debug("Discovered %d columns", len(schema))
    return schema
