"""Row flattening — one DecodedRecord becomes a sparse column -> string mapping."""

import re
from datetime import datetime, timezone
from typing import Iterable

from evtx_timeline.models import DecodedRecord, NamedItem, UnnamedItem
from evtx_timeline.schema import (
    EPOCH_COLUMN,
    FIXED_COLUMNS,
    MESSAGE_COLUMN,
    TIMESTAMP_COLUMN,
    UNLABELED_PREFIX,
    Schema,
)

UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
LINE_BREAK = re.compile(r"\r\n|[\r\n]")
ESCAPED_LINE_BREAK = "\\n"


def _as_utc(dt: datetime) -> datetime:
    # Naive datetimes are taken to already be UTC.
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def epoch_millis(dt: datetime) -> int:
    """Milliseconds since the Unix epoch, truncated toward zero."""
    delta = _as_utc(dt) - UNIX_EPOCH
    micros = (delta.days * 86400 + delta.seconds) * 1_000_000 + delta.microseconds
    millis = abs(micros) // 1000
    return millis if micros >= 0 else -millis


def format_timestamp(dt: datetime) -> str:
    """Render as ``YYYY-MM-DD HH:MM:SS.fff`` in UTC."""
    utc = _as_utc(dt)
    return f"{utc.year:04d}-{utc:%m-%d %H:%M:%S}.{utc.microsecond // 1000:03d}"


def first_line(message: str) -> str:
    """First line of *message* with stray CR/LF characters removed."""
    if not message:
        return ""
    return message.split("\n", 1)[0].replace("\r", "")


def escape(text: str) -> str:
    """Replace each line break (CRLF, CR or LF) with a literal backslash-n."""
    return LINE_BREAK.sub(lambda _m: ESCAPED_LINE_BREAK, text)


def _next_unlabeled(row: dict, ordinal: int) -> tuple[str, int]:
    while True:
        ordinal += 1
        name = f"{UNLABELED_PREFIX}{ordinal}"
        if name not in row:
            return name, ordinal


def flatten_record(record: DecodedRecord, schema: Schema) -> tuple[dict[str, str], list[str]]:
    """Build the row for *record*.

    Returns ``(row, new_columns)`` where ``new_columns`` lists synthesized
    ``unlabeledN`` names not yet present in *schema*. The unnamed ordinal
    restarts at 1 for every record.
    """
    row = {
        EPOCH_COLUMN: str(epoch_millis(record.time_created)),
        TIMESTAMP_COLUMN: format_timestamp(record.time_created),
        MESSAGE_COLUMN: first_line(record.message),
    }

    for name, text in record.header:
        if name == schema.reserved_header or name in FIXED_COLUMNS or not text:
            continue
        row[name] = escape(text)

    new_columns = []
    ordinal = 0
    for item in record.payload:
        if isinstance(item, NamedItem):
            if item.name in row:
                continue  # first occurrence wins
            row[item.name] = escape(item.text or "")
        elif isinstance(item, UnnamedItem):
            name, ordinal = _next_unlabeled(row, ordinal)
            row[name] = escape(item.markup)
            if name not in schema and name not in new_columns:
                new_columns.append(name)

    return row, new_columns


def flatten_records(records: Iterable[DecodedRecord], schema: Schema) -> list[dict[str, str]]:
    """Pass 2: flatten every record, committing synthesized columns to *schema*."""
    rows = []
    for record in records:
        row, new_columns = flatten_record(record, schema)
        for name in new_columns:
            schema.add(name)
        rows.append(row)
    return rows
