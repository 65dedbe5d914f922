"""Decoded event record — frozen dataclasses shared by every conversion stage."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Union


@dataclass(frozen=True)
class NamedItem:
    name: str
    text: str = ""


@dataclass(frozen=True)
class UnnamedItem:
    markup: str


PayloadItem = Union[NamedItem, UnnamedItem]


@dataclass(frozen=True)
class DecodedRecord:
    """One event entry.

    ``header`` holds ``(name, text)`` pairs from the System section (plus the
    raw audit payload under the reserved name, when present). ``payload``
    holds the EventData items in document order.
    """

    time_created: datetime
    message: str = ""
    header: tuple[tuple[str, str], ...] = field(default_factory=tuple)
    payload: tuple[PayloadItem, ...] = field(default_factory=tuple)
