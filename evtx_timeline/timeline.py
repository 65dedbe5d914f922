"""Timeline sorting and projection onto the schema's column order."""

from typing import Iterable

from evtx_timeline.schema import EPOCH_COLUMN, Schema


def sort_rows(rows: Iterable[dict[str, str]]) -> list[dict[str, str]]:
    """Stable sort by EpochTime ascending; equal times keep record order."""
    return sorted(rows, key=lambda row: int(row[EPOCH_COLUMN]))


def project_row(row: dict[str, str], columns: tuple[str, ...]) -> list[str]:
    return [row.get(column, "") for column in columns]


def build_timeline(rows: Iterable[dict[str, str]], schema: Schema) -> tuple[list[str], list[list[str]]]:
    """Return ``(columns, rows)`` ready for the CSV writer."""
    columns = schema.columns
    ordered = [project_row(row, columns) for row in sort_rows(rows)]
    return list(columns), ordered
