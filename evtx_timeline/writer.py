"""CSV output — one file per source, written atomically via rename."""

import csv
import logging
import os
import tempfile

from evtx_timeline.config import Config
from evtx_timeline.errors import SerializationFailureError

logger = logging.getLogger(__name__)


def output_path_for(source: str, config: Config) -> str:
    """``<output_dir>/<prefix><source base name>.csv``"""
    base = os.path.splitext(os.path.basename(source))[0]
    return os.path.join(config.output_dir, f"{config.output_prefix}{base}.csv")


def assign_output_paths(sources: list[str], config: Config) -> list[str]:
    """Give each source its own output path, aligned with *sources*.

    Sources sharing a base name (e.g. ``host1/Security.evtx`` and
    ``host2/Security.evtx``) get ``_2``, ``_3``… suffixes in input order.
    """
    assigned = []
    taken = set()
    for source in sources:
        path = output_path_for(source, config)
        stem, ext = os.path.splitext(path)
        counter = 1
        while os.path.normcase(path) in taken:
            counter += 1
            path = f"{stem}_{counter}{ext}"
        if counter > 1:
            logger.warning(
                "Output name for %s collides with an earlier source, writing %s instead",
                source, path,
            )
        taken.add(os.path.normcase(path))
        assigned.append(path)
    return assigned


def write_csv(path: str, columns: list[str], rows: list[list[str]], encoding: str = "utf-8") -> str:
    """Write header plus rows to *path*. Returns the path written.

    Output goes to a uniquely named ``.tmp`` file beside *path* first and is
    renamed into place, so a failed write never leaves a truncated table
    behind and concurrent writers never share a temp file.
    """
    directory = os.path.dirname(path) or "."
    tmp_path = None
    try:
        os.makedirs(directory, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w", dir=directory, prefix=os.path.basename(path) + ".",
            suffix=".tmp", delete=False, newline="", encoding=encoding,
        ) as f:
            tmp_path = f.name
            writer = csv.writer(f)
            writer.writerow(columns)
            writer.writerows(rows)
        os.replace(tmp_path, path)
    except (OSError, csv.Error, UnicodeEncodeError) as e:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise SerializationFailureError(f"Cannot write {path}: {e}") from e
    logger.debug("Wrote %d rows to %s", len(rows), path)
    return path
