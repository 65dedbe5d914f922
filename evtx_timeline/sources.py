"""Input discovery — files, directories and glob patterns to a source list."""

import glob
import os

from evtx_timeline.decoder import EVTX_EXTENSIONS, XML_EXTENSIONS

SOURCE_EXTENSIONS = EVTX_EXTENSIONS + XML_EXTENSIONS


def _is_source(path: str) -> bool:
    return os.path.isfile(path) and path.lower().endswith(SOURCE_EXTENSIONS)


def scan_directory(directory: str, recursive: bool = False) -> list[str]:
    """Return event log files under *directory*, sorted by path."""
    found = []
    if recursive:
        for root, _dirs, files in os.walk(directory):
            found.extend(os.path.join(root, name) for name in files)
    else:
        found = [os.path.join(directory, name) for name in os.listdir(directory)]
    return sorted(p for p in found if _is_source(p))


def expand_paths(raw_paths: list[str], recursive: bool = False) -> list[str]:
    """Expand globs and directories, deduplicate, and validate that files exist.

    Explicit file paths are accepted whatever their extension; directories and
    glob matches are filtered to ``.evtx``/``.xml``.

    Raises FileNotFoundError if a non-glob path doesn't exist.
    Raises FileNotFoundError if expansion produces zero files.
    """
    expanded = []
    seen = set()

    def _add(path):
        if path not in seen:
            seen.add(path)
            expanded.append(path)

    for raw in raw_paths:
        if any(c in raw for c in ("*", "?", "[")):
            for match in sorted(glob.glob(raw, recursive=recursive)):
                if os.path.isdir(match):
                    for path in scan_directory(match, recursive):
                        _add(path)
                elif _is_source(match):
                    _add(match)
        elif os.path.isdir(raw):
            for path in scan_directory(raw, recursive):
                _add(path)
        else:
            if not os.path.isfile(raw):
                raise FileNotFoundError(f"File not found: {raw}")
            _add(raw)

    if not expanded:
        raise FileNotFoundError("No event log files found matching the given paths")

    return expanded
