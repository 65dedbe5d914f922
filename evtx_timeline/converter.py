"""Per-source conversion pipeline with error isolation between sources.

decode (materialized once) -> discover schema -> flatten -> sort -> write CSV
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from evtx_timeline.config import Config
from evtx_timeline.decoder import load_records
from evtx_timeline.errors import ConversionError
from evtx_timeline.flattener import flatten_records
from evtx_timeline.schema import discover_schema
from evtx_timeline.timeline import build_timeline
from evtx_timeline.writer import assign_output_paths, output_path_for, write_csv

logger = logging.getLogger(__name__)


@dataclass
class ConversionResult:
    source: str
    output: str | None = None
    records: int = 0
    columns: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def convert_source(source: str, config: Config, output: str | None = None) -> ConversionResult:
    """Convert one event log into one CSV. Never raises.

    *output* defaults to ``output_path_for(source, config)``.
    """
    result = ConversionResult(source=source)
    try:
        records = load_records(source, config.reserved_header, config.encoding)
        schema = discover_schema(records, config.reserved_header)
        rows = flatten_records(records, schema)
        columns, ordered = build_timeline(rows, schema)
        result.output = write_csv(
            output or output_path_for(source, config), columns, ordered, config.encoding
        )
    except ConversionError as e:
        result.error = str(e)
        logger.error("Failed to convert %s: %s", source, e)
        return result
    except Exception as e:
        result.error = f"Unexpected {type(e).__name__}: {e}"
        logger.exception("Failed to convert %s", source)
        return result

    result.records = len(ordered)
    result.columns = len(columns)
    logger.info(
        "Converted %s: %d records, %d columns -> %s",
        source, result.records, result.columns, result.output,
    )
    return result


def convert_all(sources: list[str], config: Config) -> list[ConversionResult]:
    """Convert every source; results come back in input order.

    Output paths are assigned up front so sources sharing a base name never
    overwrite each other. With ``config.workers > 1`` sources run on a
    thread pool. Each source builds its own schema and rows, so nothing is
    shared between them.
    """
    outputs = assign_output_paths(sources, config)
    if config.workers <= 1 or len(sources) <= 1:
        return [convert_source(s, config, out) for s, out in zip(sources, outputs)]

    with ThreadPoolExecutor(max_workers=config.workers) as pool:
        return list(pool.map(lambda s, out: convert_source(s, config, out), sources, outputs))
