"""evtx-timeline — convert Windows event logs into time-sorted CSV timelines."""

import logging
import sys
from argparse import ArgumentParser

from evtx_timeline.config import LOG_LEVELS, load_config, load_yaml_config
from evtx_timeline.converter import convert_all
from evtx_timeline.sources import expand_paths

logger = logging.getLogger("evtx_timeline")


def build_parser() -> ArgumentParser:
    """Build the CLI argument parser."""
    parser = ArgumentParser(
        prog="evtx-timeline",
        description="Flatten Windows event logs (.evtx or XML exports) into time-sorted CSV files.",
    )
    parser.add_argument(
        "paths",
        nargs="+",
        help="Event log file(s), directories or glob pattern(s)",
    )
    parser.add_argument(
        "--output-dir",
        dest="output_dir",
        help="Directory for CSV output (default: current directory)",
    )
    parser.add_argument(
        "--prefix",
        dest="output_prefix",
        help="Output file name prefix (default: timeline_)",
    )
    parser.add_argument(
        "--reserved-header",
        dest="reserved_header",
        help="Header name that is never turned into a column (default: UserData)",
    )
    parser.add_argument(
        "--encoding",
        help="Encoding for XML input and CSV output (default: utf-8)",
    )
    parser.add_argument(
        "--recursive",
        action="store_true",
        default=None,
        help="Descend into subdirectories when scanning directories",
    )
    parser.add_argument(
        "--workers",
        type=int,
        help="Convert up to N sources concurrently (default: 1)",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Logging verbosity (default: INFO)",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to YAML config file",
    )
    return parser


def run(args) -> int:
    """Convert every source named in *args*. Returns the process exit code."""
    try:
        config = load_config(args, load_yaml_config(args.config))
    except ValueError as e:
        logger.error("Invalid configuration: %s", e)
        return 2
    logging.getLogger().setLevel(config.log_level)

    try:
        sources = expand_paths(args.paths, recursive=config.recursive)
    except FileNotFoundError as e:
        logger.error("%s", e)
        return 2

    logger.info("Converting %d source(s) into %s", len(sources), config.output_dir)
    results = convert_all(sources, config)

    failed = [r for r in results if not r.ok]
    print(f"converted {len(results) - len(failed)} of {len(results)} source(s)")
    for result in failed:
        print(f"  failed: {result.source}: {result.error}", file=sys.stderr)
    return 1 if failed else 0


def main(argv=None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [evtx-timeline] %(levelname)s %(message)s",
        stream=sys.stderr,
    )
    parser = build_parser()
    args = parser.parse_args(argv)
    return run(args)


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        sys.exit(130)
