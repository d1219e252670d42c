from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from .config import DEFAULT_CONFIG_PATH, load_kit_config
from .errors import ConfigError
from .tasks import EXIT_FAILURE, CollectRequirements, RequirementsCoverage

LOGGER = logging.getLogger(__name__)


def configure_logging(verbosity: int) -> None:
    level = logging.DEBUG if verbosity > 0 else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s", stream=sys.stdout)


def cmd_collect(args: argparse.Namespace) -> int:
    return CollectRequirements(load_kit_config(args.config)).run(args.input_directory)


def cmd_check_collection(args: argparse.Namespace) -> int:
    return CollectRequirements(load_kit_config(args.config)).run_check(args.input_directory)


def cmd_coverage(args: argparse.Namespace) -> int:
    return RequirementsCoverage(load_kit_config(args.config)).run()


def cmd_check_coverage(args: argparse.Namespace) -> int:
    return RequirementsCoverage(load_kit_config(args.config)).run_check()


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Collect test kit requirements from planning workbooks and report test coverage.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to the kit YAML config (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase logging verbosity (repeatable).",
    )
    subparsers = parser.add_subparsers(dest="command")

    collect = subparsers.add_parser(
        "collect",
        help="Collect requirements and planned-not-tested requirements into CSVs.",
    )
    collect.add_argument("input_directory", type=Path, help="Directory holding the planning workbooks.")
    collect.set_defaults(func=cmd_collect)

    check_collection = subparsers.add_parser(
        "check-collection",
        help="Check that the requirements and out-of-scope CSVs are up to date.",
    )
    check_collection.add_argument("input_directory", type=Path, help="Directory holding the planning workbooks.")
    check_collection.set_defaults(func=cmd_check_collection)

    coverage = subparsers.add_parser("coverage", help="Generate the requirements coverage CSV.")
    coverage.set_defaults(func=cmd_coverage)

    check_coverage = subparsers.add_parser(
        "check-coverage",
        help="Check that the requirements coverage CSV is up to date.",
    )
    check_coverage.set_defaults(func=cmd_check_coverage)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    if not getattr(args, "func", None):
        parser.print_help()
        return

    configure_logging(args.verbose)
    try:
        status = args.func(args)
    except (ConfigError, ValueError) as exc:
        LOGGER.error("%s", exc)
        sys.exit(EXIT_FAILURE)
    sys.exit(status)


if __name__ == "__main__":
    main()
