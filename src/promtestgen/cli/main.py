"""
Command-line entry point.

Usage:
    promtestgen [inspect|generate] -url <prometheus> [flags]

``inspect`` is the default command.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence

import structlog

from promtestgen.cli.generate import generate_command, register_generate_parser
from promtestgen.cli.inspect import inspect_command, register_inspect_parser
from promtestgen.config.run import RuleSelection, RunConfig
from promtestgen.config.settings import Settings, get_settings
from promtestgen.core.errors import main_with_error_handling
from promtestgen.logging import configure_logging

logger = structlog.get_logger()

COMMANDS = ("inspect", "generate")
DEFAULT_COMMAND = "inspect"


def _common_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(add_help=False, allow_abbrev=False)
    parser.add_argument("-url", "--url", help="Prometheus base URL (or PROMTESTGEN_URL)")
    parser.add_argument(
        "-token-file",
        "--token-file",
        dest="token_file",
        help="Path to the bearer token used for authentication",
    )
    parser.add_argument("-ca", "--ca", dest="ca_file", help="Path to the Prometheus CA")
    parser.add_argument(
        "-insecure",
        "--insecure",
        action="store_true",
        default=None,
        help="Don't check certificate validity",
    )
    parser.add_argument(
        "-recording-rule",
        "--recording-rule",
        dest="recording_rules",
        action="append",
        default=[],
        help="Recording rule(s) to select, comma separated (can be repeated). "
        "If empty all recording rules are selected.",
    )
    parser.add_argument(
        "-alerting-rule",
        "--alerting-rule",
        dest="alerting_rules",
        action="append",
        default=[],
        help="Alerting rule(s) to select, comma separated (can be repeated). "
        "If empty all alerting rules are selected.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="promtestgen",
        description="Inspect Prometheus rules and generate rule unit tests from live data",
        allow_abbrev=False,
    )
    subparsers = parser.add_subparsers(dest="command")

    common = [_common_parser()]
    register_inspect_parser(subparsers, common)
    register_generate_parser(subparsers, common)

    return parser


def _with_default_command(argv: Sequence[str]) -> list[str]:
    args = list(argv)
    if not args or (args[0] not in COMMANDS and args[0] not in ("-h", "--help")):
        args.insert(0, DEFAULT_COMMAND)
    return args


def build_run_config(args: argparse.Namespace, settings: Settings) -> RunConfig:
    """Layer command-line arguments over environment settings."""
    return RunConfig(
        url=args.url or settings.url or "",
        token_file=args.token_file or settings.token_file,
        ca_file=args.ca_file or settings.ca_file,
        insecure=settings.insecure if args.insecure is None else args.insecure,
        timeout=settings.timeout,
        recording_rules=RuleSelection.from_flags(args.recording_rules),
        alerting_rules=RuleSelection.from_flags(args.alerting_rules),
        rule_files=tuple(getattr(args, "rule_files", []) or []),
    )


@main_with_error_handling()
def dispatch(args: argparse.Namespace) -> int:
    settings = get_settings()
    configure_logging(logging.DEBUG if args.verbose else settings.log_level.upper())

    config = build_run_config(args, settings).validate()
    logger.debug("run_config", command=args.command, url=config.url)

    if args.command == "generate":
        return generate_command(config, output=args.output)

    return inspect_command(config, output_format=args.output)


def run(argv: Sequence[str] | None = None) -> int:
    """Parse ``argv`` and run the selected command, returning the exit code."""
    parser = build_parser()
    args = parser.parse_args(_with_default_command(sys.argv[1:] if argv is None else argv))
    return dispatch(args)


def main(argv: Sequence[str] | None = None) -> None:
    sys.exit(run(argv))


if __name__ == "__main__":
    main()
