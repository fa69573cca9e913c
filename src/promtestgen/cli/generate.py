"""CLI command for generating rule unit tests from live data."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Optional

from promtestgen.cli.ux import success, warning
from promtestgen.client.prometheus import PrometheusClient
from promtestgen.config.run import RunConfig
from promtestgen.fixtures.generator import FixtureGenerator
from promtestgen.fixtures.serializer import render_test_file
from promtestgen.rules.catalog import load_catalog


def generate_command(config: RunConfig, output: Optional[str] = None) -> int:
    """Generate a unit-test file for the selected recording rules.

    Args:
        config: Validated run configuration
        output: Output file path; stdout when omitted

    Returns:
        Exit code (0 for success)
    """
    if not config.alerting_rules.selects_all:
        names = ", ".join(config.alerting_rules.names)
        warning(f"Alerting rules are not used by generate, ignoring: {names}")

    with PrometheusClient(config) as client:
        catalog = load_catalog(client)

        for name in config.recording_rules.missing_from(catalog.recording):
            warning(f"Recording rule not found: {name}")

        fixtures = FixtureGenerator(catalog, client).generate(config.recording_rules.matches)

    document = render_test_file(fixtures, rule_files=list(config.rule_files))

    if output:
        Path(output).parent.mkdir(parents=True, exist_ok=True)
        Path(output).write_text(document)
        success(f"Wrote {len(fixtures)} test groups to {output}")
    else:
        print(document, end="")

    return 0


def register_generate_parser(
    subparsers: argparse._SubParsersAction, parents: list[argparse.ArgumentParser]
) -> None:
    """Register generate subcommand parser."""
    parser = subparsers.add_parser(
        "generate",
        parents=parents,
        help="Generate unit tests for recording rules from live data",
    )
    parser.add_argument(
        "-rule-file",
        "--rule-file",
        dest="rule_files",
        action="append",
        default=[],
        help="Rule file to reference from the generated tests (can be repeated)",
    )
    parser.add_argument(
        "-o",
        "--output",
        help="Output file path (default: stdout)",
    )
