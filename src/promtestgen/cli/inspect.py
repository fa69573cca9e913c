"""CLI command for inspecting rule dependencies."""

from __future__ import annotations

import argparse
import json

from rich.markup import escape

from promtestgen.cli.ux import console, header, warning
from promtestgen.client.prometheus import PrometheusClient
from promtestgen.config.run import RunConfig
from promtestgen.rules.analyzer import DependencyAnalyzer, InspectionReport, RuleInfo
from promtestgen.rules.catalog import load_catalog


def inspect_command(config: RunConfig, output_format: str = "text") -> int:
    """Report the direct and indirect metric dependencies of every rule.

    Args:
        config: Validated run configuration
        output_format: ``text`` for a console report, ``json`` for a document

    Returns:
        Exit code (0 for success)
    """
    with PrometheusClient(config) as client:
        catalog = load_catalog(client)

    for name in config.recording_rules.missing_from(catalog.recording):
        warning(f"Recording rule not found: {name}")
    for name in config.alerting_rules.missing_from(catalog.alerting):
        warning(f"Alerting rule not found: {name}")

    report = DependencyAnalyzer(catalog).inspect(
        select_recording=config.recording_rules.matches,
        select_alerting=config.alerting_rules.matches,
    )

    if output_format == "json":
        print(json.dumps(report.to_dict(), indent=2, sort_keys=False))
    else:
        print_report(report)

    return 0


def print_report(report: InspectionReport) -> None:
    """Print a human-readable inspection report."""
    header("Recording rules")
    for info in report.recording_rules:
        _print_rule_info(info)

    header("Alerting rules")
    for info in report.alerting_rules:
        _print_rule_info(info)


def _line(text: str) -> None:
    # Long expressions stay on one line when stdout is not a terminal.
    console.print(text, soft_wrap=True)


def _print_rule_info(info: RuleInfo) -> None:
    _line(f"[bold]{escape(info.name)}[/bold]:")
    _line("  queries:")
    for query in info.queries:
        _line(f"    expr: {escape(query.expression)}")
        if query.labels:
            labels = ", ".join(f"{k}={v}" for k, v in sorted(query.labels.items()))
            _line(f"    labels: {escape(labels)}")
    _line("  metrics:")
    _line(f"    direct: {escape(', '.join(info.direct))}")
    _line(f"    indirect: {escape(', '.join(info.indirect))}")
    if info.unnamed:
        _line(f"    [muted]unnamed: {escape(', '.join(info.unnamed))}[/muted]")


def register_inspect_parser(
    subparsers: argparse._SubParsersAction, parents: list[argparse.ArgumentParser]
) -> None:
    """Register inspect subcommand parser."""
    parser = subparsers.add_parser(
        "inspect",
        parents=parents,
        help="Show the metrics each rule depends on (default)",
    )
    parser.add_argument(
        "--output",
        choices=["text", "json"],
        default="text",
        help="Output format",
    )
