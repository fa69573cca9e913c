"""Render fixtures as a rule unit-test file."""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import List

import yaml

from promtestgen.fixtures.generator import INTERVAL
from promtestgen.fixtures.models import Fixture, format_duration


@dataclass(frozen=True)
class UnitTestFile:
    """Contents of one unit-test file.

    Fixtures are written in the order given.
    """

    tests: List[Fixture]
    evaluation_interval: timedelta = INTERVAL
    rule_files: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "rule_files": list(self.rule_files),
            "evaluation_interval": format_duration(self.evaluation_interval),
            "tests": [fixture.to_dict() for fixture in self.tests],
        }

    def to_yaml(self) -> str:
        return yaml.safe_dump(
            self.to_dict(),
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
            width=float("inf"),
        )


def render_test_file(
    fixtures: List[Fixture],
    evaluation_interval: timedelta = INTERVAL,
    rule_files: List[str] | None = None,
) -> str:
    """Render ``fixtures`` as the YAML document of a unit-test file."""
    return UnitTestFile(
        tests=list(fixtures),
        evaluation_interval=evaluation_interval,
        rule_files=list(rule_files or []),
    ).to_yaml()
