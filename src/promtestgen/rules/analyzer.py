"""
Classify the metrics read by each rule as direct or indirect.

A direct dependency is a scraped metric; an indirect dependency is the
output of another recording rule.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from promtestgen.promql.walker import extract_selectors
from promtestgen.rules.catalog import RuleCatalog, RuleDefinition


@dataclass(frozen=True)
class RuleQuery:
    """One definition of a rule: its expression and extra labels."""

    expression: str
    labels: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"expression": self.expression, "labels": dict(self.labels)}


@dataclass
class RuleInfo:
    """Inspection report for one rule name."""

    name: str
    queries: List[RuleQuery] = field(default_factory=list)
    direct: List[str] = field(default_factory=list)
    indirect: List[str] = field(default_factory=list)
    unnamed: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "queries": [q.to_dict() for q in self.queries],
            "metrics": {
                "direct": list(self.direct),
                "indirect": list(self.indirect),
                "unnamed": list(self.unnamed),
            },
        }


@dataclass
class InspectionReport:
    """Analysis of every selected alerting and recording rule."""

    alerting_rules: List[RuleInfo] = field(default_factory=list)
    recording_rules: List[RuleInfo] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "alertingRules": [ri.to_dict() for ri in self.alerting_rules],
            "recordingRules": [ri.to_dict() for ri in self.recording_rules],
        }


class DependencyAnalyzer:
    """Builds :class:`RuleInfo` reports from a :class:`RuleCatalog`."""

    def __init__(self, catalog: RuleCatalog) -> None:
        self._catalog = catalog

    def analyze_rule(self, name: str, definitions: List[RuleDefinition]) -> RuleInfo:
        """Analyze every definition sharing ``name``.

        Queries and metric names are accumulated across definitions with
        append semantics.

        Raises:
            ExpressionParseError: If any definition's expression is invalid
        """
        info = RuleInfo(name=name)

        for rule in definitions:
            info.queries.append(RuleQuery(expression=rule.query, labels=dict(rule.labels)))

            deps = extract_selectors(rule.query)
            for metric in deps.metric_names:
                if self._catalog.is_recorded(metric):
                    info.indirect.append(metric)
                else:
                    info.direct.append(metric)
            info.unnamed.extend(s for s in deps.unnamed if s not in info.unnamed)

        return info

    def analyze_recording_rules(
        self, select: Optional[Callable[[str], bool]] = None
    ) -> List[RuleInfo]:
        """Analyze recording rules in lexicographic name order."""
        return self._analyze(self._catalog.recording, select)

    def analyze_alerting_rules(
        self, select: Optional[Callable[[str], bool]] = None
    ) -> List[RuleInfo]:
        """Analyze alerting rules in lexicographic name order."""
        return self._analyze(self._catalog.alerting, select)

    def inspect(
        self,
        select_recording: Optional[Callable[[str], bool]] = None,
        select_alerting: Optional[Callable[[str], bool]] = None,
    ) -> InspectionReport:
        return InspectionReport(
            alerting_rules=self.analyze_alerting_rules(select_alerting),
            recording_rules=self.analyze_recording_rules(select_recording),
        )

    def _analyze(
        self,
        rules: Dict[str, List[RuleDefinition]],
        select: Optional[Callable[[str], bool]],
    ) -> List[RuleInfo]:
        return [
            self.analyze_rule(name, rules[name])
            for name in sorted(rules)
            if select is None or select(name)
        ]


def analyze_recording_rules(catalog: RuleCatalog) -> List[RuleInfo]:
    """Report direct and indirect dependencies of every recording rule."""
    return DependencyAnalyzer(catalog).analyze_recording_rules()
