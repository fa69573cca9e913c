"""
Rule catalog built from the rule groups currently loaded on the server.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List

import structlog

from promtestgen.client.base import MetricsGateway
from promtestgen.client.models import AlertingRule, RecordingRule, RuleGroup

logger = structlog.get_logger()


class RuleKind(Enum):
    ALERTING = "alerting"
    RECORDING = "recording"


@dataclass(frozen=True)
class RuleDefinition:
    """One rule instance; several may share a name across groups."""

    name: str
    query: str
    kind: RuleKind
    labels: Dict[str, str] = field(default_factory=dict)
    group: str = ""


@dataclass
class RuleCatalog:
    """Alerting and recording rules keyed by name.

    Names keep every definition in load order. A name present in
    ``recording`` is the output of a recording rule and therefore never a
    direct (scraped) dependency.
    """

    alerting: Dict[str, List[RuleDefinition]] = field(default_factory=dict)
    recording: Dict[str, List[RuleDefinition]] = field(default_factory=dict)

    @classmethod
    def from_groups(cls, groups: List[RuleGroup]) -> "RuleCatalog":
        catalog = cls()
        for group in groups:
            for rule in group.rules:
                catalog._add(rule, group.name)
        return catalog

    def _add(self, rule: AlertingRule | RecordingRule, group: str) -> None:
        if isinstance(rule, AlertingRule):
            kind, target = RuleKind.ALERTING, self.alerting
        else:
            kind, target = RuleKind.RECORDING, self.recording

        target.setdefault(rule.name, []).append(
            RuleDefinition(
                name=rule.name,
                query=rule.query,
                kind=kind,
                labels=dict(rule.labels),
                group=group,
            )
        )

    def is_recorded(self, metric: str) -> bool:
        """True if ``metric`` is produced by a recording rule."""
        return metric in self.recording

    def is_scraped(self, metric: str) -> bool:
        return metric not in self.recording

    def recording_names(self) -> List[str]:
        return sorted(self.recording)

    def alerting_names(self) -> List[str]:
        return sorted(self.alerting)


def load_catalog(gateway: MetricsGateway) -> RuleCatalog:
    """Load the rule catalog with a single rules listing call.

    Raises:
        FetchError: If the backend call fails; no partial catalog is returned
    """
    groups = gateway.rule_groups()
    catalog = RuleCatalog.from_groups(groups)
    logger.info(
        "rule_catalog_loaded",
        groups=len(groups),
        alerting=len(catalog.alerting),
        recording=len(catalog.recording),
    )
    return catalog
