from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, Protocol

from promtestgen.client.models import QueryResult, RuleGroup


class MetricsGateway(Protocol):
    """Contract for the metrics backend consumed by the catalog and generator."""

    def rule_groups(self) -> List[RuleGroup]:
        ...

    def query(self, expr: str, at: datetime) -> QueryResult:
        ...

    def query_range(
        self,
        expr: str,
        start: datetime,
        end: datetime,
        step: timedelta,
    ) -> QueryResult:
        ...
