"""
Generate rule unit-test fixtures from live data.

For each selected recording rule the generator:

1. resolves the scraped metrics its expressions read (other recording
   rules are skipped, their inputs are reached through their own fixture)
2. queries the rule's own output over the lookback window; the latest
   sample timestamp becomes the alignment point and the latest values the
   expected samples
3. range-queries every dependency over ``[alignment - lookback, alignment]``
4. places every collected sample on the step grid of the window, sorts the
   series and packages everything as one fixture

Any query error aborts the whole run.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import structlog

from promtestgen.client.base import MetricsGateway
from promtestgen.client.models import MatrixResult, QueryResult, ResultType, Sample
from promtestgen.core.errors import QueryError
from promtestgen.fixtures.models import (
    ExpectedSample,
    ExpressionTestCase,
    Fixture,
    InputSeries,
    format_duration,
    format_value,
)
from promtestgen.logging import bind_context
from promtestgen.promql.walker import extract_selectors
from promtestgen.rules.catalog import RuleCatalog

logger = structlog.get_logger()

LOOKBACK = timedelta(minutes=5)
STEP = timedelta(minutes=1)
INTERVAL = timedelta(minutes=1)

# Missing-sample token of the input series notation.
MISSING = "_"


def _slot_values(
    samples: Iterable[Sample], start: datetime, step: timedelta, slots: int
) -> List[str]:
    values = [MISSING] * slots
    for sample in samples:
        index = round((sample.timestamp - start) / step)
        if 0 <= index < slots and values[index] == MISSING:
            values[index] = format_value(sample.value)
    return values


def assemble_input(
    series: Mapping[str, Sequence[Sample]],
    start: datetime,
    step: timedelta,
    slots: int,
) -> List[InputSeries]:
    """Turn collected series into input rows sorted by series key.

    Every row holds one value per ``step`` from ``start``, ``slots`` values in
    all. Steps without a sample are written as ``_`` so later samples keep
    their position relative to the evaluation time.
    """
    return [
        InputSeries(series=key, values=" ".join(_slot_values(series[key], start, step, slots)))
        for key in sorted(series)
    ]


class SeriesAccumulator:
    """Sample history per series key; the first query to report a key wins."""

    def __init__(self) -> None:
        self._series: Dict[str, List[Sample]] = {}

    def add(self, key: str, samples: Iterable[Sample]) -> bool:
        """Record ``samples`` for ``key`` unless the key is already populated."""
        if key in self._series:
            return False
        self._series[key] = list(samples)
        return True

    def add_matrix(self, matrix: MatrixResult) -> int:
        """Record every new series of a range result, returning how many were new."""
        return sum(1 for stream in matrix.series if self.add(stream.key, stream.samples))

    def __contains__(self, key: object) -> bool:
        return key in self._series

    def __len__(self) -> int:
        return len(self._series)

    def get(self, key: str) -> List[Sample] | None:
        samples = self._series.get(key)
        return list(samples) if samples is not None else None

    def input_series(self, start: datetime, step: timedelta, slots: int) -> List[InputSeries]:
        return assemble_input(self._series, start, step, slots)


class FixtureGenerator:
    """Builds one :class:`Fixture` per selected recording rule."""

    def __init__(
        self,
        catalog: RuleCatalog,
        gateway: MetricsGateway,
        *,
        lookback: timedelta = LOOKBACK,
        step: timedelta = STEP,
        interval: timedelta = INTERVAL,
    ) -> None:
        self._catalog = catalog
        self._gateway = gateway
        self._lookback = lookback
        self._step = step
        self._interval = interval

    @property
    def slots(self) -> int:
        """Number of input values per series: one per step, both window ends included."""
        return int(self._lookback / self._step) + 1

    def dependency_queries(self, name: str) -> List[str]:
        """Scraped metrics read by any definition of recording rule ``name``.

        Raises:
            ExpressionParseError: If a definition's expression is invalid
        """
        queries: List[str] = []
        for rule in self._catalog.recording.get(name, []):
            deps = extract_selectors(rule.query, self._catalog.is_scraped)
            if deps.unnamed:
                logger.warning("unnamed_selectors_skipped", rule=name, selectors=deps.unnamed)
            for metric in deps.metric_names:
                if metric not in queries:
                    queries.append(metric)
        return queries

    def fetch_own_value(
        self, name: str, now: datetime
    ) -> Tuple[List[ExpectedSample], datetime]:
        """Latest recorded values of ``name`` and the timestamp they were recorded at.

        Raises:
            QueryError: If the query fails or no sample was recorded in the
                lookback window
        """
        expr = f"{name}[{format_duration(self._lookback)}]"
        result = self._gateway.query(expr, now)

        streams = [s for s in _require_matrix(expr, result).series if s.samples]
        if not streams:
            raise QueryError(
                f"found 0 samples for {name} over the last {format_duration(self._lookback)}",
                details={"rule": name},
            )

        alignment = max(stream.samples[-1].timestamp for stream in streams)
        expected = sorted(
            (ExpectedSample(labels=stream.key, value=stream.samples[-1].value) for stream in streams),
            key=lambda sample: sample.labels,
        )
        return expected, alignment

    def fetch_dependency_history(
        self, queries: Sequence[str], alignment: datetime
    ) -> SeriesAccumulator:
        """Range-query every dependency over the window ending at ``alignment``."""
        accumulator = SeriesAccumulator()
        start = alignment - self._lookback

        for query in queries:
            result = self._gateway.query_range(query, start, alignment, self._step)
            if result.result_type is not ResultType.MATRIX:
                logger.warning(
                    "dependency_result_skipped",
                    query=query,
                    result_type=result.result_type.value,
                )
                continue

            added = accumulator.add_matrix(result)
            logger.debug("dependency_fetched", query=query, new_series=added)

        return accumulator

    def generate_rule(self, name: str, now: datetime) -> Fixture:
        """Build the fixture of a single recording rule."""
        log = bind_context(rule=name)

        queries = self.dependency_queries(name)
        expected, alignment = self.fetch_own_value(name, now)
        history = self.fetch_dependency_history(queries, alignment)

        log.info(
            "fixture_generated",
            dependencies=len(queries),
            input_series=len(history),
            expected_samples=len(expected),
            alignment=alignment.isoformat(),
        )

        return Fixture(
            interval=self._interval,
            input_series=history.input_series(
                alignment - self._lookback, self._step, self.slots
            ),
            test_case=ExpressionTestCase(
                expr=name,
                eval_time=self._lookback,
                exp_samples=expected,
            ),
        )

    def generate(
        self,
        select: Optional[Callable[[str], bool]] = None,
        now: Optional[datetime] = None,
    ) -> List[Fixture]:
        """Build fixtures for the selected recording rules in name order.

        Raises:
            ExpressionParseError: On the first invalid rule expression
            QueryError: On the first failed or empty query
        """
        now = now or datetime.now(timezone.utc)
        return [
            self.generate_rule(name, now)
            for name in self._catalog.recording_names()
            if select is None or select(name)
        ]


def _require_matrix(expr: str, result: QueryResult) -> MatrixResult:
    if not isinstance(result, MatrixResult):
        raise QueryError(
            f"unexpected {result.result_type.value} result for {expr}",
            details={"query": expr},
        )
    return result


def generate_fixtures(
    catalog: RuleCatalog,
    gateway: MetricsGateway,
    select: Optional[Callable[[str], bool]] = None,
    now: Optional[datetime] = None,
) -> List[Fixture]:
    """Generate fixtures for every recording rule accepted by ``select``."""
    return FixtureGenerator(catalog, gateway).generate(select, now)
