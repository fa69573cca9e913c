"""Data models for generated rule unit tests."""

import math
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List

_DURATION_UNITS = (
    ("y", 365 * 24 * 3600 * 1000),
    ("w", 7 * 24 * 3600 * 1000),
    ("d", 24 * 3600 * 1000),
    ("h", 3600 * 1000),
    ("m", 60 * 1000),
    ("s", 1000),
    ("ms", 1),
)


def format_duration(duration: timedelta) -> str:
    """Render a duration the way Prometheus configuration spells it.

    ``timedelta(minutes=90)`` becomes ``1h30m``; zero becomes ``0s``.
    """
    ms = int(round(duration.total_seconds() * 1000))
    if ms == 0:
        return "0s"

    parts = []
    for unit, size in _DURATION_UNITS:
        count, ms = divmod(ms, size)
        if count:
            parts.append(f"{count}{unit}")
    return "".join(parts)


def format_value(value: float) -> str:
    """Render a sample value for an input series.

    Integral values drop the fractional part; special values use the
    spelling accepted by the rule test runner.
    """
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value.is_integer() and abs(value) < 1e15:
        return str(int(value))
    return repr(value)


@dataclass(frozen=True)
class InputSeries:
    """One input series of a test group."""

    series: str
    """Series key, e.g. ``http_requests_total{job="api"}``."""

    values: str
    """Space separated sample values, one per interval."""

    def to_dict(self) -> dict:
        return {"series": self.series, "values": self.values}


@dataclass(frozen=True)
class ExpectedSample:
    labels: str
    value: float

    def to_dict(self) -> dict:
        return {"labels": self.labels, "value": self.value}


@dataclass(frozen=True)
class ExpressionTestCase:
    """A PromQL expression evaluated at ``eval_time`` against the inputs."""

    expr: str
    eval_time: timedelta
    exp_samples: List[ExpectedSample] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "expr": self.expr,
            "eval_time": format_duration(self.eval_time),
            "exp_samples": [s.to_dict() for s in self.exp_samples],
        }


@dataclass(frozen=True)
class Fixture:
    """A self-contained test group: input series plus one expression test."""

    interval: timedelta
    input_series: List[InputSeries]
    test_case: ExpressionTestCase

    def to_dict(self) -> dict:
        return {
            "interval": format_duration(self.interval),
            "input_series": [s.to_dict() for s in self.input_series],
            "promql_expr_test": [self.test_case.to_dict()],
        }
