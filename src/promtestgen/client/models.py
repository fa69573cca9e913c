"""
Typed views over Prometheus HTTP API payloads.

Query results arrive as a union discriminated by ``resultType``; rules
arrive as one heterogeneous list discriminated by ``type``. Both are
resolved into concrete classes once, at decode time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Union

METRIC_NAME_LABEL = "__name__"


class ResultType(Enum):
    """Shape of a query result."""

    SCALAR = "scalar"
    STRING = "string"
    VECTOR = "vector"
    MATRIX = "matrix"


def _escape_label_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def series_key(labels: Dict[str, str]) -> str:
    """Canonical string identity of a labelled series.

    ``name{a="1", b="2"}`` with labels sorted by name, ``name`` when the
    metric name is the only label and ``{}`` for an empty label set.
    """
    name = labels.get(METRIC_NAME_LABEL, "")
    pairs = sorted(
        f'{k}="{_escape_label_value(v)}"' for k, v in labels.items() if k != METRIC_NAME_LABEL
    )
    if not pairs:
        return name or "{}"
    return f"{name}{{{', '.join(pairs)}}}"


def _parse_timestamp(raw: Any) -> datetime:
    return datetime.fromtimestamp(float(raw), tz=timezone.utc)


@dataclass(frozen=True)
class Sample:
    """A single scalar observation."""

    timestamp: datetime
    value: float

    @classmethod
    def from_pair(cls, pair: List[Any]) -> "Sample":
        """Decode a ``[<unix seconds>, "<value>"]`` pair."""
        return cls(timestamp=_parse_timestamp(pair[0]), value=float(pair[1]))


@dataclass(frozen=True)
class VectorSample:
    """One series of an instant vector."""

    labels: Dict[str, str]
    sample: Sample

    @property
    def key(self) -> str:
        return series_key(self.labels)


@dataclass(frozen=True)
class SampleStream:
    """One series of a range vector, samples ordered by time."""

    labels: Dict[str, str]
    samples: List[Sample] = field(default_factory=list)

    @property
    def key(self) -> str:
        return series_key(self.labels)

    @property
    def last(self) -> Sample | None:
        return self.samples[-1] if self.samples else None


@dataclass(frozen=True)
class ScalarResult:
    sample: Sample
    result_type: ResultType = field(default=ResultType.SCALAR, init=False)


@dataclass(frozen=True)
class StringResult:
    timestamp: datetime
    value: str
    result_type: ResultType = field(default=ResultType.STRING, init=False)


@dataclass(frozen=True)
class VectorResult:
    series: List[VectorSample] = field(default_factory=list)
    result_type: ResultType = field(default=ResultType.VECTOR, init=False)


@dataclass(frozen=True)
class MatrixResult:
    series: List[SampleStream] = field(default_factory=list)
    result_type: ResultType = field(default=ResultType.MATRIX, init=False)


QueryResult = Union[ScalarResult, StringResult, VectorResult, MatrixResult]


def decode_query_result(data: Dict[str, Any]) -> QueryResult:
    """Decode the ``data`` member of a query/query_range response.

    Raises:
        ValueError: If ``resultType`` is unknown
    """
    result_type = ResultType(data.get("resultType"))
    result = data.get("result")

    if result_type is ResultType.SCALAR:
        return ScalarResult(sample=Sample.from_pair(result))

    if result_type is ResultType.STRING:
        return StringResult(timestamp=_parse_timestamp(result[0]), value=str(result[1]))

    if result_type is ResultType.VECTOR:
        return VectorResult(
            series=[
                VectorSample(
                    labels=dict(item.get("metric", {})),
                    sample=Sample.from_pair(item["value"]),
                )
                for item in result or []
                if "value" in item
            ]
        )

    return MatrixResult(
        series=[
            SampleStream(
                labels=dict(item.get("metric", {})),
                samples=[Sample.from_pair(pair) for pair in item.get("values", [])],
            )
            for item in result or []
        ]
    )


@dataclass(frozen=True)
class AlertingRule:
    """An alerting rule as reported by the rules API."""

    name: str
    query: str
    labels: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class RecordingRule:
    """A recording rule as reported by the rules API."""

    name: str
    query: str
    labels: Dict[str, str] = field(default_factory=dict)


Rule = Union[AlertingRule, RecordingRule]


@dataclass(frozen=True)
class RuleGroup:
    """A rule group loaded on the server."""

    name: str
    rules: List[Rule] = field(default_factory=list)


def decode_rule(raw: Dict[str, Any]) -> Rule:
    """Resolve one entry of a group's ``rules`` list into its variant.

    Raises:
        ValueError: If the rule type is neither alerting nor recording
    """
    kind = raw.get("type")
    if kind == "alerting":
        return AlertingRule(
            name=raw["name"],
            query=raw["query"],
            labels=dict(raw.get("labels") or {}),
        )
    if kind == "recording":
        return RecordingRule(
            name=raw["name"],
            query=raw["query"],
            labels=dict(raw.get("labels") or {}),
        )
    raise ValueError(f"unknown rule type: {kind!r}")


def decode_rule_groups(data: Dict[str, Any]) -> List[RuleGroup]:
    """Decode the ``data`` member of a ``/api/v1/rules`` response."""
    return [
        RuleGroup(
            name=group.get("name", ""),
            rules=[decode_rule(rule) for rule in group.get("rules") or []],
        )
        for group in data.get("groups") or []
    ]
