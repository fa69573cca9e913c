"""Access to the metrics backend."""

from promtestgen.client.base import MetricsGateway
from promtestgen.client.models import (
    AlertingRule,
    MatrixResult,
    QueryResult,
    RecordingRule,
    ResultType,
    RuleGroup,
    Sample,
    SampleStream,
    ScalarResult,
    StringResult,
    VectorResult,
    VectorSample,
    series_key,
)
from promtestgen.client.prometheus import BearerTokenFileAuth, PrometheusClient

__all__ = [
    "MetricsGateway",
    "PrometheusClient",
    "BearerTokenFileAuth",
    "AlertingRule",
    "RecordingRule",
    "RuleGroup",
    "ResultType",
    "QueryResult",
    "ScalarResult",
    "StringResult",
    "VectorResult",
    "MatrixResult",
    "Sample",
    "SampleStream",
    "VectorSample",
    "series_key",
]
