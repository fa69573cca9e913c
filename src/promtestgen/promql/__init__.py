"""PromQL expression helpers."""

from promtestgen.promql.walker import (
    DependencySet,
    extract_selectors,
    iter_nodes,
    keep_all,
    parse_expression,
)

__all__ = [
    "DependencySet",
    "extract_selectors",
    "iter_nodes",
    "keep_all",
    "parse_expression",
]
