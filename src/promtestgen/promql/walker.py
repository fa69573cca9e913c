"""
Collect the series selectors referenced by a PromQL expression.

The expression is parsed with ``promql-parser`` and the tree is traversed
with an explicit stack; every vector selector reachable from the root is
recorded, including the ones wrapped by range selectors and subqueries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List

import promql_parser
import structlog

from promtestgen.core.errors import ExpressionParseError

logger = structlog.get_logger()

# Attributes holding a single child expression, across all node types.
_CHILD_ATTRIBUTES = ("expr", "lhs", "rhs", "param", "vector_selector")


def keep_all(name: str) -> bool:
    return True


@dataclass
class DependencySet:
    """Selectors found in one expression, keyed by metric name.

    ``unnamed`` holds selectors that match by label only (``{job="x"}``).
    They are kept apart from the named ones and never filtered by the
    predicate.
    """

    selectors: Dict[str, List[str]] = field(default_factory=dict)
    unnamed: List[str] = field(default_factory=list)

    def add(self, name: str, selector: str) -> None:
        known = self.selectors.setdefault(name, [])
        if selector not in known:
            known.append(selector)

    def add_unnamed(self, selector: str) -> None:
        if selector not in self.unnamed:
            self.unnamed.append(selector)

    @property
    def metric_names(self) -> List[str]:
        """Referenced metric names, sorted."""
        return sorted(self.selectors)

    def __contains__(self, name: object) -> bool:
        return name in self.selectors

    def __len__(self) -> int:
        return len(self.selectors)


def parse_expression(expression: str) -> Any:
    """Parse PromQL text into a ``promql_parser`` AST.

    Raises:
        ExpressionParseError: If the expression is not valid PromQL
    """
    try:
        return promql_parser.parse(expression)
    except ValueError as exc:
        raise ExpressionParseError(
            f"failed to parse expression: {exc}", details={"expr": expression}
        ) from exc


def iter_nodes(root: Any) -> Iterator[Any]:
    """Yield every node of the tree, depth first."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node

        children = [getattr(node, attr, None) for attr in _CHILD_ATTRIBUTES]
        children.extend(getattr(node, "args", None) or [])
        stack.extend(reversed([child for child in children if child is not None]))


def _selector_text(node: Any) -> str:
    return node.prettify()


def extract_selectors(
    expression: str,
    keep: Callable[[str], bool] = keep_all,
) -> DependencySet:
    """Return the selectors of ``expression`` whose metric name passes ``keep``.

    Args:
        expression: PromQL query text
        keep: Predicate deciding whether a metric name is recorded

    Returns:
        DependencySet mapping metric names to their distinct selector strings

    Raises:
        ExpressionParseError: If the expression is not valid PromQL; no
            partial result is produced
    """
    deps = DependencySet()

    for node in iter_nodes(parse_expression(expression)):
        if not isinstance(node, promql_parser.VectorSelector):
            continue

        if not node.name:
            deps.add_unnamed(_selector_text(node))
            continue

        if keep(node.name):
            deps.add(node.name, _selector_text(node))

    if deps.unnamed:
        logger.debug("unnamed_selectors", expr=expression, selectors=deps.unnamed)

    return deps
