"""Rule catalog and dependency analysis."""

from promtestgen.rules.analyzer import (
    DependencyAnalyzer,
    InspectionReport,
    RuleInfo,
    RuleQuery,
    analyze_recording_rules,
)
from promtestgen.rules.catalog import RuleCatalog, RuleDefinition, RuleKind, load_catalog

__all__ = [
    "DependencyAnalyzer",
    "InspectionReport",
    "RuleInfo",
    "RuleQuery",
    "analyze_recording_rules",
    "RuleCatalog",
    "RuleDefinition",
    "RuleKind",
    "load_catalog",
]
