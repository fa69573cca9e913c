"""Configuration for promtestgen runs."""

from promtestgen.config.run import RuleSelection, RunConfig
from promtestgen.config.settings import Settings, get_settings

__all__ = [
    "RuleSelection",
    "RunConfig",
    "Settings",
    "get_settings",
]
