"""
Immutable run configuration.

Built once at startup from command-line arguments layered over
:class:`~promtestgen.config.settings.Settings` and handed to every
component that needs it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional
from urllib.parse import urlparse

from promtestgen.core.errors import ConfigurationError

ALLOWED_SCHEMES = ("http", "https")


@dataclass(frozen=True)
class RuleSelection:
    """Set of rule names picked on the command line.

    An empty selection matches every rule.
    """

    names: tuple[str, ...] = ()

    @classmethod
    def from_flags(cls, values: Optional[Iterable[str]]) -> "RuleSelection":
        """Build a selection from repeated, comma-separated flag values."""
        names: list[str] = []
        for value in values or []:
            for name in value.split(","):
                name = name.strip()
                if name and name not in names:
                    names.append(name)
        return cls(names=tuple(names))

    @property
    def selects_all(self) -> bool:
        return not self.names

    def matches(self, name: str) -> bool:
        return self.selects_all or name in self.names

    def missing_from(self, available: Iterable[str]) -> list[str]:
        """Selected names that are not present in ``available``."""
        known = set(available)
        return [name for name in self.names if name not in known]


@dataclass(frozen=True)
class RunConfig:
    """Everything one promtestgen run needs to know."""

    url: str
    token_file: Optional[str] = None
    ca_file: Optional[str] = None
    insecure: bool = False
    timeout: float = 30.0
    recording_rules: RuleSelection = field(default_factory=RuleSelection)
    alerting_rules: RuleSelection = field(default_factory=RuleSelection)
    rule_files: tuple[str, ...] = ()

    def validate(self) -> "RunConfig":
        """Check the endpoint before any network call is made.

        Raises:
            ConfigurationError: If the URL is missing, relative or not http(s)
        """
        if not self.url:
            raise ConfigurationError("Missing -url parameter")

        parsed = urlparse(self.url)
        if parsed.scheme not in ALLOWED_SCHEMES:
            raise ConfigurationError(
                f"Invalid URL scheme: {parsed.scheme}", details={"url": self.url}
            )
        if not parsed.netloc:
            raise ConfigurationError("Invalid URL: missing host", details={"url": self.url})

        return self
