"""Core error types shared across promtestgen."""

from promtestgen.core.errors import (
    ConfigurationError,
    ExitCode,
    ExpressionParseError,
    FetchError,
    PromTestGenError,
    QueryError,
    main_with_error_handling,
)

__all__ = [
    "ExitCode",
    "PromTestGenError",
    "ConfigurationError",
    "FetchError",
    "ExpressionParseError",
    "QueryError",
    "main_with_error_handling",
]
