"""
Unified error handling for promtestgen commands.

Every failure is surfaced to the top level as a single descriptive message
on the error stream.

Exit Codes:
- 0: Success
- 2: Any argument or operational error
- 130: Interrupted
"""

from __future__ import annotations

import functools
import sys
from enum import IntEnum
from typing import Any, Callable, TypeVar

import structlog

logger = structlog.get_logger()


class ExitCode(IntEnum):
    """Exit codes for CLI commands."""

    SUCCESS = 0
    ERROR = 2
    INTERRUPTED = 130


class PromTestGenError(Exception):
    """Base exception for promtestgen errors with exit code support."""

    exit_code: ExitCode = ExitCode.ERROR

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(PromTestGenError):
    """Raised for a bad or missing endpoint and other invalid options."""


class FetchError(PromTestGenError):
    """Raised when the rule groups cannot be loaded from the backend."""


class ExpressionParseError(PromTestGenError):
    """Raised when a rule expression is not valid PromQL."""


class QueryError(PromTestGenError):
    """Raised when an instant or range query fails or returns no data."""


F = TypeVar("F", bound=Callable[..., int])


def format_error_message(error: PromTestGenError) -> str:
    """Format an error message for display to users."""
    msg = error.message
    if error.details:
        detail_str = ", ".join(f"{k}={v}" for k, v in error.details.items())
        msg = f"{msg} ({detail_str})"
    return msg


def main_with_error_handling(*, log_errors: bool = True) -> Callable[[F], F]:
    """
    Decorator for CLI handlers that converts exceptions into exit codes.

    Args:
        log_errors: If True, also log errors to structlog at debug level;
            the message itself is printed once to stderr

    Exit codes:
        - PromTestGenError subclasses: the error's exit_code
        - KeyboardInterrupt: 130
        - Other exceptions: 2
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            try:
                return func(*args, **kwargs)
            except PromTestGenError as e:
                if log_errors:
                    logger.debug(
                        "command_error",
                        error_type=type(e).__name__,
                        message=e.message,
                        exit_code=int(e.exit_code),
                    )
                print(format_error_message(e), file=sys.stderr)
                return e.exit_code
            except KeyboardInterrupt:
                if log_errors:
                    logger.info("command_interrupted")
                return ExitCode.INTERRUPTED
            except Exception as e:
                if log_errors:
                    logger.debug(
                        "unexpected_error",
                        error_type=type(e).__name__,
                        message=str(e),
                        exit_code=int(ExitCode.ERROR),
                    )
                print(f"{type(e).__name__}: {e}", file=sys.stderr)
                return ExitCode.ERROR

        return wrapper  # type: ignore[return-value]

    return decorator
