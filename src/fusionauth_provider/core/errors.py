"""
Unified error handling for the FusionAuth provider.

Every error raised by the reconciliation core derives from ``ProviderError``
and carries a ``details`` mapping (resource identifier, operation, cause) so
the orchestrator can render a diagnostic without re-deriving context.

Exit Codes:
- 0: Success
- 1: Warning (drift reported, operation succeeded)
- 10: Configuration error
- 11: Remote error (FusionAuth rejected the request)
- 12: Validation error
- 13: Convergence timeout
- 127: Unknown/internal error
"""

from __future__ import annotations

import functools
import sys
import traceback
from enum import IntEnum
from typing import Any, Callable, TypeVar

import structlog

logger = structlog.get_logger()


class ExitCode(IntEnum):
    """Standardized exit codes for CLI commands."""

    SUCCESS = 0
    WARNING = 1
    CONFIG_ERROR = 10
    REMOTE_ERROR = 11
    VALIDATION_ERROR = 12
    CONVERGENCE_TIMEOUT = 13
    UNKNOWN_ERROR = 127


class ProviderError(Exception):
    """Base exception for provider errors with exit code support."""

    exit_code: ExitCode = ExitCode.UNKNOWN_ERROR
    show_traceback: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(ProviderError):
    """Raised for configuration-related errors."""

    exit_code = ExitCode.CONFIG_ERROR


class ValidationError(ProviderError):
    """Raised for malformed declared attributes, before any remote call."""

    exit_code = ExitCode.VALIDATION_ERROR


class RemoteError(ProviderError):
    """Raised when FusionAuth returns an error or cannot be reached."""

    exit_code = ExitCode.REMOTE_ERROR


class FatalRemoteError(RemoteError):
    """Remote failure that must not be retried."""


class ResourceNotFoundError(FatalRemoteError):
    """Raised when an operation requires a remote object that does not exist."""


class RetryableRemoteError(RemoteError):
    """Transport failure or a not-yet-converged condition."""


class ConvergenceTimeoutError(RemoteError):
    """Raised when a convergence poll exhausts its time budget."""

    exit_code = ExitCode.CONVERGENCE_TIMEOUT


class ConvergenceCancelledError(RemoteError):
    """Raised when the caller aborts an in-flight convergence poll."""

    exit_code = ExitCode.CONVERGENCE_TIMEOUT


# Type variable for decorated functions
F = TypeVar("F", bound=Callable[..., int])


def main_with_error_handling(
    *,
    show_traceback: bool = False,
    log_errors: bool = True,
) -> Callable[[F], F]:
    """
    Decorator for CLI command functions that provides unified error handling.

    Args:
        show_traceback: If True, show full traceback for unexpected errors
        log_errors: If True, log errors to structlog

    Exit codes:
        - ProviderError subclasses: Uses the error's exit_code
        - KeyboardInterrupt: Returns 130 (standard for SIGINT)
        - Other exceptions: Returns 127 (unknown error)
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            try:
                return func(*args, **kwargs)
            except ProviderError as e:
                if log_errors:
                    logger.error(
                        "command_error",
                        error_type=type(e).__name__,
                        message=e.message,
                        exit_code=e.exit_code,
                        **e.details,
                    )
                if e.show_traceback or show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return e.exit_code
            except KeyboardInterrupt:
                if log_errors:
                    logger.info("command_interrupted")
                return 130
            except Exception as e:
                if log_errors:
                    logger.error(
                        "unexpected_error",
                        error_type=type(e).__name__,
                        message=str(e),
                        exit_code=ExitCode.UNKNOWN_ERROR,
                    )
                if show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return ExitCode.UNKNOWN_ERROR

        return wrapper  # type: ignore[return-value]

    return decorator


def format_error_message(error: ProviderError) -> str:
    """Format an error message for display to users."""
    msg = error.message
    if error.details:
        detail_str = ", ".join(f"{k}={v}" for k, v in error.details.items())
        msg = f"{msg} ({detail_str})"
    return msg
