"""Core error types shared across the provider."""

from fusionauth_provider.core.errors import (
    ConfigurationError,
    ConvergenceCancelledError,
    ConvergenceTimeoutError,
    ExitCode,
    FatalRemoteError,
    ProviderError,
    RemoteError,
    ResourceNotFoundError,
    RetryableRemoteError,
    ValidationError,
)

__all__ = [
    "ConfigurationError",
    "ConvergenceCancelledError",
    "ConvergenceTimeoutError",
    "ExitCode",
    "FatalRemoteError",
    "ProviderError",
    "RemoteError",
    "ResourceNotFoundError",
    "RetryableRemoteError",
    "ValidationError",
]
