"""Turn a remote call's outcome into a single proceed/retry/abort decision."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from fusionauth_provider.clients.results import (
    ApiError,
    OperationResult,
    Success,
    TransportError,
)
from fusionauth_provider.core.errors import FatalRemoteError, RetryableRemoteError


class ClassifyContext(Enum):
    """Calling context; decides how "not found" is interpreted."""

    DEFAULT = "default"
    DELETE = "delete"


@dataclass(frozen=True)
class Proceed:
    payload: dict[str, Any] = field(default_factory=dict)
    # Set when a delete-context "not found" was accepted as success.
    absent: bool = False


@dataclass(frozen=True)
class RetryableFailure:
    error: RetryableRemoteError


@dataclass(frozen=True)
class FatalFailure:
    error: FatalRemoteError


RetryDecision = Union[Proceed, RetryableFailure, FatalFailure]


def classify(
    result: OperationResult,
    context: ClassifyContext = ClassifyContext.DEFAULT,
    *,
    retry_tolerant: bool = False,
    resource: str | None = None,
    operation: str | None = None,
) -> RetryDecision:
    """Classify ``result``.

    Transport errors are fatal unless ``retry_tolerant`` is set. In the delete
    context a not-found response means the object is already gone. Any other
    API error, or a non-2xx status slipping through as a success, is fatal.
    """
    details: dict[str, Any] = {}
    if resource is not None:
        details["resource"] = resource
    if operation is not None:
        details["operation"] = operation

    if isinstance(result, TransportError):
        message = f"transport failure: {result.message}"
        details["cause"] = result.message
        if retry_tolerant:
            return RetryableFailure(RetryableRemoteError(message, details))
        return FatalFailure(FatalRemoteError(message, details))

    if isinstance(result, ApiError):
        if result.not_found and context is ClassifyContext.DELETE:
            return Proceed(absent=True)
        details["status"] = result.status_code
        details["cause"] = result.message
        return FatalFailure(FatalRemoteError(f"FusionAuth rejected the request: {result.message}", details))

    if isinstance(result, Success):
        if not 200 <= result.status_code < 300:
            details["status"] = result.status_code
            return FatalFailure(
                FatalRemoteError(
                    f"unexpected HTTP {result.status_code} without error details",
                    details,
                )
            )
        return Proceed(payload=result.payload)

    raise TypeError(f"Unsupported operation result: {result!r}")
