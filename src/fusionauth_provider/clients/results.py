"""Outcome of a single remote call.

Exactly one variant is produced per call, so "both populated" and "neither
populated" cannot be represented.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

NOT_FOUND_CODE = "[notFound]"


@dataclass(frozen=True)
class ErrorDetail:
    """A structured FusionAuth error (``generalErrors`` or ``fieldErrors`` entry)."""

    code: str
    message: str
    field: str | None = None

    def __str__(self) -> str:
        if self.field:
            return f"{self.field}: {self.message} ({self.code})"
        return f"{self.message} ({self.code})"


@dataclass(frozen=True)
class Success:
    status_code: int
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ApiError:
    status_code: int
    errors: tuple[ErrorDetail, ...] = ()

    @property
    def not_found(self) -> bool:
        return self.status_code == 404 or any(e.code == NOT_FOUND_CODE for e in self.errors)

    @property
    def message(self) -> str:
        if not self.errors:
            return f"unexpected HTTP {self.status_code} with no error details"
        return "; ".join(str(e) for e in self.errors)


@dataclass(frozen=True)
class TransportError:
    cause: BaseException

    @property
    def message(self) -> str:
        return f"{type(self.cause).__name__}: {self.cause}"


OperationResult = Union[Success, ApiError, TransportError]


def parse_error_body(status_code: int, body: Any) -> ApiError:
    """Build an ``ApiError`` from a FusionAuth error response body.

    FusionAuth answers a missing object with an empty 404; that case gets a
    synthetic ``[notFound]`` entry so callers can match on the code.
    """
    errors: list[ErrorDetail] = []
    if isinstance(body, dict):
        for item in body.get("generalErrors") or []:
            errors.append(ErrorDetail(code=str(item.get("code", "")), message=str(item.get("message", ""))))
        for field_name, items in (body.get("fieldErrors") or {}).items():
            for item in items or []:
                errors.append(
                    ErrorDetail(
                        code=str(item.get("code", "")),
                        message=str(item.get("message", "")),
                        field=field_name,
                    )
                )
    if status_code == 404 and not errors:
        errors.append(ErrorDetail(code=NOT_FOUND_CODE, message="The requested object was not found"))
    return ApiError(status_code=status_code, errors=tuple(errors))
