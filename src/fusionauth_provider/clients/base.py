from __future__ import annotations

from typing import Any, Protocol

import httpx
import structlog
from circuitbreaker import CircuitBreaker, CircuitBreakerError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from fusionauth_provider.clients.results import (
    ApiError,
    ErrorDetail,
    OperationResult,
    Success,
    TransportError,
    parse_error_body,
)

logger = structlog.get_logger()


class RetryableHTTPError(Exception):
    """HTTP errors that should be retried."""


def is_retryable_status(status_code: int) -> bool:
    """Determine if HTTP status code is retryable."""
    return status_code in (408, 429, 500, 502, 503, 504)


class RemoteResourceClient(Protocol):
    """CRUD contract the lifecycle manager consumes for one resource collection."""

    async def create(self, payload: dict[str, Any], resource_id: str | None = None) -> OperationResult:
        ...

    async def retrieve(self, resource_id: str) -> OperationResult:
        ...

    async def update(self, resource_id: str, payload: dict[str, Any]) -> OperationResult:
        ...

    async def delete(self, resource_id: str) -> OperationResult:
        ...


class BaseHTTPClient:
    """Base HTTP client with retry logic and circuit breaker.

    Remote failures are never raised: every request resolves to a
    ``Success``, ``ApiError`` or ``TransportError``.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff_factor: float = 2.0,
        circuit_failure_threshold: int = 5,
        circuit_recovery_timeout: int = 60,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._max_retries = max(1, max_retries)
        self._backoff_factor = backoff_factor
        self._transport = transport
        self._breaker = CircuitBreaker(
            failure_threshold=circuit_failure_threshold,
            recovery_timeout=circuit_recovery_timeout,
            expected_exception=RetryableHTTPError,
            name=f"http:{self._base_url}",
        )
        self._guarded_send = self._breaker(self._send)

    @property
    def base_url(self) -> str:
        return self._base_url

    def _headers(self) -> dict[str, str]:
        """Override to provide custom headers."""
        return {"Content-Type": "application/json"}

    async def _send(
        self,
        method: str,
        url: str,
        *,
        json: dict[str, Any] | None,
        headers: dict[str, str],
    ) -> httpx.Response:
        """Execute a single HTTP attempt, raising for retryable conditions."""
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.request(method, url, json=json, headers=headers)
        except (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError) as exc:
            logger.warning("http_network_error", method=method, url=url, error=str(exc))
            raise RetryableHTTPError(str(exc)) from exc

        if is_retryable_status(response.status_code):
            logger.warning(
                "http_retryable_error",
                status=response.status_code,
                method=method,
                url=url,
            )
            raise RetryableHTTPError(f"HTTP {response.status_code}: {response.text}")
        return response

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> OperationResult:
        """Execute HTTP request with retry and circuit breaker."""
        url = f"{self._base_url}{path}"
        req_headers = self._headers()
        if headers:
            req_headers.update(headers)

        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(RetryableHTTPError),
                stop=stop_after_attempt(self._max_retries),
                wait=wait_exponential(multiplier=self._backoff_factor, max=30),
                reraise=True,
            ):
                with attempt:
                    response = await self._guarded_send(method, url, json=json, headers=req_headers)
        except (RetryableHTTPError, CircuitBreakerError) as exc:
            logger.error("http_transport_failed", method=method, url=url, error=str(exc))
            return TransportError(cause=exc)
        except httpx.HTTPError as exc:
            logger.error("http_unexpected_error", method=method, url=url, error=str(exc))
            return TransportError(cause=exc)

        return self._to_result(method, url, response)

    def _to_result(self, method: str, url: str, response: httpx.Response) -> OperationResult:
        status = response.status_code
        if 200 <= status < 300:
            if not response.content:
                return Success(status_code=status)
            try:
                body = response.json()
            except ValueError:
                logger.error("http_invalid_json", status=status, method=method, url=url)
                return ApiError(
                    status_code=status,
                    errors=(ErrorDetail(code="[invalidResponse]", message="Response body is not valid JSON"),),
                )
            return Success(status_code=status, payload=body if isinstance(body, dict) else {})

        error_body: Any = None
        if response.content:
            try:
                error_body = response.json()
            except ValueError:
                error_body = None
        if status != 404:
            logger.info("http_api_error", status=status, method=method, url=url)
        return parse_error_body(status, error_body)

    async def get(self, path: str, *, headers: dict[str, str] | None = None) -> OperationResult:
        """Execute GET request."""
        return await self._request("GET", path, headers=headers)

    async def post(
        self,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> OperationResult:
        """Execute POST request."""
        return await self._request("POST", path, json=json, headers=headers)

    async def patch(
        self,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> OperationResult:
        """Execute PATCH request."""
        return await self._request("PATCH", path, json=json, headers=headers)

    async def delete(self, path: str, *, headers: dict[str, str] | None = None) -> OperationResult:
        """Execute DELETE request."""
        return await self._request("DELETE", path, headers=headers)
