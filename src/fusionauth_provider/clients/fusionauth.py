from __future__ import annotations

from typing import Any

import httpx

from fusionauth_provider import __version__
from fusionauth_provider.clients.base import BaseHTTPClient
from fusionauth_provider.clients.results import OperationResult, Success

DEFAULT_USER_AGENT = f"fusionauth-provider/{__version__}"


class FusionAuthClient(BaseHTTPClient):
    """FusionAuth administrative API client.

    Holds no resource state, so one instance can be shared by every lifecycle
    manager the provider builds.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None,
        *,
        tenant_id: str | None = None,
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff_factor: float = 2.0,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            base_url,
            timeout=timeout,
            max_retries=max_retries,
            backoff_factor=backoff_factor,
            transport=transport,
        )
        self._api_key = api_key
        self._tenant_id = tenant_id
        self._user_agent = user_agent

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "User-Agent": self._user_agent,
        }
        if self._api_key:
            headers["Authorization"] = self._api_key
        if self._tenant_id:
            headers["X-FusionAuth-TenantId"] = self._tenant_id
        return headers

    async def retrieve_status(self) -> OperationResult:
        return await self.get("/api/status")

    def keys(self) -> "ResourceEndpoint":
        """Key collection; creation goes through the generate endpoint."""
        return self.endpoint("/api/key", "key", create_suffix="/generate")

    def endpoint(self, path: str, envelope: str, *, create_suffix: str = "") -> "ResourceEndpoint":
        return ResourceEndpoint(self, path, envelope, create_suffix=create_suffix)


class ResourceEndpoint:
    """Adapts one FusionAuth collection to the ``RemoteResourceClient`` protocol.

    FusionAuth wraps request and response objects in an envelope named after
    the resource (``{"key": {...}}``); the envelope is added on the way out and
    removed from ``Success.payload`` on the way back.
    """

    def __init__(
        self,
        client: BaseHTTPClient,
        path: str,
        envelope: str,
        *,
        create_suffix: str = "",
    ) -> None:
        self._client = client
        self._path = path.rstrip("/")
        self._envelope = envelope
        self._create_suffix = create_suffix

    @property
    def path(self) -> str:
        return self._path

    def _unwrap(self, result: OperationResult) -> OperationResult:
        if isinstance(result, Success) and self._envelope in result.payload:
            inner = result.payload[self._envelope]
            return Success(status_code=result.status_code, payload=inner if isinstance(inner, dict) else {})
        return result

    async def create(self, payload: dict[str, Any], resource_id: str | None = None) -> OperationResult:
        path = f"{self._path}{self._create_suffix}"
        if resource_id:
            path = f"{path}/{resource_id}"
        return self._unwrap(await self._client.post(path, json={self._envelope: payload}))

    async def retrieve(self, resource_id: str) -> OperationResult:
        return self._unwrap(await self._client.get(f"{self._path}/{resource_id}"))

    async def update(self, resource_id: str, payload: dict[str, Any]) -> OperationResult:
        return self._unwrap(
            await self._client.patch(f"{self._path}/{resource_id}", json={self._envelope: payload})
        )

    async def delete(self, resource_id: str) -> OperationResult:
        return self._unwrap(await self._client.delete(f"{self._path}/{resource_id}"))
