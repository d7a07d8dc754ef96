"""Root test configuration and an in-memory FusionAuth key API."""

import json
import logging
import re
import uuid
from typing import Any

import httpx
import pytest
import structlog
from fusionauth_provider.clients.results import (
    ApiError,
    ErrorDetail,
    OperationResult,
    Success,
)

BASE_URL = "https://fusionauth.test"

KEY_PATH = re.compile(r"^/api/key(?:/generate)?(?:/(?P<key_id>[^/]+))?$")


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


class FakeFusionAuth:
    """Key API double.

    ``linger_reads`` makes a deleted key stay visible for that many retrieves,
    mimicking a multi-node FusionAuth that converges after the delete call.
    ``inject(op, result)`` makes the next ``op`` call return ``result``.
    """

    def __init__(self) -> None:
        self.keys: dict[str, dict[str, Any]] = {}
        self.linger_reads = 0
        self._lingering: dict[str, tuple[int, dict[str, Any]]] = {}
        self._injected: dict[str, list[OperationResult]] = {}
        self.calls: list[tuple[str, str | None]] = []

    def inject(self, op: str, *results: OperationResult) -> None:
        self._injected.setdefault(op, []).extend(results)

    def count(self, op: str) -> int:
        return sum(1 for name, _ in self.calls if name == op)

    def _take(self, op: str) -> OperationResult | None:
        queued = self._injected.get(op)
        return queued.pop(0) if queued else None

    def add_key(self, key_id: str | None = None, **fields: Any) -> dict[str, Any]:
        """Create a key out of band."""
        result = self.create_sync({"name": "external", "algorithm": "RS256", "length": 2048, **fields}, key_id)
        assert isinstance(result, Success)
        self.calls.pop()
        return result.payload

    def create_sync(self, payload: dict[str, Any], resource_id: str | None = None) -> OperationResult:
        self.calls.append(("create", resource_id))
        injected = self._take("create")
        if injected is not None:
            return injected
        key_id = resource_id or str(uuid.uuid4())
        if key_id in self.keys or key_id in self._lingering:
            return ApiError(400, (ErrorDetail("[duplicate]keyId", "A key with this Id already exists", "keyId"),))
        algorithm = payload.get("algorithm", "RS256")
        family = {"E": "EC", "H": "HMAC", "R": "RSA"}[algorithm[0]]
        key = {
            "id": key_id,
            "name": payload.get("name"),
            "algorithm": algorithm,
            "length": payload.get("length") or int(algorithm[2:]),
            "kid": key_id.replace("-", "")[:12],
            "type": family,
            "insertInstant": 1700000000000,
        }
        if family != "HMAC":
            key["publicKey"] = f"-----BEGIN PUBLIC KEY-----\n{key_id}\n-----END PUBLIC KEY-----"
        self.keys[key_id] = key
        return Success(200, dict(key))

    def retrieve_sync(self, resource_id: str) -> OperationResult:
        self.calls.append(("retrieve", resource_id))
        injected = self._take("retrieve")
        if injected is not None:
            return injected
        if resource_id in self.keys:
            return Success(200, dict(self.keys[resource_id]))
        if resource_id in self._lingering:
            remaining, stale = self._lingering[resource_id]
            if remaining <= 1:
                del self._lingering[resource_id]
            else:
                self._lingering[resource_id] = (remaining - 1, stale)
            return Success(200, dict(stale))
        return ApiError(404, (ErrorDetail("[notFound]", "not found"),))

    def update_sync(self, resource_id: str, payload: dict[str, Any]) -> OperationResult:
        self.calls.append(("update", resource_id))
        injected = self._take("update")
        if injected is not None:
            return injected
        if resource_id not in self.keys:
            return ApiError(404, (ErrorDetail("[notFound]", "not found"),))
        self.keys[resource_id].update(payload)
        return Success(200, dict(self.keys[resource_id]))

    def delete_sync(self, resource_id: str) -> OperationResult:
        self.calls.append(("delete", resource_id))
        injected = self._take("delete")
        if injected is not None:
            return injected
        if resource_id not in self.keys:
            return ApiError(404, (ErrorDetail("[notFound]", "not found"),))
        stale = self.keys.pop(resource_id)
        if self.linger_reads:
            self._lingering[resource_id] = (self.linger_reads, stale)
        return Success(200, {})

    # RemoteResourceClient protocol

    async def create(self, payload: dict[str, Any], resource_id: str | None = None) -> OperationResult:
        return self.create_sync(payload, resource_id)

    async def retrieve(self, resource_id: str) -> OperationResult:
        return self.retrieve_sync(resource_id)

    async def update(self, resource_id: str, payload: dict[str, Any]) -> OperationResult:
        return self.update_sync(resource_id, payload)

    async def delete(self, resource_id: str) -> OperationResult:
        return self.delete_sync(resource_id)

    # HTTP surface for respx

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/api/status":
            return httpx.Response(200, json={})
        match = KEY_PATH.match(path)
        if match is None:
            return httpx.Response(404)
        key_id = match.group("key_id")
        body = json.loads(request.content) if request.content else {}
        if request.method == "POST":
            result = self.create_sync(body.get("key", {}), key_id)
        elif request.method == "GET":
            result = self.retrieve_sync(key_id or "")
        elif request.method == "PATCH":
            result = self.update_sync(key_id or "", body.get("key", {}))
        elif request.method == "DELETE":
            result = self.delete_sync(key_id or "")
        else:
            return httpx.Response(405)
        return _to_response(result)


def _to_response(result: OperationResult) -> httpx.Response:
    if isinstance(result, Success):
        if not result.payload:
            return httpx.Response(result.status_code)
        return httpx.Response(result.status_code, json={"key": result.payload})
    if isinstance(result, ApiError):
        if result.not_found:
            return httpx.Response(404)
        return httpx.Response(
            result.status_code,
            json={"generalErrors": [{"code": e.code, "message": e.message} for e in result.errors]},
        )
    raise result.cause


@pytest.fixture
def fake_fusionauth() -> FakeFusionAuth:
    return FakeFusionAuth()


@pytest.fixture
def fusionauth_http(fake_fusionauth):
    """Route every request to BASE_URL through the fake."""
    import respx

    with respx.mock(base_url=BASE_URL, assert_all_called=False) as router:
        router.route().mock(side_effect=fake_fusionauth.handle)
        yield fake_fusionauth


@pytest.fixture
def no_sleep():
    async def _sleep(_seconds: float) -> None:
        return None

    return _sleep


@pytest.fixture
def provider(fusionauth_http):
    from fusionauth_provider.providers import FusionAuthProvider
    from fusionauth_provider.reconcile.poller import RetrySettings

    return FusionAuthProvider(
        "test-api-key",
        host=BASE_URL,
        max_retries=1,
        backoff_factor=0,
        retry=RetrySettings(timeout=1.0, interval=0.01),
    )


@pytest.fixture
def cli_env(monkeypatch, fusionauth_http, tmp_path):
    """Point the CLI at the fake API and a temporary state file."""
    from fusionauth_provider.config.settings import get_settings

    monkeypatch.setenv("FUSIONAUTH_HOST", BASE_URL)
    monkeypatch.setenv("FUSIONAUTH_API_KEY", "test-api-key")
    monkeypatch.setenv("FUSIONAUTH_HTTP_MAX_RETRIES", "1")
    monkeypatch.setenv("FUSIONAUTH_HTTP_RETRY_BACKOFF_FACTOR", "0")
    monkeypatch.setenv("FUSIONAUTH_CONVERGENCE_TIMEOUT", "1")
    monkeypatch.setenv("FUSIONAUTH_CONVERGENCE_INTERVAL", "0.01")
    monkeypatch.setenv("FUSIONAUTH_STATE_PATH", str(tmp_path / "fusionauth.state.json"))
    get_settings.cache_clear()
    yield tmp_path
    get_settings.cache_clear()
