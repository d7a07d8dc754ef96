from __future__ import annotations

from fusionauth_provider.clients.fusionauth import FusionAuthClient
from fusionauth_provider.clients.results import TransportError
from fusionauth_provider.config.settings import Settings, get_settings
from fusionauth_provider.providers.base import Provider, ProviderHealth
from fusionauth_provider.reconcile.classifier import FatalFailure, classify
from fusionauth_provider.reconcile.lifecycle import ResourceManager
from fusionauth_provider.reconcile.poller import RetrySettings
from fusionauth_provider.resources import get_resource_type, list_resource_types
from fusionauth_provider.resources.base import ProviderResourceSchema


class FusionAuthProvider(Provider):
    """FusionAuth provider; hands one shared client to every lifecycle manager."""

    name = "fusionauth"

    def __init__(
        self,
        api_key: str | None,
        *,
        host: str = "http://localhost:9011",
        tenant_id: str | None = None,
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff_factor: float = 0.5,
        retry: RetrySettings | None = None,
        client: FusionAuthClient | None = None,
    ) -> None:
        self._client = client or FusionAuthClient(
            host,
            api_key,
            tenant_id=tenant_id,
            timeout=timeout,
            max_retries=max_retries,
            backoff_factor=backoff_factor,
        )
        self._retry = retry or RetrySettings()

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "FusionAuthProvider":
        settings = settings or get_settings()
        return cls(
            settings.api_key,
            host=settings.host,
            tenant_id=settings.tenant_id,
            timeout=settings.http_timeout,
            max_retries=settings.http_max_retries,
            backoff_factor=settings.http_retry_backoff_factor,
            retry=RetrySettings(
                timeout=settings.convergence_timeout,
                interval=settings.convergence_interval,
            ),
        )

    @property
    def client(self) -> FusionAuthClient:
        return self._client

    @property
    def retry(self) -> RetrySettings:
        return self._retry

    async def health_check(self) -> ProviderHealth:
        result = await self._client.retrieve_status()
        if isinstance(result, TransportError):
            return ProviderHealth(status="unreachable", details=result.message)
        decision = classify(result, resource=self._client.base_url, operation="status")
        if isinstance(decision, FatalFailure):
            return ProviderHealth(status="degraded", details=decision.error.message)
        return ProviderHealth(status="healthy")

    async def resources(self) -> list[ProviderResourceSchema]:
        return [get_resource_type(spec.name).schema() for spec in list_resource_types()]

    def manager(
        self,
        type_name: str,
        *,
        address: str | None = None,
        retry: RetrySettings | None = None,
    ) -> ResourceManager:
        """Build a lifecycle manager for one instance of ``type_name``."""
        resource_type = get_resource_type(type_name)
        return ResourceManager(
            resource_type.endpoint(self._client),
            resource_type,
            address=address,
            retry=retry or self._retry,
        )


__all__ = ["FusionAuthProvider"]
