"""Lifecycle manager driving one declared resource instance.

    PLANNED -> CREATING -> CREATED <-> READING / UPDATING -> DELETING -> DELETED

Every operation re-reads or writes through the injected client; nothing about
the remote object is cached beyond the last-good ``ManagedResource`` used for
drift reporting.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping

from fusionauth_provider.clients.results import ApiError, OperationResult, Success
from fusionauth_provider.core.errors import (
    FatalRemoteError,
    ProviderError,
    ResourceNotFoundError,
    RetryableRemoteError,
)
from fusionauth_provider.logging import bind_context
from fusionauth_provider.reconcile.classifier import (
    ClassifyContext,
    FatalFailure,
    Proceed,
    RetryableFailure,
    RetryDecision,
    classify,
)
from fusionauth_provider.reconcile.models import (
    DriftReport,
    LifecycleState,
    ManagedResource,
    ReadResult,
    UpdateOutcome,
)
from fusionauth_provider.reconcile.policy import PlanAction
from fusionauth_provider.reconcile.poller import RetrySettings, poll_until

if TYPE_CHECKING:
    from fusionauth_provider.clients.base import RemoteResourceClient
    from fusionauth_provider.resources.base import ResourceType


class ResourceManager:
    """Create/Read/Update/Delete/Import for a single resource instance.

    The orchestrator serialises calls on one manager; separate managers share
    nothing except the stateless client.
    """

    def __init__(
        self,
        client: "RemoteResourceClient",
        resource_type: "ResourceType",
        *,
        address: str | None = None,
        retry: RetrySettings | None = None,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
    ) -> None:
        self._client = client
        self._type = resource_type
        self._retry = retry or RetrySettings()
        self._sleep = sleep
        self.address = address or resource_type.name
        self.state = LifecycleState.PLANNED
        self.resource_id: str | None = None
        self.last_known: ManagedResource | None = None
        self._log = bind_context(resource_type=resource_type.name, address=self.address)

    @property
    def resource_type(self) -> "ResourceType":
        return self._type

    def track(self, resource_id: str, attributes: Mapping[str, Any]) -> None:
        """Resume management of an instance recorded by the orchestrator."""
        self._adopt(ManagedResource(resource_id=resource_id, attributes=dict(attributes)))

    def _set_state(self, state: LifecycleState) -> None:
        if state is not self.state:
            self._log.debug("lifecycle_transition", previous=self.state.value, state=state.value)
        self.state = state

    def _managed(self, payload: Mapping[str, Any], fallback_id: str | None = None) -> ManagedResource:
        resource_id = self._type.identifier_from_payload(payload) or fallback_id
        if not resource_id:
            raise FatalRemoteError(
                f"FusionAuth response for {self.address} did not include an identifier",
                {"resource": self.address},
            )
        attributes = self._type.attributes_from_payload(payload)
        attributes[self._type.id_attribute] = resource_id
        return ManagedResource(
            resource_id=resource_id,
            attributes=attributes,
            computed=self._type.computed_from_payload(payload),
        )

    def _resolve_id(self, resource_id: str | None) -> str:
        rid = resource_id or self.resource_id
        if not rid:
            raise ProviderError(
                f"{self.address} has no resource identifier",
                {"resource": self.address},
            )
        return self._type.normalize_identifier(rid)

    def _adopt(self, resource: ManagedResource) -> None:
        self.resource_id = resource.resource_id
        self.last_known = resource
        self._set_state(LifecycleState.CREATED)

    def _forget(self) -> None:
        self.resource_id = None
        self.last_known = None
        self._set_state(LifecycleState.DELETED)

    async def create(self, declared: Mapping[str, Any]) -> ManagedResource:
        attributes = self._type.validate(declared)
        requested_id = attributes.get(self._type.id_attribute)

        previous = self.state
        self._set_state(LifecycleState.CREATING)
        try:
            result = await self._client.create(self._type.create_payload(attributes), requested_id)
            decision = classify(result, resource=self.address, operation="create")
            if isinstance(decision, FatalFailure):
                raise decision.error
            assert isinstance(decision, Proceed)
            resource = self._managed(decision.payload)
            if requested_id and resource.resource_id != requested_id:
                raise FatalRemoteError(
                    f"FusionAuth created {self.address} as {resource.resource_id}, expected {requested_id}",
                    {"resource": self.address, "operation": "create", "requested_id": requested_id},
                )
        except ProviderError as exc:
            self._set_state(previous)
            self._log.error("resource_create_failed", error=exc.message)
            raise

        self._adopt(resource)
        self._log.info(
            "resource_created",
            resource_id=resource.resource_id,
            client_supplied_id=requested_id is not None,
        )
        return resource

    async def read(self, resource_id: str | None = None) -> ReadResult:
        rid = self._resolve_id(resource_id)
        previous = self.state
        self._set_state(LifecycleState.READING)

        result = await self._client.retrieve(rid)
        if isinstance(result, ApiError) and result.not_found:
            self._log.warning("resource_removed_externally", resource_id=rid)
            self._forget()
            return ReadResult(resource=None, drift=DriftReport(resource_id=rid, removed=True))

        decision = classify(result, resource=self.address, operation="read")
        if isinstance(decision, FatalFailure):
            self._set_state(previous)
            self._log.error("resource_read_failed", resource_id=rid, error=decision.error.message)
            raise decision.error
        assert isinstance(decision, Proceed)

        try:
            resource = self._managed(decision.payload, fallback_id=rid)
        except ProviderError:
            self._set_state(previous)
            raise
        drift = self._detect_drift(resource)
        if drift is not None:
            self._log.warning("resource_drift_detected", resource_id=rid, changes=list(drift.changes))
        self._adopt(resource)
        return ReadResult(resource=resource, drift=drift)

    def _detect_drift(self, observed: ManagedResource) -> DriftReport | None:
        if self.last_known is None:
            return None
        changes = {
            name: (self.last_known.attributes.get(name), value)
            for name, value in observed.attributes.items()
            if self.last_known.attributes.get(name) != value
        }
        if not changes:
            return None
        return DriftReport(resource_id=observed.resource_id, changes=changes)

    async def update(self, resource_id: str | None, declared: Mapping[str, Any]) -> UpdateOutcome:
        attributes = self._type.validate(declared)
        rid = self._resolve_id(resource_id)

        read = await self.read(rid)
        current = read.resource
        if current is None:
            raise ResourceNotFoundError(
                f"{self.address} ({rid}) no longer exists in FusionAuth",
                {"resource": self.address, "resource_id": rid, "operation": "update"},
            )

        policy = self._type.policy
        desired = policy.merge_computed(current.attributes, attributes)
        plan = policy.plan(current.attributes, desired)
        self._log.info(
            "resource_plan",
            resource_id=rid,
            action=plan.action.value,
            changed=list(plan.changed_fields),
        )

        if plan.action is PlanAction.NOOP:
            return UpdateOutcome(plan=plan, resource=current, drift=read.drift)

        if plan.action is PlanAction.REPLACE:
            await self.delete(rid)
            return UpdateOutcome(plan=plan, resource=await self.create(declared), drift=read.drift)

        self._set_state(LifecycleState.UPDATING)
        payload = self._type.update_payload(desired, plan.changed_fields)
        result = await self._client.update(rid, payload)
        decision = classify(result, resource=self.address, operation="update")
        if isinstance(decision, FatalFailure):
            # The last-good state stays tracked.
            self._set_state(LifecycleState.CREATED)
            self._log.error("resource_update_failed", resource_id=rid, error=decision.error.message)
            raise decision.error
        assert isinstance(decision, Proceed)

        if decision.payload:
            resource = self._managed(decision.payload, fallback_id=rid)
        else:
            merged = dict(current.attributes)
            merged.update({name: desired.get(name) for name in plan.changed_fields})
            resource = ManagedResource(resource_id=rid, attributes=merged, computed=current.computed)
        self._adopt(resource)
        self._log.info("resource_updated", resource_id=rid, changed=list(plan.changed_fields))
        return UpdateOutcome(plan=plan, resource=resource, drift=read.drift)

    async def delete(
        self,
        resource_id: str | None = None,
        *,
        timeout: float | None = None,
        interval: float | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> None:
        rid = self._resolve_id(resource_id)
        previous = self.state
        self._set_state(LifecycleState.DELETING)

        result = await self._client.delete(rid)
        decision = classify(result, ClassifyContext.DELETE, resource=self.address, operation="delete")
        if isinstance(decision, FatalFailure):
            self._set_state(previous)
            self._log.error("resource_delete_failed", resource_id=rid, error=decision.error.message)
            raise decision.error
        assert isinstance(decision, Proceed)

        if decision.absent:
            self._log.info("resource_already_absent", resource_id=rid)
        else:
            settings = self._retry.override(timeout, interval)
            try:
                await poll_until(
                    lambda: self._client.retrieve(rid),
                    self._absence_predicate(rid),
                    timeout=settings.timeout,
                    interval=settings.interval,
                    resource=f"{self.address} ({rid})",
                    cancel_event=cancel_event,
                    sleep=self._sleep,
                )
            except ProviderError as exc:
                self._set_state(previous)
                self._log.error("resource_delete_unconfirmed", resource_id=rid, error=exc.message)
                raise

        self._forget()
        self._log.info("resource_deleted", resource_id=rid)

    def _absence_predicate(self, rid: str) -> Callable[[OperationResult], RetryDecision]:
        label = f"{self.address} ({rid})"

        def is_absent(result: OperationResult) -> RetryDecision:
            if isinstance(result, Success):
                return RetryableFailure(
                    RetryableRemoteError(
                        f"FusionAuth resource still exists: {label}",
                        {"resource": self.address, "resource_id": rid, "operation": "delete"},
                    )
                )
            return classify(
                result,
                ClassifyContext.DELETE,
                retry_tolerant=True,
                resource=self.address,
                operation="delete",
            )

        return is_absent

    async def import_resource(self, resource_id: str) -> ManagedResource:
        """Bring an object created outside the provider under management."""
        rid = self._resolve_id(resource_id)
        read = await self.read(rid)
        if read.resource is None:
            raise ResourceNotFoundError(
                f"Cannot import {self.address}: {rid} does not exist",
                {"resource": self.address, "resource_id": rid, "operation": "import"},
            )
        self._log.info("resource_imported", resource_id=read.resource.resource_id)
        return read.resource
