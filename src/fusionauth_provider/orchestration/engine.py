"""Plan and apply declared resources through per-instance lifecycle managers."""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Iterable, Sequence

import structlog

from fusionauth_provider.config.loader import ResourceBlock
from fusionauth_provider.core.errors import (
    ConfigurationError,
    ProviderError,
    ResourceNotFoundError,
    format_error_message,
)
from fusionauth_provider.orchestration.results import (
    ApplyResult,
    PlanResult,
    ResourceChange,
)
from fusionauth_provider.orchestration.state import StateFile, TrackedResource
from fusionauth_provider.providers.fusionauth import FusionAuthProvider
from fusionauth_provider.reconcile.lifecycle import ResourceManager
from fusionauth_provider.reconcile.models import ManagedResource, ReadResult
from fusionauth_provider.reconcile.policy import PlanAction

logger = structlog.get_logger()


class Reconciler:
    """Runs lifecycles for independent instances concurrently.

    Operations on one address always run sequentially inside a single task;
    ``concurrency`` bounds how many addresses are in flight.
    """

    def __init__(self, provider: FusionAuthProvider, state: StateFile, *, concurrency: int = 4) -> None:
        self._provider = provider
        self._state = state
        self._concurrency = max(1, concurrency)

    @property
    def state(self) -> StateFile:
        return self._state

    def _manager(self, address: str, type_name: str) -> ResourceManager:
        try:
            manager = self._provider.manager(type_name, address=address)
        except KeyError as exc:
            raise ConfigurationError(
                f"Unknown resource type '{type_name}'", {"address": address}
            ) from exc
        tracked = self._state.get(address)
        if tracked is not None and tracked.type == type_name:
            manager.track(tracked.resource_id, tracked.attributes)
        return manager

    def _remember(self, address: str, manager: ResourceManager) -> None:
        if manager.last_known is None:
            self._state.remove(address)
            return
        self._state.set(
            address,
            TrackedResource(
                type=manager.resource_type.name,
                resource_id=manager.last_known.resource_id,
                attributes=dict(manager.last_known.attributes),
            ),
        )

    async def _gather(self, jobs: Iterable[Callable[[], Awaitable[None]]]) -> None:
        semaphore = asyncio.Semaphore(self._concurrency)

        async def run(job: Callable[[], Awaitable[None]]) -> None:
            async with semaphore:
                await job()

        await asyncio.gather(*(run(job) for job in jobs))

    def _orphans(self, blocks: Sequence[ResourceBlock]) -> list[str]:
        declared = {block.address for block in blocks}
        return [address for address in self._state.addresses() if address not in declared]

    async def plan(self, blocks: Sequence[ResourceBlock]) -> PlanResult:
        result = PlanResult()

        async def plan_block(block: ResourceBlock) -> None:
            try:
                manager = self._manager(block.address, block.type)
                attributes = manager.resource_type.validate(block.attributes)
                tracked = self._state.get(block.address)
                if tracked is None:
                    result.changes.append(ResourceChange(block.address, "create"))
                    return
                if tracked.type != block.type:
                    result.changes.append(ResourceChange(block.address, "replace", tracked.resource_id, ("type",)))
                    return
                read = await manager.read()
                if read.drift is not None and read.drift.has_drift:
                    result.drift.append(block.address)
                if read.resource is None:
                    result.changes.append(ResourceChange(block.address, "create"))
                    return
                policy = manager.resource_type.policy
                current = read.resource.attributes
                plan = policy.plan(current, policy.merge_computed(current, attributes))
                result.changes.append(
                    ResourceChange(
                        block.address,
                        plan.action.value,
                        read.resource.resource_id,
                        plan.changed_fields,
                    )
                )
            except ProviderError as exc:
                result.errors.append(f"{block.address}: {format_error_message(exc)}")

        await self._gather([lambda b=block: plan_block(b) for block in blocks])
        for address in self._orphans(blocks):
            tracked = self._state.get(address)
            result.changes.append(ResourceChange(address, "delete", tracked.resource_id if tracked else None))
        result.changes.sort(key=lambda change: change.address)
        return result

    async def apply(self, blocks: Sequence[ResourceBlock]) -> ApplyResult:
        started = time.monotonic()
        result = ApplyResult()

        async def apply_block(block: ResourceBlock) -> None:
            manager: ResourceManager | None = None
            try:
                manager = self._manager(block.address, block.type)
                tracked = self._state.get(block.address)
                if tracked is not None and tracked.type != block.type:
                    await self._manager(block.address, tracked.type).delete(tracked.resource_id)
                    self._state.remove(block.address)
                    tracked = None

                if tracked is None:
                    created = await manager.create(block.attributes)
                    result.record(ResourceChange(block.address, "create", created.resource_id))
                else:
                    try:
                        outcome = await manager.update(tracked.resource_id, block.attributes)
                    except ResourceNotFoundError:
                        result.drift.append(block.address)
                        created = await manager.create(block.attributes)
                        result.record(ResourceChange(block.address, "create", created.resource_id))
                    else:
                        if outcome.drift is not None and outcome.drift.has_drift:
                            result.drift.append(block.address)
                        action = outcome.plan.action
                        result.record(
                            ResourceChange(
                                block.address,
                                action.value,
                                outcome.resource.resource_id,
                                outcome.plan.changed_fields,
                            )
                        )
                        if action is not PlanAction.NOOP:
                            logger.info("resource_applied", address=block.address, action=action.value)
            except ProviderError as exc:
                result.record_error(block.address, exc)
            finally:
                if manager is not None:
                    self._remember(block.address, manager)

        await self._gather([lambda b=block: apply_block(b) for block in blocks])
        await self._destroy_addresses(self._orphans(blocks), result)
        result.changes.sort(key=lambda change: change.address)
        result.duration_seconds = time.monotonic() - started
        return result

    async def destroy(self, addresses: Sequence[str] | None = None) -> ApplyResult:
        started = time.monotonic()
        result = ApplyResult()
        targets = list(addresses) if addresses else self._state.addresses()
        unknown = [address for address in targets if self._state.get(address) is None]
        for address in unknown:
            result.record_error(address, ConfigurationError("address is not tracked"))
        await self._destroy_addresses([a for a in targets if a not in unknown], result)
        result.changes.sort(key=lambda change: change.address)
        result.duration_seconds = time.monotonic() - started
        return result

    async def _destroy_addresses(self, addresses: Sequence[str], result: ApplyResult) -> None:
        async def destroy_one(address: str) -> None:
            tracked = self._state.get(address)
            if tracked is None:
                return
            try:
                manager = self._manager(address, tracked.type)
                await manager.delete(tracked.resource_id)
            except ProviderError as exc:
                result.record_error(address, exc)
                return
            self._state.remove(address)
            result.record(ResourceChange(address, "delete", tracked.resource_id))

        await self._gather([lambda a=address: destroy_one(a) for address in addresses])

    async def import_resource(self, address: str, type_name: str, resource_id: str) -> ManagedResource:
        if self._state.get(address) is not None:
            raise ConfigurationError(f"{address} is already managed", {"address": address})
        manager = self._manager(address, type_name)
        resource = await manager.import_resource(resource_id)
        self._remember(address, manager)
        return resource

    async def refresh(self, address: str) -> ReadResult:
        tracked = self._state.get(address)
        if tracked is None:
            raise ConfigurationError(f"{address} is not tracked", {"address": address})
        manager = self._manager(address, tracked.type)
        read = await manager.read()
        self._remember(address, manager)
        return read
