"""Tests for reconcile/lifecycle.py against the in-memory key API."""

import asyncio

import httpx
import pytest
from fusionauth_provider.clients.results import ApiError, ErrorDetail, Success, TransportError
from fusionauth_provider.core.errors import (
    ConvergenceCancelledError,
    ConvergenceTimeoutError,
    FatalRemoteError,
    ProviderError,
    ResourceNotFoundError,
    ValidationError,
)
from fusionauth_provider.reconcile.lifecycle import ResourceManager
from fusionauth_provider.reconcile.models import LifecycleState
from fusionauth_provider.reconcile.policy import PlanAction
from fusionauth_provider.reconcile.poller import RetrySettings
from fusionauth_provider.resources.key import SigningKeyType

KEY_ID = "8f2d6a9e-3c4b-4d1a-9b7e-0a1b2c3d4e5f"

RSA_2048 = {"name": "access", "algorithm": "RS256", "length": 2048}


@pytest.fixture
def manager(fake_fusionauth, no_sleep):
    return ResourceManager(
        fake_fusionauth,
        SigningKeyType(),
        address="fusionauth_key.access",
        retry=RetrySettings(timeout=0.2, interval=0.01),
        sleep=no_sleep,
    )


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_with_server_generated_id(self, manager, fake_fusionauth):
        resource = await manager.create(RSA_2048)

        assert resource.resource_id in fake_fusionauth.keys
        assert resource.attributes == {**RSA_2048, "key_id": resource.resource_id}
        assert resource.computed["kid"]
        assert manager.state is LifecycleState.CREATED
        assert manager.resource_id == resource.resource_id
        assert fake_fusionauth.calls == [("create", None)]

    @pytest.mark.asyncio
    async def test_create_with_client_supplied_id(self, manager, fake_fusionauth):
        resource = await manager.create({**RSA_2048, "key_id": KEY_ID.upper()})

        assert resource.resource_id == KEY_ID
        assert fake_fusionauth.calls == [("create", KEY_ID)]

    @pytest.mark.asyncio
    async def test_validation_failure_makes_no_remote_call(self, manager, fake_fusionauth):
        with pytest.raises(ValidationError):
            await manager.create({"name": "access", "algorithm": "RS256"})

        assert fake_fusionauth.calls == []
        assert manager.state is LifecycleState.PLANNED

    @pytest.mark.asyncio
    async def test_rejected_create_leaves_nothing_tracked(self, manager, fake_fusionauth):
        fake_fusionauth.inject("create", ApiError(400, (ErrorDetail("[invalid]key.name", "bad", "key.name"),)))

        with pytest.raises(FatalRemoteError) as exc_info:
            await manager.create(RSA_2048)

        assert exc_info.value.details["operation"] == "create"
        assert manager.state is LifecycleState.PLANNED
        assert manager.resource_id is None
        assert manager.last_known is None

    @pytest.mark.asyncio
    async def test_transport_failure_on_create_is_fatal(self, manager, fake_fusionauth):
        fake_fusionauth.inject("create", TransportError(httpx.ConnectError("refused")))

        with pytest.raises(FatalRemoteError, match="transport failure"):
            await manager.create(RSA_2048)

        assert manager.resource_id is None

    @pytest.mark.asyncio
    async def test_identifier_mismatch_is_fatal(self, manager, fake_fusionauth):
        other = "1c8e2f40-7a6b-4c3d-8e9f-a0b1c2d3e4f5"
        fake_fusionauth.inject("create", Success(200, {"id": other, **RSA_2048}))

        with pytest.raises(FatalRemoteError, match="expected"):
            await manager.create({**RSA_2048, "key_id": KEY_ID})

        assert manager.resource_id is None

    @pytest.mark.asyncio
    async def test_response_without_identifier_is_fatal(self, manager, fake_fusionauth):
        fake_fusionauth.inject("create", Success(200, {}))

        with pytest.raises(FatalRemoteError, match="did not include an identifier"):
            await manager.create(RSA_2048)


class TestRead:
    @pytest.mark.asyncio
    async def test_read_round_trips_created_attributes(self, manager):
        created = await manager.create(RSA_2048)

        read = await manager.read()

        assert read.exists
        assert read.resource.attributes == created.attributes
        assert read.drift is None

    @pytest.mark.asyncio
    async def test_read_reports_external_changes(self, manager, fake_fusionauth):
        created = await manager.create(RSA_2048)
        fake_fusionauth.keys[created.resource_id]["name"] = "edited in admin UI"

        read = await manager.read()

        assert read.drift.changes == {"name": ("access", "edited in admin UI")}
        assert manager.last_known.attributes["name"] == "edited in admin UI"

    @pytest.mark.asyncio
    async def test_read_of_removed_object_forgets_it(self, manager, fake_fusionauth):
        created = await manager.create(RSA_2048)
        del fake_fusionauth.keys[created.resource_id]

        read = await manager.read()

        assert not read.exists
        assert read.drift.removed is True
        assert read.drift.has_drift
        assert manager.state is LifecycleState.DELETED
        assert manager.resource_id is None

    @pytest.mark.asyncio
    async def test_read_failure_keeps_state(self, manager, fake_fusionauth):
        await manager.create(RSA_2048)
        fake_fusionauth.inject("retrieve", ApiError(401))

        with pytest.raises(FatalRemoteError):
            await manager.read()

        assert manager.state is LifecycleState.CREATED

    @pytest.mark.asyncio
    async def test_read_without_identifier(self, manager):
        with pytest.raises(ProviderError, match="no resource identifier"):
            await manager.read()


class TestUpdate:
    @pytest.mark.asyncio
    async def test_unchanged_declaration_is_noop(self, manager, fake_fusionauth):
        created = await manager.create(RSA_2048)

        outcome = await manager.update(created.resource_id, RSA_2048)

        assert outcome.plan.action is PlanAction.NOOP
        assert outcome.resource.resource_id == created.resource_id
        assert outcome.drift is None
        assert fake_fusionauth.count("update") == 0

    @pytest.mark.asyncio
    async def test_update_reports_drift_it_corrects(self, manager, fake_fusionauth):
        created = await manager.create(RSA_2048)
        fake_fusionauth.keys[created.resource_id]["name"] = "edited in admin UI"

        outcome = await manager.update(created.resource_id, RSA_2048)

        assert outcome.drift.changes == {"name": ("access", "edited in admin UI")}
        assert outcome.plan.action is PlanAction.UPDATE
        assert fake_fusionauth.keys[created.resource_id]["name"] == "access"

    @pytest.mark.asyncio
    async def test_rename_updates_in_place(self, manager, fake_fusionauth):
        created = await manager.create(RSA_2048)

        outcome = await manager.update(created.resource_id, {**RSA_2048, "name": "renamed"})

        assert outcome.plan.action is PlanAction.UPDATE
        assert outcome.resource.resource_id == created.resource_id
        assert outcome.resource.attributes["name"] == "renamed"
        assert fake_fusionauth.keys[created.resource_id]["name"] == "renamed"
        assert fake_fusionauth.count("create") == 1

    @pytest.mark.asyncio
    async def test_algorithm_and_length_change_replaces(self, manager, fake_fusionauth):
        created = await manager.create(RSA_2048)

        outcome = await manager.update(
            created.resource_id,
            {"name": "access", "algorithm": "RS512", "length": 4096},
        )

        assert outcome.plan.action is PlanAction.REPLACE
        assert set(outcome.plan.replace_fields) == {"algorithm", "length"}
        assert outcome.resource.resource_id != created.resource_id
        assert created.resource_id not in fake_fusionauth.keys
        assert fake_fusionauth.keys[outcome.resource.resource_id]["algorithm"] == "RS512"
        assert manager.resource_id == outcome.resource.resource_id
        assert [op for op, _ in fake_fusionauth.calls] == [
            "create",
            "retrieve",
            "delete",
            "retrieve",
            "create",
        ]

    @pytest.mark.asyncio
    async def test_replace_keeps_declared_key_id(self, manager, fake_fusionauth):
        await manager.create({**RSA_2048, "key_id": KEY_ID})

        outcome = await manager.update(KEY_ID, {**RSA_2048, "key_id": KEY_ID, "length": 4096})

        assert outcome.plan.action is PlanAction.REPLACE
        assert outcome.resource.resource_id == KEY_ID
        assert fake_fusionauth.keys[KEY_ID]["length"] == 4096

    @pytest.mark.asyncio
    async def test_rejected_update_keeps_last_good_state(self, manager, fake_fusionauth):
        created = await manager.create(RSA_2048)
        fake_fusionauth.inject("update", ApiError(400, (ErrorDetail("[invalid]", "no"),)))

        with pytest.raises(FatalRemoteError):
            await manager.update(created.resource_id, {**RSA_2048, "name": "renamed"})

        assert manager.state is LifecycleState.CREATED
        assert manager.resource_id == created.resource_id
        assert manager.last_known.attributes["name"] == "access"

    @pytest.mark.asyncio
    async def test_update_of_missing_object(self, manager, fake_fusionauth):
        created = await manager.create(RSA_2048)
        del fake_fusionauth.keys[created.resource_id]

        with pytest.raises(ResourceNotFoundError):
            await manager.update(created.resource_id, {**RSA_2048, "name": "renamed"})

        assert fake_fusionauth.count("update") == 0

    @pytest.mark.asyncio
    async def test_invalid_update_makes_no_remote_call(self, manager, fake_fusionauth):
        created = await manager.create(RSA_2048)
        calls = len(fake_fusionauth.calls)

        with pytest.raises(ValidationError):
            await manager.update(created.resource_id, {**RSA_2048, "length": 1024})

        assert len(fake_fusionauth.calls) == calls


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_confirms_absence(self, manager, fake_fusionauth):
        created = await manager.create(RSA_2048)

        await manager.delete()

        assert created.resource_id not in fake_fusionauth.keys
        assert fake_fusionauth.count("retrieve") == 1
        assert manager.state is LifecycleState.DELETED
        assert manager.resource_id is None

    @pytest.mark.asyncio
    async def test_already_absent_skips_polling(self, manager, fake_fusionauth):
        await manager.delete(KEY_ID)

        assert fake_fusionauth.count("delete") == 1
        assert fake_fusionauth.count("retrieve") == 0
        assert manager.state is LifecycleState.DELETED

    @pytest.mark.asyncio
    async def test_polls_through_eventual_consistency(self, manager, fake_fusionauth):
        created = await manager.create(RSA_2048)
        fake_fusionauth.linger_reads = 3

        await manager.delete(created.resource_id)

        # Three reads still see the key, the fourth confirms it is gone.
        assert fake_fusionauth.count("retrieve") == 4
        assert manager.state is LifecycleState.DELETED

    @pytest.mark.asyncio
    async def test_transport_error_while_polling_is_retried(self, manager, fake_fusionauth):
        created = await manager.create(RSA_2048)
        fake_fusionauth.inject("retrieve", TransportError(httpx.ReadTimeout("slow")))

        await manager.delete(created.resource_id)

        assert fake_fusionauth.count("retrieve") == 2

    @pytest.mark.asyncio
    async def test_unconfirmed_delete_times_out(self, fake_fusionauth):
        manager = ResourceManager(fake_fusionauth, SigningKeyType(), address="fusionauth_key.access")
        created = await manager.create(RSA_2048)
        fake_fusionauth.linger_reads = 10_000

        with pytest.raises(ConvergenceTimeoutError) as exc_info:
            await manager.delete(created.resource_id, timeout=0.1, interval=0.02)

        assert created.resource_id in exc_info.value.details["resource"]
        assert manager.state is LifecycleState.CREATED
        assert manager.resource_id == created.resource_id

    @pytest.mark.asyncio
    async def test_delete_can_be_cancelled(self, fake_fusionauth):
        manager = ResourceManager(fake_fusionauth, SigningKeyType(), address="fusionauth_key.access")
        created = await manager.create(RSA_2048)
        fake_fusionauth.linger_reads = 10_000
        cancel = asyncio.Event()
        cancel.set()

        with pytest.raises(ConvergenceCancelledError):
            await manager.delete(created.resource_id, timeout=5, interval=0.01, cancel_event=cancel)

        assert manager.resource_id == created.resource_id

    @pytest.mark.asyncio
    async def test_rejected_delete(self, manager, fake_fusionauth):
        created = await manager.create(RSA_2048)
        fake_fusionauth.inject("delete", ApiError(400, (ErrorDetail("[InUse]", "key is in use"),)))

        with pytest.raises(FatalRemoteError, match="key is in use"):
            await manager.delete()

        assert created.resource_id in fake_fusionauth.keys
        assert manager.state is LifecycleState.CREATED
        assert fake_fusionauth.count("retrieve") == 0

    @pytest.mark.asyncio
    async def test_fatal_error_while_polling(self, manager, fake_fusionauth):
        await manager.create(RSA_2048)
        fake_fusionauth.inject("retrieve", ApiError(401))

        with pytest.raises(FatalRemoteError):
            await manager.delete()

        assert manager.state is LifecycleState.CREATED


class TestImport:
    @pytest.mark.asyncio
    async def test_import_existing_key(self, manager, fake_fusionauth):
        payload = fake_fusionauth.add_key(KEY_ID, name="legacy", algorithm="ES256")

        resource = await manager.import_resource(KEY_ID.upper())

        assert resource.resource_id == KEY_ID
        assert resource.attributes == {"key_id": KEY_ID, "name": "legacy", "algorithm": "ES256", "length": None}
        assert resource.computed["kid"] == payload["kid"]
        assert manager.state is LifecycleState.CREATED

    @pytest.mark.asyncio
    async def test_import_then_read_round_trips(self, manager, fake_fusionauth):
        fake_fusionauth.add_key(KEY_ID, name="legacy", algorithm="RS512", length=4096)

        imported = await manager.import_resource(KEY_ID)
        read = await manager.read(KEY_ID)

        assert read.resource.attributes == imported.attributes
        assert read.drift is None

    @pytest.mark.asyncio
    async def test_imported_key_plans_noop_for_matching_declaration(self, manager, fake_fusionauth):
        fake_fusionauth.add_key(KEY_ID, name="legacy", algorithm="RS384", length=3072)
        await manager.import_resource(KEY_ID)

        outcome = await manager.update(None, {"name": "legacy", "algorithm": "RS384", "length": 3072})

        assert outcome.plan.action is PlanAction.NOOP

    @pytest.mark.asyncio
    async def test_import_missing_key(self, manager):
        with pytest.raises(ResourceNotFoundError):
            await manager.import_resource(KEY_ID)

    @pytest.mark.asyncio
    async def test_import_rejects_malformed_identifier(self, manager, fake_fusionauth):
        with pytest.raises(ValidationError):
            await manager.import_resource("key-1")

        assert fake_fusionauth.calls == []


class TestTrack:
    @pytest.mark.asyncio
    async def test_track_resumes_management(self, manager, fake_fusionauth):
        fake_fusionauth.add_key(KEY_ID, name="access", algorithm="RS256", length=2048)

        manager.track(KEY_ID, {"key_id": KEY_ID, "name": "old name", "algorithm": "RS256", "length": 2048})
        read = await manager.read()

        assert manager.resource_id == KEY_ID
        assert read.drift.changes == {"name": ("old name", "access")}
