"""Tests for status reconciliation (polling, batch sweeps and webhooks)."""

import uuid
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import SQLAlchemyError

from adpublish.credentials import ConnectionCredentialProvider
from adpublish.platforms.base import AdPlatformAdapter, AdStatusResult, RemoteAdStatus
from adpublish.platforms.dry_run import DryRunAdapter
from adpublish.services.publishing.orchestrator import PublishOrchestrator
from adpublish.services.publishing.reconciler import ReconciliationService
from adpublish.store import AdStore
from tests.conftest import make_ad, make_campaign, make_connection


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _service(db, adapter, *, timeout=15.0) -> ReconciliationService:
    store = AdStore(db)
    return ReconciliationService(
        store, adapter, ConnectionCredentialProvider(store), timeout=timeout
    )


async def _published_ad(db, campaign=None, *, remote_ad_id="r_456", status="pending_review", **overrides):
    if campaign is None:
        campaign = await make_campaign(db)
        await make_connection(db, campaign)
    return await make_ad(db, campaign, remote_ad_id=remote_ad_id, status=status, **overrides)


async def _transitions(db, ad_id) -> list[tuple]:
    rows = await AdStore(db).list_transitions(ad_id)
    return [(t.from_status, t.to_status, t.triggered_by) for t in rows]


# ---------------------------------------------------------------------------
# Single-ad reconcile
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_pending_ad_becomes_active(db):
    ad = await _published_ad(db)
    adapter = DryRunAdapter()
    adapter.set_remote_status("r_456", status="ACTIVE", effective_status="ACTIVE")

    result = await _service(db, adapter).reconcile(ad.id)

    assert result.changed is True
    assert result.status == "active"
    assert result.error is None
    reloaded = await AdStore(db).load_ad(ad.id)
    assert reloaded.status == "active"
    assert reloaded.approved_at is not None
    assert reloaded.remote_effective_status == "ACTIVE"
    assert await _transitions(db, ad.id) == [("pending_review", "active", "platform_sync")]


@pytest.mark.asyncio
async def test_unchanged_remote_status_is_a_noop(db):
    ad = await _published_ad(db)
    adapter = DryRunAdapter()
    adapter.set_remote_status("r_456", status="ACTIVE", effective_status="ACTIVE")
    service = _service(db, adapter)

    first = await service.reconcile(ad.id)
    second = await service.reconcile(ad.id)
    third = await service.reconcile(ad.id)

    assert first.changed is True
    assert second.changed is False
    assert third.changed is False
    assert second.status == "active"
    assert len(await _transitions(db, ad.id)) == 1


@pytest.mark.asyncio
async def test_still_in_review_writes_nothing(db):
    ad = await _published_ad(db)
    adapter = DryRunAdapter()
    adapter.set_remote_status("r_456", status="ACTIVE", effective_status="PENDING_REVIEW")

    result = await _service(db, adapter).reconcile(ad.id)

    assert result.changed is False
    assert result.status == "pending_review"
    assert await _transitions(db, ad.id) == []


@pytest.mark.asyncio
async def test_rejection_records_issues(db):
    ad = await _published_ad(db)
    adapter = DryRunAdapter()
    adapter.set_remote_status(
        "r_456",
        status="ACTIVE",
        effective_status="DISAPPROVED",
        issues=[{"error_code": 1487390, "error_message": "Ad text violates policy", "level": "AD"}],
    )

    result = await _service(db, adapter).reconcile(ad.id)

    assert result.status == "rejected"
    reloaded = await AdStore(db).load_ad(ad.id)
    assert reloaded.rejected_at is not None
    assert reloaded.approved_at is None

    transition = (await AdStore(db).list_transitions(ad.id))[0]
    assert transition.to_status == "rejected"
    assert transition.notes == "Ad text violates policy"
    assert transition.metadata_json["effective_status"] == "DISAPPROVED"
    assert transition.metadata_json["issues"][0]["error_code"] == 1487390


@pytest.mark.asyncio
async def test_approved_at_is_only_set_once(db):
    ad = await _published_ad(db)
    adapter = DryRunAdapter()
    service = _service(db, adapter)

    adapter.set_remote_status("r_456", status="ACTIVE", effective_status="ACTIVE")
    await service.reconcile(ad.id)
    first_approval = (await AdStore(db).load_ad(ad.id)).approved_at

    adapter.set_remote_status("r_456", status="PAUSED", effective_status="PAUSED")
    await service.reconcile(ad.id)
    adapter.set_remote_status("r_456", status="ACTIVE", effective_status="ACTIVE")
    await service.reconcile(ad.id)

    reloaded = await AdStore(db).load_ad(ad.id)
    assert reloaded.approved_at == first_approval
    assert [t[1] for t in await _transitions(db, ad.id)] == ["active", "paused", "active"]


@pytest.mark.asyncio
async def test_learning_phase_is_active_with_learning_display(db):
    ad = await _published_ad(db)
    adapter = DryRunAdapter()
    adapter.set_remote_status("r_456", status="ACTIVE", effective_status="LEARNING")

    result = await _service(db, adapter).reconcile(ad.id)

    assert result.status == "active"
    assert result.display_status == "learning"


@pytest.mark.asyncio
async def test_learning_display_clears_when_learning_ends(db):
    ad = await _published_ad(db)
    adapter = DryRunAdapter()
    service = _service(db, adapter)

    adapter.set_remote_status("r_456", status="ACTIVE", effective_status="LEARNING_LIMITED")
    learning = await service.reconcile(ad.id)
    adapter.set_remote_status("r_456", status="ACTIVE", effective_status="ACTIVE")
    settled = await service.reconcile(ad.id)

    assert (learning.changed, learning.display_status) == (True, "learning")
    assert (settled.changed, settled.status, settled.display_status) == (False, "active", "active")

    store = AdStore(db)
    orchestrator = PublishOrchestrator(store, adapter, ConnectionCredentialProvider(store))
    status = await orchestrator.get_publish_status(ad.id)
    assert status.display_status == "active"
    assert await _transitions(db, ad.id) == [("pending_review", "active", "platform_sync")]


@pytest.mark.asyncio
async def test_unpublished_ad_is_left_alone(db):
    campaign = await make_campaign(db)
    await make_connection(db, campaign)
    ad = await make_ad(db, campaign, status="pending_review")
    adapter = DryRunAdapter()

    result = await _service(db, adapter).reconcile(ad.id)

    assert result.changed is False
    assert result.status == "pending_review"
    assert adapter.status_calls == 0


@pytest.mark.asyncio
async def test_unknown_ad(db):
    assert await _service(db, DryRunAdapter()).reconcile(uuid.uuid4()) is None


@pytest.mark.asyncio
async def test_remote_error_leaves_status_untouched(db):
    ad = await _published_ad(db, remote_ad_id="r_missing")

    result = await _service(db, DryRunAdapter()).reconcile(ad.id)

    assert result.changed is False
    assert result.error
    assert result.status == "pending_review"
    assert await _transitions(db, ad.id) == []


@pytest.mark.asyncio
async def test_missing_connection_skips_remote_call(db):
    campaign = await make_campaign(db)
    ad = await _published_ad(db, campaign)
    adapter = DryRunAdapter()

    result = await _service(db, adapter).reconcile(ad.id)

    assert result.error == "No usable Meta connection for campaign"
    assert adapter.status_calls == 0


@pytest.mark.asyncio
async def test_status_check_timeout(db):
    ad = await _published_ad(db)
    adapter = DryRunAdapter(latency=1.0)
    adapter.set_remote_status("r_456", status="ACTIVE", effective_status="ACTIVE")

    result = await _service(db, adapter, timeout=0.05).reconcile(ad.id)

    assert "timed out" in result.error
    assert (await AdStore(db).load_ad(ad.id)).status == "pending_review"


# ---------------------------------------------------------------------------
# Batch sweeps
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_reconcile_all_isolates_failures(db):
    campaign = await make_campaign(db)
    await make_connection(db, campaign)
    approved = await _published_ad(db, campaign, remote_ad_id="r_1")
    rejected = await _published_ad(db, campaign, remote_ad_id="r_2")
    broken = await _published_ad(db, campaign, remote_ad_id="r_gone")
    await make_ad(db, campaign)  # draft, never published

    adapter = DryRunAdapter()
    adapter.set_remote_status("r_1", status="ACTIVE", effective_status="ACTIVE")
    adapter.set_remote_status("r_2", status="ACTIVE", effective_status="DISAPPROVED")

    results = await _service(db, adapter).reconcile_all(campaign.id)

    by_id = {r.ad_id: r for r in results}
    assert len(results) == 3
    assert by_id[str(approved.id)].status == "active"
    assert by_id[str(rejected.id)].status == "rejected"
    assert by_id[str(broken.id)].error
    assert by_id[str(broken.id)].changed is False


@pytest.mark.asyncio
async def test_reconcile_all_survives_adapter_exceptions(db):
    campaign = await make_campaign(db)
    await make_connection(db, campaign)
    ok = await _published_ad(db, campaign, remote_ad_id="r_ok")
    bad = await _published_ad(db, campaign, remote_ad_id="r_bad")

    async def get_ad_status(remote_ad_id, access_token):
        if remote_ad_id == "r_bad":
            raise RuntimeError("connection reset")
        return AdStatusResult(
            success=True,
            remote_status=RemoteAdStatus(remote_ad_id=remote_ad_id, status="ACTIVE", effective_status="ACTIVE"),
        )

    adapter = AsyncMock(spec=AdPlatformAdapter)
    adapter.get_ad_status.side_effect = get_ad_status

    results = await _service(db, adapter).reconcile_all(campaign.id)

    by_id = {r.ad_id: r for r in results}
    assert by_id[str(ok.id)].changed is True
    assert by_id[str(bad.id)].error == "connection reset"
    assert (await AdStore(db).load_ad(bad.id)).status == "pending_review"


@pytest.mark.asyncio
async def test_reconcile_published_sweeps_every_campaign(db):
    first = await _published_ad(db, remote_ad_id="r_a")
    second = await _published_ad(db, remote_ad_id="r_b")
    adapter = DryRunAdapter()
    adapter.set_remote_status("r_a", status="ACTIVE", effective_status="ACTIVE")
    adapter.set_remote_status("r_b", status="PAUSED", effective_status="PAUSED")

    results = await _service(db, adapter).reconcile_published()

    assert {r.ad_id: r.status for r in results} == {
        str(first.id): "active",
        str(second.id): "paused",
    }


# ---------------------------------------------------------------------------
# Webhook
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_webhook_applies_pushed_status(db):
    ad = await _published_ad(db)
    adapter = DryRunAdapter()
    remote = RemoteAdStatus.model_validate(
        {"id": "r_456", "status": "ACTIVE", "effective_status": "ACTIVE"}
    )

    result = await _service(db, adapter).handle_webhook(remote)

    assert result.changed is True
    assert result.status == "active"
    assert adapter.status_calls == 0
    assert await _transitions(db, ad.id) == [("pending_review", "active", "platform_webhook")]


@pytest.mark.asyncio
async def test_webhook_for_unknown_remote_ad(db):
    remote = RemoteAdStatus.model_validate({"id": "r_nobody", "effective_status": "ACTIVE"})
    assert await _service(db, DryRunAdapter()).handle_webhook(remote) is None


@pytest.mark.asyncio
async def test_webhook_store_failure_rolls_back(db):
    ad = await _published_ad(db)
    ad_id = ad.id
    remote = RemoteAdStatus.model_validate(
        {"id": "r_456", "status": "ACTIVE", "effective_status": "ACTIVE"}
    )

    with patch.object(
        AdStore, "save_ad", AsyncMock(side_effect=SQLAlchemyError("disk I/O error"))
    ):
        result = await _service(db, DryRunAdapter()).handle_webhook(remote)

    assert result.changed is False
    assert result.error == "Could not persist reconciled status"
    assert result.remote_ad_id == "r_456"
    reloaded = await AdStore(db).load_ad(ad_id)
    assert reloaded.status == "pending_review"
    assert await _transitions(db, ad_id) == []
