import uuid

from fastapi import APIRouter, Depends, Header, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession

from adpublish.async_db import get_async_db
from adpublish.credentials import ConnectionCredentialProvider
from adpublish.platforms.base import AdPlatformAdapter
from adpublish.platforms.factory import default_platform_adapter
from adpublish.schemas import (
    AdStatusWebhookIn,
    CampaignReconcileOut,
    PublishDataOut,
    PublishErrorOut,
    PublishResponse,
    PublishStatusOut,
    ReconcileResultOut,
    TransitionOut,
)
from adpublish.services.publishing import (
    PrePublishValidator,
    PublishErrorCode,
    PublishOrchestrator,
    PublishResult,
    ReconciliationService,
)
from adpublish.settings import settings
from adpublish.store import AdStore

publish_router = APIRouter(prefix="/api", tags=["publishing"])

# Validation issues that are really lookup or ownership failures
ISSUE_STATUS_CODES = {
    "campaign_not_found": 404,
    "ad_not_found": 404,
    "campaign_forbidden": 403,
}

ERROR_STATUS_CODES = {
    PublishErrorCode.VALIDATION_FAILED: 400,
    PublishErrorCode.ALREADY_PUBLISHED: 409,
    PublishErrorCode.PUBLISH_FAILED: 502,
    PublishErrorCode.INTERNAL_ERROR: 500,
}


def get_platform_adapter() -> AdPlatformAdapter:
    return default_platform_adapter()


async def get_current_user_id(x_user_id: str = Header(...)) -> str:
    """Caller identity as asserted by the upstream auth layer."""
    return x_user_id


def _reconciler(db: AsyncSession, adapter: AdPlatformAdapter) -> ReconciliationService:
    store = AdStore(db)
    return ReconciliationService(
        store,
        adapter,
        ConnectionCredentialProvider(store),
        timeout=settings.RECONCILE_TIMEOUT_SECONDS,
    )


def _status_code_for(result: PublishResult) -> int:
    if result.success:
        return 200
    error = result.error
    if error.code == PublishErrorCode.VALIDATION_FAILED and error.errors:
        return ISSUE_STATUS_CODES.get(error.errors[0].code, 400)
    return ERROR_STATUS_CODES.get(error.code, 500)


@publish_router.post(
    "/campaigns/{campaign_id}/ads/{ad_id}/publish",
    response_model=PublishResponse,
)
async def publish_ad(
    campaign_id: str,
    ad_id: str,
    response: Response,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_db),
    adapter: AdPlatformAdapter = Depends(get_platform_adapter),
):
    """Validate an ad and submit it to the ad platform."""
    store = AdStore(db)
    credentials = ConnectionCredentialProvider(store)
    orchestrator = PublishOrchestrator(
        store,
        adapter,
        credentials,
        validator=PrePublishValidator(
            store, credentials, min_daily_budget=settings.MIN_DAILY_BUDGET
        ),
        timeout=settings.PUBLISH_TIMEOUT_SECONDS,
    )
    result = await orchestrator.publish(campaign_id, ad_id, user_id=user_id)

    response.status_code = _status_code_for(result)
    if result.success:
        return PublishResponse(
            success=True,
            data=PublishDataOut(ad_id=ad_id, remote_ad_id=result.remote_ad_id, status=result.status),
        )
    return PublishResponse(
        success=False,
        error=PublishErrorOut.model_validate(result.error),
    )


@publish_router.get("/ads/{ad_id}/publish-status", response_model=PublishStatusOut)
async def get_publish_status(
    ad_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_db),
    adapter: AdPlatformAdapter = Depends(get_platform_adapter),
):
    """Current publish state of an ad, without contacting the platform."""
    store = AdStore(db)
    orchestrator = PublishOrchestrator(store, adapter, ConnectionCredentialProvider(store))
    status = await orchestrator.get_publish_status(ad_id)
    if status is None:
        raise HTTPException(status_code=404, detail="Ad not found")
    return status


@publish_router.post("/ads/{ad_id}/reconcile", response_model=ReconcileResultOut)
async def reconcile_ad(
    ad_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_db),
    adapter: AdPlatformAdapter = Depends(get_platform_adapter),
):
    """Refresh one ad's status from the platform."""
    result = await _reconciler(db, adapter).reconcile(ad_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Ad not found")
    return result


@publish_router.post("/campaigns/{campaign_id}/reconcile", response_model=CampaignReconcileOut)
async def reconcile_campaign(
    campaign_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_db),
    adapter: AdPlatformAdapter = Depends(get_platform_adapter),
):
    """Refresh every published ad of a campaign."""
    store = AdStore(db)
    if await store.load_campaign(campaign_id) is None:
        raise HTTPException(status_code=404, detail="Campaign not found")
    results = await _reconciler(db, adapter).reconcile_all(campaign_id)
    return CampaignReconcileOut(
        campaign_id=campaign_id,
        checked=len(results),
        changed=sum(1 for r in results if r.changed),
        failed=sum(1 for r in results if r.error),
        results=[ReconcileResultOut.model_validate(r) for r in results],
    )


@publish_router.get("/ads/{ad_id}/transitions", response_model=list[TransitionOut])
async def list_ad_transitions(
    ad_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_db),
):
    """Status history of an ad, oldest first."""
    store = AdStore(db)
    if await store.load_ad(ad_id) is None:
        raise HTTPException(status_code=404, detail="Ad not found")
    return await store.list_transitions(ad_id)


@publish_router.post("/webhooks/meta/ad-status", response_model=ReconcileResultOut)
async def ad_status_webhook(
    payload: AdStatusWebhookIn,
    db: AsyncSession = Depends(get_async_db),
    adapter: AdPlatformAdapter = Depends(get_platform_adapter),
):
    """Apply a pushed status update for a published ad."""
    result = await _reconciler(db, adapter).handle_webhook(payload.to_remote_status())
    if result is None:
        raise HTTPException(status_code=404, detail="Unknown remote ad")
    return result
