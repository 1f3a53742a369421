"""Publish orchestrator: drives an Ad from draft to submitted.

Order of side effects per publish, all under a per-ad lock:

1. idempotency check on ``remote_ad_id`` (no network before this)
2. pre-publish validation (no status change on failure)
3. optimistic ``pending_review`` write, committed
4. credential lookup
5. remote create-ad call, bounded by a timeout
6. persist remote id + translated status, or
7. persist ``failed`` with the error in the transition notes

The optimistic write in step 3 logs no transition; the outcome in step 6
or 7 does, so a failed publish leaves exactly one audit record.

A crash between 3 and 6 leaves ``pending_review`` without a remote id:
reconciliation ignores such ads and a retried publish resumes from step 1.
Timeouts are never retried here because the remote outcome is unknown.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from adpublish.credentials import Credential, CredentialProvider
from adpublish.models import Ad, Campaign, utcnow
from adpublish.platforms.base import AdPlatformAdapter, CreateAdResult
from adpublish.services.publishing.errors import (
    ErrorKind,
    PublishErrorCode,
    classify_remote_error,
    suggested_action_for,
    user_message_for,
)
from adpublish.services.publishing.locks import KeyedLock, publish_locks
from adpublish.services.publishing.payloads import build_ad_spec
from adpublish.services.publishing.status_translator import (
    AdStatus,
    display_status,
    translate_remote_status,
)
from adpublish.services.publishing.transitions import TriggeredBy, new_transition
from adpublish.services.publishing.validator import (
    PrePublishValidator,
    PublishValidationError,
)
from adpublish.store import AdStore, parse_id

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result dataclasses
# ---------------------------------------------------------------------------


@dataclass
class PublishError:
    code: PublishErrorCode
    message: str
    user_message: str
    kind: ErrorKind | None = None
    remote_message: str | None = None
    remote_ad_id: str | None = None
    status: str | None = None
    errors: list[PublishValidationError] = field(default_factory=list)


@dataclass
class PublishResult:
    success: bool
    remote_ad_id: str | None = None
    status: str | None = None
    error: PublishError | None = None


@dataclass
class PublishStatus:
    ad_id: str
    status: str
    display_status: str
    remote_ad_id: str | None
    published_at: datetime | None
    approved_at: datetime | None
    rejected_at: datetime | None


# ---------------------------------------------------------------------------
# PublishOrchestrator
# ---------------------------------------------------------------------------


class PublishOrchestrator:
    def __init__(
        self,
        store: AdStore,
        adapter: AdPlatformAdapter,
        credentials: CredentialProvider,
        *,
        validator: PrePublishValidator | None = None,
        timeout: float = 30.0,
        locks: KeyedLock = publish_locks,
    ) -> None:
        self.store = store
        self.adapter = adapter
        self.credentials = credentials
        self.validator = validator or PrePublishValidator(store, credentials)
        self.timeout = timeout
        self.locks = locks

    async def publish(
        self,
        campaign_id: uuid.UUID | str,
        ad_id: uuid.UUID | str,
        *,
        user_id: str,
    ) -> PublishResult:
        lock_key = parse_id(ad_id) or str(ad_id)
        async with self.locks.hold(lock_key):
            try:
                return await self._publish(campaign_id, ad_id, user_id)
            except SQLAlchemyError:
                logger.exception("Store failure while publishing ad %s", ad_id)
                await self.store.rollback()
                return PublishResult(
                    success=False,
                    error=PublishError(
                        code=PublishErrorCode.INTERNAL_ERROR,
                        message="Internal error while publishing",
                        user_message=user_message_for(ErrorKind.INTERNAL_ERROR),
                        kind=ErrorKind.INTERNAL_ERROR,
                    ),
                )

    async def get_publish_status(self, ad_id: uuid.UUID | str) -> PublishStatus | None:
        ad = await self.store.load_ad(ad_id)
        if ad is None:
            return None
        return PublishStatus(
            ad_id=str(ad.id),
            status=ad.status,
            display_status=display_status(ad.status, ad.remote_effective_status),
            remote_ad_id=ad.remote_ad_id,
            published_at=ad.published_at,
            approved_at=ad.approved_at,
            rejected_at=ad.rejected_at,
        )

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def _publish(
        self, campaign_id: uuid.UUID | str, ad_id: uuid.UUID | str, user_id: str
    ) -> PublishResult:
        # Step 1: idempotency guard
        existing = await self.store.load_ad(ad_id)
        if existing is not None and existing.remote_ad_id:
            campaign = await self.store.load_campaign(campaign_id)
            if (
                campaign is not None
                and existing.campaign_id == campaign.id
                and campaign.user_id == user_id
            ):
                logger.warning(
                    "Ad %s already published as %s (status %s)",
                    existing.id,
                    existing.remote_ad_id,
                    existing.status,
                )
                return PublishResult(
                    success=False,
                    remote_ad_id=existing.remote_ad_id,
                    status=existing.status,
                    error=PublishError(
                        code=PublishErrorCode.ALREADY_PUBLISHED,
                        message="Ad already published",
                        user_message="This ad has already been published.",
                        remote_ad_id=existing.remote_ad_id,
                        status=existing.status,
                    ),
                )

        # Step 2: validation
        report = await self.validator.validate(campaign_id, ad_id, user_id=user_id)
        if not report.ok:
            if report.ad is not None:
                await self._revert_optimistic_status(report.ad)
            first = report.errors[0]
            return PublishResult(
                success=False,
                status=report.ad.status if report.ad is not None else None,
                error=PublishError(
                    code=PublishErrorCode.VALIDATION_FAILED,
                    message=first.suggested_action or first.user_message,
                    user_message=first.user_message,
                    kind=ErrorKind.VALIDATION_ERROR,
                    status=report.ad.status if report.ad is not None else None,
                    errors=report.errors,
                ),
            )

        ad, campaign = report.ad, report.campaign

        # Step 3: optimistic pending_review, durable before any network call.
        # The transition is logged once the outcome is known.
        original_status = ad.status
        ad.status = AdStatus.PENDING_REVIEW.value
        await self.store.save_ad(ad)

        # Step 4: credential
        credential = await self.credentials.get_credential(campaign.id)
        if credential is None or not credential.selected_account_id:
            return await self._fail(
                ad, original_status, ErrorKind.NO_CREDENTIAL, "No usable Meta connection"
            )
        if credential.is_expired:
            return await self._fail(
                ad, original_status, ErrorKind.TOKEN_EXPIRED, "Meta access token has expired"
            )

        # Step 5: remote create
        try:
            result = await self._create_remote_ad(ad, campaign, credential)
        except asyncio.TimeoutError:
            return await self._fail(
                ad,
                original_status,
                ErrorKind.NETWORK_ERROR,
                f"Remote create-ad call timed out after {self.timeout:g}s",
            )
        except Exception as exc:
            logger.exception("Remote create-ad call raised for ad %s", ad.id)
            return await self._fail(
                ad,
                original_status,
                ErrorKind.API_ERROR,
                f"Unexpected error from remote platform: {exc}",
                metadata={"error_type": type(exc).__name__},
            )
        await self._remember_parent_objects(campaign, result)

        if not result.success:
            classified = classify_remote_error(result.error_code, result.error)
            return await self._fail(
                ad,
                original_status,
                classified.kind,
                result.error or "Remote platform rejected the ad",
                metadata={"error_code": result.error_code, "response": result.raw_response},
            )
        if not result.remote_ad_id:
            return await self._fail(
                ad,
                original_status,
                ErrorKind.API_ERROR,
                "Remote platform response carried no ad id",
                metadata={"response": result.raw_response},
            )

        # Step 6: success
        return await self._record_success(ad, original_status, result)

    async def _create_remote_ad(
        self, ad: Ad, campaign: Campaign, credential: Credential
    ) -> CreateAdResult:
        spec = build_ad_spec(ad, campaign, credential)
        return await asyncio.wait_for(
            self.adapter.create_ad(credential.selected_account_id, credential.token, spec),
            timeout=self.timeout,
        )

    async def _record_success(
        self, ad: Ad, original_status: str, result: CreateAdResult
    ) -> PublishResult:
        now = utcnow()
        new_status = translate_remote_status(result.status, result.effective_status)
        evidence = {"status": result.status, "effective_status": result.effective_status}

        ad.remote_ad_id = result.remote_ad_id
        ad.remote_effective_status = result.effective_status or None
        ad.status = new_status.value
        ad.published_at = now
        if new_status is AdStatus.ACTIVE and ad.approved_at is None:
            ad.approved_at = now
        if new_status is AdStatus.REJECTED:
            ad.rejected_at = now

        # Every ad enters review first, even when the platform reports a later state
        transitions = []
        if original_status != AdStatus.PENDING_REVIEW.value:
            transitions.append(
                new_transition(
                    ad,
                    original_status,
                    AdStatus.PENDING_REVIEW.value,
                    TriggeredBy.USER_PUBLISH,
                    notes=f"Submitted to Meta as {result.remote_ad_id}",
                    metadata=evidence,
                )
            )
        if new_status is not AdStatus.PENDING_REVIEW:
            transitions.append(
                new_transition(
                    ad,
                    AdStatus.PENDING_REVIEW.value,
                    ad.status,
                    TriggeredBy.USER_PUBLISH,
                    metadata=evidence,
                )
            )

        try:
            await self.store.save_ad(ad, *transitions)
        except SQLAlchemyError:
            # The remote ad exists; keep its id in the log for manual repair
            logger.exception(
                "Ad %s was created remotely as %s but the local record could not be saved",
                ad.id,
                result.remote_ad_id,
            )
            await self.store.rollback()
            return PublishResult(
                success=False,
                remote_ad_id=result.remote_ad_id,
                error=PublishError(
                    code=PublishErrorCode.INTERNAL_ERROR,
                    message="Ad was submitted but its local record could not be updated",
                    user_message=user_message_for(ErrorKind.INTERNAL_ERROR),
                    kind=ErrorKind.INTERNAL_ERROR,
                    remote_ad_id=result.remote_ad_id,
                ),
            )

        logger.info("Ad %s published as %s with status %s", ad.id, ad.remote_ad_id, ad.status)
        return PublishResult(success=True, remote_ad_id=ad.remote_ad_id, status=ad.status)

    async def _fail(
        self,
        ad: Ad,
        original_status: str,
        kind: ErrorKind,
        message: str,
        *,
        metadata: dict[str, Any] | None = None,
    ) -> PublishResult:
        """Persist ``failed`` with exactly one transition carrying the cause."""
        ad.status = AdStatus.FAILED.value
        transition = new_transition(
            ad,
            original_status,
            ad.status,
            TriggeredBy.USER_PUBLISH,
            notes=f"Publish failed ({kind.value}): {message}",
            metadata={"kind": kind.value, **(metadata or {})},
        )
        await self.store.save_ad(ad, transition)
        logger.error("Publishing ad %s failed (%s): %s", ad.id, kind.value, message)

        return PublishResult(
            success=False,
            status=ad.status,
            error=PublishError(
                code=PublishErrorCode.PUBLISH_FAILED,
                message=suggested_action_for(kind),
                user_message=user_message_for(kind),
                kind=kind,
                remote_message=message,
                status=ad.status,
            ),
        )

    async def _revert_optimistic_status(self, ad: Ad) -> None:
        """Undo a client-side flip to pending_review that never reached the platform."""
        if ad.status != AdStatus.PENDING_REVIEW.value or ad.remote_ad_id is not None:
            return
        ad.status = AdStatus.DRAFT.value
        await self.store.save_ad(
            ad,
            new_transition(
                ad,
                AdStatus.PENDING_REVIEW.value,
                AdStatus.DRAFT.value,
                TriggeredBy.USER_PUBLISH,
                notes="Validation failed; reverted to draft",
            ),
        )

    async def _remember_parent_objects(self, campaign: Campaign, result: CreateAdResult) -> None:
        changed = False
        if result.remote_campaign_id and campaign.remote_campaign_id != result.remote_campaign_id:
            campaign.remote_campaign_id = result.remote_campaign_id
            changed = True
        if result.remote_adset_id and campaign.remote_adset_id != result.remote_adset_id:
            campaign.remote_adset_id = result.remote_adset_id
            changed = True
        if changed:
            await self.store.save_campaign(campaign)
