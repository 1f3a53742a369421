"""Reconciliation: pulls remote ad status into the local record.

Only ads with a ``remote_ad_id`` are reconciled; drafts and ads caught
between the optimistic ``pending_review`` write and the remote call are
left alone.  Status is written, with a transition, only when the translated
remote status differs from the stored one.  A new effective status under an
unchanged core status only refreshes ``remote_effective_status`` (it drives
the ``learning`` display) and records no transition.  Repeating a run
against the same remote state writes nothing.  Failures to reach the
platform never touch stored status.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError

from adpublish.credentials import CredentialProvider
from adpublish.models import Ad, utcnow
from adpublish.platforms.base import AdPlatformAdapter, RemoteAdStatus
from adpublish.services.publishing.status_translator import (
    AdStatus,
    display_status,
    translate_remote_status,
)
from adpublish.services.publishing.transitions import TriggeredBy, new_transition
from adpublish.store import AdStore

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    ad_id: str
    changed: bool
    status: str | None = None
    display_status: str | None = None
    remote_ad_id: str | None = None
    error: str | None = None


class ReconciliationService:
    def __init__(
        self,
        store: AdStore,
        adapter: AdPlatformAdapter,
        credentials: CredentialProvider,
        *,
        timeout: float = 15.0,
    ) -> None:
        self.store = store
        self.adapter = adapter
        self.credentials = credentials
        self.timeout = timeout

    async def reconcile(self, ad_id: uuid.UUID | str) -> ReconcileResult | None:
        """Fetch, translate and apply the remote status of one ad.

        Returns None when the ad does not exist.
        """
        ad = await self.store.load_ad(ad_id)
        if ad is None:
            return None
        if not ad.remote_ad_id:
            return self._unchanged(ad)

        credential = await self.credentials.get_credential(ad.campaign_id)
        if credential is None:
            return self._failed(ad, "No usable Meta connection for campaign")
        if credential.is_expired:
            return self._failed(ad, "Meta access token has expired")

        try:
            result = await asyncio.wait_for(
                self.adapter.get_ad_status(ad.remote_ad_id, credential.token),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            return self._failed(ad, f"Status check timed out after {self.timeout:g}s")

        if not result.success or result.remote_status is None:
            return self._failed(ad, result.error or "Malformed status response")

        return await self._apply_guarded(ad, result.remote_status, TriggeredBy.PLATFORM_SYNC)

    async def _apply_guarded(
        self, ad: Ad, remote: RemoteAdStatus, triggered_by: TriggeredBy
    ) -> ReconcileResult:
        ad_key, remote_ad_id = str(ad.id), ad.remote_ad_id
        try:
            return await self.apply_remote_status(ad, remote, triggered_by)
        except SQLAlchemyError:
            logger.exception("Could not persist reconciled status for ad %s", ad_key)
            await self.store.rollback()
            return ReconcileResult(
                ad_id=ad_key,
                changed=False,
                remote_ad_id=remote_ad_id,
                error="Could not persist reconciled status",
            )

    async def reconcile_all(self, campaign_id: uuid.UUID | str) -> list[ReconcileResult]:
        ads = await self.store.list_published_ads(campaign_id)
        published = [(ad.id, ad.remote_ad_id) for ad in ads]
        results = []
        for ad_id, remote_ad_id in published:
            try:
                result = await self.reconcile(ad_id)
            except Exception as exc:
                # One ad's failure must not abort the sweep
                logger.exception("Reconciliation of ad %s failed", ad_id)
                result = ReconcileResult(
                    ad_id=str(ad_id), changed=False, remote_ad_id=remote_ad_id, error=str(exc)
                )
            if result is not None:
                results.append(result)
        return results

    async def reconcile_published(self) -> list[ReconcileResult]:
        """Sweep every campaign that has at least one published ad."""
        results = []
        for campaign_id in await self.store.list_campaigns_with_published_ads():
            results.extend(await self.reconcile_all(campaign_id))
        changed = sum(1 for r in results if r.changed)
        failed = sum(1 for r in results if r.error)
        logger.info(
            "Reconciled %d ads: %d changed, %d failed", len(results), changed, failed
        )
        return results

    async def handle_webhook(self, remote: RemoteAdStatus) -> ReconcileResult | None:
        """Apply a pushed status payload.  Returns None for unknown remote ids."""
        if not remote.remote_ad_id:
            return None
        ad = await self.store.load_ad_by_remote_id(remote.remote_ad_id)
        if ad is None:
            logger.warning("Webhook for unknown remote ad %s", remote.remote_ad_id)
            return None
        return await self._apply_guarded(ad, remote, TriggeredBy.PLATFORM_WEBHOOK)

    async def apply_remote_status(
        self, ad: Ad, remote: RemoteAdStatus, triggered_by: TriggeredBy
    ) -> ReconcileResult:
        new_status = translate_remote_status(remote.status, remote.effective_status)
        effective = remote.effective_status or None
        if new_status.value == ad.status:
            if effective != ad.remote_effective_status:
                ad.remote_effective_status = effective
                await self.store.save_ad(ad)
            return self._unchanged(ad)

        now = utcnow()
        previous = ad.status
        ad.status = new_status.value
        ad.remote_effective_status = effective
        if new_status is AdStatus.ACTIVE and ad.approved_at is None:
            ad.approved_at = now
        if new_status is AdStatus.REJECTED:
            ad.rejected_at = now

        notes = "; ".join(i.error_message for i in remote.issues if i.error_message) or None
        await self.store.save_ad(
            ad,
            new_transition(
                ad,
                previous,
                ad.status,
                triggered_by,
                notes=notes,
                metadata=remote.issue_payload(),
            ),
        )
        return ReconcileResult(
            ad_id=str(ad.id),
            changed=True,
            status=ad.status,
            display_status=display_status(ad.status, ad.remote_effective_status),
            remote_ad_id=ad.remote_ad_id,
        )

    @staticmethod
    def _unchanged(ad: Ad) -> ReconcileResult:
        return ReconcileResult(
            ad_id=str(ad.id),
            changed=False,
            status=ad.status,
            display_status=display_status(ad.status, ad.remote_effective_status),
            remote_ad_id=ad.remote_ad_id,
        )

    @staticmethod
    def _failed(ad: Ad, message: str) -> ReconcileResult:
        logger.warning("Reconciliation of ad %s skipped: %s", ad.id, message)
        result = ReconciliationService._unchanged(ad)
        result.error = message
        return result
