from __future__ import annotations

import asyncio
import uuid

from adpublish.platforms.base import (
    AdPlatformAdapter,
    AdSpec,
    AdStatusResult,
    CreateAdResult,
    RemoteAdStatus,
)


class DryRunAdapter(AdPlatformAdapter):
    """Simulates the ad platform with an in-memory registry of created ads.

    Used for development and tests.  Newly created ads enter review
    (``ACTIVE`` / ``PENDING_REVIEW``); ``set_remote_status`` moves them
    through the review lifecycle the way the real platform would.
    """

    def __init__(self, *, latency: float = 0.0) -> None:
        self._latency = latency
        self._ads: dict[str, RemoteAdStatus] = {}
        self._specs: dict[str, AdSpec] = {}
        self.create_calls = 0
        self.status_calls = 0

    async def create_ad(
        self, account_id: str, access_token: str, spec: AdSpec
    ) -> CreateAdResult:
        self.create_calls += 1
        # Yield so concurrent callers interleave like they would over the network
        await asyncio.sleep(self._latency)

        remote_ad_id = f"dry-run-ad-{uuid.uuid4().hex[:10]}"
        remote_campaign_id = spec.remote_campaign_id or f"dry-run-campaign-{uuid.uuid4().hex[:8]}"
        remote_adset_id = spec.remote_adset_id or f"dry-run-adset-{uuid.uuid4().hex[:8]}"

        self._ads[remote_ad_id] = RemoteAdStatus(
            remote_ad_id=remote_ad_id,
            status="ACTIVE",
            effective_status="PENDING_REVIEW",
            configured_status="ACTIVE",
        )
        self._specs[remote_ad_id] = spec

        return CreateAdResult(
            success=True,
            remote_ad_id=remote_ad_id,
            status="ACTIVE",
            effective_status="PENDING_REVIEW",
            remote_campaign_id=remote_campaign_id,
            remote_adset_id=remote_adset_id,
            creative_id=f"dry-run-creative-{uuid.uuid4().hex[:8]}",
            raw_response={
                "dry_run": True,
                "account_id": account_id,
                "ad_name": spec.name,
                "destination": spec.destination.type,
            },
        )

    async def get_ad_status(
        self, remote_ad_id: str, access_token: str
    ) -> AdStatusResult:
        self.status_calls += 1
        await asyncio.sleep(self._latency)

        remote = self._ads.get(remote_ad_id)
        if remote is None:
            return AdStatusResult(
                success=False,
                error=f"Unsupported get request. Object with ID '{remote_ad_id}' does not exist",
                error_code=100,
            )
        return AdStatusResult(
            success=True,
            remote_status=remote,
            raw_response={"dry_run": True, **remote.issue_payload()},
        )

    def set_remote_status(
        self,
        remote_ad_id: str,
        *,
        status: str,
        effective_status: str,
        issues: list[dict] | None = None,
    ) -> None:
        """Simulate a review-lifecycle change on the platform side."""
        self._ads[remote_ad_id] = RemoteAdStatus.model_validate(
            {
                "id": remote_ad_id,
                "status": status,
                "effective_status": effective_status,
                "configured_status": status,
                "issues_info": issues or [],
            }
        )

    def spec_for(self, remote_ad_id: str) -> AdSpec | None:
        return self._specs.get(remote_ad_id)
