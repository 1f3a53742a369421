"""Meta Ads (Facebook/Instagram) platform adapter.

Uses the official facebook-business Python SDK to publish a single ad on the
Meta Marketing API (creating the parent Campaign → AdSet on first use,
uploading the creative image, then AdCreative → Ad) and to read an ad's
review/delivery status back.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from facebook_business.adobjects.ad import Ad
from facebook_business.adobjects.adaccount import AdAccount
from facebook_business.adobjects.adcreative import AdCreative
from facebook_business.adobjects.adimage import AdImage
from facebook_business.adobjects.adset import AdSet
from facebook_business.adobjects.campaign import Campaign
from facebook_business.api import FacebookAdsApi
from facebook_business.exceptions import FacebookRequestError
from pydantic import ValidationError

from adpublish.platforms.base import (
    AdPlatformAdapter,
    AdSpec,
    AdStatusResult,
    CreateAdResult,
    DestinationSpec,
    RemoteAdStatus,
)
from adpublish.platforms.exceptions import (
    CreativeCreationError,
    ImageUploadError,
    MalformedResponseError,
    PlatformError,
)
from adpublish.utils.image_utils import ImageProcessor

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Goal mapping: campaign goal → Meta Marketing API objective (OUTCOME_*)
# ---------------------------------------------------------------------------

GOAL_OBJECTIVE_MAP: dict[str, str] = {
    "leads": "OUTCOME_LEADS",
    "calls": "OUTCOME_TRAFFIC",
    "website": "OUTCOME_TRAFFIC",
    "traffic": "OUTCOME_TRAFFIC",
    "website-visits": "OUTCOME_TRAFFIC",
    "awareness": "OUTCOME_AWARENESS",
    "engagement": "OUTCOME_ENGAGEMENT",
    "sales": "OUTCOME_SALES",
}

STATUS_FIELDS = [
    Ad.Field.id,
    Ad.Field.status,
    Ad.Field.effective_status,
    Ad.Field.configured_status,
    Ad.Field.issues_info,
    Ad.Field.recommendations,
]

DEFAULT_GEO_TARGETING: dict[str, Any] = {"geo_locations": {"countries": ["US"]}}

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _dollars_to_cents(dollars: float) -> int:
    """Convert dollar amount to cents (Meta API budget unit)."""
    return int(round(dollars * 100))


def _account_path(account_id: str) -> str:
    return account_id if account_id.startswith("act_") else f"act_{account_id}"


def _map_optimization_goal(objective: str, destination_type: str) -> str:
    """Pick the ad set optimization goal for an objective/destination pair."""
    if objective == "OUTCOME_LEADS" and destination_type == "instant_form":
        return "LEAD_GENERATION"
    mapping = {
        "OUTCOME_SALES": "OFFSITE_CONVERSIONS",
        "OUTCOME_TRAFFIC": "LINK_CLICKS",
        "OUTCOME_LEADS": "LINK_CLICKS",
        "OUTCOME_AWARENESS": "REACH",
        "OUTCOME_ENGAGEMENT": "POST_ENGAGEMENT",
    }
    return mapping.get(objective, "LINK_CLICKS")


def _link_data(spec: AdSpec, image_hash: str) -> dict[str, Any]:
    """Build ``object_story_spec.link_data`` for the ad's destination."""
    destination: DestinationSpec = spec.destination
    link_data: dict[str, Any] = {
        "image_hash": image_hash,
        "message": spec.primary_text,
    }
    if spec.headline:
        link_data["name"] = spec.headline
    if spec.description:
        link_data["description"] = spec.description

    if destination.type == "instant_form":
        link_data["link"] = destination.website_url or "https://fb.me/"
        link_data["call_to_action"] = {
            "type": spec.call_to_action or "SIGN_UP",
            "value": {"lead_gen_form_id": destination.form_id},
        }
    elif destination.type == "phone_number":
        link_data["link"] = "https://www.facebook.com/"
        link_data["call_to_action"] = {
            "type": "CALL_NOW",
            "value": {"link": f"tel:{destination.phone_number}"},
        }
    else:
        link_data["link"] = destination.website_url
        link_data["call_to_action"] = {
            "type": spec.call_to_action or "LEARN_MORE",
            "value": {"link": destination.website_url},
        }
    return link_data


def _request_error_details(exc: FacebookRequestError) -> dict[str, Any]:
    return {
        "error_code": exc.api_error_code(),
        "error_subcode": exc.api_error_subcode(),
        "error_message": exc.api_error_message(),
        "http_status": exc.http_status(),
    }


# ---------------------------------------------------------------------------
# MetaAdsAdapter
# ---------------------------------------------------------------------------


class MetaAdsAdapter(AdPlatformAdapter):
    """Real Meta Marketing API adapter using the facebook-business SDK.

    The access token differs per campaign, so an API session is built per call
    rather than at construction.  All SDK calls are synchronous and wrapped
    with ``asyncio.to_thread()`` to avoid blocking the event loop.
    """

    def __init__(
        self,
        app_secret: str = "",
        api_version: str | None = None,
        default_page_id: str = "",
        timeout: float = 30.0,
    ) -> None:
        self._app_secret = app_secret
        self._api_version = api_version
        self._default_page_id = default_page_id
        self._timeout = timeout

        # SHA-256 content hash → Meta image_hash, per ad account
        self._image_hash_cache: dict[tuple[str, str], str] = {}
        self._image_processor = ImageProcessor(timeout=timeout)

    def _session(self, access_token: str) -> FacebookAdsApi:
        return FacebookAdsApi.init(
            app_secret=self._app_secret or None,
            access_token=access_token,
            api_version=self._api_version,
            timeout=self._timeout,
            crash_log=False,
        )

    # ------------------------------------------------------------------
    # Image upload helpers (sync)
    # ------------------------------------------------------------------

    def _upload_image(self, api: FacebookAdsApi, account_id: str, image_url: str) -> str:
        """Download, validate and upload the creative. Returns the Meta image hash."""
        creative = self._image_processor.load_creative(image_url)

        cache_key = (account_id, creative.content_hash)
        if cache_key in self._image_hash_cache:
            return self._image_hash_cache[cache_key]

        with self._image_processor.staged_file(creative) as path:
            try:
                image = AdImage(parent_id=account_id, api=api)
                image[AdImage.Field.filename] = path
                image.remote_create()
                meta_hash = image[AdImage.Field.hash]
            except FacebookRequestError as exc:
                raise ImageUploadError(
                    f"Meta image upload failed: {exc.api_error_message()}",
                    details={"image_url": image_url, **_request_error_details(exc)},
                ) from exc

        self._image_hash_cache[cache_key] = meta_hash
        return meta_hash

    # ------------------------------------------------------------------
    # Parent objects (sync)
    # ------------------------------------------------------------------

    def _create_campaign(self, account: AdAccount, spec: AdSpec, objective: str) -> str:
        campaign = account.create_campaign(
            params={
                Campaign.Field.name: spec.campaign_name,
                Campaign.Field.objective: objective,
                Campaign.Field.status: Campaign.Status.active,
                Campaign.Field.special_ad_categories: [],
            }
        )
        return campaign["id"]

    def _create_adset(
        self, account: AdAccount, spec: AdSpec, campaign_id: str, objective: str, page_id: str
    ) -> str:
        adset_params: dict[str, Any] = {
            AdSet.Field.name: f"{spec.campaign_name} - Ad Set",
            AdSet.Field.campaign_id: campaign_id,
            AdSet.Field.daily_budget: _dollars_to_cents(spec.daily_budget),
            AdSet.Field.billing_event: "IMPRESSIONS",
            AdSet.Field.optimization_goal: _map_optimization_goal(
                objective, spec.destination.type
            ),
            AdSet.Field.bid_strategy: "LOWEST_COST_WITHOUT_CAP",
            AdSet.Field.status: AdSet.Status.active,
            AdSet.Field.targeting: spec.targeting or DEFAULT_GEO_TARGETING,
        }
        if spec.destination.type == "instant_form":
            adset_params[AdSet.Field.destination_type] = "ON_AD"
            adset_params[AdSet.Field.promoted_object] = {"page_id": page_id}

        adset = account.create_ad_set(params=adset_params)
        return adset["id"]

    # ------------------------------------------------------------------
    # Creative / Ad (sync)
    # ------------------------------------------------------------------

    def _create_ad_creative(
        self, account: AdAccount, spec: AdSpec, image_hash: str, page_id: str
    ) -> str:
        object_story_spec: dict[str, Any] = {
            "page_id": page_id,
            "link_data": _link_data(spec, image_hash),
        }
        if spec.instagram_actor_id:
            object_story_spec["instagram_user_id"] = spec.instagram_actor_id

        try:
            creative = account.create_ad_creative(
                params={
                    AdCreative.Field.name: f"{spec.name} - Creative",
                    AdCreative.Field.object_story_spec: object_story_spec,
                }
            )
            return creative["id"]
        except FacebookRequestError as exc:
            raise CreativeCreationError(
                f"Failed to create ad creative for '{spec.name}': {exc.api_error_message()}",
                details={"name": spec.name, **_request_error_details(exc)},
            ) from exc

    def _discard_creative(self, api: FacebookAdsApi, creative_id: str) -> None:
        """Delete a creative whose ad was never created; failures are only logged."""
        try:
            AdCreative(creative_id, api=api).api_delete()
        except FacebookRequestError as exc:
            logger.warning(
                "Could not delete orphaned creative %s: %s", creative_id, exc.api_error_message()
            )
        else:
            logger.info("Deleted orphaned creative %s", creative_id)

    def _read_status(self, api: FacebookAdsApi, remote_ad_id: str) -> RemoteAdStatus:
        ad = Ad(remote_ad_id, api=api)
        ad.api_get(fields=STATUS_FIELDS)
        payload = ad.export_all_data()
        try:
            return RemoteAdStatus.model_validate(payload)
        except ValidationError as exc:
            raise MalformedResponseError(
                f"Unexpected ad status payload for {remote_ad_id}",
                details={"payload": payload, "error": str(exc)},
            ) from exc

    # ------------------------------------------------------------------
    # create_ad
    # ------------------------------------------------------------------

    def _sync_create_ad(
        self,
        account_id: str,
        access_token: str,
        spec: AdSpec,
        created: dict[str, str],
    ) -> CreateAdResult:
        """Synchronous publish (called via asyncio.to_thread).

        Ids of parent objects are written to *created* as soon as they exist
        so a failure further down still reports them for reuse.
        """
        api = self._session(access_token)
        account_path = _account_path(account_id)
        account = AdAccount(account_path, api=api)
        objective = GOAL_OBJECTIVE_MAP.get(spec.goal.lower(), "OUTCOME_TRAFFIC")
        page_id = spec.page_id or self._default_page_id

        # Step 1: Reuse or create the parent campaign and ad set
        campaign_id = spec.remote_campaign_id
        if not campaign_id:
            campaign_id = self._create_campaign(account, spec, objective)
            created["remote_campaign_id"] = campaign_id

        adset_id = spec.remote_adset_id
        if not adset_id:
            adset_id = self._create_adset(account, spec, campaign_id, objective, page_id)
            created["remote_adset_id"] = adset_id

        # Step 2: Upload image, build creative
        image_hash = self._upload_image(api, account_path, spec.image_url)
        creative_id = self._create_ad_creative(account, spec, image_hash, page_id)

        # Step 3: Create the ad itself; ACTIVE submits it for review
        try:
            ad = account.create_ad(
                params={
                    Ad.Field.name: spec.name,
                    Ad.Field.adset_id: adset_id,
                    Ad.Field.creative: {"creative_id": creative_id},
                    Ad.Field.status: "ACTIVE",
                }
            )
        except FacebookRequestError as exc:
            self._discard_creative(api, creative_id)
            raise CreativeCreationError(
                f"Failed to create ad '{spec.name}': {exc.api_error_message()}",
                details={"name": spec.name, "adset_id": adset_id, **_request_error_details(exc)},
            ) from exc

        remote_ad_id = ad["id"]
        if not remote_ad_id:
            self._discard_creative(api, creative_id)
            raise MalformedResponseError("Ad create response carried no id")

        # Step 4: Read back the initial review status
        try:
            remote = self._read_status(api, remote_ad_id)
            status, effective_status = remote.status, remote.effective_status
        except (FacebookRequestError, MalformedResponseError):
            logger.warning(
                "Could not read initial status of ad %s; assuming it is in review",
                remote_ad_id,
            )
            status, effective_status = "ACTIVE", "PENDING_REVIEW"

        return CreateAdResult(
            success=True,
            remote_ad_id=remote_ad_id,
            status=status,
            effective_status=effective_status,
            remote_campaign_id=campaign_id,
            remote_adset_id=adset_id,
            creative_id=creative_id,
            raw_response={
                "ad_id": remote_ad_id,
                "creative_id": creative_id,
                "image_hash": image_hash,
                "objective": objective,
            },
        )

    async def create_ad(
        self, account_id: str, access_token: str, spec: AdSpec
    ) -> CreateAdResult:
        created: dict[str, str] = {}
        try:
            return await asyncio.to_thread(
                self._sync_create_ad, account_id, access_token, spec, created
            )
        except FacebookRequestError as e:
            return CreateAdResult(
                success=False,
                error=e.api_error_message() or str(e),
                error_code=e.api_error_code(),
                remote_campaign_id=created.get("remote_campaign_id"),
                remote_adset_id=created.get("remote_adset_id"),
                raw_response=_request_error_details(e),
            )
        except PlatformError as e:
            return CreateAdResult(
                success=False,
                error=str(e),
                error_code=e.details.get("error_code"),
                remote_campaign_id=created.get("remote_campaign_id"),
                remote_adset_id=created.get("remote_adset_id"),
                raw_response=e.details,
            )

    # ------------------------------------------------------------------
    # get_ad_status
    # ------------------------------------------------------------------

    def _sync_get_ad_status(self, remote_ad_id: str, access_token: str) -> AdStatusResult:
        api = self._session(access_token)
        remote = self._read_status(api, remote_ad_id)
        return AdStatusResult(
            success=True,
            remote_status=remote,
            raw_response=remote.issue_payload(),
        )

    async def get_ad_status(
        self, remote_ad_id: str, access_token: str
    ) -> AdStatusResult:
        try:
            return await asyncio.to_thread(
                self._sync_get_ad_status, remote_ad_id, access_token
            )
        except FacebookRequestError as e:
            return AdStatusResult(
                success=False,
                error=e.api_error_message() or str(e),
                error_code=e.api_error_code(),
                raw_response=_request_error_details(e),
            )
        except PlatformError as e:
            return AdStatusResult(
                success=False,
                error=str(e),
                raw_response=e.details,
            )
