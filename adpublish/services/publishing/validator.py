"""Pre-publish validation.

Inspects an Ad, its Campaign and the campaign's platform connection and
reports everything that would stop the ad from being published, in one pass.
Identifier, existence and ownership problems stop the run since nothing
else can be loaded or shown to the caller; every later check runs even
after an earlier one fails.  Purely read-only.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from decimal import Decimal

from pydantic import BaseModel

from adpublish.credentials import Credential, CredentialProvider
from adpublish.models import Ad, Campaign
from adpublish.services.publishing.payloads import (
    DESTINATION_REQUIRED_FIELD,
    is_valid_locator,
    resolve_copy,
    resolve_creative_url,
    resolve_destination,
)
from adpublish.services.publishing.status_translator import AdStatus
from adpublish.store import AdStore, parse_id

logger = logging.getLogger(__name__)

PUBLISHABLE_STATUSES = {AdStatus.DRAFT.value, AdStatus.FAILED.value, AdStatus.PENDING_REVIEW.value}


class PublishValidationError(BaseModel):
    """One problem found before publishing.  Transient; never stored."""

    code: str
    message: str
    user_message: str
    recoverable: bool = True
    suggested_action: str | None = None


@dataclass
class ValidationReport:
    errors: list[PublishValidationError] = field(default_factory=list)
    campaign: Campaign | None = None
    ad: Ad | None = None
    credential: Credential | None = None

    @property
    def ok(self) -> bool:
        return not self.errors

    def add(
        self,
        code: str,
        message: str,
        user_message: str,
        *,
        recoverable: bool = True,
        suggested_action: str | None = None,
    ) -> None:
        self.errors.append(
            PublishValidationError(
                code=code,
                message=message,
                user_message=user_message,
                recoverable=recoverable,
                suggested_action=suggested_action,
            )
        )


class PrePublishValidator:
    def __init__(
        self,
        store: AdStore,
        credentials: CredentialProvider,
        *,
        min_daily_budget: float = 1.0,
    ) -> None:
        self.store = store
        self.credentials = credentials
        self.min_daily_budget = Decimal(str(min_daily_budget))

    async def validate(
        self,
        campaign_id: uuid.UUID | str,
        ad_id: uuid.UUID | str,
        *,
        user_id: str,
    ) -> ValidationReport:
        report = ValidationReport()

        if await self._check_identity(report, campaign_id, ad_id, user_id):
            campaign, ad = report.campaign, report.ad
            await self._check_credential(report, campaign.id)
            self._check_ad_state(report, ad)
            self._check_goal(report, campaign)
            self._check_budget(report, campaign)
            self._check_creative(report, ad)
            self._check_copy(report, ad)
            self._check_destination(report, ad)
            self._note_location_targeting(campaign)

        if report.ok:
            logger.info("Pre-publish validation passed for ad %s", ad_id)
        else:
            for err in report.errors:
                logger.warning(
                    "Pre-publish validation failed for ad %s: %s (%s)", ad_id, err.code, err.message
                )
        return report

    # ------------------------------------------------------------------
    # Identity: ids, existence, ownership
    # ------------------------------------------------------------------

    async def _check_identity(
        self,
        report: ValidationReport,
        campaign_id: uuid.UUID | str,
        ad_id: uuid.UUID | str,
        user_id: str,
    ) -> bool:
        campaign_key = parse_id(campaign_id)
        ad_key = parse_id(ad_id)
        if campaign_key is None:
            report.add(
                "invalid_campaign_id",
                "Invalid campaign ID format",
                "Campaign ID is not valid. Please try creating a new campaign.",
                recoverable=False,
            )
        if ad_key is None:
            report.add(
                "invalid_ad_id",
                "Invalid ad ID format",
                "Ad ID is not valid. Please try creating a new ad.",
                recoverable=False,
            )
        if campaign_key is None or ad_key is None:
            return False

        campaign = await self.store.load_campaign(campaign_key)
        if campaign is None:
            report.add(
                "campaign_not_found",
                "Campaign not found",
                "The campaign could not be found. Please refresh the page and try again.",
                suggested_action="Refresh the page",
            )
            return False

        ad = await self.store.load_ad(ad_key)
        if ad is None or ad.campaign_id != campaign.id:
            report.add(
                "ad_not_found",
                "Ad not found in campaign",
                "The ad could not be found. Please refresh the page and try again.",
                suggested_action="Refresh the page",
            )
            return False

        if campaign.user_id != user_id:
            report.add(
                "campaign_forbidden",
                "Campaign ownership mismatch",
                "You do not have permission to publish this campaign.",
                recoverable=False,
            )
            return False

        report.campaign = campaign
        report.ad = ad
        return True

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    async def _check_credential(self, report: ValidationReport, campaign_id: uuid.UUID) -> None:
        credential = await self.credentials.get_credential(campaign_id)
        if credential is None:
            report.add(
                "no_credential",
                "No active Meta connection for campaign",
                "You need to connect your Facebook account before publishing.",
                suggested_action='Click "Connect Meta" to connect your Facebook account',
            )
            return
        if credential.is_expired:
            report.add(
                "token_expired",
                "Meta access token has expired",
                "Your Facebook connection has expired. Please reconnect your account.",
                suggested_action="Reconnect your Facebook account",
            )
        report.credential = credential

        if not credential.selected_account_id:
            report.add(
                "ad_account_missing",
                "No ad account selected",
                "You need to select an ad account before publishing.",
                suggested_action="Open Campaign Settings and select an ad account",
            )

    # ------------------------------------------------------------------
    # Campaign setup
    # ------------------------------------------------------------------

    def _check_ad_state(self, report: ValidationReport, ad: Ad) -> None:
        if ad.remote_ad_id is None and ad.status not in PUBLISHABLE_STATUSES:
            report.add(
                "ad_not_publishable",
                f"Ad in status '{ad.status}' cannot be published",
                "This ad can no longer be published.",
                recoverable=False,
                suggested_action="Create a new ad",
            )

    def _check_goal(self, report: ValidationReport, campaign: Campaign) -> None:
        if not campaign.goal:
            report.add(
                "goal_missing",
                "Campaign goal not set",
                "You need to set a campaign goal before publishing.",
                suggested_action="Complete the Goal step in campaign setup",
            )

    def _check_budget(self, report: ValidationReport, campaign: Campaign) -> None:
        budget = campaign.daily_budget
        if budget is None:
            report.add(
                "budget_missing",
                "Daily budget not set",
                f"You need to set a daily budget of at least ${self.min_daily_budget} before publishing.",
                suggested_action="Set your daily budget in Campaign Settings",
            )
        elif Decimal(str(budget)) < self.min_daily_budget:
            report.add(
                "budget_below_minimum",
                f"Daily budget {budget} is below the platform minimum of {self.min_daily_budget}",
                f"Your daily budget must be at least ${self.min_daily_budget}.",
                suggested_action="Increase your daily budget in Campaign Settings",
            )

    # ------------------------------------------------------------------
    # Ad content
    # ------------------------------------------------------------------

    def _check_creative(self, report: ValidationReport, ad: Ad) -> None:
        image_url = resolve_creative_url(ad.creative_data)
        if image_url is None:
            report.add(
                "creative_missing",
                "No image found for ad",
                "Your ad needs an image before publishing.",
                suggested_action="Add an image to your ad",
            )
        elif not is_valid_locator(image_url):
            report.add(
                "creative_invalid_url",
                f"Invalid image URL format: {image_url[:80]}",
                "The image URL is not valid. Please re-generate or upload a new image.",
                suggested_action="Generate or upload a new image",
            )

    def _check_copy(self, report: ValidationReport, ad: Ad) -> None:
        copy = resolve_copy(ad.copy_data)
        if not copy["headline"] and not copy["primary_text"]:
            report.add(
                "copy_missing",
                "No ad copy found",
                "Your ad needs a headline or primary text before publishing.",
                suggested_action="Add headline and text to your ad",
            )

    def _check_destination(self, report: ValidationReport, ad: Ad) -> None:
        destination = resolve_destination(ad.destination_data)
        if destination is None:
            report.add(
                "destination_missing",
                "No destination configured",
                "You need to configure an ad destination (form, URL, or phone) before publishing.",
                suggested_action="Complete the Destination step in ad setup",
            )
            return

        required = DESTINATION_REQUIRED_FIELD.get(destination.type)
        if required is None:
            report.add(
                "destination_type_invalid",
                f"Unsupported destination type '{destination.type}'",
                "The ad destination is not supported. Please choose a form, website or phone number.",
                suggested_action="Complete the Destination step in ad setup",
            )
            return

        if destination.type == "instant_form" and not destination.form_id:
            report.add(
                "destination_form_missing",
                "Lead form not configured",
                "You need to select or create a lead form before publishing.",
                suggested_action="Select a lead form in the Destination step",
            )
        elif destination.type == "website_url":
            if not destination.website_url:
                report.add(
                    "destination_url_missing",
                    "Website URL not configured",
                    "You need to enter a website URL before publishing.",
                    suggested_action="Enter your website URL in the Destination step",
                )
            elif not is_valid_locator(destination.website_url):
                report.add(
                    "destination_url_invalid",
                    f"Invalid website URL: {destination.website_url[:80]}",
                    "The website URL is not valid.",
                    suggested_action="Enter a full URL starting with https:// in the Destination step",
                )
        elif destination.type == "phone_number" and not destination.phone_number:
            report.add(
                "destination_phone_missing",
                "Phone number not configured",
                "You need to enter a phone number before publishing.",
                suggested_action="Enter your phone number in the Destination step",
            )

    # ------------------------------------------------------------------
    # Advisory
    # ------------------------------------------------------------------

    def _note_location_targeting(self, campaign: Campaign) -> None:
        if not campaign.location_targeting:
            logger.info(
                "Campaign %s has no location targeting; the platform default region applies",
                campaign.id,
            )
