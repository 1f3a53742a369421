from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DestinationSpec(BaseModel):
    """Where a click on the ad leads."""

    type: str  # "website_url" | "instant_form" | "phone_number"
    website_url: str | None = None
    form_id: str | None = None
    phone_number: str | None = None


class AdSpec(BaseModel):
    """Normalised creation payload sent to a platform adapter."""

    name: str
    campaign_name: str
    goal: str
    daily_budget: float
    currency: str = "USD"
    image_url: str
    headline: str = ""
    primary_text: str = ""
    description: str = ""
    call_to_action: str | None = None
    destination: DestinationSpec
    page_id: str = ""
    instagram_actor_id: str | None = None
    targeting: dict[str, Any] = Field(default_factory=dict)
    # Parent objects created by an earlier publish of the same campaign
    remote_campaign_id: str | None = None
    remote_adset_id: str | None = None


class CreateAdResult(BaseModel):
    """Standardised result of a create-ad call."""

    success: bool
    remote_ad_id: str | None = None
    status: str | None = None
    effective_status: str | None = None
    remote_campaign_id: str | None = None
    remote_adset_id: str | None = None
    creative_id: str | None = None
    error: str | None = None
    error_code: int | None = None
    raw_response: dict[str, Any] = Field(default_factory=dict)


class RemoteIssue(BaseModel):
    model_config = ConfigDict(extra="ignore")

    error_code: int | None = None
    error_message: str = ""
    error_summary: str = ""
    level: str = ""


class RemoteRecommendation(BaseModel):
    model_config = ConfigDict(extra="ignore")

    code: int | None = None
    message: str = ""
    title: str = ""


class RemoteAdStatus(BaseModel):
    """Typed view of the platform's loosely-typed ad status payload.

    Built once on ingress so nothing downstream touches raw JSON.  Unknown
    keys are dropped and missing lists default to empty.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    remote_ad_id: str | None = Field(default=None, alias="id")
    status: str = ""
    effective_status: str = ""
    configured_status: str | None = None
    issues: list[RemoteIssue] = Field(default_factory=list, alias="issues_info")
    recommendations: list[RemoteRecommendation] = Field(default_factory=list)

    @field_validator("status", "effective_status", mode="before")
    @classmethod
    def _blank_if_missing(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("issues", "recommendations", mode="before")
    @classmethod
    def _empty_if_missing(cls, value: Any) -> list:
        if value is None:
            return []
        if isinstance(value, dict):
            # Graph API sometimes wraps edges as {"data": [...]}
            return value.get("data", [])
        return value

    def issue_payload(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "effective_status": self.effective_status,
            "configured_status": self.configured_status,
            "issues": [i.model_dump() for i in self.issues],
            "recommendations": [r.model_dump() for r in self.recommendations],
        }


class AdStatusResult(BaseModel):
    """Standardised result of a get-ad-status call."""

    success: bool
    remote_status: RemoteAdStatus | None = None
    error: str | None = None
    error_code: int | None = None
    raw_response: dict[str, Any] = Field(default_factory=dict)


class AdPlatformAdapter:
    """Base class for advertising platform integrations.

    The publish orchestrator and the reconciliation service use this
    interface without knowing which platform (or the dry-run fake) is behind it.
    """

    async def create_ad(
        self, account_id: str, access_token: str, spec: AdSpec
    ) -> CreateAdResult:
        raise NotImplementedError

    async def get_ad_status(
        self, remote_ad_id: str, access_token: str
    ) -> AdStatusResult:
        raise NotImplementedError
