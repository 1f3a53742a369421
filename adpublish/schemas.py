import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from adpublish.platforms.base import RemoteAdStatus
from adpublish.services.publishing.errors import ErrorKind, PublishErrorCode


class ValidationIssueOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    code: str
    message: str
    user_message: str
    recoverable: bool = True
    suggested_action: str | None = None


class PublishErrorOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    code: PublishErrorCode
    message: str
    user_message: str
    kind: ErrorKind | None = None
    remote_message: str | None = None
    remote_ad_id: str | None = None
    status: str | None = None
    errors: list[ValidationIssueOut] = Field(default_factory=list)


class PublishDataOut(BaseModel):
    ad_id: str
    remote_ad_id: str | None = None
    status: str | None = None


class PublishResponse(BaseModel):
    success: bool
    data: PublishDataOut | None = None
    error: PublishErrorOut | None = None


class PublishStatusOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    ad_id: str
    status: str
    display_status: str
    remote_ad_id: str | None = None
    published_at: datetime | None = None
    approved_at: datetime | None = None
    rejected_at: datetime | None = None


class ReconcileResultOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    ad_id: str
    changed: bool
    status: str | None = None
    display_status: str | None = None
    remote_ad_id: str | None = None
    error: str | None = None


class CampaignReconcileOut(BaseModel):
    campaign_id: uuid.UUID
    checked: int
    changed: int
    failed: int
    results: list[ReconcileResultOut]


class TransitionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    ad_id: uuid.UUID
    from_status: str | None = None
    to_status: str
    triggered_by: str
    notes: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="metadata_json")
    created_at: datetime


class AdStatusWebhookIn(BaseModel):
    """Status push for one remote ad."""

    remote_ad_id: str
    status: str = ""
    effective_status: str = ""
    issues: list[dict[str, Any]] = Field(default_factory=list)
    recommendations: list[dict[str, Any]] = Field(default_factory=list)

    def to_remote_status(self) -> RemoteAdStatus:
        return RemoteAdStatus.model_validate(
            {
                "id": self.remote_ad_id,
                "status": self.status,
                "effective_status": self.effective_status,
                "configured_status": self.status or None,
                "issues_info": self.issues,
                "recommendations": self.recommendations,
            }
        )
