from __future__ import annotations

import enum
import logging
from typing import Any

from adpublish.models import Ad, AdStatusTransition, utcnow

logger = logging.getLogger(__name__)


class TriggeredBy(str, enum.Enum):
    USER_PUBLISH = "user_publish"
    PLATFORM_SYNC = "platform_sync"
    PLATFORM_WEBHOOK = "platform_webhook"


def new_transition(
    ad: Ad,
    from_status: str | None,
    to_status: str,
    triggered_by: TriggeredBy,
    *,
    notes: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> AdStatusTransition:
    logger.info(
        "Ad %s status %s -> %s (%s)", ad.id, from_status, to_status, triggered_by.value
    )
    return AdStatusTransition(
        ad_id=ad.id,
        from_status=from_status,
        to_status=to_status,
        triggered_by=triggered_by.value,
        notes=notes,
        metadata_json=metadata or {},
        created_at=utcnow(),
    )
