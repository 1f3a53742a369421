"""Translate the platform's ad status vocabulary into ``AdStatus``.

Evaluated by effective status first since it carries delivery nuance
(``ADSET_PAUSED``, ``WITH_ISSUES``, learning phases) that the configured
status does not.  The platform adds new values without notice, so every
input maps to some ``AdStatus``; unknown ones are logged.
"""

from __future__ import annotations

import enum
import logging

logger = logging.getLogger(__name__)


class AdStatus(str, enum.Enum):
    DRAFT = "draft"
    PENDING_REVIEW = "pending_review"
    ACTIVE = "active"
    PAUSED = "paused"
    REJECTED = "rejected"
    FAILED = "failed"
    ARCHIVED = "archived"


LEARNING = "learning"

DELIVERING = frozenset({"ACTIVE", "CAMPAIGN_PAUSED", "ADSET_PAUSED"})
IN_REVIEW = frozenset({"PENDING_REVIEW", "IN_PROCESS"})
REJECTED = frozenset({"DISAPPROVED", "REJECTED", "WITH_ISSUES"})


def _normalise(value: str | None) -> str:
    return (value or "").strip().upper()


def translate_remote_status(remote_status: str | None, remote_effective_status: str | None) -> AdStatus:
    status = _normalise(remote_status)
    effective = _normalise(remote_effective_status)
    configured_paused = status == "PAUSED"

    if effective in DELIVERING:
        return AdStatus.PAUSED if configured_paused else AdStatus.ACTIVE
    if effective in IN_REVIEW:
        return AdStatus.PENDING_REVIEW
    if effective in REJECTED:
        return AdStatus.REJECTED
    if effective == "PAUSED":
        return AdStatus.PAUSED
    if "LEARNING" in effective:
        # Learning is a delivery sub-state of active; see display_status()
        return AdStatus.ACTIVE

    logger.warning(
        "Unmapped remote effective status %r (status=%r); falling back to configured status",
        remote_effective_status,
        remote_status,
    )
    return AdStatus.PAUSED if configured_paused else AdStatus.ACTIVE


def display_status(status: AdStatus | str, remote_effective_status: str | None) -> str:
    """Status for display: ``learning`` while an active ad is in its learning phase."""
    value = AdStatus(status)
    if value is AdStatus.ACTIVE and "LEARNING" in _normalise(remote_effective_status):
        return LEARNING
    return value.value
