"""Publishing error taxonomy, remote error classification and user copy."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class PublishErrorCode(str, enum.Enum):
    VALIDATION_FAILED = "validation_failed"
    ALREADY_PUBLISHED = "already_published"
    PUBLISH_FAILED = "publish_failed"
    INTERNAL_ERROR = "internal_error"


class ErrorKind(str, enum.Enum):
    VALIDATION_ERROR = "validation_error"
    NO_CREDENTIAL = "no_credential"
    TOKEN_EXPIRED = "token_expired"
    POLICY_VIOLATION = "policy_violation"
    PAYMENT_REQUIRED = "payment_required"
    API_ERROR = "api_error"
    NETWORK_ERROR = "network_error"
    INTERNAL_ERROR = "internal_error"


@dataclass(frozen=True)
class ClassifiedError:
    kind: ErrorKind
    category: str  # validation | authentication | authorization | rate_limit | server | business_logic
    recoverable: bool


RATE_LIMIT_CODES = {4, 17, 32, 613}


def classify_remote_error(error_code: int | str | None, message: str | None) -> ClassifiedError:
    """Classify a Marketing API error by its numeric code, then by message."""
    try:
        code = int(error_code) if error_code is not None else None
    except (TypeError, ValueError):
        code = None
    text = (message or "").lower()

    if code is not None:
        if code in RATE_LIMIT_CODES:
            return ClassifiedError(ErrorKind.API_ERROR, "rate_limit", True)
        if code == 100 or 80000 <= code < 81000:
            return ClassifiedError(ErrorKind.VALIDATION_ERROR, "validation", True)
        if code == 190 or 101 <= code < 200:
            return ClassifiedError(ErrorKind.TOKEN_EXPIRED, "authentication", True)
        if 200 <= code < 300:
            return ClassifiedError(ErrorKind.POLICY_VIOLATION, "authorization", True)
        if 2650 <= code < 2700:
            return ClassifiedError(ErrorKind.PAYMENT_REQUIRED, "business_logic", True)
        if 1487000 <= code < 1488000:
            return ClassifiedError(ErrorKind.POLICY_VIOLATION, "business_logic", True)
        if code in (1, 2) or code >= 500:
            return ClassifiedError(ErrorKind.API_ERROR, "server", True)

    if "timed out" in text or "timeout" in text or "network" in text:
        return ClassifiedError(ErrorKind.NETWORK_ERROR, "server", True)
    if "token" in text:
        return ClassifiedError(ErrorKind.TOKEN_EXPIRED, "authentication", True)
    if "payment" in text:
        return ClassifiedError(ErrorKind.PAYMENT_REQUIRED, "business_logic", True)
    if "policy" in text or "violat" in text:
        return ClassifiedError(ErrorKind.POLICY_VIOLATION, "business_logic", True)

    return ClassifiedError(ErrorKind.API_ERROR, "server", True)


USER_MESSAGES: dict[ErrorKind, tuple[str, str]] = {
    ErrorKind.VALIDATION_ERROR: (
        "Some required fields are missing or invalid. Please review your ad details and try again.",
        "Edit your ad to fix validation issues, then republish.",
    ),
    ErrorKind.NO_CREDENTIAL: (
        "You need to connect your Facebook account before publishing.",
        'Click "Connect Meta" to connect your Facebook account.',
    ),
    ErrorKind.TOKEN_EXPIRED: (
        "Your Facebook connection has expired or been revoked. Please reconnect your account.",
        'Click "Reconnect Meta" in settings to authorize access again, then retry publishing.',
    ),
    ErrorKind.POLICY_VIOLATION: (
        "Your ad doesn't meet Meta's advertising policies.",
        "Review Meta's advertising policies, edit your ad to comply, then resubmit for review.",
    ),
    ErrorKind.PAYMENT_REQUIRED: (
        "A valid payment method is required to publish ads.",
        "Add a payment method to your ad account in Meta Business Settings, then retry publishing.",
    ),
    ErrorKind.API_ERROR: (
        "Failed to publish ad. Please try again.",
        "Wait a few minutes and try again. If the problem persists, contact support.",
    ),
    ErrorKind.NETWORK_ERROR: (
        "Failed to publish ad. Please try again.",
        "Check your connection and retry publishing.",
    ),
    ErrorKind.INTERNAL_ERROR: (
        "Something went wrong while publishing. Please try again.",
        "Retry publishing. If the problem persists, contact support.",
    ),
}


def user_message_for(kind: ErrorKind) -> str:
    return USER_MESSAGES[kind][0]


def suggested_action_for(kind: ErrorKind) -> str:
    return USER_MESSAGES[kind][1]
