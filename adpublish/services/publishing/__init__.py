from adpublish.services.publishing.errors import (
    ErrorKind,
    PublishErrorCode,
    classify_remote_error,
    user_message_for,
)
from adpublish.services.publishing.orchestrator import (
    PublishError,
    PublishOrchestrator,
    PublishResult,
    PublishStatus,
)
from adpublish.services.publishing.reconciler import ReconcileResult, ReconciliationService
from adpublish.services.publishing.status_translator import (
    AdStatus,
    display_status,
    translate_remote_status,
)
from adpublish.services.publishing.transitions import TriggeredBy
from adpublish.services.publishing.validator import (
    PrePublishValidator,
    PublishValidationError,
    ValidationReport,
)

__all__ = [
    "AdStatus",
    "ErrorKind",
    "PrePublishValidator",
    "PublishError",
    "PublishErrorCode",
    "PublishOrchestrator",
    "PublishResult",
    "PublishStatus",
    "PublishValidationError",
    "ReconcileResult",
    "ReconciliationService",
    "TriggeredBy",
    "ValidationReport",
    "classify_remote_error",
    "display_status",
    "translate_remote_status",
    "user_message_for",
]
