from adpublish.platforms.base import (
    AdPlatformAdapter,
    AdSpec,
    AdStatusResult,
    CreateAdResult,
    DestinationSpec,
    RemoteAdStatus,
    RemoteIssue,
    RemoteRecommendation,
)
from adpublish.platforms.dry_run import DryRunAdapter
from adpublish.platforms.exceptions import (
    CreativeCreationError,
    ImageDownloadError,
    ImageUploadError,
    ImageValidationError,
    MalformedResponseError,
    PlatformError,
)
from adpublish.platforms.factory import default_platform_adapter, get_platform_adapter

__all__ = [
    "AdPlatformAdapter",
    "AdSpec",
    "AdStatusResult",
    "CreateAdResult",
    "CreativeCreationError",
    "DestinationSpec",
    "DryRunAdapter",
    "ImageDownloadError",
    "ImageUploadError",
    "ImageValidationError",
    "MalformedResponseError",
    "PlatformError",
    "RemoteAdStatus",
    "RemoteIssue",
    "RemoteRecommendation",
    "default_platform_adapter",
    "get_platform_adapter",
]
