"""Failures inside a single publish or status read against an ad platform.

Raised by the synchronous SDK steps of an adapter and turned into
``CreateAdResult(success=False)`` / ``AdStatusResult(success=False)`` before
control returns to the publish or reconcile services.  ``details`` carries the
remote error code when the platform supplied one, which is what the error
classifier keys on.
"""

from __future__ import annotations

from typing import Any


class PlatformError(Exception):
    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = details or {}


class ImageDownloadError(PlatformError):
    """The ad's selected creative URL could not be fetched as an image."""


class ImageValidationError(PlatformError):
    """The creative is unreadable or outside Meta's feed image limits."""


class ImageUploadError(PlatformError):
    """Meta refused the image upload to the ad account."""


class CreativeCreationError(PlatformError):
    """Meta refused the AdCreative or the Ad; nothing was submitted for review."""


class MalformedResponseError(PlatformError):
    """Meta answered with a payload that has no id or an unreadable status."""
