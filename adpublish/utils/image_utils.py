"""Creative image handling for the publish path.

The adapter downloads the ad's selected creative, inspects it against Meta's
feed image requirements and keys uploads by content hash so the same bytes go
up once per ad account.
"""

from __future__ import annotations

import hashlib
import io
import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

import httpx
from PIL import Image, UnidentifiedImageError

from adpublish.platforms.exceptions import ImageDownloadError, ImageValidationError

# Meta feed image requirements
META_MAX_IMAGE_SIZE_BYTES: int = 30 * 1024 * 1024
META_MIN_DIMENSION: int = 600
META_SUPPORTED_FORMATS: set[str] = {"JPEG", "PNG", "BMP", "TIFF", "GIF"}

_SUFFIXES = {"PNG": ".png", "GIF": ".gif", "BMP": ".bmp", "TIFF": ".tiff"}


@dataclass(frozen=True)
class CreativeImage:
    data: bytes
    format: str
    width: int
    height: int

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    @property
    def content_hash(self) -> str:
        return hashlib.sha256(self.data).hexdigest()

    @property
    def suffix(self) -> str:
        return _SUFFIXES.get(self.format, ".jpg")

    def problems(self) -> list[str]:
        """Human-readable reasons Meta would refuse this image; empty when fine."""
        found: list[str] = []
        if self.format not in META_SUPPORTED_FORMATS:
            found.append(
                f"Unsupported format '{self.format}'. "
                f"Supported: {', '.join(sorted(META_SUPPORTED_FORMATS))}"
            )
        if self.width < META_MIN_DIMENSION or self.height < META_MIN_DIMENSION:
            found.append(
                f"Image dimensions {self.width}x{self.height} are below the minimum "
                f"{META_MIN_DIMENSION}x{META_MIN_DIMENSION}"
            )
        if self.size_bytes > META_MAX_IMAGE_SIZE_BYTES:
            found.append(
                f"Image size {self.size_bytes:,} bytes exceeds maximum "
                f"{META_MAX_IMAGE_SIZE_BYTES:,} bytes"
            )
        return found


class ImageProcessor:
    """Fetch and inspect creative images. All methods are blocking."""

    def __init__(self, *, timeout: float = 30.0) -> None:
        self._timeout = timeout

    def download(self, url: str) -> bytes:
        try:
            with httpx.Client(follow_redirects=True, timeout=self._timeout) as client:
                response = client.get(url)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ImageDownloadError(
                f"Failed to download image from {url}: {exc}",
                details={"url": url, "error": str(exc)},
            ) from exc

        content_type = response.headers.get("content-type", "")
        if not content_type.startswith("image/"):
            raise ImageDownloadError(
                f"URL did not return an image (content-type: {content_type})",
                details={"url": url, "content_type": content_type},
            )
        return response.content

    @staticmethod
    def inspect(data: bytes) -> CreativeImage:
        """Read format and size from *data*; raises for empty or unreadable bytes."""
        if not data:
            raise ImageValidationError("Image data is empty", details={"size_bytes": 0})

        try:
            with Image.open(io.BytesIO(data)) as img:
                img.verify()
            with Image.open(io.BytesIO(data)) as img:
                fmt = img.format or "UNKNOWN"
                width, height = img.size
        except (UnidentifiedImageError, OSError, SyntaxError) as exc:
            raise ImageValidationError(
                f"Image data is corrupt or unreadable: {exc}",
                details={"error": str(exc)},
            ) from exc
        return CreativeImage(data=data, format=fmt, width=width, height=height)

    def load_creative(self, url: str) -> CreativeImage:
        """Download and inspect *url*, refusing images Meta would reject."""
        image = self.inspect(self.download(url))
        problems = image.problems()
        if problems:
            raise ImageValidationError(
                f"Image validation failed: {'; '.join(problems)}",
                details={
                    "url": url,
                    "format": image.format,
                    "width": image.width,
                    "height": image.height,
                    "size_bytes": image.size_bytes,
                    "issues": problems,
                },
            )
        return image

    @staticmethod
    @contextmanager
    def staged_file(image: CreativeImage) -> Iterator[str]:
        """Yield a temp file holding the image for the SDK's filename upload."""
        fd, path = tempfile.mkstemp(suffix=image.suffix)
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(image.data)
            yield path
        finally:
            os.unlink(path)
