"""
LittleNest Backend: Image Storage Service
===========================================

What:  Validates, stores and deletes blog featured images.
How:   Checks extension, size and magic-byte MIME type, then writes the
       bytes under a date-organized directory with a UUID filename.
       Returns a StoredImage whose `public_id` is the path relative to the
       storage root and whose `url` is served by GET /media/{public_id}.
Who:   Called by BlogService on create, image replacement and delete.

Directory Structure:
    storage/
    └── blogs/
        └── 2026/
            └── 10/
                └── 19/
                    ├── 3f6c0e1a-....jpg
                    └── 9b2d44f0-....webp

Validation order:
    1. Extension       no bytes read
    2. Size            Content-Length first, then actual byte count
    3. MIME type       python-magic over the header bytes
    4. Write           aiofiles, so the event loop is never blocked
"""

import logging
import os
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles
import magic

from littlenest.config import settings
from littlenest.exceptions import FileStorageError, ValidationError

logger = logging.getLogger(__name__)

# ── Allowed File Types ────────────────────────────────────────────────────
ALLOWED_MIME_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
}

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}

IMAGE_FOLDER = "blogs"


@dataclass(frozen=True)
class StoredImage:
    url: str
    public_id: str


class FileService:
    """
    Manages the lifecycle of uploaded images.

    public_id is always a relative POSIX path ("blogs/2026/10/19/<uuid>.png"),
    never an absolute one, so stored rows survive a change of storage_root.
    """

    def __init__(self, storage_root: Optional[str] = None, url_prefix: Optional[str] = None):
        """
        Args:
            storage_root: Override the default storage path (used in tests).
            url_prefix: Override the public URL prefix for stored files.
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.url_prefix = (url_prefix or settings.media_url_prefix).rstrip("/")
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    # ── Validation ────────────────────────────────────────────────────────

    def validate_extension(self, filename: str) -> str:
        """Returns the normalized extension (lowercase, with dot)."""
        ext = Path(filename or "").suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="image",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        max_mb = settings.max_file_size / (1024 * 1024)

        if actual_size == 0:
            raise ValidationError(message="Uploaded image is empty", field="image")

        if content_length and content_length > settings.max_file_size:
            raise ValidationError(
                message=f"File size exceeds maximum of {max_mb:.0f}MB. Please upload a smaller image.",
                field="image",
                context={"max_size_mb": max_mb, "reported_size": content_length},
            )

        if actual_size > settings.max_file_size:
            raise ValidationError(
                message=f"File size ({actual_size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                field="image",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

    def validate_mime_type(self, content: bytes) -> str:
        """
        Detect the real content type from the file's magic bytes.

        Returns:
            Detected MIME type, e.g. "image/webp"

        Raises:
            ValidationError: detected type is not an allowed image type
            FileStorageError: libmagic could not inspect the bytes
        """
        try:
            mime_type = magic.from_buffer(content, mime=True)
        except magic.MagicException as e:
            logger.error("MIME type detection failed: %s", str(e))
            raise FileStorageError(
                message="Could not verify file type. Please try again.",
                context={"error": str(e)},
            ) from e

        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=(
                    f"File content type '{mime_type}' is not supported. "
                    "The file must be a PNG, JPEG, GIF or WebP image."
                ),
                field="image",
                context={"detected_mime": mime_type, "allowed": list(ALLOWED_MIME_TYPES)},
            )
        return mime_type

    # ── Storage ───────────────────────────────────────────────────────────

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        now = datetime.now(timezone.utc)
        public_id = f"{IMAGE_FOLDER}/{now.strftime('%Y/%m/%d')}/{uuid.uuid4()}{extension}"
        return self.storage_root / public_id, public_id

    def url_for(self, public_id: str) -> str:
        return f"{self.url_prefix}/{public_id}"

    def resolve(self, public_id: str) -> Path:
        """
        Map a public_id back to an absolute path inside the storage root.

        Raises:
            ValidationError: the path escapes the storage root
        """
        path = (self.storage_root / public_id).resolve()
        if not path.is_relative_to(self.storage_root):
            raise ValidationError(message="Invalid file path", field="public_id")
        return path

    async def save_image(
        self,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> StoredImage:
        """
        Validate and store an uploaded image.

        Raises:
            ValidationError: bad extension, size or content type (→ 400)
            FileStorageError: the bytes could not be written (→ 500)
        """
        self.validate_extension(filename)
        self.validate_size(content_length, len(content))
        mime_type = self.validate_mime_type(content)

        # Extension follows the detected type, not the client's filename
        absolute_path, public_id = self._generate_storage_path(ALLOWED_MIME_TYPES[mime_type])

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store image at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"public_id": public_id, "os_error": str(e)},
            ) from e

        logger.info("Image stored: %s (%d bytes, %s)", public_id, len(content), mime_type)
        return StoredImage(url=self.url_for(public_id), public_id=public_id)

    async def delete_image(self, public_id: str) -> bool:
        """
        Remove a stored image. Returns False if it was already gone.

        Raises:
            FileStorageError: the file exists but could not be removed
        """
        path = self.resolve(public_id)
        if not path.exists():
            logger.debug("Delete: image already gone: %s", public_id)
            return False
        try:
            os.remove(path)
        except OSError as e:
            logger.error("Failed to delete image %s: %s", public_id, str(e))
            raise FileStorageError(
                message="Failed to delete stored image.",
                context={"public_id": public_id, "os_error": str(e)},
            ) from e
        logger.info("Image deleted: %s", public_id)
        return True


# ── Singleton Instance ────────────────────────────────────────────────────
file_service = FileService()
