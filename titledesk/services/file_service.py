"""
TitleDesk Backend — File Storage Service
==========================================

What:  Validation and local storage for branch images, plus the content
       checks applied to PDFs before they are pushed to OneDrive.
Who:   BranchService (images), OneDriveService (PDF validation) and the
       /api/files route (serving stored images).

Image checks, cheapest first:
    1. Extension in ALLOWED_IMAGE_EXTENSIONS
    2. Size within settings.max_image_size
    3. MIME type from the content bytes (libmagic)
    4. Stored as branches/YYYY/MM/DD/<uuid>.<ext> under storage_root

Stored names never contain user input, and resolve_stored_path() refuses
any path that escapes storage_root.
"""

import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import aiofiles

from titledesk.config import settings
from titledesk.exceptions import FileStorageError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/webp": ".webp",
}
ALLOWED_IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp"}
PDF_MIME_TYPE = "application/pdf"

BRANCH_IMAGE_DIR = "branches"


def detect_mime_type(content: bytes) -> str:
    """MIME type from the leading bytes of `content` (libmagic)."""
    import magic

    return magic.from_buffer(content[:2048], mime=True)


def _megabytes(size: int) -> float:
    return size / (1024 * 1024)


class FileService:
    def __init__(self, storage_root: Optional[str] = None):
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    # ── Validation ────────────────────────────────────────────────────────

    def validate_extension(self, filename: str) -> str:
        ext = Path(filename or "").suffix.lower()
        if ext not in ALLOWED_IMAGE_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext or 'unknown'}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_IMAGE_EXTENSIONS))}"
                ),
                field="image",
                context={"extension": ext, "allowed": sorted(ALLOWED_IMAGE_EXTENSIONS)},
            )
        return ext

    def validate_size(self, size: int, limit: int, field: str = "file") -> None:
        if size > limit:
            raise ValidationError(
                message=(
                    f"File size ({_megabytes(size):.1f}MB) exceeds maximum of "
                    f"{_megabytes(limit):.0f}MB."
                ),
                field=field,
                context={"max_size_mb": _megabytes(limit), "actual_size": size},
            )

    def sniff(self, content: bytes) -> str:
        try:
            return detect_mime_type(content)
        except Exception as e:
            logger.error("MIME type detection failed: %s", e)
            raise FileStorageError(
                message="Could not verify file type. Please try again.",
                context={"error": str(e)},
            )

    def validate_image(self, filename: str, content: bytes) -> str:
        """Run the image checks; returns the extension to store under."""
        ext = self.validate_extension(filename)
        self.validate_size(len(content), settings.max_image_size, field="image")
        mime_type = self.sniff(content)
        if mime_type not in ALLOWED_IMAGE_TYPES:
            raise ValidationError(
                message=(
                    f"File content type '{mime_type}' is not supported. "
                    "The file must be a PNG, JPEG or WebP image."
                ),
                field="image",
                context={"detected_mime": mime_type},
            )
        return ext

    def validate_pdf(self, content: bytes, declared_type: Optional[str] = None) -> None:
        if declared_type and declared_type != PDF_MIME_TYPE:
            raise ValidationError(message="Only PDF files are allowed", field="file")
        self.validate_size(len(content), settings.max_pdf_size)
        if self.sniff(content) != PDF_MIME_TYPE:
            raise ValidationError(message="Only PDF files are allowed", field="file")

    # ── Storage ───────────────────────────────────────────────────────────

    def _new_relative_path(self, extension: str) -> str:
        date_dir = datetime.now(timezone.utc).strftime("%Y/%m/%d")
        return f"{BRANCH_IMAGE_DIR}/{date_dir}/{uuid.uuid4()}{extension}"

    async def store_image(self, filename: str, content: bytes) -> str:
        """Validate and write a branch image; returns the path relative to storage_root."""
        ext = self.validate_image(filename, content)
        relative_path = self._new_relative_path(ext)
        absolute_path = self.storage_root / relative_path
        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, e)
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": relative_path, "os_error": str(e)},
            )
        logger.info("Image stored: %s (%d bytes)", relative_path, len(content))
        return relative_path

    def resolve_stored_path(self, relative_path: str) -> Path:
        """Absolute path of a stored file; 404 for traversal attempts or missing files."""
        candidate = (self.storage_root / relative_path).resolve()
        if candidate != self.storage_root and self.storage_root not in candidate.parents:
            logger.warning("Rejected file path outside storage root: %s", relative_path)
            raise NotFoundError(resource="file")
        if not candidate.is_file():
            raise NotFoundError(resource="file")
        return candidate

    async def remove(self, relative_path: Optional[str]) -> None:
        """Best-effort delete of a stored file."""
        if not relative_path:
            return
        try:
            path = self.resolve_stored_path(relative_path)
            os.remove(path)
            logger.info("Removed stored file %s", relative_path)
        except NotFoundError:
            logger.debug("Stored file already gone: %s", relative_path)
        except OSError as e:
            logger.warning("Failed to remove stored file %s: %s", relative_path, e)


file_service = FileService()
