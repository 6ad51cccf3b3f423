"""
CatTrack Backend: File Storage Service
=======================================

What:  Validates, stores, locates and cleans up uploaded cat images, and
       reads the GPS position embedded in their EXIF data.
How:   Extension and size checks first, then Pillow decodes the header to
       confirm the content really is an image; files are written with
       aiofiles into date-organized directories under UUID names.
Who:   Called by CatService during cat creation and by the uploads route.

Security Model:
    1. Extension check:   cheap first rejection
    2. Size check:        bounded by settings.max_file_size
    3. Content check:     Pillow must recognize the bytes as an allowed format
    4. UUID filename:     no user input reaches the file system path
    5. Path resolution:   served paths must stay inside the storage root
"""

import io
import logging
import math
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles
from PIL import ExifTags, Image, UnidentifiedImageError

from cattrack.config import settings
from cattrack.exceptions import FileStorageError, NotFoundError, ValidationError
from cattrack.geo import Corner, dms_to_decimal

logger = logging.getLogger(__name__)

# Pillow format name → extension written to disk
ALLOWED_FORMATS = {
    "JPEG": ".jpg",
    "PNG": ".png",
    "GIF": ".gif",
    "WEBP": ".webp",
}

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}


class FileService:
    """
    Manages the upload lifecycle of cat images.

    Directory Structure:
        uploads/
        └── 2024/
            └── 01/
                └── 15/
                    ├── a1b2c3d4-5678.jpg
                    └── e5f6g7h8-9012.png

    The relative path (e.g. "2024/01/15/a1b2c3d4-5678.jpg") is what gets
    stored in Cat.filename and served from /uploads/<path>.
    """

    def __init__(self, storage_root: Optional[str] = None):
        """
        Args:
            storage_root: Override the default storage path (used in tests).
                          If None, uses settings.storage_root.
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    # ── Validation ────────────────────────────────────────────────────────

    def validate_extension(self, filename: str) -> str:
        """
        Check the upload's extension against the allowed list.

        Returns: Normalized extension (lowercase with dot).
        Raises:  ValidationError if the extension is not allowed.
        """
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="file",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Reject empty uploads and uploads over settings.max_file_size.

        The declared Content-Length is checked as well as the real size,
        since clients can send a mismatched header.
        """
        max_mb = settings.max_file_size / (1024 * 1024)

        if actual_size == 0:
            raise ValidationError(message="Uploaded file is empty", field="file")

        if content_length and content_length > settings.max_file_size:
            raise ValidationError(
                message=f"File size exceeds maximum of {max_mb:.0f}MB. Please upload a smaller image.",
                field="file",
                context={"max_size_mb": max_mb, "reported_size": content_length},
            )

        if actual_size > settings.max_file_size:
            raise ValidationError(
                message=f"File size ({actual_size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                field="file",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

    def validate_image_content(self, content: bytes) -> str:
        """
        Confirm the bytes decode as an allowed image format.

        Returns: The extension matching the detected format.
        Raises:  ValidationError for unreadable or disallowed content.
        """
        try:
            with Image.open(io.BytesIO(content)) as image:
                image_format = image.format
                image.verify()
        except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
            raise ValidationError(
                message="File content is not a valid image",
                field="file",
                context={"error": type(e).__name__},
            )

        if image_format not in ALLOWED_FORMATS:
            raise ValidationError(
                message=f"Image format '{image_format}' is not supported",
                field="file",
                context={"detected_format": image_format, "allowed": sorted(ALLOWED_FORMATS)},
            )
        return ALLOWED_FORMATS[image_format]

    # ── EXIF ──────────────────────────────────────────────────────────────

    def read_gps_location(self, content: bytes) -> Optional[Corner]:
        """
        Extract the GPS position from the image's EXIF block.

        Returns None when the image has no GPS data or the data is
        incomplete, non-finite or out of range.
        """
        try:
            with Image.open(io.BytesIO(content)) as image:
                gps = image.getexif().get_ifd(ExifTags.IFD.GPSInfo)
        except (UnidentifiedImageError, OSError, SyntaxError, ValueError):
            return None

        if not gps:
            return None

        try:
            lat = dms_to_decimal(
                gps[ExifTags.GPS.GPSLatitude],
                _ref_text(gps.get(ExifTags.GPS.GPSLatitudeRef, "N")),
            )
            lng = dms_to_decimal(
                gps[ExifTags.GPS.GPSLongitude],
                _ref_text(gps.get(ExifTags.GPS.GPSLongitudeRef, "E")),
            )
        except (KeyError, TypeError, ValueError, ZeroDivisionError):
            logger.debug("Ignoring incomplete EXIF GPS block")
            return None

        if not (math.isfinite(lat) and math.isfinite(lng)):
            return None
        if not (-90 <= lat <= 90 and -180 <= lng <= 180):
            return None
        return Corner(lat=lat, lng=lng)

    # ── Storage ───────────────────────────────────────────────────────────

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        """
        Create a YYYY/MM/DD/<uuid>.<ext> path.

        Returns: Tuple of (absolute_path, relative_path_from_storage_root).
        """
        now = datetime.now(timezone.utc)
        date_dir = now.strftime("%Y/%m/%d")
        unique_name = f"{uuid.uuid4()}{extension}"

        relative_path = f"{date_dir}/{unique_name}"
        absolute_path = self.storage_root / relative_path

        return absolute_path, relative_path

    async def store_file(self, content: bytes, extension: str) -> Tuple[str, str]:
        """
        Write validated file content to disk.

        Returns: Tuple of (absolute_path, relative_path).
        Raises:  FileStorageError if directory creation or file write fails.
        """
        absolute_path, relative_path = self._generate_storage_path(extension)

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)

            logger.info("File stored: %s (%d bytes)", relative_path, len(content))
            return str(absolute_path), relative_path

        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": str(absolute_path), "os_error": str(e)},
            )

    async def cleanup_file(self, file_path: str) -> None:
        """
        Remove a stored file after a failed create.

        Best effort: a missing file is ignored and other failures are
        logged, since the caller is already reporting a more relevant error.
        """
        try:
            path = Path(file_path)
            if path.exists():
                os.remove(path)
                logger.info("Cleaned up file: %s", path.name)
            else:
                logger.debug("Cleanup: file already gone: %s", path.name)
        except OSError as e:
            logger.warning("Failed to clean up file %s: %s", file_path, str(e))

    async def validate_and_store(
        self,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> Tuple[str, str]:
        """
        Validate extension, size and content, then store the file.

        Returns: Tuple of (absolute_path, relative_path_for_db).
        """
        self.validate_extension(filename)
        self.validate_size(content_length, len(content))
        extension = self.validate_image_content(content)
        return await self.store_file(content, extension)

    def resolve_stored_file(self, relative_path: str) -> Path:
        """
        Map a stored relative path back to a file inside the storage root.

        Raises:
            ValidationError: the path escapes the storage root
            NotFoundError:   no such file
        """
        full_path = (self.storage_root / relative_path).resolve()
        if not full_path.is_relative_to(self.storage_root):
            raise ValidationError(message="Invalid file path", field="file_path")
        if not full_path.is_file():
            raise NotFoundError(resource="file", resource_id=relative_path)
        return full_path


def _ref_text(ref) -> str:
    if isinstance(ref, bytes):
        return ref.decode("ascii", errors="ignore")
    return str(ref)


# ── Singleton Instance ────────────────────────────────────────────────────
file_service = FileService()
