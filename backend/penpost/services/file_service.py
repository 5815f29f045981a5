"""
Penpost Backend — Image Upload Service
========================================

What:  Validates, stores and removes post images.
How:   Checks extension, declared content type and size, then writes the bytes
       under UPLOAD_DIR with a generated name. The stored name is what a Post
       keeps in its `image` column; the file is served at /uploads/<name>.
Who:   PostService (create, delete); created once by `create_app()`.

Checks, cheapest first:
    1. Extension in ALLOWED_EXTENSIONS
    2. Declared content type is image/* and in ALLOWED_CONTENT_TYPES
    3. Content-Length header and actual size within max_size, and non-empty
    4. Write with async I/O

Stored names look like `1718000000000-1a2b3c4d.png`: epoch milliseconds, 8 hex
characters, and the validated extension. Nothing from the client's filename
other than the extension ends up on disk.
"""

import logging
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os

from penpost.exceptions import FileStorageError, ValidationError

logger = logging.getLogger(__name__)

# ── Allowed File Types ────────────────────────────────────────────────────
ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}

ALLOWED_CONTENT_TYPES = {
    "image/png",
    "image/jpeg",
    "image/jpg",
    "image/pjpeg",
    "image/gif",
    "image/webp",
}

UPLOAD_URL_PREFIX = "/uploads"


@dataclass
class ImageUpload:
    """An image part read from a multipart request, not yet validated."""

    filename: str
    content: bytes
    content_type: Optional[str] = None
    content_length: Optional[int] = None


def image_url(filename: Optional[str]) -> Optional[str]:
    """Public path for a stored image name, or None."""
    if not filename:
        return None
    return f"{UPLOAD_URL_PREFIX}/{filename}"


class FileService:
    """
    Manages the upload directory.

    One instance per application; `upload_dir` and `max_size` come from
    Settings (UPLOAD_DIR, MAX_UPLOAD_SIZE).
    """

    def __init__(self, upload_dir: str, max_size: int):
        self.upload_dir = Path(upload_dir).resolve()
        self.max_size = max_size
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with upload_dir=%s", self.upload_dir)

    def validate_extension(self, filename: str) -> str:
        """Returns the normalized (lower-case, dotted) extension or raises ValidationError."""
        ext = Path(filename or "").suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext or filename}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="image",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_content_type(self, content_type: Optional[str]) -> str:
        """
        Checks the content type the client declared for the part.

        Parameters such as `; charset=...` are ignored.
        """
        mime = (content_type or "").split(";", 1)[0].strip().lower()
        if not mime.startswith("image/") or mime not in ALLOWED_CONTENT_TYPES:
            raise ValidationError(
                message=f"Content type '{mime or 'unknown'}' is not an accepted image type.",
                field="image",
                context={"content_type": mime, "allowed": sorted(ALLOWED_CONTENT_TYPES)},
            )
        return mime

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Rejects empty files and files over `max_size`.

        Content-Length is checked as well as the real byte count, since
        clients can send a wrong header.
        """
        max_mb = self.max_size / (1024 * 1024)

        if content_length and content_length > self.max_size:
            raise ValidationError(
                message=f"File size exceeds maximum of {max_mb:.0f}MB. Please upload a smaller image.",
                field="image",
                context={"max_size": self.max_size, "reported_size": content_length},
            )

        if actual_size == 0:
            raise ValidationError(message="Uploaded image is empty", field="image")

        if actual_size > self.max_size:
            raise ValidationError(
                message=f"File size ({actual_size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                field="image",
                context={"max_size": self.max_size, "actual_size": actual_size},
            )

    def generate_filename(self, extension: str) -> str:
        """`<epoch-ms>-<8 hex><ext>`."""
        return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}{extension}"

    def path_for(self, filename: str) -> Path:
        """
        Absolute path of a stored file.

        Raises:
            ValueError: if `filename` would resolve outside the upload directory.
        """
        path = (self.upload_dir / filename).resolve()
        if path.parent != self.upload_dir:
            raise ValueError(f"Illegal stored filename: {filename!r}")
        return path

    async def store_file(self, content: bytes, extension: str) -> str:
        """
        Writes validated bytes to disk and returns the stored filename.

        Raises:
            FileStorageError if the write fails.
        """
        filename = self.generate_filename(extension)
        path = self.upload_dir / filename

        try:
            self.upload_dir.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": str(path), "os_error": str(e)},
            )

        logger.info("File stored: %s (%d bytes)", filename, len(content))
        return filename

    async def cleanup(self, filename: Optional[str]) -> None:
        """
        Best-effort removal of a stored image.

        Missing files and OS errors are logged, never raised: a leftover file
        must not turn a successful delete into an error response.
        """
        if not filename:
            return
        try:
            path = self.path_for(filename)
            if await aiofiles.os.path.exists(path):
                await aiofiles.os.remove(path)
                logger.info("Cleaned up file: %s", filename)
            else:
                logger.debug("Cleanup: file already gone: %s", filename)
        except (OSError, ValueError) as e:
            logger.warning("Failed to clean up file %s: %s", filename, str(e))

    async def validate_and_store(
        self,
        filename: str,
        content: bytes,
        content_type: Optional[str],
        content_length: Optional[int] = None,
    ) -> str:
        """
        Full pipeline: validate, then store.

        Returns:
            The stored filename (for Post.image).
        """
        ext = self.validate_extension(filename)
        self.validate_content_type(content_type)
        self.validate_size(content_length, len(content))
        return await self.store_file(content, ext)
