"""
listings/images.py -- Disk storage for listing photos.

Files land in one flat directory under generated names, so nothing about
the client's filename reaches the filesystem. api/main.py serves the same
directory under /images, on the API's own origin, so only raster formats
are accepted: an SVG or HTML upload served from there could run script as
the viewing user.
"""

from __future__ import annotations

import logging
import secrets
import time
from pathlib import Path

from core.errors import StorageError, ValidationFailure

logger = logging.getLogger("carmarket.listings")

NOT_AN_IMAGE = "Not an image! Only images allowed."

# Accepted MIME subtype -> stored extension.
_EXTENSIONS = {"jpeg": "jpg", "png": "png", "gif": "gif", "webp": "webp"}


class ImageStore:
    """Validate and persist uploaded images for a listing."""

    def __init__(self, directory: str | Path, max_bytes: int) -> None:
        self.directory = Path(directory)
        self.max_bytes = max_bytes
        self.directory.mkdir(parents=True, exist_ok=True)

    def check(self, content_type: str | None, size: int) -> str:
        """Return the extension to store under, or raise ValidationFailure."""
        content_type = (content_type or "").lower()
        if not content_type.startswith("image/"):
            raise ValidationFailure(NOT_AN_IMAGE, field="images")
        subtype = content_type.split("/", 1)[1].split(";", 1)[0].strip()
        ext = _EXTENSIONS.get(subtype)
        if ext is None:
            raise ValidationFailure(NOT_AN_IMAGE, field="images")
        if size > self.max_bytes:
            raise ValidationFailure(f"Images must be at most {self.max_bytes // 1024} KB.", field="images")
        return ext

    def save(self, content_type: str | None, data: bytes) -> str:
        """Write one image and return its stored file name (<epoch-millis>-<random>.<ext>).

        Raises ValidationFailure for a rejected upload and StorageError if the
        file cannot be written.
        """
        ext = self.check(content_type, len(data))
        name = f"{int(time.time() * 1000)}-{secrets.token_hex(4)}.{ext}"
        try:
            (self.directory / name).write_bytes(data)
        except OSError as exc:
            logger.exception("Could not write listing image %s", name)
            raise StorageError("A storage error occurred.") from exc
        logger.info("Stored listing image %s (%d bytes)", name, len(data))
        return name

    def discard(self, names: list[str]) -> None:
        """Remove stored files, e.g. when the listing insert that owned them failed."""
        for name in names:
            (self.directory / name).unlink(missing_ok=True)
