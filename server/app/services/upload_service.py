"""Storage of uploaded tour images on the local filesystem."""

import logging
import re
import time
from pathlib import Path

from ..core.config import settings
from ..core.exceptions import NotFoundError, ValidationError
from ..schemas.transfer import UploadResponse

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png", "image/webp"})

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


def sanitize_filename(filename: str) -> str:
    """Replace everything except letters, digits, dots and hyphens with underscores."""
    return _UNSAFE_FILENAME_CHARS.sub("_", filename)


class UploadService:
    """Writes and removes image files under the public upload directory."""

    def __init__(
        self,
        upload_dir: str | Path | None = None,
        url_prefix: str | None = None,
        max_bytes: int | None = None,
    ):
        self.upload_dir = Path(upload_dir or settings.upload_dir)
        self.url_prefix = (url_prefix or settings.upload_url_prefix).rstrip("/")
        self.max_bytes = max_bytes or settings.upload_max_bytes

    def save(self, filename: str, content_type: str | None, data: bytes) -> UploadResponse:
        """
        Store an uploaded image under a timestamped, sanitized name.

        Raises:
            ValidationError: On disallowed type or oversized file
        """
        if content_type not in ALLOWED_IMAGE_TYPES:
            raise ValidationError(detail="File type not allowed. Use JPEG, PNG or WebP")

        if len(data) > self.max_bytes:
            raise ValidationError(
                detail=f"File too large. Maximum {self.max_bytes // (1024 * 1024)}MB"
            )

        file_name = f"{int(time.time() * 1000)}_{sanitize_filename(filename or 'image')}"
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        (self.upload_dir / file_name).write_bytes(data)

        logger.info(
            "Image uploaded",
            extra={"file_name": file_name, "size": len(data), "content_type": content_type}
        )

        return UploadResponse(
            url=f"{self.url_prefix}/{file_name}",
            file_name=file_name,
            size=len(data),
            type=content_type,
        )

    def delete(self, file_name: str) -> None:
        """
        Remove a previously uploaded image.

        Raises:
            ValidationError: If the name could escape the upload directory
            NotFoundError: If no such file exists
        """
        if not file_name:
            raise ValidationError(detail="File name is required")

        if ".." in file_name or "/" in file_name or "\\" in file_name:
            raise ValidationError(detail="Invalid file name")

        path = self.upload_dir / file_name
        if not path.is_file():
            raise NotFoundError(resource_type="file", resource_id=file_name, detail="File not found")

        path.unlink()
        logger.info("Image deleted", extra={"file_name": file_name})
