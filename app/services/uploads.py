"""Listing image storage on the local media directory."""

from __future__ import annotations

import logging
import secrets
import uuid
from pathlib import Path

from app.core import ratelimit
from app.core.config import get_settings
from app.core.errors import RateLimitedError, ValidationFailedError

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".gif"}
MAX_IMAGE_SIZE = 5 * 1024 * 1024  # 5 MB
UPLOAD_WINDOW_SECONDS = 60.0


def check_upload_allowed(user_id: uuid.UUID) -> None:
    settings = get_settings()
    if not ratelimit.hit(("upload", user_id), settings.upload_rate_limit, UPLOAD_WINDOW_SECONDS):
        logger.info("Upload throttled for user %s", user_id)
        raise RateLimitedError()


def store_image(user_id: uuid.UUID, filename: str, content: bytes) -> str:
    """Validate and write an image, returning its public URL."""
    ext = Path(filename or "").suffix.lower()
    if ext not in ALLOWED_IMAGE_EXTENSIONS:
        raise ValidationFailedError.single(
            "file",
            f"Unsupported file type: {ext or 'none'}. "
            f"Allowed: {', '.join(sorted(ALLOWED_IMAGE_EXTENSIONS))}",
        )
    if len(content) > MAX_IMAGE_SIZE:
        raise ValidationFailedError.single(
            "file", f"File too large. Maximum size is {MAX_IMAGE_SIZE // (1024 * 1024)} MB.",
        )
    if not content:
        raise ValidationFailedError.single("file", "File is empty")

    settings = get_settings()
    name = f"{secrets.token_hex(8)}{ext}"
    target_dir = Path(settings.media_dir) / "listings" / str(user_id)
    target_dir.mkdir(parents=True, exist_ok=True)
    (target_dir / name).write_bytes(content)

    logger.info("Stored listing image %s for user %s (%d bytes)", name, user_id, len(content))
    return f"{settings.media_url.rstrip('/')}/listings/{user_id}/{name}"
