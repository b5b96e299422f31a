"""Temporary storage for uploaded recipe images."""

import asyncio
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import UploadFile

from recipepantry.errors import ValidationError
from recipepantry.logging_config import get_logger

logger = get_logger(__name__)

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}
ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}
CHUNK_SIZE = 64 * 1024


def validate_image_upload(filename: str | None, content_type: str | None) -> str:
    """
    Check that an upload looks like a supported image.

    Returns:
        File extension to store the upload under.
    """
    extension = Path(filename or "").suffix.lower()
    content_type = (content_type or "").split(";")[0].strip().lower()

    if content_type in ALLOWED_IMAGE_TYPES:
        return extension if extension in ALLOWED_EXTENSIONS else ALLOWED_IMAGE_TYPES[content_type]
    if not content_type or content_type == "application/octet-stream":
        if extension in ALLOWED_EXTENSIONS:
            return extension

    raise ValidationError(
        "Only image files (JPEG, PNG, GIF, WebP) are allowed", field="image"
    )


@asynccontextmanager
async def saved_upload(
    upload: UploadFile | None, upload_dir: str | Path, max_size: int
) -> AsyncIterator[Path]:
    """
    Write an uploaded image to a temporary file and yield its path.

    The file is deleted when the block exits, whether it succeeds or raises.

    Raises:
        ValidationError: No file, unsupported type, empty, or over ``max_size`` bytes.
    """
    if upload is None or not upload.filename:
        raise ValidationError("No image file provided", field="image")

    extension = validate_image_upload(upload.filename, upload.content_type)
    directory = Path(upload_dir)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"recipe-{uuid.uuid4().hex}{extension}"

    try:
        size = 0
        with path.open("wb") as out:
            while chunk := await upload.read(CHUNK_SIZE):
                size += len(chunk)
                if size > max_size:
                    raise ValidationError(
                        f"File too large. Maximum size is {max_size // (1024 * 1024)}MB",
                        field="image",
                    )
                await asyncio.to_thread(out.write, chunk)
        if size == 0:
            raise ValidationError("Uploaded image is empty", field="image")

        logger.debug(f"Saved upload {upload.filename} ({size} bytes) to {path.name}")
        yield path
    finally:
        path.unlink(missing_ok=True)
        logger.debug(f"Removed temporary upload {path.name}")
