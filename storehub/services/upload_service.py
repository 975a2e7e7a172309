"""
StoreHub Backend: Photo Upload Service
=======================================

What:  Accepts store photos, resizes them and writes them to the upload dir.
How:   Two steps the store routes run in order before touching the database:

    ┌──────────────┐    ┌──────────────────────┐    ┌────────────────┐
    │ UploadFilter │───▶│ ImageResizer.resize  │───▶│ store write    │
    │ image/* only │    │ 800px wide, uuid.ext │    │ photo=filename │
    └──────────────┘    └──────────────────────┘    └────────────────┘

    No file attached → the filter returns None, the resizer is skipped and
    the store keeps its current (or default) photo.

Files are named `<uuid4>.<subtype>` (`image/png` → `.png`) and contain no
user input. A failure after the write but before the store is saved leaves
an orphaned file behind; nothing cleans it up automatically.
"""

import io
import logging
import re
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import aiofiles
from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError
from starlette.concurrency import run_in_threadpool

from storehub.config import settings
from storehub.exceptions import FileStorageError, ValidationError

logger = logging.getLogger(__name__)

# The subtype becomes the file extension, so it may only hold filename-safe
# characters: "image/png", "image/svg+xml", "image/png; q=1"
_IMAGE_TYPE = re.compile(r"image/([a-z0-9][a-z0-9.+-]*)\s*(?:;.*)?", re.IGNORECASE)


def image_subtype(content_type: Optional[str]) -> Optional[str]:
    """Lowercased subtype of an image/* content type, None for anything else."""
    if not content_type:
        return None
    match = _IMAGE_TYPE.fullmatch(content_type.strip())
    return match.group(1).lower() if match else None


def is_image_content_type(content_type: Optional[str]) -> bool:
    return image_subtype(content_type) is not None


def _disallowed(content_type: Optional[str]) -> ValidationError:
    return ValidationError(
        message="That filetype isn't allowed!",
        field="photo",
        context={"content_type": content_type},
    )


@dataclass(frozen=True)
class AcceptedUpload:
    """An upload that passed the filter, read into memory."""
    content: bytes
    content_type: str
    filename: str

    @property
    def extension(self) -> str:
        subtype = image_subtype(self.content_type)
        if subtype is None:
            raise _disallowed(self.content_type)
        return subtype


class UploadFilter:
    """Lets through image uploads only."""

    def __init__(self, max_file_size: Optional[int] = None):
        self.max_file_size = max_file_size or settings.max_file_size

    def check(self, content_type: Optional[str]) -> None:
        """
        Accept iff the declared content type is image/<subtype> with a subtype
        usable as a file extension.

        Raises:
            ValidationError: any other content type (or none at all)
        """
        if not is_image_content_type(content_type):
            raise _disallowed(content_type)

    async def accept(self, upload: Optional[UploadFile]) -> Optional[AcceptedUpload]:
        """
        Filter a multipart file field.

        Returns None when the form carried no file (field absent, or a browser
        sending an empty part with no filename).
        """
        if upload is None or not upload.filename:
            return None

        try:
            self.check(upload.content_type)
            content = await upload.read()
        finally:
            await upload.close()

        if not content:
            return None
        if len(content) > self.max_file_size:
            max_mb = self.max_file_size / (1024 * 1024)
            raise ValidationError(
                message=f"Photos are limited to {max_mb:.0f}MB. Please upload a smaller image.",
                field="photo",
                context={"actual_size": len(content), "max_size": self.max_file_size},
            )

        return AcceptedUpload(
            content=content,
            content_type=upload.content_type,
            filename=upload.filename,
        )


class ImageResizer:
    """
    Scales accepted photos to a fixed width and stores them.

    Height follows the source aspect ratio: round(h * width / w), at least 1.
    Smaller images are scaled up so every stored photo has the same width.
    """

    def __init__(self, upload_dir: Optional[str] = None, width: Optional[int] = None):
        self.upload_dir = Path(upload_dir or settings.upload_dir).resolve()
        self.width = width or settings.photo_width
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        logger.info("ImageResizer initialized with upload_dir=%s", self.upload_dir)

    def target_size(self, width: int, height: int) -> Tuple[int, int]:
        return self.width, max(1, round(height * self.width / width))

    def _resize_bytes(self, content: bytes) -> bytes:
        """Decode, resize and re-encode in the source format (runs in a worker thread)."""
        try:
            with Image.open(io.BytesIO(content)) as image:
                image_format = image.format
                image.load()
                resized = image.resize(
                    self.target_size(*image.size),
                    Image.Resampling.LANCZOS,
                )
            output = io.BytesIO()
            resized.save(output, format=image_format)
        except (
            UnidentifiedImageError,
            Image.DecompressionBombError,
            OSError,
            KeyError,
            ValueError,
        ) as e:
            raise ValidationError(
                message="The uploaded photo could not be read as an image.",
                field="photo",
                context={"error": str(e)},
            ) from e
        return output.getvalue()

    async def resize(self, upload: Optional[AcceptedUpload]) -> Optional[str]:
        """
        Resize and store an accepted upload.

        Returns:
            The new filename (e.g. "0b7c...e1.png"), or None when there was
            nothing to resize.

        Raises:
            ValidationError: the bytes are not a decodable image
            FileStorageError: the file could not be written
        """
        if upload is None:
            return None

        filename = f"{uuid.uuid4()}.{upload.extension}"
        resized = await run_in_threadpool(self._resize_bytes, upload.content)

        path = self.upload_dir / filename
        try:
            async with aiofiles.open(path, "wb") as f:
                await f.write(resized)
        except OSError as e:
            logger.error("Failed to store photo at %s: %s", path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded photo. Please try again.",
                context={"path": str(path), "os_error": str(e)},
            ) from e

        logger.info("Photo stored: %s (%d bytes)", filename, len(resized))
        return filename
