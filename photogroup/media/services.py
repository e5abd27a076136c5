"""Service layer turning captured images into stored blobs."""

from __future__ import annotations

import datetime
import logging
import secrets
import time
from typing import TYPE_CHECKING, Any

from google.api_core import exceptions as api_exceptions
from google.cloud.storage.exceptions import DataCorruption

from photogroup.core.types import Result
from photogroup.errors import UploadError, ValidationError

from .models import ImageDescriptor, ImageType, ResolvedImage, UploadConfig
from .sources import resolve_image

if TYPE_CHECKING:
    from google.cloud.storage.bucket import Bucket

logger = logging.getLogger(__name__)

EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}
DEFAULT_CONTENT_TYPE = "image/jpeg"


def describe_storage_error(error: Exception) -> str:
    """Translate a storage transport error into a readable cause."""
    if isinstance(error, (api_exceptions.Unauthorized, api_exceptions.Forbidden)):
        return "not authorized to write to storage"
    if isinstance(error, api_exceptions.Cancelled):
        return "upload was canceled"
    if isinstance(error, api_exceptions.RetryError):
        return "storage retry limit exceeded"
    if isinstance(error, DataCorruption):
        return "checksum mismatch after upload"
    return f"storage error: {error}"


def coerce_image_type(image_type: ImageType | str) -> ImageType:
    """Return ``image_type`` as an :class:`ImageType`."""
    try:
        return ImageType(image_type)
    except ValueError as e:
        raise ValidationError(f"Unknown image type: {image_type}") from e


class MediaService:
    """Service class for image upload and cleanup."""

    @staticmethod
    def validate_image(resolved: ResolvedImage, config: UploadConfig) -> None:
        """Check resolved bytes against size and content-type limits."""
        if not resolved.size:
            raise UploadError("image is empty")
        if resolved.size > config.max_bytes:
            raise UploadError(
                f"image is {resolved.size} bytes, larger than the "
                f"{config.max_bytes} byte limit"
            )
        if resolved.content_type and resolved.content_type not in config.allowed_types:
            raise UploadError(f"unsupported image type '{resolved.content_type}'")

    @staticmethod
    def build_storage_path(
        group_id: str,
        user_id: str,
        image_type: ImageType,
        content_type: str = DEFAULT_CONTENT_TYPE,
        timestamp_ms: int | None = None,
    ) -> tuple[str, str]:
        """Return a unique ``(filename, path)`` pair under the group's photos.

        The filename combines the user id, a millisecond timestamp, the image
        role and a random suffix.
        """
        if timestamp_ms is None:
            timestamp_ms = int(time.time() * 1000)
        extension = EXTENSIONS.get(content_type, ".jpg")
        suffix = secrets.token_hex(4)
        filename = f"{user_id}_{timestamp_ms}_{image_type.value}_{suffix}{extension}"
        return filename, f"groups/{group_id}/photos/{filename}"

    @staticmethod
    def upload_image(
        bucket: Bucket,
        image_ref: str,
        group_id: str,
        user_id: str,
        image_type: ImageType | str = ImageType.MAIN,
        config: UploadConfig | None = None,
    ) -> ImageDescriptor:
        """Resolve, validate and store an image, returning its descriptor.

        Raises:
            ValidationError: If a required argument is missing.
            UploadError: If any resolution, validation or storage step fails.
        """
        if not image_ref:
            raise ValidationError("Image is required.")
        if not group_id:
            raise ValidationError("Group ID is required.")
        if not user_id:
            raise ValidationError("User ID is required.")
        image_type = coerce_image_type(image_type)
        config = config or UploadConfig()

        resolved = resolve_image(image_ref, config)
        MediaService.validate_image(resolved, config)

        content_type = resolved.content_type or DEFAULT_CONTENT_TYPE
        filename, path = MediaService.build_storage_path(
            group_id, user_id, image_type, content_type
        )
        logger.info(f"Uploading {image_type.value} image ({resolved.size} bytes) to {path}")

        blob: Any = bucket.blob(path)
        blob.metadata = {
            "groupId": group_id,
            "userId": user_id,
            "imageType": image_type.value,
            "uploadedAt": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        }
        try:
            blob.upload_from_string(resolved.data, content_type=content_type)
            blob.make_public()
            download_url = blob.public_url
        except Exception as e:
            logger.error(f"Storage upload to {path} failed: {e}")
            raise UploadError(describe_storage_error(e)) from e

        if not download_url:
            raise UploadError("no retrieval URL returned")

        return {
            "downloadURL": download_url,
            "path": path,
            "size": resolved.size,
            "filename": filename,
            "contentType": content_type,
            "type": image_type.value,
        }

    @staticmethod
    def delete_image(bucket: Bucket, path: str) -> Result[None]:
        """Delete a stored image; a missing object counts as deleted."""
        try:
            bucket.blob(path).delete()
        except api_exceptions.NotFound:
            return Result.success()
        except Exception as e:
            return Result.failure(e)
        return Result.success()
