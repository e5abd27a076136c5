"""Image resolution and storage."""

from .models import ImageDescriptor, ImageType, UploadConfig
from .services import MediaService

__all__ = ["ImageDescriptor", "ImageType", "MediaService", "UploadConfig"]
