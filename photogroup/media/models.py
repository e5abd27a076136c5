"""Data models for the media package."""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any, Optional, TypedDict

from photogroup.core.constants import (
    ALLOWED_IMAGE_TYPES,
    FILE_RETRY_DELAY,
    HTTP_TIMEOUT,
    MAX_IMAGE_BYTES,
    REQUEST_REMOTE_SCHEMES,
)


class ImageType(str, enum.Enum):
    """Role of an uploaded image within a post."""

    MAIN = "main"
    FRONT = "front"
    COMPOSITE = "composite"


class ImageDescriptor(TypedDict):
    """Metadata describing an image after it has been stored."""

    downloadURL: str
    path: str
    size: int
    filename: str
    contentType: str
    type: str


@dataclass
class ResolvedImage:
    """Raw image bytes plus the content type the source declared, if any."""

    data: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class UploadConfig:
    """Tunables for the media upload pipeline.

    The defaults trust the caller, as an in-process camera pipeline does.
    Requests from HTTP clients use :meth:`for_requests`, which refuses local
    files, plain HTTP and non-public hosts.
    """

    max_bytes: int = MAX_IMAGE_BYTES
    allowed_types: tuple[str, ...] = ALLOWED_IMAGE_TYPES
    file_retry_delay: float = FILE_RETRY_DELAY
    http_timeout: float = HTTP_TIMEOUT
    allow_local_files: bool = True
    remote_schemes: tuple[str, ...] = ("http", "https")
    public_hosts_only: bool = False

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> UploadConfig:
        """Build an upload config from a Flask-style config mapping."""
        return cls(
            max_bytes=int(config.get("MAX_IMAGE_BYTES", MAX_IMAGE_BYTES)),
            allowed_types=tuple(config.get("ALLOWED_IMAGE_TYPES", ALLOWED_IMAGE_TYPES)),
            file_retry_delay=float(config.get("FILE_RETRY_DELAY", FILE_RETRY_DELAY)),
            http_timeout=float(config.get("HTTP_TIMEOUT", HTTP_TIMEOUT)),
        )

    def for_requests(self) -> UploadConfig:
        """Return a copy restricted to references a remote client may send."""
        return replace(
            self,
            allow_local_files=False,
            remote_schemes=REQUEST_REMOTE_SCHEMES,
            public_hosts_only=True,
        )
