"""Flask extensions for the application."""

from __future__ import annotations

from typing import TYPE_CHECKING

from firebase_admin import firestore, storage
from flask import current_app

if TYPE_CHECKING:
    from .media.models import UploadConfig
    from .user.cache import ProfileCache


def init_profile_cache(app) -> ProfileCache:
    """Attach a file-backed profile cache to the app."""
    from .user.cache import FileKeyValueStore, ProfileCache

    cache = ProfileCache(
        FileKeyValueStore(app.config["PROFILE_CACHE_DIR"]),
        activity_log_limit=app.config["ACTIVITY_LOG_LIMIT"],
    )
    app.extensions["profile_cache"] = cache
    return cache


def get_profile_cache() -> ProfileCache:
    """Return the current app's profile cache."""
    return current_app.extensions["profile_cache"]


def get_db():
    """Return the Firestore client."""
    return firestore.client()


def get_bucket():
    """Return the default Storage bucket."""
    return storage.bucket()


def get_upload_config() -> UploadConfig:
    """Build upload settings from the current app's config."""
    from .media.models import UploadConfig

    return UploadConfig.from_mapping(current_app.config)
