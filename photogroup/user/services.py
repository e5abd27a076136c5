"""Service layer for the device user's profile."""

from __future__ import annotations

import logging
import secrets
import string
import time
from typing import TYPE_CHECKING

from photogroup.core.constants import USERS_COLLECTION
from photogroup.errors import ValidationError

from .cache import ProfileCache, utc_now_iso

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

    from .models import UserProfile, UserStats

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_user_id() -> str:
    """Return a new opaque user id such as ``user_1718000000000_k3j9x0a1b``."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"user_{int(time.time() * 1000)}_{suffix}"


class UserService:
    """Service class for the locally cached user profile."""

    @staticmethod
    def create_profile(db: Client, cache: ProfileCache, name: str) -> UserProfile:
        """Create a new user in Firestore and cache it on this device."""
        name = (name or "").strip()
        if not name:
            raise ValidationError("Name is required.")

        now = utc_now_iso()
        profile: UserProfile = {
            "id": generate_user_id(),
            "name": name,
            "groups": [],
            "groupsPosted": [],
            "hasUploaded": False,
            "joinedAt": now,
            "totalPosts": 0,
            "createdAt": now,
            "lastLogin": now,
            "groupCount": 0,
            "activityLog": [],
        }
        db.collection(USERS_COLLECTION).document(profile["id"]).set(dict(profile))
        cache.save(profile)
        logger.info(f"Created user {profile['id']}")
        return profile

    @staticmethod
    def get_user_stats(cache: ProfileCache) -> UserStats | None:
        """Summarise the cached profile for overview screens."""
        user = cache.load()
        if not user:
            return None

        groups = user.get("groups") or []
        return {
            "userId": user.get("id", ""),
            "name": user.get("name", ""),
            "memberSince": user.get("createdAt") or user.get("joinedAt", ""),
            "lastLogin": user.get("lastLogin", ""),
            "groupCount": user.get("groupCount") or len(groups),
            "totalPosts": user.get("totalPosts", 0),
            "hasUploaded": user.get("hasUploaded", False),
            "lastActivity": user.get("lastActivity"),
            "totalActivities": len(user.get("activityLog") or []),
            "groups": groups,
            "groupsPosted": user.get("groupsPosted") or [],
        }

    @staticmethod
    def validate_user(cache: ProfileCache) -> tuple[bool, str | None]:
        """Check the cached profile is usable.

        Returns:
            tuple[bool, str | None]: (is_valid, reason)
        """
        user = cache.load()
        if not user:
            return False, "No user found"
        if not user.get("name") or not user.get("id"):
            return False, "Incomplete user data"
        return True, None

    @staticmethod
    def clear_user_data(cache: ProfileCache) -> None:
        """Forget the profile cached on this device."""
        cache.clear()
        logger.info("Cleared cached user data")
