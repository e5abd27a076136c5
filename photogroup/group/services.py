"""Service layer for group operations."""

from __future__ import annotations

import datetime
import logging
import re
from typing import TYPE_CHECKING, Any, cast

from firebase_admin import firestore

from photogroup.core.constants import (
    ACTIVITY_JOINED_GROUP,
    GROUP_CODE_PATTERN,
    GROUPS_COLLECTION,
)
from photogroup.errors import DuplicateResourceError, NotFoundError, ValidationError

from .models import Group

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client

    from photogroup.user.cache import ProfileCache
    from photogroup.user.models import UserProfile

logger = logging.getLogger(__name__)

_GROUP_CODE_RE = re.compile(GROUP_CODE_PATTERN)


def validate_group_code(code: str) -> str:
    """Return the trimmed group code, or raise if it is not shareable."""
    code = (code or "").strip()
    if not _GROUP_CODE_RE.match(code):
        raise ValidationError(
            "Group code must be 3-20 letters or digits with no spaces or symbols."
        )
    return code


class GroupService:
    """Service class for group-related operations."""

    @staticmethod
    def get_group(db: Client, code: str) -> Group | None:
        """Fetch a group by its code."""
        group_doc = cast(
            "DocumentSnapshot", db.collection(GROUPS_COLLECTION).document(code).get()
        )
        if not group_doc.exists:
            return None
        data = group_doc.to_dict() or {}
        data["id"] = group_doc.id
        return cast(Group, data)

    @staticmethod
    def create_group(
        db: Client,
        code: str,
        name: str = "",
        description: str = "",
        owner_id: str | None = None,
    ) -> Group:
        """Create an empty group keyed by its shareable code."""
        code = validate_group_code(code)
        group_ref = db.collection(GROUPS_COLLECTION).document(code)
        if group_ref.get().exists:
            raise DuplicateResourceError("A group with that code already exists.")

        now = datetime.datetime.now(datetime.timezone.utc)
        group_data: dict[str, Any] = {
            "code": code,
            "name": (name or "").strip() or code,
            "description": (description or "").strip(),
            "ownerId": owner_id,
            "createdAt": now,
            "lastActivity": now,
            "memberCount": 0,
            "totalPosts": 0,
            "members": [],
        }
        group_ref.set(group_data)
        logger.info(f"Created group {code}")
        return cast(Group, {**group_data, "id": code})

    @staticmethod
    def join_group(db: Client, cache: ProfileCache, code: str) -> Group:
        """Add the cached user to a group's members and their profile's groups."""
        code = validate_group_code(code)
        with cache.lock:
            profile = cache.load()
            if not profile or not profile.get("id"):
                raise NotFoundError("User not found.")
            user_id = profile["id"]

            group = GroupService.get_group(db, code)
            if group is None:
                raise NotFoundError("Group not found.")
            if user_id in (group.get("members") or []):
                raise DuplicateResourceError("You are already a member of this group.")

            db.collection(GROUPS_COLLECTION).document(code).update(
                {
                    "members": firestore.ArrayUnion([user_id]),
                    "memberCount": firestore.Increment(1),
                    "lastActivity": datetime.datetime.now(datetime.timezone.utc),
                }
            )

            groups = GroupService._with_group(profile, code)
            cache.update({"groups": groups, "groupCount": len(groups)}, db=db)
        cache.record_activity(ACTIVITY_JOINED_GROUP, {"groupId": code})
        logger.info(f"User {user_id} joined group {code}")

        members = [*(group.get("members") or []), user_id]
        return cast(
            Group, {**group, "members": members, "memberCount": len(members)}
        )

    @staticmethod
    def get_user_groups(db: Client, cache: ProfileCache) -> list[Group]:
        """Return the documents of the groups in the cached profile.

        Groups that no longer exist or cannot be read are left out.
        """
        profile = cache.load()
        if not profile:
            return []

        groups = []
        for code in profile.get("groups") or []:
            try:
                group = GroupService.get_group(db, code)
            except Exception as e:
                logger.warning(f"Failed to load group {code}: {e}")
                continue
            if group is None:
                logger.warning(f"Group in profile no longer exists: {code}")
                continue
            groups.append(group)
        return groups

    @staticmethod
    def _with_group(profile: UserProfile, code: str) -> list[str]:
        groups = list(profile.get("groups") or [])
        if code not in groups:
            groups.append(code)
        return groups

    @staticmethod
    def is_member(db: Client, user_id: str, code: str) -> bool:
        """Return True if ``user_id`` is listed in the group's members.

        A missing group or a failed lookup counts as not a member.
        """
        try:
            group = GroupService.get_group(db, code)
        except Exception as e:
            logger.warning(f"Error validating membership of {user_id} in {code}: {e}")
            return False
        if group is None:
            logger.warning(f"Group does not exist: {code}")
            return False
        return user_id in (group.get("members") or [])
