"""Keep user and group counters in step after a post is committed."""

from __future__ import annotations

import datetime
import logging
from typing import TYPE_CHECKING, Any

from firebase_admin import firestore
from google.api_core import exceptions as api_exceptions

from photogroup.core.constants import (
    ACTIVITY_FIRST_POST,
    ACTIVITY_POSTED,
    CAPTION_EXCERPT_LENGTH,
    GROUPS_COLLECTION,
)
from photogroup.core.types import Result
from photogroup.errors import StatisticsError

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

    from photogroup.post.models import Post
    from photogroup.user.cache import ProfileCache

logger = logging.getLogger(__name__)


def caption_excerpt(caption: str) -> str:
    """Shorten a caption for the activity log."""
    if len(caption) > CAPTION_EXCERPT_LENGTH:
        return caption[:CAPTION_EXCERPT_LENGTH] + "..."
    return caption


class StatisticsService:
    """Service class for denormalized post counters."""

    @staticmethod
    def record_post(
        db: Client,
        cache: ProfileCache,
        author_id: str,
        group_id: str,
        post: Post,
    ) -> Result[bool]:
        """Update the author's posting status, then the group's counters.

        Both steps are attempted even if the first fails. On success the
        value is True when this was the author's first post in the group.
        """
        errors: list[str] = []
        is_first = False

        try:
            is_first = StatisticsService.update_user_posting_status(
                db, cache, author_id, group_id, post
            )
        except Exception as e:
            logger.warning(f"Failed to update posting status for {author_id}: {e}")
            errors.append(f"user: {e}")

        try:
            StatisticsService.update_group_statistics(db, group_id)
        except Exception as e:
            logger.warning(f"Failed to update statistics for group {group_id}: {e}")
            errors.append(f"group: {e}")

        if errors:
            return Result.failure(
                StatisticsError(f"Failed to update statistics ({'; '.join(errors)})")
            )
        return Result.success(is_first)

    @staticmethod
    def update_user_posting_status(
        db: Client,
        cache: ProfileCache,
        author_id: str,
        group_id: str,
        post: Post,
    ) -> bool:
        """Count the post against the cached profile and unlock the group.

        Returns True if this was the first post in the group.

        Raises:
            StatisticsError: If no profile is cached.
        """
        with cache.lock:
            profile = cache.load()
            if not profile:
                raise StatisticsError("Could not retrieve current user data.")
            if profile.get("id") != author_id:
                logger.warning(
                    f"User ID mismatch - expected {author_id}, got {profile.get('id')}"
                )

            groups_posted = list(profile.get("groupsPosted") or [])
            is_first = group_id not in groups_posted

            changes: dict[str, Any] = {
                "totalPosts": int(profile.get("totalPosts") or 0) + 1,
                "hasUploaded": True,
                "lastActivity": datetime.datetime.now(
                    datetime.timezone.utc
                ).isoformat(),
            }
            if is_first:
                changes["groupsPosted"] = [*groups_posted, group_id]
                logger.info(f"First post in group {group_id}, unlocking feed")

            cache.update(changes, db=db)

        cache.record_activity(
            ACTIVITY_FIRST_POST if is_first else ACTIVITY_POSTED,
            {
                "groupId": group_id,
                "postId": post.get("id"),
                "postType": post.get("type"),
                "caption": caption_excerpt(post.get("caption", "")),
            },
        )
        return is_first

    @staticmethod
    def update_group_statistics(db: Client, group_id: str) -> None:
        """Increment the group's post counter and refresh its activity time.

        A permission error is logged and ignored; other errors propagate.
        """
        group_ref = db.collection(GROUPS_COLLECTION).document(group_id)
        try:
            group_ref.update(
                {
                    "totalPosts": firestore.Increment(1),
                    "lastActivity": datetime.datetime.now(datetime.timezone.utc),
                }
            )
        except api_exceptions.PermissionDenied as e:
            logger.warning(f"Permission denied updating group {group_id} stats: {e}")
