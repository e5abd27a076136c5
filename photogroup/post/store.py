"""Persistence and queries for post documents.

Writes raise so callers know a post was not created. Queries never raise:
feed screens must always render, so a failed query is logged and treated as
an empty result.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, cast

from firebase_admin import firestore

from photogroup.core.constants import POSTS_COLLECTION
from photogroup.core.types import Result
from photogroup.errors import ReadError, StoreWriteError

from .models import Post

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client

logger = logging.getLogger(__name__)


class PostStore:
    """Gateway between post records and the posts collection."""

    @staticmethod
    def write(db: Client, post_data: dict[str, Any]) -> str:
        """Add a post document and return its id.

        Raises:
            StoreWriteError: If the document could not be written.
        """
        try:
            _, doc_ref = db.collection(POSTS_COLLECTION).add(post_data)
        except Exception as e:
            logger.error(f"Failed to save post: {e}")
            raise StoreWriteError(f"Failed to save post: {e}") from e
        return doc_ref.id

    @staticmethod
    def get(db: Client, post_id: str) -> Post | None:
        """Fetch a single post by id."""
        doc = cast(
            "DocumentSnapshot", db.collection(POSTS_COLLECTION).document(post_id).get()
        )
        if not doc.exists:
            return None
        data = doc.to_dict() or {}
        data["id"] = doc.id
        return cast(Post, data)

    @staticmethod
    def run_query(
        db: Client, filters: list[tuple[str, str, Any]]
    ) -> Result[list[Post]]:
        """Run a filtered, newest-first posts query, capturing any failure."""
        try:
            query: Any = db.collection(POSTS_COLLECTION)
            for field, op, value in filters:
                query = query.where(filter=firestore.FieldFilter(field, op, value))
            query = query.order_by("createdAt", direction=firestore.Query.DESCENDING)

            posts = []
            for doc in query.stream():
                data = doc.to_dict() or {}
                data["id"] = doc.id
                posts.append(cast(Post, data))
        except Exception as e:
            return Result.failure(ReadError(f"Post query failed: {e}"))
        return Result.success(posts)

    @staticmethod
    def _fail_open(
        db: Client, filters: list[tuple[str, str, Any]], description: str
    ) -> list[Post]:
        result = PostStore.run_query(db, filters)
        if not result.ok:
            logger.warning(f"Failed to get {description}: {result.error}")
        return result.value_or([])

    @staticmethod
    def query_by_group(db: Client, group_id: str) -> list[Post]:
        """Return a group's posts, newest first."""
        return PostStore._fail_open(
            db, [("groupId", "==", group_id)], f"posts for group {group_id}"
        )

    @staticmethod
    def query_by_author(db: Client, user_id: str) -> list[Post]:
        """Return a user's posts across all groups, newest first."""
        return PostStore._fail_open(
            db, [("authorId", "==", user_id)], f"posts by user {user_id}"
        )

    @staticmethod
    def query_by_author_and_group(db: Client, user_id: str, group_id: str) -> list[Post]:
        """Return a user's posts in one group, newest first."""
        return PostStore._fail_open(
            db,
            [("authorId", "==", user_id), ("groupId", "==", group_id)],
            f"posts by user {user_id} in group {group_id}",
        )

    @staticmethod
    def query_liked_by(db: Client, user_id: str) -> list[Post]:
        """Return posts a user has liked, newest first."""
        return PostStore._fail_open(
            db, [("likes", "array_contains", user_id)], f"posts liked by {user_id}"
        )
