"""Service layer for creating and reading posts."""

from __future__ import annotations

import datetime
import logging
import uuid
from typing import TYPE_CHECKING, Any, Optional, cast

from firebase_admin import firestore

from photogroup.core.constants import POSTS_COLLECTION
from photogroup.errors import NotFoundError, ValidationError
from photogroup.group.services import GroupService
from photogroup.media.models import ImageDescriptor, ImageType, UploadConfig
from photogroup.media.services import MediaService
from photogroup.media.sources import check_image_reference
from photogroup.stats.services import StatisticsService

from .models import DUAL_CAMERA, SINGLE_CAMERA, Comment, Post, PostingStats, PostSubmission
from .store import PostStore

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from google.cloud.storage.bucket import Bucket

    from photogroup.user.cache import ProfileCache

logger = logging.getLogger(__name__)


class PostService:
    """Service class for post-related operations."""

    @staticmethod
    def create_post(  # noqa: PLR0913
        db: Client,
        bucket: Bucket,
        cache: ProfileCache,
        back_image: str,
        caption: str,
        author_name: str,
        author_id: str,
        group_id: str,
        front_image: Optional[str] = None,
        config: UploadConfig | None = None,
    ) -> Post:
        """Upload one or two images, save the post and update statistics.

        The post document write is the commit point. Statistics failures after
        it are logged and the post is still returned.

        Raises:
            ValidationError: If a required field is missing or an image
                reference is not accepted by ``config``.
            UploadError: If an image could not be stored.
            StoreWriteError: If the post document could not be saved.
        """
        submission = PostSubmission(
            back_image=back_image,
            caption=caption,
            author_name=author_name,
            author_id=author_id,
            group_id=group_id,
            front_image=front_image,
        )
        submission.validate()
        config = config or UploadConfig()
        for image_ref in (back_image, front_image):
            if image_ref:
                check_image_reference(image_ref, config)
        group_id = group_id.strip()
        author_id = author_id.strip()
        logger.info(
            f"Creating {'dual' if submission.is_dual else 'single'} camera post "
            f"for {author_id} in group {group_id}"
        )

        if not GroupService.is_member(db, author_id, group_id):
            logger.warning(
                f"User {author_id} might not be a member of group {group_id}, "
                "proceeding anyway"
            )

        main, front = PostService._upload_images(bucket, submission, config)
        post_data = PostService._build_post_data(submission, main, front)

        post_id = PostStore.write(db, post_data)
        post = cast(Post, {"id": post_id, **post_data})
        logger.info(f"Post {post_id} saved to group {group_id}")

        stats = StatisticsService.record_post(db, cache, author_id, group_id, post)
        if not stats.ok:
            logger.warning(f"Post {post_id} created but {stats.error}")

        return post

    @staticmethod
    def _upload_images(
        bucket: Bucket, submission: PostSubmission, config: UploadConfig | None
    ) -> tuple[ImageDescriptor, ImageDescriptor | None]:
        """Store the back image, then the front image if there is one.

        If the front upload fails the already stored back image is deleted
        before the failure is re-raised.
        """
        group_id = submission.group_id.strip()
        author_id = submission.author_id.strip()
        main = MediaService.upload_image(
            bucket, submission.back_image, group_id, author_id, ImageType.MAIN, config
        )
        if not submission.front_image:
            return main, None

        try:
            front = MediaService.upload_image(
                bucket,
                submission.front_image,
                group_id,
                author_id,
                ImageType.FRONT,
                config,
            )
        except Exception:
            cleanup = MediaService.delete_image(bucket, main["path"])
            if not cleanup.ok:
                logger.warning(
                    f"Failed to remove orphaned image {main['path']}: {cleanup.error}"
                )
            raise
        return main, front

    @staticmethod
    def _build_post_data(
        submission: PostSubmission,
        main: ImageDescriptor,
        front: ImageDescriptor | None,
    ) -> dict[str, Any]:
        return {
            "imageUrl": main["downloadURL"],
            "imagePath": main["path"],
            "imageSize": main["size"],
            "frontImageUrl": front["downloadURL"] if front else None,
            "frontImagePath": front["path"] if front else None,
            "frontImageSize": front["size"] if front else None,
            "caption": submission.caption.strip(),
            "authorName": submission.author_name.strip(),
            "authorId": submission.author_id.strip(),
            "groupId": submission.group_id.strip(),
            "createdAt": datetime.datetime.now(datetime.timezone.utc),
            "likes": [],
            "comments": [],
            "type": DUAL_CAMERA if front else SINGLE_CAMERA,
        }

    @staticmethod
    def get_group_posts(db: Client, group_id: str) -> list[Post]:
        """Return a group's posts, newest first, or [] if they cannot be read."""
        if not group_id:
            return []
        return PostStore.query_by_group(db, group_id)

    @staticmethod
    def get_user_posts(db: Client, user_id: str) -> list[Post]:
        """Return a user's posts across all groups, newest first."""
        return PostStore.query_by_author(db, user_id)

    @staticmethod
    def get_user_posts_in_group(db: Client, user_id: str, group_id: str) -> list[Post]:
        """Return a user's posts in a single group, newest first."""
        return PostStore.query_by_author_and_group(db, user_id, group_id)

    @staticmethod
    def has_user_posted_in_group(db: Client, user_id: str, group_id: str) -> bool:
        """Return True if the user has at least one post in the group."""
        return len(PostService.get_user_posts_in_group(db, user_id, group_id)) > 0

    @staticmethod
    def get_user_posting_stats(db: Client, user_id: str) -> PostingStats:
        """Summarise a user's posts grouped by group."""
        posts = PostService.get_user_posts(db, user_id)

        posts_by_group: dict[str, list[Post]] = {}
        for post in posts:
            posts_by_group.setdefault(post.get("groupId", ""), []).append(post)

        return {
            "totalPosts": len(posts),
            "groupsPostedIn": list(posts_by_group),
            "postsByGroup": posts_by_group,
            "firstPost": posts[-1] if posts else None,
            "latestPost": posts[0] if posts else None,
        }

    @staticmethod
    def get_liked_posts(db: Client, user_id: str) -> list[Post]:
        """Return the posts a user has liked, newest first."""
        return PostStore.query_liked_by(db, user_id)

    @staticmethod
    def get_post(db: Client, post_id: str) -> Post:
        """Fetch a single post.

        Raises:
            NotFoundError: If there is no such post.
        """
        post = PostStore.get(db, post_id)
        if post is None:
            raise NotFoundError("Post not found.")
        return post

    @staticmethod
    def _post_ref(db: Client, post_id: str) -> Any:
        PostService.get_post(db, post_id)
        return db.collection(POSTS_COLLECTION).document(post_id)

    @staticmethod
    def like_post(db: Client, post_id: str, user_id: str) -> None:
        """Add the user to the post's likes."""
        if not user_id:
            raise ValidationError("User ID is required.")
        PostService._post_ref(db, post_id).update(
            {"likes": firestore.ArrayUnion([user_id])}
        )

    @staticmethod
    def unlike_post(db: Client, post_id: str, user_id: str) -> None:
        """Remove the user from the post's likes."""
        if not user_id:
            raise ValidationError("User ID is required.")
        PostService._post_ref(db, post_id).update(
            {"likes": firestore.ArrayRemove([user_id])}
        )

    @staticmethod
    def add_comment(
        db: Client, post_id: str, user_id: str, user_name: str, text: str
    ) -> Comment:
        """Append a comment to a post and return it."""
        text = (text or "").strip()
        if not text:
            raise ValidationError("Comment cannot be empty.")
        if not user_id:
            raise ValidationError("User ID is required.")

        comment: Comment = {
            "id": uuid.uuid4().hex,
            "userId": user_id,
            "userName": (user_name or "").strip(),
            "text": text,
            "createdAt": datetime.datetime.now(datetime.timezone.utc),
        }
        PostService._post_ref(db, post_id).update(
            {"comments": firestore.ArrayUnion([comment])}
        )
        return comment
