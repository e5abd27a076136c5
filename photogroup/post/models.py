"""Data models for the post blueprint."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, TypedDict

from photogroup.core.types import FirestoreDocument
from photogroup.errors import ValidationError

SINGLE_CAMERA = "single_camera"
DUAL_CAMERA = "dual_camera"


class Comment(TypedDict):
    """A comment appended to a post."""

    id: str
    userId: str
    userName: str
    text: str
    createdAt: Any


class Post(FirestoreDocument, total=False):
    """A post document in Firestore."""

    authorId: str
    authorName: str
    groupId: str
    caption: str
    type: str
    # Back camera image
    imageUrl: str
    imagePath: str
    imageSize: int
    # Front camera image, None for single camera posts
    frontImageUrl: Optional[str]
    frontImagePath: Optional[str]
    frontImageSize: Optional[int]
    likes: list[str]
    comments: list[Comment]


class PostingStats(TypedDict):
    """Summary of a user's posts across groups."""

    totalPosts: int
    groupsPostedIn: list[str]
    postsByGroup: dict[str, list[Post]]
    firstPost: Optional[Post]
    latestPost: Optional[Post]


@dataclass
class PostSubmission:
    """Dataclass for a post creation request."""

    back_image: str
    caption: str
    author_name: str
    author_id: str
    group_id: str
    front_image: Optional[str] = None

    @property
    def is_dual(self) -> bool:
        return bool(self.front_image)

    def validate(self) -> None:
        """Reject submissions with missing required fields."""
        if not self.back_image:
            raise ValidationError("Back camera image is required.")
        if not (self.caption or "").strip():
            raise ValidationError("Caption is required and cannot be empty.")
        if not (self.author_name or "").strip():
            raise ValidationError("Author name is required.")
        if not (self.author_id or "").strip():
            raise ValidationError("Author ID is required.")
        if not (self.group_id or "").strip():
            raise ValidationError("Group ID is required.")
