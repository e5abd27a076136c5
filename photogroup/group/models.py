"""Data models for the group blueprint."""

from __future__ import annotations

from typing import Any, Optional

from photogroup.core.types import FirestoreDocument


class Group(FirestoreDocument, total=False):
    """A group document in Firestore, keyed by its shareable code."""

    code: str
    name: str
    description: str
    ownerId: Optional[str]
    members: list[str]
    memberCount: int
    totalPosts: int
    lastActivity: Any
