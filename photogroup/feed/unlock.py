"""Decide whether a user may interact with a group's feed."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

LOCKED_PROMPT = "Share a photo in this group to unlock the feed."


def is_unlocked(profile: Mapping[str, Any] | None, group_id: str) -> bool:
    """Return True once the user has posted in ``group_id``."""
    if not profile:
        return False
    return group_id in (profile.get("groupsPosted") or [])


@dataclass
class FeedView:
    """A group's posts with the viewer's lock state.

    Posts are always included so a locked feed can still show a preview.
    """

    group_id: str
    posts: list[dict[str, Any]] = field(default_factory=list)
    locked: bool = True
    prompt: Optional[str] = LOCKED_PROMPT

    def to_dict(self) -> dict[str, Any]:
        return {
            "group_id": self.group_id,
            "posts": self.posts,
            "locked": self.locked,
            "prompt": self.prompt,
        }


def build_feed_view(
    profile: Mapping[str, Any] | None, group_id: str, posts: list[Any]
) -> FeedView:
    """Combine a group's posts with the viewer's lock state."""
    locked = not is_unlocked(profile, group_id)
    return FeedView(
        group_id=group_id,
        posts=list(posts),
        locked=locked,
        prompt=LOCKED_PROMPT if locked else None,
    )
