"""Feed lock state evaluation."""

from .unlock import FeedView, build_feed_view, is_unlocked

__all__ = ["FeedView", "build_feed_view", "is_unlocked"]
