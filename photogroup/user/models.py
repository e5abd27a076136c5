"""Data models for the user package."""

from __future__ import annotations

from typing import Any, TypedDict


class ActivityLog(TypedDict):
    """A single observational activity entry."""

    type: str
    timestamp: str
    data: dict[str, Any]


class UserProfile(TypedDict, total=False):
    """The device user's profile, cached locally and mirrored to Firestore."""

    id: str
    name: str
    groups: list[str]
    groupsPosted: list[str]
    hasUploaded: bool
    joinedAt: str
    totalPosts: int
    createdAt: str
    lastLogin: str
    groupCount: int
    activityLog: list[ActivityLog]
    lastActivity: str
    lastActivityType: str
    updatedAt: str


class UserStats(TypedDict, total=False):
    """Profile summary for overview screens."""

    userId: str
    name: str
    memberSince: str
    lastLogin: str
    groupCount: int
    totalPosts: int
    hasUploaded: bool
    lastActivity: str | None
    totalActivities: int
    groups: list[str]
    groupsPosted: list[str]
