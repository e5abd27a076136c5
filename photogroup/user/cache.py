"""Durable local storage for the device's user profile."""

from __future__ import annotations

import datetime
import json
import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Protocol
from urllib.parse import quote

from photogroup.core.constants import (
    ACTIVITY_LOG_LIMIT,
    PROFILE_CACHE_KEY,
    USERS_COLLECTION,
)
from photogroup.core.types import Result
from photogroup.errors import NotFoundError

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

    from .models import UserProfile

logger = logging.getLogger(__name__)


def utc_now_iso() -> str:
    """Return the current UTC time as an ISO 8601 string."""
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


class KeyValueStore(Protocol):
    """Single-process key-value storage that survives restarts."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class FileKeyValueStore:
    """Key-value store keeping one file per key under a directory."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{quote(key, safe='')}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_text(value, encoding="utf-8")
        tmp_path.replace(path)

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class MemoryKeyValueStore:
    """Key-value store held in process memory."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class ProfileCache:
    """The current device's user profile, persisted in a key-value store.

    All updates are read-modify-write under a process-local lock, so two
    concurrent posts from this process cannot both observe the same
    ``groupsPosted`` snapshot.
    """

    def __init__(
        self,
        store: KeyValueStore | None = None,
        key: str = PROFILE_CACHE_KEY,
        activity_log_limit: int = ACTIVITY_LOG_LIMIT,
    ) -> None:
        self.store = store if store is not None else MemoryKeyValueStore()
        self.key = key
        self.activity_log_limit = activity_log_limit
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def load(self) -> UserProfile | None:
        """Return the cached profile, or None if nothing usable is stored."""
        raw = self.store.get(self.key)
        if not raw:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Cached profile is not valid JSON: {e}")
            return None

    def save(self, profile: UserProfile) -> None:
        """Persist the full profile, replacing what is stored."""
        self.store.set(self.key, json.dumps(profile, default=str))

    def clear(self) -> None:
        """Remove the cached profile."""
        self.store.remove(self.key)

    def update(
        self, changes: dict[str, Any], db: Client | None = None
    ) -> UserProfile:
        """Merge ``changes`` into the cached profile and optionally mirror them.

        Raises:
            NotFoundError: If no profile is cached.
        """
        with self._lock:
            current = self.load()
            if current is None:
                raise NotFoundError("No user found to update.")

            updated: UserProfile = {**current, **changes, "updatedAt": utc_now_iso()}
            self.save(updated)

        if db is not None and current.get("id"):
            mirrored = self.mirror(db, current["id"], changes)
            if not mirrored.ok:
                logger.warning(
                    f"Failed to mirror profile {current['id']}: {mirrored.error}"
                )
        return updated

    @staticmethod
    def mirror(db: Client, user_id: str, changes: dict[str, Any]) -> Result[None]:
        """Copy changed profile fields to the remote user document."""
        try:
            db.collection(USERS_COLLECTION).document(user_id).update(changes)
        except Exception as e:
            return Result.failure(e)
        return Result.success()

    def record_activity(
        self, activity_type: str, data: dict[str, Any] | None = None
    ) -> None:
        """Append an activity entry, keeping only the most recent ones."""
        try:
            with self._lock:
                current = self.load()
                if current is None:
                    return
                timestamp = utc_now_iso()
                activity_log = list(current.get("activityLog") or [])
                activity_log.append(
                    {"type": activity_type, "timestamp": timestamp, "data": data or {}}
                )
                self.update(
                    {
                        "lastActivity": timestamp,
                        "lastActivityType": activity_type,
                        "activityLog": activity_log[-self.activity_log_limit :],
                    }
                )
        except Exception as e:
            logger.warning(f"Error recording activity {activity_type}: {e}")
