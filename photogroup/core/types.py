"""Core data types for the photogroup application."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypedDict, TypeVar

T = TypeVar("T")


class _FirestoreDocumentBase(TypedDict):
    id: str
    createdAt: Any


class FirestoreDocument(_FirestoreDocumentBase, total=False):
    """Generic Firestore document structure."""

    path: str
    updatedAt: Any


@dataclass
class Result(Generic[T]):
    """Outcome of an operation whose failure the caller may choose to ignore."""

    value: Optional[T] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        """Return True if the operation succeeded."""
        return self.error is None

    def value_or(self, default: T) -> T:
        """Return the value, or ``default`` if the operation failed."""
        if self.error is not None or self.value is None:
            return default
        return self.value

    @classmethod
    def success(cls, value: Optional[T] = None) -> Result[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: Exception) -> Result[T]:
        return cls(error=error)
