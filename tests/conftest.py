"""Common utilities for tests."""

from __future__ import annotations

import base64
from collections.abc import Iterator
from typing import Any, Optional
from unittest.mock import MagicMock

from google.api_core import exceptions as api_exceptions
from mockfirestore import CollectionReference, Query
from mockfirestore.document import DocumentReference

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 24


def png_data_uri(data: bytes = PNG_BYTES) -> str:
    return "data:image/png;base64," + base64.b64encode(data).decode("ascii")


class MockArrayUnion:
    def __init__(self, values: list[Any]) -> None:
        self.values = values

    def __iter__(self) -> Iterator[Any]:
        return iter(self.values)

    def __len__(self) -> int:
        return len(self.values)


class MockArrayRemove:
    def __init__(self, values: list[Any]) -> None:
        self.values = values

    def __iter__(self) -> Iterator[Any]:
        return iter(self.values)

    def __len__(self) -> int:
        return len(self.values)


class MockIncrement:
    def __init__(self, value: int) -> None:
        self.value = value


class MockFieldFilter:
    def __init__(self, field_path: str, op_string: str, value: Any) -> None:
        self.field_path = field_path
        self.op_string = op_string
        self.value = value


def mock_firestore_module() -> MagicMock:
    """Return a stand-in for ``firebase_admin.firestore`` that mockfirestore understands."""
    module = MagicMock()
    module.FieldFilter = MockFieldFilter
    module.ArrayUnion = MockArrayUnion
    module.ArrayRemove = MockArrayRemove
    module.Increment = MockIncrement
    module.Query.DESCENDING = "DESCENDING"
    module.Query.ASCENDING = "ASCENDING"
    return module


def patch_mockfirestore() -> None:
    """Apply monkeypatches to mockfirestore to support FieldFilter and transforms."""

    def collection_where(
        self: Any,
        field_path: Optional[str] = None,
        op_string: Optional[str] = None,
        value: Any = None,
        filter: Any = None,
    ) -> Any:
        if filter:
            return self._where(filter.field_path, filter.op_string, filter.value)
        return self._where(field_path, op_string, value)

    if not hasattr(CollectionReference, "_where"):
        CollectionReference._where = CollectionReference.where
        CollectionReference.where = collection_where

    def query_where(
        self: Any,
        field_path: Optional[str] = None,
        op_string: Optional[str] = None,
        value: Any = None,
        filter: Any = None,
    ) -> Any:
        if filter:
            return self._where(filter.field_path, filter.op_string, filter.value)
        return self._where(field_path, op_string, value)

    if not hasattr(Query, "_where"):
        Query._where = Query.where
        Query.where = query_where

    if not hasattr(DocumentReference, "_orig_update"):
        DocumentReference._orig_update = DocumentReference.update

        def patched_update(self: Any, data: dict[str, Any]) -> Any:
            current_data = self.get().to_dict() or {}
            new_data = {}
            for k, v in data.items():
                existing = current_data.get(k)
                if isinstance(v, MockArrayUnion):
                    merged = list(existing) if isinstance(existing, list) else []
                    for item in v.values:
                        if item not in merged:
                            merged.append(item)
                    new_data[k] = merged
                elif isinstance(v, MockArrayRemove):
                    existing = existing if isinstance(existing, list) else []
                    new_data[k] = [i for i in existing if i not in v.values]
                elif isinstance(v, MockIncrement):
                    new_data[k] = (existing or 0) + v.value
                else:
                    new_data[k] = v
            return self._orig_update(new_data)

        DocumentReference.update = patched_update


class FakeBlob:
    """In-memory stand-in for a storage blob."""

    def __init__(self, bucket: FakeBucket, path: str) -> None:
        self.bucket = bucket
        self.name = path
        self.metadata: dict[str, Any] | None = None
        self.public = False

    def upload_from_string(self, data: bytes, content_type: str | None = None) -> None:
        for marker, error in self.bucket.failures.items():
            if marker in self.name:
                raise error
        self.bucket.objects[self.name] = {
            "data": data,
            "content_type": content_type,
            "metadata": self.metadata,
        }

    def make_public(self) -> None:
        self.public = True

    @property
    def public_url(self) -> str:
        return f"https://storage.example.com/{self.name}"

    def delete(self) -> None:
        if self.bucket.delete_error is not None:
            raise self.bucket.delete_error
        if self.name not in self.bucket.objects:
            raise api_exceptions.NotFound(f"No such object: {self.name}")
        del self.bucket.objects[self.name]


class FakeBucket:
    """In-memory stand-in for a storage bucket.

    ``failures`` maps a path substring to the error raised when uploading a
    matching path.
    """

    def __init__(self) -> None:
        self.objects: dict[str, dict[str, Any]] = {}
        self.failures: dict[str, Exception] = {}
        self.delete_error: Exception | None = None

    def blob(self, path: str) -> FakeBlob:
        return FakeBlob(self, path)
