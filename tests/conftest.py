"""Common utilities for tests."""

import functools
import unittest.mock
from typing import Any, Callable, Optional

from google.api_core import exceptions as google_exceptions
from mockfirestore import CollectionReference, Query
from mockfirestore.document import DocumentReference


def patch_mockfirestore() -> None:
    """Apply monkeypatches to mockfirestore to support FieldFilter and transactions."""

    def collection_where(
        self: Any,
        field_path: Optional[str] = None,
        op_string: Optional[str] = None,
        value: Any = None,
        filter: Any = None,
    ) -> Any:  # noqa: E501
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

    def doc_ref_eq(self: Any, other: Any) -> bool:
        if not isinstance(other, DocumentReference):
            return False
        return self._path == other._path

    if not hasattr(DocumentReference, "_orig_eq"):
        DocumentReference._orig_eq = DocumentReference.__eq__
        DocumentReference.__eq__ = doc_ref_eq
        DocumentReference.__hash__ = lambda self: hash(tuple(self._path))

    # Reads inside a transaction pass transaction=...; mockfirestore ignores it
    if not hasattr(DocumentReference, "_orig_get"):
        DocumentReference._orig_get = DocumentReference.get

        def doc_ref_get(self: Any, transaction: Any = None) -> Any:
            return self._orig_get()

        DocumentReference.get = doc_ref_get

    for cls in (CollectionReference, Query):
        if not hasattr(cls, "_orig_stream"):
            cls._orig_stream = cls.stream

            def stream(self: Any, transaction: Any = None) -> Any:
                return self._orig_stream()

            cls.stream = stream


class MockBatch:
    """Write batch that applies its operations in order on commit."""

    def __init__(self, db: Any) -> None:
        self.db = db
        self.writes: list[tuple[str, Any, Any]] = []
        self.commit = unittest.mock.MagicMock(side_effect=self._real_commit)

    def create(self, ref: Any, data: Any) -> None:
        self.writes.append(("create", ref, data))

    def set(self, ref: Any, data: Any, merge: bool = False) -> None:
        self.writes.append(("set", ref, data))

    def update(self, ref: Any, data: Any) -> None:
        self.writes.append(("update", ref, data))

    def delete(self, ref: Any) -> None:
        self.writes.append(("delete", ref, None))

    def _real_commit(self) -> None:
        for op, ref, data in self.writes:
            if op == "create":
                if ref.get().exists:
                    raise google_exceptions.AlreadyExists("Document already exists")
                ref.set(data)
            elif op == "set":
                ref.set(data)
            elif op == "update":
                ref.update(data)
            else:
                ref.delete()
        self.writes = []


class MockTransaction:
    """Transaction that buffers writes until the wrapped function returns."""

    def __init__(self, **kwargs: Any) -> None:
        self.writes: list[Callable[[], Any]] = []
        self.committed = False

    def set(self, ref: Any, data: Any, merge: bool = False) -> None:
        self.writes.append(functools.partial(ref.set, data))

    def update(self, ref: Any, data: Any) -> None:
        self.writes.append(functools.partial(ref.update, data))

    def delete(self, ref: Any) -> None:
        self.writes.append(ref.delete)

    def commit(self) -> None:
        for write in self.writes:
            write()
        self.writes = []
        self.committed = True


def mock_transactional(func: Callable[..., Any]) -> Callable[..., Any]:
    """Stand-in for firestore.transactional that commits a MockTransaction."""

    @functools.wraps(func)
    def wrapper(transaction: MockTransaction, *args: Any, **kwargs: Any) -> Any:
        result = func(transaction, *args, **kwargs)
        transaction.commit()
        return result

    return wrapper
