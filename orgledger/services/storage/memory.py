"""
In-Memory Document Store

Implements the DocumentStore interface with plain dicts. Used by the
test suite and for local development without a Firebase project.

Behaves like the hosted store where it matters to callers:
- ids are opaque 20-character strings assigned on insert
- reads return copies, so callers cannot mutate stored state
- live queries deliver the full matching set on attach and after
  every write that changes it
- batches apply all staged writes or none
"""

import copy
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Optional
from uuid import uuid4

from orgledger.services.storage.interface import (
    AlreadyExistsError,
    Document,
    DocumentStore,
    NotFoundError,
    SnapshotCallback,
    Subscription,
    WriteBatch,
)


def _new_id() -> str:
    return uuid4().hex[:20]


def _matches(document: Document, criteria: dict[str, Any]) -> bool:
    return all(document.get(key) == value for key, value in criteria.items())


@dataclass
class _Listener:
    collection: str
    criteria: dict[str, Any]
    callback: SnapshotCallback
    last: Optional[list[Document]] = field(default=None)


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed document store."""

    def __init__(self):
        self._collections: dict[str, dict[str, Document]] = {}
        self._listeners: dict[int, _Listener] = {}
        self._next_listener = 0
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _collection(self, name: str) -> dict[str, Document]:
        return self._collections.setdefault(name, {})

    def _with_id(self, doc_id: str, body: Document) -> Document:
        document = copy.deepcopy(body)
        document["id"] = doc_id
        return document

    def _select(self, collection: str, criteria: dict[str, Any]) -> list[Document]:
        return [
            self._with_id(doc_id, body)
            for doc_id, body in self._collection(collection).items()
            if _matches(body, criteria)
        ]

    def _notify(self, collections: set[str]) -> None:
        for listener in list(self._listeners.values()):
            if listener.collection not in collections:
                continue
            snapshot = self._select(listener.collection, listener.criteria)
            if snapshot != listener.last:
                listener.last = snapshot
                listener.callback(copy.deepcopy(snapshot))

    def documents(self, collection: str) -> list[Document]:
        """Every document in a collection (test helper)."""
        with self._lock:
            return self._select(collection, {})

    # ------------------------------------------------------------------
    # DocumentStore
    # ------------------------------------------------------------------

    async def insert(
        self,
        collection: str,
        record: Document,
        doc_id: Optional[str] = None,
    ) -> str:
        with self._lock:
            if doc_id is None:
                doc_id = _new_id()
            elif doc_id in self._collection(collection):
                raise AlreadyExistsError(f"{collection}/{doc_id} already exists")
            body = copy.deepcopy(record)
            body.pop("id", None)
            self._collection(collection)[doc_id] = body
            self._notify({collection})
        return doc_id

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        with self._lock:
            body = self._collection(collection).get(doc_id)
            return self._with_id(doc_id, body) if body is not None else None

    async def query_by_equality(self, collection: str, **criteria: Any) -> list[Document]:
        with self._lock:
            return self._select(collection, criteria)

    async def update(self, collection: str, doc_id: str, fields: Document) -> None:
        with self._lock:
            body = self._collection(collection).get(doc_id)
            if body is None:
                raise NotFoundError(f"{collection}/{doc_id} not found")
            body.update(copy.deepcopy(fields))
            body.pop("id", None)
            self._notify({collection})

    async def delete(self, collection: str, doc_id: str) -> None:
        with self._lock:
            removed = self._collection(collection).pop(doc_id, None)
            if removed is not None:
                self._notify({collection})

    def subscribe(
        self,
        collection: str,
        criteria: dict[str, Any],
        callback: SnapshotCallback,
    ) -> Subscription:
        with self._lock:
            key = self._next_listener
            self._next_listener += 1
            listener = _Listener(collection, dict(criteria), callback)
            self._listeners[key] = listener
            listener.last = self._select(collection, listener.criteria)
            callback(copy.deepcopy(listener.last))

        def release() -> None:
            with self._lock:
                self._listeners.pop(key, None)

        return Subscription(release)

    def batch(self) -> WriteBatch:
        return InMemoryWriteBatch(self)

    # Used by InMemoryWriteBatch
    def _apply(self, operations: list[Callable[[dict[str, dict[str, Document]]], str]]) -> None:
        with self._lock:
            staged = copy.deepcopy(self._collections)
            touched = {operation(staged) for operation in operations}
            self._collections = staged
            self._notify(touched)


class InMemoryWriteBatch(WriteBatch):
    """Staged writes applied to a copy of the store, then swapped in."""

    def __init__(self, store: InMemoryDocumentStore):
        self._store = store
        self._operations: list[Callable[[dict[str, dict[str, Document]]], str]] = []
        self._committed = False

    def insert(self, collection: str, record: Document) -> str:
        doc_id = _new_id()
        body = copy.deepcopy(record)
        body.pop("id", None)

        def apply(collections: dict[str, dict[str, Document]]) -> str:
            collections.setdefault(collection, {})[doc_id] = body
            return collection

        self._operations.append(apply)
        return doc_id

    def update(self, collection: str, doc_id: str, fields: Document) -> None:
        patch = copy.deepcopy(fields)

        def apply(collections: dict[str, dict[str, Document]]) -> str:
            body = collections.setdefault(collection, {}).get(doc_id)
            if body is None:
                raise NotFoundError(f"{collection}/{doc_id} not found")
            body.update(patch)
            body.pop("id", None)
            return collection

        self._operations.append(apply)

    def delete(self, collection: str, doc_id: str) -> None:
        def apply(collections: dict[str, dict[str, Document]]) -> str:
            collections.setdefault(collection, {}).pop(doc_id, None)
            return collection

        self._operations.append(apply)

    async def commit(self) -> None:
        if self._committed:
            raise RuntimeError("Batch already committed")
        self._committed = True
        self._store._apply(self._operations)
