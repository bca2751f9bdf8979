"""
Abstract Document Store Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Run against Firestore in production
2. Use in-memory storage for testing and local development
3. Keep repository logic decoupled from the storage SDK

The interface is intentionally small - collections of schemaless
documents addressed by a store-assigned string id. Documents are plain
dicts with camelCase keys; ``id`` is never part of a stored body but is
added to every document a read returns.
"""

import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, Optional


Document = dict[str, Any]
SnapshotCallback = Callable[[list[Document]], None]


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class StoreConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class AlreadyExistsError(StorageError):
    """A document with the requested id already exists."""
    pass


class SubscriptionClosedError(RuntimeError):
    """A subscription handle was released more than once."""
    pass


class Subscription:
    """
    Disposable handle for a live query.

    ``cancel()`` detaches the query and must be called exactly once;
    a second call raises SubscriptionClosedError. Also usable as a
    context manager.
    """

    def __init__(self, release: Callable[[], None]):
        self._release = release
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def cancel(self) -> None:
        with self._lock:
            if self._closed:
                raise SubscriptionClosedError("Subscription already cancelled")
            self._closed = True
        self._release()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        if not self._closed:
            self.cancel()


class WriteBatch(ABC):
    """
    Writes staged together and applied atomically by ``commit()``.

    Either every staged write lands or none does.
    """

    @abstractmethod
    def insert(self, collection: str, record: Document) -> str:
        """
        Stage an insert.

        Returns:
            The id the document will have once committed
        """
        pass

    @abstractmethod
    def update(self, collection: str, doc_id: str, fields: Document) -> None:
        """Stage a partial update. Commit fails if the document is missing."""
        pass

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        """Stage a delete. Deleting a missing document is not an error."""
        pass

    @abstractmethod
    async def commit(self) -> None:
        """
        Apply all staged writes.

        Raises:
            StorageError: If the batch could not be applied; nothing was written
        """
        pass


class DocumentStore(ABC):
    """
    Abstract interface for a collection-based document store.

    Any storage implementation (Firestore, in-memory, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def insert(
        self,
        collection: str,
        record: Document,
        doc_id: Optional[str] = None,
    ) -> str:
        """
        Insert a new document.

        Args:
            doc_id: Use this id instead of a store-assigned one

        Returns:
            The document id

        Raises:
            AlreadyExistsError: If doc_id is given and already taken
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        """
        Retrieve a document by id.

        Returns:
            The document (with ``id``) if found, None otherwise
        """
        pass

    @abstractmethod
    async def query_by_equality(self, collection: str, **criteria: Any) -> list[Document]:
        """
        List documents whose fields equal every given value.

        Example:
            await store.query_by_equality("members", orgId=org_id, email=email)

        Returns:
            Matching documents (with ``id``) in store-native order
        """
        pass

    @abstractmethod
    async def update(self, collection: str, doc_id: str, fields: Document) -> None:
        """
        Patch the given fields of an existing document.

        Raises:
            NotFoundError: If the document doesn't exist
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> None:
        """Delete a document. Deleting a missing document is not an error."""
        pass

    @abstractmethod
    def subscribe(
        self,
        collection: str,
        criteria: dict[str, Any],
        callback: SnapshotCallback,
    ) -> Subscription:
        """
        Start a live query.

        ``callback`` receives the full current result set once on attach
        and again after every change visible to the query. It may be
        invoked from a background thread.
        """
        pass

    @abstractmethod
    def batch(self) -> WriteBatch:
        """Start an atomic write batch."""
        pass
