"""
Storage Services Package

Provides the abstract document store interface and its implementations.
Firestore is the production backend; the in-memory store backs tests and
local development.
"""

from orgledger.services.storage.interface import (
    AlreadyExistsError,
    Document,
    DocumentStore,
    NotFoundError,
    SnapshotCallback,
    StorageError,
    StoreConnectionError,
    Subscription,
    SubscriptionClosedError,
    WriteBatch,
)
from orgledger.services.storage.memory import InMemoryDocumentStore

__all__ = [
    # Interfaces
    "Document",
    "DocumentStore",
    "SnapshotCallback",
    "Subscription",
    "WriteBatch",
    # Exceptions
    "AlreadyExistsError",
    "NotFoundError",
    "StorageError",
    "StoreConnectionError",
    "SubscriptionClosedError",
    # Implementations
    "InMemoryDocumentStore",
]
