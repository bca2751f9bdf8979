"""Blob storage services (receipts)."""

from orgledger.services.blob.interface import BlobStorageError, BlobStore
from orgledger.services.blob.memory import InMemoryBlobStore

__all__ = [
    "BlobStorageError",
    "BlobStore",
    "InMemoryBlobStore",
]
