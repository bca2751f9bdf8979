"""
Abstract Blob Store Interface

Only receipts use blob storage. The store hands back a URL string, which
is what ends up on the Transaction.
"""

from abc import ABC, abstractmethod


class BlobStorageError(Exception):
    """Base exception for blob storage errors."""
    pass


class BlobStore(ABC):
    """Abstract interface for uploading files."""

    @abstractmethod
    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        """
        Upload ``data`` to ``path``.

        Returns:
            A URL the file can be downloaded from

        Raises:
            BlobStorageError: If the upload fails
        """
        pass
