"""Services package."""

from orgledger.services.blob import (
    BlobStorageError,
    BlobStore,
    InMemoryBlobStore,
)
from orgledger.services.identity import (
    AccountExistsError,
    Identity,
    IdentityError,
    IdentityProvider,
    InMemoryIdentityProvider,
    InvalidCredentialsError,
)
from orgledger.services.storage import (
    AlreadyExistsError,
    DocumentStore,
    InMemoryDocumentStore,
    NotFoundError,
    StorageError,
    StoreConnectionError,
    Subscription,
    SubscriptionClosedError,
    WriteBatch,
)

__all__ = [
    # Blob services
    "BlobStorageError",
    "BlobStore",
    "InMemoryBlobStore",
    # Identity services
    "AccountExistsError",
    "Identity",
    "IdentityError",
    "IdentityProvider",
    "InMemoryIdentityProvider",
    "InvalidCredentialsError",
    # Storage services
    "AlreadyExistsError",
    "DocumentStore",
    "InMemoryDocumentStore",
    "NotFoundError",
    "StorageError",
    "StoreConnectionError",
    "Subscription",
    "SubscriptionClosedError",
    "WriteBatch",
]
