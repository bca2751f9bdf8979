"""Identity provider services."""

from orgledger.services.identity.interface import (
    AccountExistsError,
    AuthStateCallback,
    Identity,
    IdentityError,
    IdentityProvider,
    InvalidCredentialsError,
    ObservableIdentityProvider,
)
from orgledger.services.identity.memory import InMemoryIdentityProvider

__all__ = [
    "AccountExistsError",
    "AuthStateCallback",
    "Identity",
    "IdentityError",
    "IdentityProvider",
    "InMemoryIdentityProvider",
    "InvalidCredentialsError",
    "ObservableIdentityProvider",
]
