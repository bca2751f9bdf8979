"""
Abstract Identity Provider Interface

The application never stores passwords. Account creation, password
checks and the notion of "who is signed in" belong to the identity
provider. The rest of the system sees an Identity as opaque apart from
its stable ``uid``.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Optional

from pydantic import BaseModel, Field

from orgledger.services.storage.interface import Subscription


class Identity(BaseModel):
    """A signed-in account as reported by the identity provider."""

    uid: str = Field(..., min_length=1, description="Stable unique account id")
    email: Optional[str] = None
    display_name: Optional[str] = None


AuthStateCallback = Callable[[Optional[Identity]], None]


class IdentityError(Exception):
    """Base exception for identity provider failures."""
    pass


class InvalidCredentialsError(IdentityError):
    """Email/password pair was rejected."""
    pass


class AccountExistsError(IdentityError):
    """An account with this email already exists."""
    pass


class IdentityProvider(ABC):
    """
    Abstract interface for the authentication provider.

    Implementations keep track of the current user and notify observers
    whenever it changes (sign-up, login, logout).
    """

    @abstractmethod
    async def sign_up(self, email: str, password: str) -> Identity:
        """
        Create an account and sign it in.

        Raises:
            AccountExistsError: If the email is already registered
            IdentityError: On any other provider failure
        """
        pass

    @abstractmethod
    async def login(self, email: str, password: str) -> Identity:
        """
        Sign in with email and password.

        Raises:
            InvalidCredentialsError: If the pair is rejected
        """
        pass

    @abstractmethod
    async def logout(self) -> None:
        pass

    @abstractmethod
    def current_user(self) -> Optional[Identity]:
        pass

    @abstractmethod
    def observe_auth_state(self, callback: AuthStateCallback) -> Subscription:
        """
        Watch the signed-in user.

        ``callback`` is invoked once with the current user (or None) and
        again after every change.
        """
        pass

    @abstractmethod
    async def delete_identity(self, uid: str) -> None:
        """Delete an account (used to undo a failed sign-up)."""
        pass


class ObservableIdentityProvider(IdentityProvider):
    """Shared current-user bookkeeping and observer fan-out."""

    def __init__(self):
        self._current: Optional[Identity] = None
        self._observers: dict[int, AuthStateCallback] = {}
        self._next_observer = 0

    def current_user(self) -> Optional[Identity]:
        return self._current

    def _set_current(self, identity: Optional[Identity]) -> None:
        self._current = identity
        for callback in list(self._observers.values()):
            callback(identity)

    def observe_auth_state(self, callback: AuthStateCallback) -> Subscription:
        key = self._next_observer
        self._next_observer += 1
        self._observers[key] = callback
        callback(self._current)
        return Subscription(lambda: self._observers.pop(key, None))
