"""In-memory identity provider for tests and local development."""

import hashlib
import secrets
from typing import Optional
from uuid import uuid4

from orgledger.services.identity.interface import (
    AccountExistsError,
    Identity,
    IdentityError,
    InvalidCredentialsError,
    ObservableIdentityProvider,
)


def _hash(password: str, salt: str) -> str:
    return hashlib.sha256(f"{salt}:{password}".encode()).hexdigest()


class InMemoryIdentityProvider(ObservableIdentityProvider):
    """Accounts live in a dict keyed by lower-cased email."""

    def __init__(self):
        super().__init__()
        # email -> (identity, salt, password hash)
        self._accounts: dict[str, tuple[Identity, str, str]] = {}

    async def sign_up(self, email: str, password: str) -> Identity:
        key = email.strip().lower()
        if key in self._accounts:
            raise AccountExistsError(f"Account already exists: {key}")
        identity = Identity(uid=uuid4().hex, email=key)
        salt = secrets.token_hex(8)
        self._accounts[key] = (identity, salt, _hash(password, salt))
        self._set_current(identity)
        return identity

    async def login(self, email: str, password: str) -> Identity:
        account = self._accounts.get(email.strip().lower())
        if account is None or _hash(password, account[1]) != account[2]:
            raise InvalidCredentialsError("Invalid email or password")
        self._set_current(account[0])
        return account[0]

    async def logout(self) -> None:
        self._set_current(None)

    async def delete_identity(self, uid: str) -> None:
        for key, (identity, _, _) in list(self._accounts.items()):
            if identity.uid == uid:
                del self._accounts[key]
                if self._current and self._current.uid == uid:
                    self._set_current(None)
                return
        raise IdentityError(f"No account with uid {uid}")

    def find(self, email: str) -> Optional[Identity]:
        account = self._accounts.get(email.strip().lower())
        return account[0] if account else None
