"""
Firebase Authentication Identity Provider

Account management (create / delete) goes through firebase-admin.
firebase-admin cannot check passwords, so login uses the Identity
Toolkit REST endpoint with the project's web API key.

Both SDKs are blocking; calls run in a worker thread so the event loop
keeps serving other tasks.
"""

import asyncio
from typing import Optional

import requests
from firebase_admin import auth, exceptions

from orgledger.config import FirebaseSettings, get_settings
from orgledger.services.firebase_app import get_firebase_app
from orgledger.services.identity.interface import (
    AccountExistsError,
    Identity,
    IdentityError,
    InvalidCredentialsError,
    ObservableIdentityProvider,
)


SIGN_IN_URL = "https://identitytoolkit.googleapis.com/v1/accounts:signInWithPassword"
REQUEST_TIMEOUT_SECONDS = 15

_BAD_CREDENTIAL_CODES = {
    "EMAIL_NOT_FOUND",
    "INVALID_PASSWORD",
    "INVALID_LOGIN_CREDENTIALS",
    "USER_DISABLED",
}


class FirebaseIdentityProvider(ObservableIdentityProvider):
    """Identity provider backed by Firebase Authentication."""

    def __init__(self, settings: Optional[FirebaseSettings] = None):
        super().__init__()
        self._settings = settings or get_settings().firebase
        self._app = get_firebase_app(self._settings)

    async def sign_up(self, email: str, password: str) -> Identity:
        try:
            record = await asyncio.to_thread(
                auth.create_user, email=email, password=password, app=self._app
            )
        except auth.EmailAlreadyExistsError as e:
            raise AccountExistsError(f"Account already exists: {email}") from e
        except (ValueError, exceptions.FirebaseError) as e:
            raise IdentityError(f"Sign-up failed: {e}") from e

        identity = Identity(uid=record.uid, email=record.email, display_name=record.display_name)
        self._set_current(identity)
        return identity

    def _sign_in(self, email: str, password: str) -> dict:
        response = requests.post(
            SIGN_IN_URL,
            params={"key": self._settings.web_api_key},
            json={"email": email, "password": password, "returnSecureToken": True},
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
        if response.status_code == 400:
            code = response.json().get("error", {}).get("message", "")
            if code.split(" ")[0] in _BAD_CREDENTIAL_CODES:
                raise InvalidCredentialsError("Invalid email or password")
        response.raise_for_status()
        return response.json()

    async def login(self, email: str, password: str) -> Identity:
        try:
            payload = await asyncio.to_thread(self._sign_in, email, password)
        except requests.RequestException as e:
            raise IdentityError(f"Login failed: {e}") from e

        identity = Identity(
            uid=payload["localId"],
            email=payload.get("email"),
            display_name=payload.get("displayName") or None,
        )
        self._set_current(identity)
        return identity

    async def logout(self) -> None:
        self._set_current(None)

    async def delete_identity(self, uid: str) -> None:
        try:
            await asyncio.to_thread(auth.delete_user, uid, app=self._app)
        except exceptions.FirebaseError as e:
            raise IdentityError(f"Failed to delete account {uid}: {e}") from e
        if self._current and self._current.uid == uid:
            self._set_current(None)
