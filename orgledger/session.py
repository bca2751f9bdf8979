"""
Session Adapter

Exposes "who is signed in" as an observable value. Until the identity
provider has reported once, the state is loading and carries no user;
callers that must not act on a half-initialized session await
``wait_until_ready()``.
"""

import asyncio
from collections.abc import Callable
from typing import Optional

import structlog
from pydantic import BaseModel, ConfigDict

from orgledger.services.identity import Identity, IdentityProvider
from orgledger.services.storage import Subscription


logger = structlog.get_logger(__name__)


class AuthState(BaseModel):
    """Snapshot of the session."""
    model_config = ConfigDict(frozen=True)

    user: Optional[Identity] = None
    loading: bool = True

    @property
    def signed_in(self) -> bool:
        return self.user is not None


AuthStateListener = Callable[[AuthState], None]


class SessionAdapter:
    """
    Observable session state over an IdentityProvider.

    Usage:
        session = SessionAdapter(provider).start()
        state = await session.wait_until_ready()
        ...
        session.stop()
    """

    def __init__(self, provider: IdentityProvider):
        self._provider = provider
        self._state = AuthState()
        self._listeners: dict[int, AuthStateListener] = {}
        self._next_listener = 0
        self._ready = asyncio.Event()
        self._provider_subscription: Optional[Subscription] = None

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def current_user(self) -> Optional[Identity]:
        return self._state.user

    @property
    def provider(self) -> IdentityProvider:
        return self._provider

    def start(self) -> "SessionAdapter":
        """Begin following the provider. Idempotent."""
        if self._provider_subscription is None:
            self._provider_subscription = self._provider.observe_auth_state(self._on_auth_change)
        return self

    def stop(self) -> None:
        """Stop following the provider. Idempotent."""
        if self._provider_subscription is not None:
            self._provider_subscription.cancel()
            self._provider_subscription = None

    def _on_auth_change(self, user: Optional[Identity]) -> None:
        self._state = AuthState(user=user, loading=False)
        self._ready.set()
        logger.debug("auth_state_changed", uid=user.uid if user else None)
        for listener in list(self._listeners.values()):
            listener(self._state)

    def subscribe(self, listener: AuthStateListener) -> Subscription:
        """
        Watch the session state.

        ``listener`` is called immediately with the current state and
        again on every change.
        """
        key = self._next_listener
        self._next_listener += 1
        self._listeners[key] = listener
        listener(self._state)
        return Subscription(lambda: self._listeners.pop(key, None))

    async def wait_until_ready(self) -> AuthState:
        """Resolve once the provider has reported the initial user."""
        await self._ready.wait()
        return self._state

    def __enter__(self) -> "SessionAdapter":
        return self.start()

    def __exit__(self, *exc_info) -> None:
        self.stop()
