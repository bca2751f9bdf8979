"""Tests for the session adapter and the in-memory identity provider."""

import asyncio

import pytest

from orgledger.services.identity import (
    AccountExistsError,
    IdentityError,
    InvalidCredentialsError,
)
from orgledger.services.storage import SubscriptionClosedError
from orgledger.session import AuthState, SessionAdapter


class TestIdentityProvider:
    """Tests for InMemoryIdentityProvider."""

    @pytest.mark.asyncio
    async def test_sign_up_signs_in(self, identity_provider):
        identity = await identity_provider.sign_up("Grace@Example.com", "correct-horse")

        assert identity.email == "grace@example.com"
        assert identity_provider.current_user() == identity

    @pytest.mark.asyncio
    async def test_existing_account_rejected(self, identity_provider):
        await identity_provider.sign_up("grace@example.com", "correct-horse")
        with pytest.raises(AccountExistsError):
            await identity_provider.sign_up("GRACE@example.com", "other-password")

    @pytest.mark.asyncio
    async def test_login_checks_password(self, identity_provider):
        identity = await identity_provider.sign_up("grace@example.com", "correct-horse")
        await identity_provider.logout()

        with pytest.raises(InvalidCredentialsError):
            await identity_provider.login("grace@example.com", "wrong-password")
        assert identity_provider.current_user() is None

        assert await identity_provider.login("grace@example.com", "correct-horse") == identity

    @pytest.mark.asyncio
    async def test_delete_identity(self, identity_provider):
        identity = await identity_provider.sign_up("grace@example.com", "correct-horse")

        await identity_provider.delete_identity(identity.uid)

        assert identity_provider.find("grace@example.com") is None
        assert identity_provider.current_user() is None
        with pytest.raises(IdentityError):
            await identity_provider.delete_identity(identity.uid)


class TestSessionAdapter:
    """Tests for SessionAdapter."""

    def test_loading_before_start(self, identity_provider):
        session = SessionAdapter(identity_provider)

        assert session.state == AuthState()
        assert session.state.loading is True
        assert session.current_user is None

    def test_start_reports_signed_out(self, identity_provider):
        session = SessionAdapter(identity_provider).start()

        assert session.state.loading is False
        assert session.state.signed_in is False
        session.stop()

    @pytest.mark.asyncio
    async def test_wait_until_ready(self, identity_provider):
        session = SessionAdapter(identity_provider)

        waiter = asyncio.create_task(session.wait_until_ready())
        await asyncio.sleep(0)
        assert not waiter.done()

        session.start()
        state = await asyncio.wait_for(waiter, timeout=1)

        assert state.loading is False
        session.stop()

    @pytest.mark.asyncio
    async def test_follows_sign_in_and_out(self, identity_provider):
        states = []
        with SessionAdapter(identity_provider) as session:
            session.subscribe(states.append)
            identity = await identity_provider.sign_up("grace@example.com", "correct-horse")
            assert session.current_user == identity
            await identity_provider.logout()

        assert [state.signed_in for state in states] == [False, True, False]
        assert all(state.loading is False for state in states)

    @pytest.mark.asyncio
    async def test_stopped_session_ignores_changes(self, identity_provider):
        session = SessionAdapter(identity_provider).start()
        session.stop()

        await identity_provider.sign_up("grace@example.com", "correct-horse")

        assert session.current_user is None

    def test_start_and_stop_idempotent(self, identity_provider):
        session = SessionAdapter(identity_provider)
        assert session.start() is session.start()
        session.stop()
        session.stop()

    def test_listener_subscription_cancels_once(self, identity_provider):
        session = SessionAdapter(identity_provider)
        states = []
        subscription = session.subscribe(states.append)

        subscription.cancel()
        session.start()

        assert states == [AuthState()]
        with pytest.raises(SubscriptionClosedError):
            subscription.cancel()
        session.stop()
