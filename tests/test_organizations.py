"""Tests for OrganizationRepository."""

import pytest

from orgledger.models import UserProfile
from orgledger.repository import ORGANIZATIONS, USERS, ValidationFailedError


class TestOrganizations:
    """Tests for organization documents."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, organizations, store):
        organization = await organizations.create_organization({"name": "Chess Club", "ownerId": "uid-1"})

        assert await organizations.get_organization(organization.id) == organization
        assert store.documents(ORGANIZATIONS)[0]["ownerId"] == "uid-1"

    @pytest.mark.asyncio
    async def test_user_organization(self, organizations):
        await organizations.create_organization({"name": "Other Club", "ownerId": "uid-2"})
        mine = await organizations.create_organization({"name": "Chess Club", "ownerId": "uid-1"})

        assert await organizations.get_user_organization("uid-1") == mine
        assert await organizations.get_user_organization("uid-3") is None

    @pytest.mark.asyncio
    async def test_invalid_organization(self, organizations, store):
        with pytest.raises(ValidationFailedError):
            await organizations.create_organization({"name": "X", "ownerId": "uid-1"})
        assert store.documents(ORGANIZATIONS) == []


class TestUserDocuments:
    """Tests for users/{uid}."""

    @pytest.mark.asyncio
    async def test_written_under_uid(self, organizations, store):
        written = await organizations.create_user_document(
            {"name": "Grace Hopper", "email": "Grace@Example.com"}, "uid-1"
        )

        assert written is True
        assert await store.get(USERS, "uid-1") == {
            "id": "uid-1",
            "name": "Grace Hopper",
            "email": "grace@example.com",
        }

    @pytest.mark.asyncio
    async def test_existing_document_kept(self, organizations):
        await organizations.create_user_document(UserProfile(name="Grace Hopper", email="grace@example.com"), "uid-1")

        written = await organizations.create_user_document(
            UserProfile(name="Someone Else", email="else@example.com"), "uid-1"
        )

        assert written is False
        profile = await organizations.get_user_profile("uid-1")
        assert profile.name == "Grace Hopper"

    @pytest.mark.asyncio
    async def test_missing_profile(self, organizations):
        assert await organizations.get_user_profile("nope") is None
