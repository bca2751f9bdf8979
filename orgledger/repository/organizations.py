"""
Organization and user-profile documents.

Each organization has exactly one owning user. The user profile lives at
users/{uid}, keyed by the identity-provider id.
"""

from collections.abc import Mapping
from typing import Any, Optional, Union

from orgledger.models.audit import AuditEvent, AuditEventType
from orgledger.models.entities import NewOrganization, Organization, UserProfile
from orgledger.repository.base import ORGANIZATIONS, USERS, BaseRepository, decode_documents
from orgledger.services.storage import AlreadyExistsError


class OrganizationRepository(BaseRepository):
    """Organizations and the profiles of their owners."""

    async def create_organization(
        self,
        candidate: Union[NewOrganization, Mapping[str, Any]],
    ) -> Organization:
        new_organization = await self._coerce(NewOrganization, candidate, "organization")
        org_id = await self._store.insert(ORGANIZATIONS, new_organization.to_document())
        organization = Organization(id=org_id, **new_organization.model_dump())
        await self._audit(AuditEvent(
            event_type=AuditEventType.ORGANIZATION_CREATED,
            entity_type="organization",
            entity_id=org_id,
            org_id=org_id,
            description=f"Organization created: {organization.name}",
            details={"owner_id": organization.owner_id},
        ))
        return organization

    async def delete_organization(self, org_id: str) -> None:
        await self._store.delete(ORGANIZATIONS, org_id)

    async def get_organization(self, org_id: str) -> Optional[Organization]:
        return await self._read(Organization, ORGANIZATIONS, org_id)

    async def get_user_organization(self, owner_id: str) -> Optional[Organization]:
        """The organization owned by ``owner_id``, or None."""
        documents = await self._store.query_by_equality(ORGANIZATIONS, ownerId=owner_id)
        organizations = decode_documents(Organization, documents)
        return organizations[0] if organizations else None

    async def create_user_document(
        self,
        user: Union[UserProfile, Mapping[str, Any]],
        uid: str,
    ) -> bool:
        """
        Write users/{uid} unless it already exists.

        Returns:
            True if the document was written, False if one was already there
        """
        profile = await self._coerce(UserProfile, user, "user")
        if await self._store.get(USERS, uid) is not None:
            return False
        try:
            await self._store.insert(USERS, profile.to_document(), doc_id=uid)
        except AlreadyExistsError:
            # Created concurrently between the read and the write
            return False
        return True

    async def delete_user_document(self, uid: str) -> None:
        await self._store.delete(USERS, uid)

    async def get_user_profile(self, uid: str) -> Optional[UserProfile]:
        return await self._read(UserProfile, USERS, uid)
