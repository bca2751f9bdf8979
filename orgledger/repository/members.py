"""
Member Repository

Members are unique per organization by email. The email is stored
lower-cased, so an equality query on (orgId, email) is a
case-insensitive duplicate check.

Deleting a member does not touch their fee assignments; they stay in
place as the record of what was owed.
"""

from collections.abc import Mapping
from typing import Any, Optional, Union
from uuid import UUID

from orgledger.models.audit import AuditEventBuilder, AuditEventType
from orgledger.models.entities import Member, NewMember
from orgledger.repository.base import MEMBERS, BaseRepository, decode_documents, patch_document
from orgledger.repository.errors import DuplicateMemberError


MEMBER_IMMUTABLE_FIELDS = ("org_id", "created_at")


class MemberRepository(BaseRepository):
    """CRUD for organization members."""

    async def find_by_email(self, org_id: str, email: str) -> Optional[Member]:
        """The member of ``org_id`` with this email, if any."""
        documents = await self._store.query_by_equality(
            MEMBERS, orgId=org_id, email=email.strip().lower()
        )
        members = decode_documents(Member, documents)
        return members[0] if members else None

    async def add_member(
        self,
        candidate: Union[NewMember, Mapping[str, Any]],
        correlation_id: Optional[UUID] = None,
    ) -> Member:
        """
        Add a member to an organization.

        Returns:
            The stored member with its new id

        Raises:
            ValidationFailedError: Invalid input
            DuplicateMemberError: The email is already used in the org
        """
        new_member = await self._coerce(NewMember, candidate, "member")

        existing = await self.find_by_email(new_member.org_id, new_member.email)
        if existing is not None:
            await self._audit(AuditEventBuilder.member_duplicate_rejected(
                org_id=new_member.org_id,
                email=new_member.email,
                correlation_id=correlation_id,
            ))
            raise DuplicateMemberError(new_member.org_id, new_member.email, existing.id)

        member_id = await self._store.insert(MEMBERS, new_member.to_document())
        member = Member(id=member_id, **new_member.model_dump())

        await self._audit(AuditEventBuilder.member_added(
            member_id=member.id,
            org_id=member.org_id,
            email=member.email,
            correlation_id=correlation_id,
        ))
        return member

    async def update_member(self, member_id: str, fields: Mapping[str, Any]) -> Member:
        """
        Patch a member.

        The patch is merged over the stored member and validated as a
        whole. Only the provided fields are written.

        Raises:
            EntityNotFoundError: No such member
            ValidationFailedError: The merged member is invalid
            DuplicateMemberError: The new email is taken in the org
        """
        existing = await self._require(Member, MEMBERS, member_id, "member")
        updated, changed = await self._patched(
            Member, existing, fields, "member", immutable=MEMBER_IMMUTABLE_FIELDS
        )

        if "email" in changed and updated.email != existing.email:
            clash = await self.find_by_email(updated.org_id, updated.email)
            if clash is not None and clash.id != member_id:
                await self._audit(AuditEventBuilder.member_duplicate_rejected(
                    org_id=updated.org_id,
                    email=updated.email,
                ))
                raise DuplicateMemberError(updated.org_id, updated.email, clash.id)

        if changed:
            await self._store.update(MEMBERS, member_id, patch_document(updated, changed))
            await self._audit(AuditEventBuilder.entity_changed(
                AuditEventType.MEMBER_UPDATED,
                "member",
                member_id,
                sorted(changed),
                org_id=updated.org_id,
            ))
        return updated

    async def delete_member(self, member_id: str) -> None:
        await self._store.delete(MEMBERS, member_id)
        await self._audit(AuditEventBuilder.entity_changed(
            AuditEventType.MEMBER_DELETED, "member", member_id, [],
        ))

    async def get_members(self, org_id: str) -> list[Member]:
        documents = await self._store.query_by_equality(MEMBERS, orgId=org_id)
        return decode_documents(Member, documents)

    async def get_member(self, member_id: str) -> Optional[Member]:
        return await self._read(Member, MEMBERS, member_id)
