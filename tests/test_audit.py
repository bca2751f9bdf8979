"""Tests for the audit logger."""

import pytest

from orgledger.audit import AUDIT_COLLECTION, AuditLogger
from orgledger.models import AuditEventBuilder
from orgledger.repository import MemberRepository
from orgledger.services.storage import InMemoryDocumentStore, StorageError


class BrokenStore(InMemoryDocumentStore):
    async def insert(self, collection, record, doc_id=None):
        raise StorageError("store offline")


class TestAuditLogger:
    """Tests for AuditLogger."""

    @pytest.mark.asyncio
    async def test_persists_event(self, store):
        logger = AuditLogger(store)
        event = AuditEventBuilder.member_added(member_id="m1", org_id="org-1", email="ada@example.com")

        assert await logger.log(event) is True

        (document,) = store.documents(AUDIT_COLLECTION)
        assert document["event_type"] == "member_added"
        assert document["event_id"] == str(event.event_id)

    @pytest.mark.asyncio
    async def test_local_only(self):
        event = AuditEventBuilder.member_added(member_id="m1", org_id="org-1", email="ada@example.com")
        assert await AuditLogger().log(event) is True

    @pytest.mark.asyncio
    async def test_store_failure_does_not_raise(self):
        logger = AuditLogger(BrokenStore())
        event = AuditEventBuilder.fan_out_failed(
            operation="add_fee", entity_id="f1", error_message="boom", completed=1, failed=2,
        )

        assert await logger.log(event) is False

    @pytest.mark.asyncio
    async def test_repository_write_survives_audit_failure(self):
        """A failed audit write never fails the operation being audited."""
        store = InMemoryDocumentStore()
        members = MemberRepository(store, AuditLogger(BrokenStore()))

        member = await members.add_member({"name": "Ada Lovelace", "email": "ada@example.com", "orgId": "org-1"})

        assert await members.get_member(member.id) == member
