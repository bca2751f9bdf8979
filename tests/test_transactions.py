"""Tests for TransactionRepository."""

import asyncio

import pytest

from orgledger.audit import AUDIT_COLLECTION
from orgledger.models import NewTransaction, Transaction, TransactionType
from orgledger.repository import TRANSACTIONS, ValidationFailedError
from orgledger.services.storage import SubscriptionClosedError

from helpers import ORG_ID, transaction_input


class TestCreateTransaction:
    """Tests for create_transaction_document."""

    @pytest.mark.asyncio
    async def test_create_and_read_back(self, transactions, store):
        transaction = await transactions.create_transaction_document(transaction_input())

        assert isinstance(transaction, Transaction)
        assert transaction.amount == 12.5

        stored = store.documents(TRANSACTIONS)
        assert len(stored) == 1
        assert stored[0]["type"] == "Expense"
        assert stored[0]["createdBy"] == "user-1"

        fetched = await transactions.get_transaction(transaction.id)
        assert fetched == transaction

    @pytest.mark.asyncio
    async def test_typed_record_accepted(self, transactions):
        record = NewTransaction.model_validate(transaction_input(type="Revenue"))
        transaction = await transactions.create_transaction_document(record)
        assert transaction.type == TransactionType.REVENUE

    @pytest.mark.asyncio
    async def test_no_idempotency(self, transactions, store):
        """The same input twice is two ledger entries."""
        await transactions.create_transaction_document(transaction_input())
        await transactions.create_transaction_document(transaction_input())
        assert len(store.documents(TRANSACTIONS)) == 2

    @pytest.mark.asyncio
    async def test_invalid_not_written(self, transactions, store):
        with pytest.raises(ValidationFailedError) as exc_info:
            await transactions.create_transaction_document(transaction_input(amount="0"))

        assert exc_info.value.entity_type == "transaction"
        assert store.documents(TRANSACTIONS) == []
        event_types = [event["event_type"] for event in store.documents(AUDIT_COLLECTION)]
        assert event_types == ["validation_failed"]

    @pytest.mark.asyncio
    async def test_create_is_audited(self, transactions, store):
        transaction = await transactions.create_transaction_document(transaction_input())

        (event,) = store.documents(AUDIT_COLLECTION)
        assert event["event_type"] == "transaction_created"
        assert event["entity_id"] == transaction.id

    @pytest.mark.asyncio
    async def test_get_transactions_scoped_to_org(self, transactions):
        await transactions.create_transaction_document(transaction_input())
        await transactions.create_transaction_document(transaction_input(orgId="org-2"))

        found = await transactions.get_transactions(ORG_ID)

        assert [transaction.org_id for transaction in found] == [ORG_ID]

    @pytest.mark.asyncio
    async def test_get_missing(self, transactions):
        assert await transactions.get_transaction("nope") is None


class TestSubscribe:
    """Tests for subscribe_to_transactions."""

    @pytest.mark.asyncio
    async def test_initial_snapshot_then_updates(self, transactions):
        snapshots = []
        subscription = transactions.subscribe_to_transactions(ORG_ID, snapshots.append)

        await transactions.create_transaction_document(transaction_input())
        await transactions.create_transaction_document(transaction_input(orgId="org-2"))
        await transactions.create_transaction_document(transaction_input(amount="3"))

        subscription.cancel()

        assert [len(snapshot) for snapshot in snapshots] == [0, 1, 2]
        assert all(isinstance(t, Transaction) for t in snapshots[-1])

    @pytest.mark.asyncio
    async def test_no_delivery_after_cancel(self, transactions):
        snapshots = []
        subscription = transactions.subscribe_to_transactions(ORG_ID, snapshots.append)
        subscription.cancel()

        await transactions.create_transaction_document(transaction_input())

        assert snapshots == [[]]

    def test_cancel_exactly_once(self, transactions):
        subscription = transactions.subscribe_to_transactions(ORG_ID, lambda snapshot: None)

        subscription.cancel()

        assert subscription.closed is True
        with pytest.raises(SubscriptionClosedError):
            subscription.cancel()

    def test_context_manager_cancels(self, transactions):
        with transactions.subscribe_to_transactions(ORG_ID, lambda snapshot: None) as subscription:
            assert subscription.closed is False
        assert subscription.closed is True


class TestStream:
    """Tests for stream_transactions."""

    @pytest.mark.asyncio
    async def test_snapshots_in_order(self, transactions):
        async with transactions.stream_transactions(ORG_ID) as stream:
            await transactions.create_transaction_document(transaction_input())
            await transactions.create_transaction_document(transaction_input(amount="3"))

            first = await asyncio.wait_for(stream.__anext__(), timeout=1)
            second = await asyncio.wait_for(stream.__anext__(), timeout=1)
            third = await asyncio.wait_for(stream.__anext__(), timeout=1)

        assert [len(first), len(second), len(third)] == [0, 1, 2]
        assert stream.closed is True

    @pytest.mark.asyncio
    async def test_close_ends_iteration(self, transactions):
        stream = transactions.stream_transactions(ORG_ID)
        stream.close()

        received = [snapshot async for snapshot in stream]

        # The snapshot delivered on attach is still drained before the end
        assert received == [[]]
        assert stream.closed is True

    @pytest.mark.asyncio
    async def test_close_twice_raises(self, transactions):
        stream = transactions.stream_transactions(ORG_ID)
        stream.close()

        with pytest.raises(SubscriptionClosedError):
            stream.close()

    @pytest.mark.asyncio
    async def test_exit_after_close_is_quiet(self, transactions):
        async with transactions.stream_transactions(ORG_ID) as stream:
            stream.close()
        assert stream.closed is True

    @pytest.mark.asyncio
    async def test_delivery_from_another_thread(self, transactions):
        """Snapshots produced off the event loop still reach the iterator."""
        async with transactions.stream_transactions(ORG_ID) as stream:
            assert await asyncio.wait_for(stream.__anext__(), timeout=1) == []

            await asyncio.to_thread(
                asyncio.run,
                transactions.create_transaction_document(transaction_input()),
            )

            snapshot = await asyncio.wait_for(stream.__anext__(), timeout=1)

        assert len(snapshot) == 1
