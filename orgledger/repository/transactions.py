"""
Transaction Repository

Transactions are append-only ledger entries. There is no update or
delete path; a wrong entry is corrected with a new one.
"""

from collections.abc import Callable, Mapping
from typing import Any, Optional, Union

from orgledger.models.audit import AuditEventBuilder
from orgledger.models.entities import NewTransaction, Transaction, TransactionEntry
from orgledger.repository.base import TRANSACTIONS, BaseRepository, decode_documents
from orgledger.services.storage import Document, Subscription, WriteBatch
from orgledger.subscriptions import SnapshotStream


TransactionsCallback = Callable[[list[Transaction]], None]


class TransactionStream(SnapshotStream[Transaction]):
    """Live transactions of one organization as an async iterator of snapshots."""
    pass


class TransactionRepository(BaseRepository):
    """Insert, list and watch transactions."""

    async def create_transaction_document(
        self,
        record: Union[NewTransaction, Mapping[str, Any]],
    ) -> Transaction:
        """
        Store one transaction.

        Single insert, no idempotency key: submitting the same input twice
        creates two transactions. Untyped input is held to the entry form
        rules (TransactionEntry); typed records are stored as given.
        """
        schema = NewTransaction if isinstance(record, NewTransaction) else TransactionEntry
        new_transaction = await self._coerce(schema, record, "transaction")
        transaction_id = await self._store.insert(TRANSACTIONS, new_transaction.to_document())
        transaction = Transaction(id=transaction_id, **new_transaction.model_dump())
        await self.audit_created(transaction)
        return transaction

    def stage_transaction(self, batch: WriteBatch, new_transaction: NewTransaction) -> Transaction:
        """Stage an already validated transaction in ``batch``."""
        transaction_id = batch.insert(TRANSACTIONS, new_transaction.to_document())
        return Transaction(id=transaction_id, **new_transaction.model_dump())

    async def audit_created(self, transaction: Transaction) -> None:
        await self._audit(AuditEventBuilder.transaction_created(
            transaction_id=transaction.id,
            org_id=transaction.org_id,
            transaction_type=transaction.type.value,
            amount=transaction.amount,
            created_by=transaction.created_by,
        ))

    async def get_transactions(self, org_id: str) -> list[Transaction]:
        documents = await self._store.query_by_equality(TRANSACTIONS, orgId=org_id)
        return decode_documents(Transaction, documents)

    async def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return await self._read(Transaction, TRANSACTIONS, transaction_id)

    def subscribe_to_transactions(
        self,
        org_id: str,
        callback: TransactionsCallback,
    ) -> Subscription:
        """
        Watch an organization's transactions.

        ``callback`` gets the full current list on attach and after every
        change. It may run on a background thread. The returned handle's
        ``cancel()`` must be called exactly once.
        """
        def on_snapshot(documents: list[Document]) -> None:
            callback(decode_documents(Transaction, documents))

        return self._store.subscribe(TRANSACTIONS, {"orgId": org_id}, on_snapshot)

    def stream_transactions(self, org_id: str) -> TransactionStream:
        """
        Watch an organization's transactions from async code.

        Must be called with a running event loop.

        Example:
            async with repo.stream_transactions(org_id) as stream:
                async for transactions in stream:
                    ...
        """
        return TransactionStream(
            lambda on_snapshot: self._store.subscribe(
                TRANSACTIONS, {"orgId": org_id}, on_snapshot
            ),
            lambda documents: decode_documents(Transaction, documents),
        )
