"""
Fee Repository

A fee is one definition plus one FeeAssignment per assigned member.
Three operations write more than one document:

1. add_fee        -> fee + one UNPAID assignment per member
2. delete_fee     -> fee + all of its assignments
3. paying a fee   -> assignment patch + a derived Revenue transaction

DESIGN DECISION: How these fan-out writes land is configurable.

ATOMIC (default):
- Every write of the operation goes into one store batch
- Either all of them land or none do

BEST_EFFORT:
- The leading write (fee insert, fee delete, assignment patch) goes first
- The fan-out writes follow, concurrently where they are independent
- Nothing is rolled back; failures are audited and raised as FanOutError

Assignment lifecycle: UNPAID -> PAID. PAID is terminal; re-paying or
un-paying raises InvalidTransitionError before anything is written.
"""

import asyncio
from collections.abc import Awaitable, Mapping
from typing import Any, Optional, Union

from orgledger.audit import AuditLogger
from orgledger.config import FanOutMode
from orgledger.models.audit import AuditEventBuilder, AuditEventType
from orgledger.models.entities import (
    MEMBERSHIP_FEES_CATEGORY,
    SYSTEM_CREATOR_ID,
    Fee,
    FeeAssignment,
    NewFee,
    NewFeeAssignment,
    NewTransaction,
    Transaction,
    TransactionType,
    utc_now,
)
from orgledger.repository.base import (
    FEE_ASSIGNMENTS,
    FEES,
    BaseRepository,
    decode_documents,
    patch_document,
)
from orgledger.repository.errors import FanOutError, InvalidTransitionError
from orgledger.repository.transactions import TransactionRepository
from orgledger.services.storage import DocumentStore
from orgledger.validation import EntityValidator


FEE_IMMUTABLE_FIELDS = ("org_id",)
ASSIGNMENT_IMMUTABLE_FIELDS = ("fee_id", "member_id", "transaction_id")


class FeeRepository(BaseRepository):
    """Fees, their assignments, and the payment -> transaction link."""

    def __init__(
        self,
        store: DocumentStore,
        transactions: Optional[TransactionRepository] = None,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[EntityValidator] = None,
        fan_out_mode: FanOutMode = FanOutMode.ATOMIC,
    ):
        super().__init__(store, audit_logger, validator)
        self._transactions = transactions or TransactionRepository(
            store, audit_logger, self._validator
        )
        self._fan_out_mode = fan_out_mode

    @property
    def fan_out_mode(self) -> FanOutMode:
        return self._fan_out_mode

    @property
    def _atomic(self) -> bool:
        return self._fan_out_mode == FanOutMode.ATOMIC

    async def _gather_fan_out(
        self,
        operation: str,
        entity_id: str,
        writes: list[Awaitable[Any]],
    ) -> list[Any]:
        """Run independent writes concurrently; audit and raise on any failure."""
        results = await asyncio.gather(*writes, return_exceptions=True)
        errors = [result for result in results if isinstance(result, BaseException)]
        if errors:
            completed = len(results) - len(errors)
            await self._audit(AuditEventBuilder.fan_out_failed(
                operation=operation,
                entity_id=entity_id,
                error_message=str(errors[0]),
                completed=completed,
                failed=len(errors),
            ))
            raise FanOutError(operation, entity_id, completed, errors) from errors[0]
        return results

    # =========================================================================
    # FEES
    # =========================================================================

    async def add_fee(self, candidate: Union[NewFee, Mapping[str, Any]]) -> Fee:
        """
        Create a fee and one UNPAID assignment per member.

        Raises:
            ValidationFailedError: Invalid input
            ConstraintError: No members assigned (nothing is written)
            FanOutError: Best-effort mode only; some assignments were not written
        """
        new_fee = await self._coerce(NewFee, candidate, "fee")

        if self._atomic:
            batch = self._store.batch()
            fee_id = batch.insert(FEES, new_fee.to_document())
            for member_id in new_fee.member_ids:
                batch.insert(
                    FEE_ASSIGNMENTS,
                    NewFeeAssignment(fee_id=fee_id, member_id=member_id).to_document(),
                )
            await batch.commit()
        else:
            fee_id = await self._store.insert(FEES, new_fee.to_document())
            await self._gather_fan_out("add_fee", fee_id, [
                self._store.insert(
                    FEE_ASSIGNMENTS,
                    NewFeeAssignment(fee_id=fee_id, member_id=member_id).to_document(),
                )
                for member_id in new_fee.member_ids
            ])

        fee = Fee(id=fee_id, **new_fee.model_dump())
        await self._audit(AuditEventBuilder.fee_created(
            fee_id=fee.id,
            org_id=fee.org_id,
            amount=fee.amount,
            assignment_count=len(fee.member_ids),
        ))
        return fee

    async def delete_fee(self, fee_id: str) -> int:
        """
        Delete a fee and every assignment that references it.

        In best-effort mode the fee goes first and its assignments are
        queried afterwards, so none written in between is left behind.

        Returns:
            Number of assignments deleted
        """
        if self._atomic:
            assignments = await self.get_fee_assignments(fee_id)
            batch = self._store.batch()
            batch.delete(FEES, fee_id)
            for assignment in assignments:
                batch.delete(FEE_ASSIGNMENTS, assignment.id)
            await batch.commit()
        else:
            await self._store.delete(FEES, fee_id)
            assignments = await self.get_fee_assignments(fee_id)
            await self._gather_fan_out("delete_fee", fee_id, [
                self._store.delete(FEE_ASSIGNMENTS, assignment.id)
                for assignment in assignments
            ])

        await self._audit(AuditEventBuilder.fee_deleted(
            fee_id=fee_id,
            assignments_deleted=len(assignments),
        ))
        return len(assignments)

    async def update_fee(self, fee_id: str, fields: Mapping[str, Any]) -> Fee:
        """
        Patch a fee definition.

        Existing assignments are not re-derived: changing ``member_ids``
        or ``amount`` affects only what later reads of the fee show.

        Raises:
            EntityNotFoundError: No such fee
            ValidationFailedError: The merged fee is invalid
            ConstraintError: The patch empties member_ids
        """
        existing = await self._require(Fee, FEES, fee_id, "fee")
        updated, changed = await self._patched(
            Fee, existing, fields, "fee", immutable=FEE_IMMUTABLE_FIELDS
        )
        if changed:
            await self._store.update(FEES, fee_id, patch_document(updated, changed))
            await self._audit(AuditEventBuilder.entity_changed(
                AuditEventType.FEE_UPDATED, "fee", fee_id, sorted(changed),
                org_id=updated.org_id,
            ))
        return updated

    async def get_fees(self, org_id: str) -> list[Fee]:
        documents = await self._store.query_by_equality(FEES, orgId=org_id)
        return decode_documents(Fee, documents)

    async def get_fee(self, fee_id: str) -> Optional[Fee]:
        return await self._read(Fee, FEES, fee_id)

    # =========================================================================
    # ASSIGNMENTS
    # =========================================================================

    async def get_fee_assignments(self, fee_id: str) -> list[FeeAssignment]:
        documents = await self._store.query_by_equality(FEE_ASSIGNMENTS, feeId=fee_id)
        return decode_documents(FeeAssignment, documents)

    async def get_fee_assignment(self, assignment_id: str) -> Optional[FeeAssignment]:
        return await self._read(FeeAssignment, FEE_ASSIGNMENTS, assignment_id)

    async def get_org_fee_assignments(self, org_id: str) -> list[FeeAssignment]:
        """Assignments of every fee in the organization, fee by fee."""
        fees = await self.get_fees(org_id)
        per_fee = await asyncio.gather(*(self.get_fee_assignments(fee.id) for fee in fees))
        return [assignment for assignments in per_fee for assignment in assignments]

    async def update_fee_assignment(
        self,
        assignment_id: str,
        fields: Mapping[str, Any],
    ) -> FeeAssignment:
        """
        Patch an assignment; marking it paid also records the payment.

        When the patch sets is_paid to True, a Revenue transaction in the
        "Membership Fees" category is created for the fee amount, dated
        paid_date (or now), and linked through transaction_id.

        Raises:
            EntityNotFoundError: No such assignment, or its fee is gone
            ValidationFailedError: The merged assignment is invalid
            InvalidTransitionError: The assignment is already paid and the
                patch touches is_paid
        """
        existing = await self._require(
            FeeAssignment, FEE_ASSIGNMENTS, assignment_id, "fee_assignment"
        )
        updated, changed = await self._patched(
            FeeAssignment, existing, fields, "fee_assignment",
            immutable=ASSIGNMENT_IMMUTABLE_FIELDS,
        )

        if "is_paid" in changed and existing.is_paid:
            message = (
                "Assignment is already paid"
                if updated.is_paid
                else "A paid assignment cannot be marked unpaid"
            )
            raise InvalidTransitionError(assignment_id, message)

        if not ("is_paid" in changed and updated.is_paid):
            if changed:
                await self._store.update(
                    FEE_ASSIGNMENTS, assignment_id, patch_document(updated, changed)
                )
                await self._audit(AuditEventBuilder.entity_changed(
                    AuditEventType.ASSIGNMENT_UPDATED, "fee_assignment",
                    assignment_id, sorted(changed),
                ))
            return updated

        if self._atomic:
            return await self._pay_atomic(assignment_id, updated, changed)
        return await self._pay_best_effort(assignment_id, updated, changed)

    def _payment_transaction(self, fee: Fee, assignment: FeeAssignment) -> NewTransaction:
        return NewTransaction(
            type=TransactionType.REVENUE,
            amount=fee.amount,
            category=MEMBERSHIP_FEES_CATEGORY,
            description=f"Payment for {fee.name}",
            date=assignment.paid_date or utc_now(),
            created_by=SYSTEM_CREATOR_ID,
            org_id=fee.org_id,
        )

    async def _pay_atomic(
        self,
        assignment_id: str,
        updated: FeeAssignment,
        changed: set[str],
    ) -> FeeAssignment:
        fee = await self._require(Fee, FEES, updated.fee_id, "fee")

        batch = self._store.batch()
        transaction = self._transactions.stage_transaction(
            batch, self._payment_transaction(fee, updated)
        )
        paid = updated.model_copy(update={"transaction_id": transaction.id})
        batch.update(
            FEE_ASSIGNMENTS,
            assignment_id,
            patch_document(paid, changed | {"transaction_id"}),
        )
        await batch.commit()

        await self._transactions.audit_created(transaction)
        await self._audit_paid(paid, fee, transaction)
        return paid

    async def _pay_best_effort(
        self,
        assignment_id: str,
        updated: FeeAssignment,
        changed: set[str],
    ) -> FeeAssignment:
        await self._store.update(FEE_ASSIGNMENTS, assignment_id, patch_document(updated, changed))

        # Re-read both documents so the transaction reflects what is stored now
        try:
            stored = await self._require(
                FeeAssignment, FEE_ASSIGNMENTS, assignment_id, "fee_assignment"
            )
            fee = await self._require(Fee, FEES, stored.fee_id, "fee")
            transaction = await self._transactions.create_transaction_document(
                self._payment_transaction(fee, stored)
            )
            await self._store.update(
                FEE_ASSIGNMENTS, assignment_id, {"transactionId": transaction.id}
            )
        except Exception as e:
            await self._audit(AuditEventBuilder.fan_out_failed(
                operation="pay_fee_assignment",
                entity_id=assignment_id,
                error_message=str(e),
                completed=1,
                failed=1,
            ))
            raise

        paid = stored.model_copy(update={"transaction_id": transaction.id})
        await self._audit_paid(paid, fee, transaction)
        return paid

    async def _audit_paid(
        self,
        assignment: FeeAssignment,
        fee: Fee,
        transaction: Transaction,
    ) -> None:
        await self._audit(AuditEventBuilder.assignment_paid(
            assignment_id=assignment.id,
            fee_id=fee.id,
            transaction_id=transaction.id,
            amount=transaction.amount,
            payment_method=assignment.payment_method.value if assignment.payment_method else None,
            org_id=fee.org_id,
        ))
