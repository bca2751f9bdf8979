"""
Main Orchestrator for OrgLedger

This module ties together all the components and defines the
end-to-end flows for:
1. Sign-up (form -> account -> profile -> organization -> admin member)
2. Transaction entry (form -> validate -> receipt upload -> save)
3. Member import (CSV -> validate each row -> add new members)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is uploaded or written before the input has validated
- A sign-up that fails halfway leaves no orphaned account behind
- Every step is audited

create_app_components() wires the production Firebase services (or the
in-memory ones) into repositories and flows.
"""

import os
import time
from collections.abc import Awaitable, Mapping
from dataclasses import dataclass
from typing import Any, Optional, Union
from uuid import UUID

import structlog
from pydantic import BaseModel

from orgledger.audit import AuditLogger, configure_logging, create_correlation_id
from orgledger.config import Settings, get_settings
from orgledger.imports import ImportReport, import_members
from orgledger.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from orgledger.models.entities import (
    Member,
    MemberRole,
    NewMember,
    Organization,
    SignUpInput,
    Transaction,
    TransactionEntry,
)
from orgledger.queries import DashboardService
from orgledger.repository import (
    FeeRepository,
    MemberRepository,
    OrganizationRepository,
    OrgLedgerError,
    TransactionRepository,
    ValidationFailedError,
)
from orgledger.services.blob import BlobStorageError, BlobStore, InMemoryBlobStore
from orgledger.services.identity import (
    Identity,
    IdentityError,
    IdentityProvider,
    InMemoryIdentityProvider,
)
from orgledger.services.storage import DocumentStore, InMemoryDocumentStore, StorageError
from orgledger.session import SessionAdapter
from orgledger.validation import EntityValidator


logger = structlog.get_logger(__name__)

RECEIPTS_FOLDER = "receipts"


class ReceiptRejectedError(OrgLedgerError):
    """The receipt file is too large or of an unsupported type."""
    pass


class ReceiptUpload(BaseModel):
    """A receipt file as received from the user."""

    filename: str
    content_type: str
    data: bytes

    @property
    def size_bytes(self) -> int:
        return len(self.data)


class SignUpResult(BaseModel):
    identity: Identity
    organization: Organization
    member: Member


def receipt_path(filename: str, epoch_ms: Optional[int] = None) -> str:
    """receipts/{epoch_ms}_{name}, keeping only the base name of ``filename``."""
    if epoch_ms is None:
        epoch_ms = time.time_ns() // 1_000_000
    name = os.path.basename(filename.replace("\\", "/")) or "receipt"
    return f"{RECEIPTS_FOLDER}/{epoch_ms}_{name}"


class SignUpFlow:
    """
    Orchestrates onboarding of a new user.

    Flow:
    1. Validate the sign-up form
    2. Create the account with the identity provider
    3. Write users/{uid}
    4. Create the organization owned by the new user
    5. Add the user as the organization's first ADMIN member

    If any step after 2 fails, whatever the flow already wrote (profile,
    organization) is deleted, then the account, and the original error
    is re-raised. Cleanup failures are audited, never raised.
    """

    def __init__(
        self,
        identity_provider: IdentityProvider,
        organizations: OrganizationRepository,
        members: MemberRepository,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[EntityValidator] = None,
    ):
        self._identity = identity_provider
        self._organizations = organizations
        self._members = members
        self._audit_logger = audit_logger
        self._validator = validator or EntityValidator()

    async def sign_up(self, raw: Mapping[str, Any]) -> SignUpResult:
        """
        Run the whole onboarding.

        Raises:
            ValidationFailedError: The form is invalid (no account created)
            AccountExistsError: The email is already registered
        """
        result = self._validator.validate(SignUpInput, raw)
        if not result.ok:
            if self._audit_logger:
                await self._audit_logger.log(AuditEventBuilder.validation_failed(
                    entity_type="sign_up",
                    issues=[issue.model_dump() for issue in result.issues],
                ))
            raise ValidationFailedError.from_failure("sign_up", result)
        form = result.record

        identity = await self._identity.sign_up(form.email, form.password.get_secret_value())

        profile_written = False
        organization = None
        try:
            profile_written = await self._organizations.create_user_document(
                form.profile(), identity.uid
            )
            organization = await self._organizations.create_organization({
                "name": form.organization_name,
                "owner_id": identity.uid,
            })
            member = await self._members.add_member(NewMember(
                name=form.name,
                email=form.email,
                org_id=organization.id,
                role=MemberRole.ADMIN,
                phone_number=form.phone_number,
            ))
        except Exception as e:
            await self._roll_back(identity, e, organization, profile_written)
            raise

        if self._audit_logger:
            await self._audit_logger.log(AuditEventBuilder.user_signed_up(
                uid=identity.uid,
                org_id=organization.id,
            ))

        return SignUpResult(identity=identity, organization=organization, member=member)

    async def _roll_back(
        self,
        identity: Identity,
        error: Exception,
        organization: Optional[Organization],
        profile_written: bool,
    ) -> None:
        if organization is not None:
            await self._discard("organization", organization.id,
                                self._organizations.delete_organization(organization.id))
        if profile_written:
            await self._discard("user_profile", identity.uid,
                                self._organizations.delete_user_document(identity.uid))

        try:
            await self._identity.delete_identity(identity.uid)
        except IdentityError as e:
            if self._audit_logger:
                await self._audit_logger.log(AuditEventBuilder.external_service_error(
                    service="identity",
                    error_message=f"Rollback of {identity.uid} failed: {e}",
                ))
            return

        if self._audit_logger:
            await self._audit_logger.log(AuditEventBuilder.sign_up_rolled_back(
                uid=identity.uid,
                error_message=str(error),
            ))

    async def _discard(self, entity_type: str, entity_id: str, cleanup: Awaitable[None]) -> None:
        try:
            await cleanup
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log(AuditEventBuilder.system_error(
                    error_type="sign_up_cleanup",
                    error_message=str(e),
                    details={"entity_type": entity_type, "entity_id": entity_id},
                ))


class TransactionEntryFlow:
    """
    Orchestrates recording a transaction from the entry form.

    Flow:
    1. Validate the form (author and organization come from the session)
    2. Check the receipt against the size and type limits
    3. Upload the receipt, keep its URL
    4. Store the transaction

    The receipt is only uploaded once the form is known to be valid.
    """

    def __init__(
        self,
        transactions: TransactionRepository,
        blob_store: Optional[BlobStore] = None,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[EntityValidator] = None,
        max_receipt_size_bytes: int = 10 * 1024 * 1024,
        supported_receipt_types: Optional[list[str]] = None,
    ):
        self._transactions = transactions
        self._blob_store = blob_store
        self._audit_logger = audit_logger
        self._validator = validator or EntityValidator()
        self._max_receipt_size_bytes = max_receipt_size_bytes
        self._supported_receipt_types = supported_receipt_types

    def check_receipt(self, receipt: ReceiptUpload) -> None:
        """
        Raises:
            ReceiptRejectedError: If the receipt breaks a limit
        """
        if receipt.size_bytes == 0:
            raise ReceiptRejectedError("Receipt file is empty")
        if receipt.size_bytes > self._max_receipt_size_bytes:
            max_mb = self._max_receipt_size_bytes / (1024 * 1024)
            raise ReceiptRejectedError(f"Receipt is larger than {max_mb:g} MB")
        content_type = receipt.content_type.strip().lower()
        if self._supported_receipt_types and content_type not in self._supported_receipt_types:
            raise ReceiptRejectedError(f"Unsupported receipt type: {receipt.content_type}")

    async def record_transaction(
        self,
        raw: Mapping[str, Any],
        created_by: str,
        org_id: str,
        receipt: Optional[ReceiptUpload] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Validate, upload the receipt (if any) and store the transaction.

        Raises:
            ValidationFailedError: The form is invalid
            ReceiptRejectedError: The receipt breaks a limit
            BlobStorageError: The upload failed (nothing was stored)
        """
        correlation_id = correlation_id or create_correlation_id()

        form = {
            key: value for key, value in raw.items()
            if key not in ("created_by", "createdBy", "org_id", "orgId")
        }
        form["created_by"] = created_by
        form["org_id"] = org_id

        result = self._validator.validate(TransactionEntry, form)
        if not result.ok:
            if self._audit_logger:
                await self._audit_logger.log(AuditEventBuilder.validation_failed(
                    entity_type="transaction",
                    issues=[issue.model_dump() for issue in result.issues],
                ))
            raise ValidationFailedError.from_failure("transaction", result)
        record = result.record

        if receipt is not None:
            url = await self._upload_receipt(receipt, org_id, correlation_id)
            record = record.model_copy(update={"receipt_url": url})

        return await self._transactions.create_transaction_document(record)

    async def _upload_receipt(
        self,
        receipt: ReceiptUpload,
        org_id: str,
        correlation_id: UUID,
    ) -> str:
        if self._blob_store is None:
            raise ReceiptRejectedError("Receipt uploads are not configured")
        self.check_receipt(receipt)

        path = receipt_path(receipt.filename)
        try:
            url = await self._blob_store.upload(path, receipt.data, receipt.content_type)
        except BlobStorageError as e:
            if self._audit_logger:
                await self._audit_logger.log(AuditEventBuilder.external_service_error(
                    service="blob_storage",
                    error_message=str(e),
                    correlation_id=correlation_id,
                ))
            raise

        if self._audit_logger:
            await self._audit_logger.log(AuditEvent(
                event_type=AuditEventType.RECEIPT_UPLOADED,
                entity_type="receipt",
                entity_id=path,
                org_id=org_id,
                correlation_id=correlation_id,
                description=f"Receipt uploaded: {receipt.filename}",
                details={
                    "content_type": receipt.content_type,
                    "size_bytes": receipt.size_bytes,
                },
            ))
        return url


class MemberImportFlow:
    """
    Orchestrates a CSV member import.

    All rows of one import share a correlation id, so the audit trail
    shows which members arrived together.
    """

    def __init__(
        self,
        members: MemberRepository,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._members = members
        self._audit_logger = audit_logger

    async def import_csv(
        self,
        org_id: str,
        content: Union[bytes, str],
        correlation_id: Optional[UUID] = None,
    ) -> ImportReport:
        correlation_id = correlation_id or create_correlation_id()

        try:
            report = await import_members(self._members, org_id, content, correlation_id)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log(AuditEventBuilder.system_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    details={"org_id": org_id, "operation": "import_csv"},
                    correlation_id=correlation_id,
                ))
            raise

        if self._audit_logger:
            await self._audit_logger.log(AuditEventBuilder.members_imported(
                org_id=org_id,
                added=report.added_count,
                skipped=report.skipped_count,
                duplicates=report.duplicate_count,
                correlation_id=correlation_id,
            ))
        return report


@dataclass
class AppComponents:
    """Everything a front end needs, wired together."""

    store: DocumentStore
    identity_provider: IdentityProvider
    blob_store: BlobStore
    audit_logger: AuditLogger
    session: SessionAdapter
    organizations: OrganizationRepository
    members: MemberRepository
    fees: FeeRepository
    transactions: TransactionRepository
    dashboard: DashboardService
    sign_up_flow: SignUpFlow
    transaction_entry_flow: TransactionEntryFlow
    member_import_flow: MemberImportFlow


def create_app_components(
    settings: Optional[Settings] = None,
    use_firebase: bool = True,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to use; defaults to get_settings()
        use_firebase: Whether to connect to Firebase.
                      Set to False for local development and tests;
                      everything then lives in memory.

    Returns:
        AppComponents with repositories, flows and the session
    """
    settings = settings or get_settings()
    app_settings = settings.app
    configure_logging("DEBUG" if app_settings.debug_mode else app_settings.log_level)

    if use_firebase:
        # Imported here so the in-memory setup needs no Firebase credentials
        from orgledger.services.blob.firebase_storage import FirebaseBlobStore
        from orgledger.services.identity.firebase_auth import FirebaseIdentityProvider
        from orgledger.services.storage.firestore import FirestoreClient, FirestoreDocumentStore

        firebase_settings = settings.firebase
        store: DocumentStore = FirestoreDocumentStore(FirestoreClient(firebase_settings))
        identity_provider: IdentityProvider = FirebaseIdentityProvider(firebase_settings)
        blob_store: BlobStore = FirebaseBlobStore(firebase_settings, app_settings)
    else:
        store = InMemoryDocumentStore()
        identity_provider = InMemoryIdentityProvider()
        blob_store = InMemoryBlobStore()

    audit_logger = AuditLogger(store if app_settings.audit_to_store else None)
    validator = EntityValidator()

    organizations = OrganizationRepository(store, audit_logger, validator)
    members = MemberRepository(store, audit_logger, validator)
    transactions = TransactionRepository(store, audit_logger, validator)
    fees = FeeRepository(
        store,
        transactions=transactions,
        audit_logger=audit_logger,
        validator=validator,
        fan_out_mode=app_settings.fan_out_mode,
    )

    logger.info(
        "app_components_created",
        environment=app_settings.app_environment,
        backend="firebase" if use_firebase else "memory",
        fan_out_mode=app_settings.fan_out_mode.value,
    )

    return AppComponents(
        store=store,
        identity_provider=identity_provider,
        blob_store=blob_store,
        audit_logger=audit_logger,
        session=SessionAdapter(identity_provider),
        organizations=organizations,
        members=members,
        fees=fees,
        transactions=transactions,
        dashboard=DashboardService(transactions, fees),
        sign_up_flow=SignUpFlow(
            identity_provider, organizations, members, audit_logger, validator
        ),
        transaction_entry_flow=TransactionEntryFlow(
            transactions,
            blob_store=blob_store,
            audit_logger=audit_logger,
            validator=validator,
            max_receipt_size_bytes=app_settings.max_receipt_size_bytes,
            supported_receipt_types=app_settings.supported_receipt_types_list,
        ),
        member_import_flow=MemberImportFlow(members, audit_logger),
    )
