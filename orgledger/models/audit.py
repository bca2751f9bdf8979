"""
Audit Models for OrgLedger

Every write the repository performs is logged for audit purposes.
This provides:
1. Traceability of who changed what in an organization's books
2. Debugging information when a multi-document write only half lands
3. A record of derived writes (payments that created transactions)

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Accounts
    USER_SIGNED_UP = "user_signed_up"
    SIGN_UP_ROLLED_BACK = "sign_up_rolled_back"
    ORGANIZATION_CREATED = "organization_created"

    # Members
    MEMBER_ADDED = "member_added"
    MEMBER_DUPLICATE_REJECTED = "member_duplicate_rejected"
    MEMBER_UPDATED = "member_updated"
    MEMBER_DELETED = "member_deleted"
    MEMBERS_IMPORTED = "members_imported"

    # Fees
    FEE_CREATED = "fee_created"
    FEE_UPDATED = "fee_updated"
    FEE_DELETED = "fee_deleted"
    ASSIGNMENT_UPDATED = "assignment_updated"
    ASSIGNMENT_PAID = "assignment_paid"
    FAN_OUT_FAILED = "fan_out_failed"

    # Ledger
    TRANSACTION_CREATED = "transaction_created"
    RECEIPT_UPLOADED = "receipt_uploaded"

    # Validation
    VALIDATION_FAILED = "validation_failed"
    CONSTRAINT_VIOLATED = "constraint_violated"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'member', 'fee', 'transaction')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Store id of the entity this event relates to"
    )
    org_id: Optional[str] = Field(
        default=None,
        description="Organization the entity belongs to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events in one import)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "org_id": self.org_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_document(self) -> dict:
        """Convert to an audit_events document (timestamp stays native)."""
        document = self.to_log_dict()
        document["timestamp"] = self.timestamp
        return {key: value for key, value in document.items() if value is not None}


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.member_added(member_id, org_id, email)
        event = AuditEventBuilder.assignment_paid(assignment_id, fee_id, transaction_id)
    """

    @staticmethod
    def member_added(
        member_id: str,
        org_id: str,
        email: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MEMBER_ADDED,
            entity_type="member",
            entity_id=member_id,
            org_id=org_id,
            correlation_id=correlation_id,
            description=f"Member added: {email}",
            details={"email": email},
        )

    @staticmethod
    def member_duplicate_rejected(
        org_id: str,
        email: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MEMBER_DUPLICATE_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="member",
            org_id=org_id,
            correlation_id=correlation_id,
            description=f"Member already exists: {email}",
            details={"email": email},
        )

    @staticmethod
    def entity_changed(
        event_type: AuditEventType,
        entity_type: str,
        entity_id: str,
        fields: list[str],
        org_id: Optional[str] = None,
    ) -> AuditEvent:
        """Update or delete of a single document."""
        verb = "deleted" if event_type.value.endswith("deleted") else "updated"
        return AuditEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            org_id=org_id,
            description=f"{entity_type.capitalize()} {verb}",
            details={"fields": fields},
        )

    @staticmethod
    def fee_created(
        fee_id: str,
        org_id: str,
        amount: float,
        assignment_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FEE_CREATED,
            entity_type="fee",
            entity_id=fee_id,
            org_id=org_id,
            description=f"Fee created with {assignment_count} assignments",
            details={
                "amount": amount,
                "assignment_count": assignment_count,
            },
        )

    @staticmethod
    def fee_deleted(
        fee_id: str,
        assignments_deleted: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FEE_DELETED,
            entity_type="fee",
            entity_id=fee_id,
            description=f"Fee deleted with {assignments_deleted} assignments",
            details={"assignments_deleted": assignments_deleted},
        )

    @staticmethod
    def assignment_paid(
        assignment_id: str,
        fee_id: str,
        transaction_id: str,
        amount: float,
        payment_method: Optional[str],
        org_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ASSIGNMENT_PAID,
            entity_type="fee_assignment",
            entity_id=assignment_id,
            org_id=org_id,
            description=f"Assignment paid: {amount:.2f}",
            details={
                "fee_id": fee_id,
                "transaction_id": transaction_id,
                "amount": amount,
                "payment_method": payment_method,
            },
        )

    @staticmethod
    def fan_out_failed(
        operation: str,
        entity_id: str,
        error_message: str,
        completed: int,
        failed: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FAN_OUT_FAILED,
            severity=AuditSeverity.ERROR,
            entity_id=entity_id,
            description=f"Fan-out partially failed: {operation}",
            error_message=error_message,
            details={
                "operation": operation,
                "completed": completed,
                "failed": failed,
            },
        )

    @staticmethod
    def transaction_created(
        transaction_id: str,
        org_id: str,
        transaction_type: str,
        amount: float,
        created_by: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            entity_type="transaction",
            entity_id=transaction_id,
            org_id=org_id,
            description=f"{transaction_type} recorded: {amount:.2f}",
            details={
                "type": transaction_type,
                "amount": amount,
                "created_by": created_by,
            },
        )

    @staticmethod
    def members_imported(
        org_id: str,
        added: int,
        skipped: int,
        duplicates: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MEMBERS_IMPORTED,
            entity_type="member",
            org_id=org_id,
            correlation_id=correlation_id,
            description=f"CSV import: {added} added, {skipped} skipped, {duplicates} duplicates",
            details={
                "added": added,
                "skipped": skipped,
                "duplicates": duplicates,
            },
        )

    @staticmethod
    def user_signed_up(uid: str, org_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_SIGNED_UP,
            entity_type="user",
            entity_id=uid,
            org_id=org_id,
            description="User signed up and organization created",
        )

    @staticmethod
    def sign_up_rolled_back(uid: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SIGN_UP_ROLLED_BACK,
            severity=AuditSeverity.ERROR,
            entity_type="user",
            entity_id=uid,
            description="Sign-up failed after account creation; partial records and account deleted",
            error_message=error_message,
        )

    @staticmethod
    def validation_failed(
        entity_type: str,
        issues: list[dict],
        constraint: bool = False,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.CONSTRAINT_VIOLATED
                if constraint
                else AuditEventType.VALIDATION_FAILED
            ),
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            description=f"{entity_type.capitalize()} rejected with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
            correlation_id=correlation_id,
        )
