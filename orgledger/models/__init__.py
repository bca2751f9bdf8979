"""
Data Models Package

This package contains all Pydantic models used in OrgLedger.
All data flowing into storage must conform to these schemas.
"""

from orgledger.models.entities import (
    MEMBERSHIP_FEES_CATEGORY,
    MIN_TRANSACTION_AMOUNT,
    SYSTEM_CREATOR_ID,
    TRANSACTION_CATEGORIES,
    AssignmentStatus,
    Fee,
    FeeAssignment,
    LedgerModel,
    Member,
    MemberRole,
    MemberStatus,
    NewFee,
    NewFeeAssignment,
    NewMember,
    NewOrganization,
    NewTransaction,
    Organization,
    PaymentMethod,
    SignUpInput,
    Transaction,
    TransactionEntry,
    TransactionType,
    UserProfile,
)
from orgledger.models.validation import (
    CONSTRAINT_ISSUE,
    ValidationFailure,
    ValidationIssue,
    ValidationResult,
    ValidationSuccess,
)
from orgledger.models.dashboard import (
    CategoryTotal,
    DashboardSummary,
    FeeStatusCounts,
    MonthlyTotal,
)
from orgledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Entity models
    "MEMBERSHIP_FEES_CATEGORY",
    "MIN_TRANSACTION_AMOUNT",
    "SYSTEM_CREATOR_ID",
    "TRANSACTION_CATEGORIES",
    "AssignmentStatus",
    "Fee",
    "FeeAssignment",
    "LedgerModel",
    "Member",
    "MemberRole",
    "MemberStatus",
    "NewFee",
    "NewFeeAssignment",
    "NewMember",
    "NewOrganization",
    "NewTransaction",
    "Organization",
    "PaymentMethod",
    "SignUpInput",
    "Transaction",
    "TransactionEntry",
    "TransactionType",
    "UserProfile",
    # Validation results
    "CONSTRAINT_ISSUE",
    "ValidationFailure",
    "ValidationIssue",
    "ValidationResult",
    "ValidationSuccess",
    # Dashboard
    "CategoryTotal",
    "DashboardSummary",
    "FeeStatusCounts",
    "MonthlyTotal",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
