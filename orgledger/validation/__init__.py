"""Validation package."""

from orgledger.validation.validator import (
    RECORD_FIELD,
    RECORD_RULES,
    EntityValidator,
    fee_has_assignees,
    format_issues,
    validate_fee,
    validate_member,
    validate_member_edit,
    validate_organization,
    validate_sign_up,
    validate_transaction,
)

__all__ = [
    "RECORD_FIELD",
    "RECORD_RULES",
    "EntityValidator",
    "fee_has_assignees",
    "format_issues",
    "validate_fee",
    "validate_member",
    "validate_member_edit",
    "validate_organization",
    "validate_sign_up",
    "validate_transaction",
]
