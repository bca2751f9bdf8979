"""
Repository Exceptions

Domain failures raised by the repository layer. Transient I/O failures
from the boundaries (StorageError, IdentityError, BlobStorageError) are
not wrapped here; they propagate with their original types.
"""

from typing import Optional

from orgledger.models.validation import ValidationFailure, ValidationIssue


class OrgLedgerError(Exception):
    """Base exception for domain failures."""
    pass


class ValidationFailedError(OrgLedgerError):
    """Raw input did not pass the entity schema. Nothing was written."""

    def __init__(self, entity_type: str, issues: list[ValidationIssue]):
        self.entity_type = entity_type
        self.issues = issues
        summary = "; ".join(f"{issue.field}: {issue.message}" for issue in issues)
        super().__init__(f"Invalid {entity_type}: {summary}")

    @classmethod
    def from_failure(cls, entity_type: str, failure: ValidationFailure) -> "ValidationFailedError":
        if failure.is_constraint_failure:
            return ConstraintError(entity_type, failure.issues)
        return cls(entity_type, failure.issues)


class ConstraintError(ValidationFailedError):
    """A record-level rule was violated (e.g. a fee with no members)."""
    pass


class InvalidTransitionError(ConstraintError):
    """A fee assignment state change that the lifecycle does not allow."""

    def __init__(self, assignment_id: str, message: str):
        self.assignment_id = assignment_id
        super().__init__("fee_assignment", [ValidationIssue(
            field="is_paid",
            issue_type="invalid_transition",
            message=message,
        )])


class DuplicateMemberError(OrgLedgerError):
    """A member with this email already exists in the organization."""

    def __init__(self, org_id: str, email: str, existing_id: Optional[str] = None):
        self.org_id = org_id
        self.email = email
        self.existing_id = existing_id
        super().__init__(f"Member with email {email} already exists in this organization")


class EntityNotFoundError(OrgLedgerError):
    """The entity to update or pay does not exist."""

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} {entity_id} not found")


class FanOutError(OrgLedgerError):
    """
    Some writes of a best-effort fan-out failed.

    The writes that succeeded are not rolled back. ``errors`` holds the
    individual failures; the first one is also chained as ``__cause__``.
    """

    def __init__(
        self,
        operation: str,
        entity_id: str,
        completed: int,
        errors: list[BaseException],
    ):
        self.operation = operation
        self.entity_id = entity_id
        self.completed = completed
        self.errors = errors
        super().__init__(
            f"{operation} for {entity_id}: {len(errors)} writes failed, "
            f"{completed} succeeded"
        )
