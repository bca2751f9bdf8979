"""
Validation Result Models

A validator returns exactly one of:
- ValidationSuccess: the normalized, fully-typed record
- ValidationFailure: every issue found, and no record at all

Callers branch on ``result.ok``.
"""

from typing import Generic, Literal, TypeVar, Union

from pydantic import BaseModel, Field


RecordT = TypeVar("RecordT")

# Issue type used for record-level (cross-field) rule violations
CONSTRAINT_ISSUE = "constraint"


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue (snake_case attribute name, or '__record__')"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'string_too_short', 'constraint')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )


class ValidationSuccess(BaseModel, Generic[RecordT]):
    """Validation passed; ``record`` is normalized."""

    ok: Literal[True] = True
    record: RecordT


class ValidationFailure(BaseModel):
    """Validation failed; no partial record is ever returned."""

    ok: Literal[False] = False
    issues: list[ValidationIssue] = Field(min_length=1)

    @property
    def fields(self) -> set[str]:
        """Names of all fields with at least one issue."""
        return {issue.field for issue in self.issues}

    @property
    def is_constraint_failure(self) -> bool:
        """True when only record-level rules failed."""
        return all(issue.issue_type == CONSTRAINT_ISSUE for issue in self.issues)

    def messages_for(self, field: str) -> list[str]:
        return [issue.message for issue in self.issues if issue.field == field]


# Subscripted only in postponed annotations; pydantic returns the bare class
# for ValidationSuccess[RecordT]
ValidationResult = Union[ValidationSuccess[RecordT], ValidationFailure]
