"""
Two-Stage Validation Pipeline

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Type checking and required field presence
- Format validation (email, minimum lengths, numeric bounds)
- Transforms (numeric strings to floats, phone numbers to E.164,
  date strings to UTC datetimes)
- Every violation is collected; nothing is fail-fast

STAGE 2 - RECORD VALIDATION:
- Cross-field rules over the fully typed record
  (e.g. a fee must be assigned to at least one member)
- Only runs when stage 1 produced a record

IMPORTANT: Validators never raise for bad input. They return a
ValidationSuccess carrying the normalized record, or a ValidationFailure
carrying every issue and no record.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from orgledger.models.entities import (
    Fee,
    Member,
    NewFee,
    NewMember,
    NewOrganization,
    SignUpInput,
    TransactionEntry,
)
from orgledger.models.validation import (
    CONSTRAINT_ISSUE,
    ValidationFailure,
    ValidationIssue,
    ValidationResult,
    ValidationSuccess,
)


ModelT = TypeVar("ModelT", bound=BaseModel)

RECORD_FIELD = "__record__"

RecordRule = Callable[[Any], Iterable[ValidationIssue]]


# =============================================================================
# RECORD-LEVEL RULES
# =============================================================================

def fee_has_assignees(fee: NewFee) -> list[ValidationIssue]:
    """A fee with nobody to pay it is rejected."""
    if fee.member_ids:
        return []
    return [ValidationIssue(
        field="member_ids",
        issue_type=CONSTRAINT_ISSUE,
        message="A fee must be assigned to at least one member",
    )]


RECORD_RULES: dict[type, list[RecordRule]] = {
    NewFee: [fee_has_assignees],
    Fee: [fee_has_assignees],
}


def _rules_for(model_cls: type) -> list[RecordRule]:
    rules: list[RecordRule] = []
    for klass in model_cls.__mro__:
        for rule in RECORD_RULES.get(klass, []):
            if rule not in rules:
                rules.append(rule)
    return rules


# =============================================================================
# ERROR CONVERSION
# =============================================================================

_MESSAGE_PREFIXES = ("Value error, ", "Assertion failed, ")


def _attribute_name(model_cls: type[BaseModel], key: Any) -> Optional[str]:
    """Map an input key (attribute name or camelCase alias) to the attribute."""
    if not isinstance(key, str):
        return None
    if key in model_cls.model_fields:
        return key
    for name, field in model_cls.model_fields.items():
        if field.alias == key:
            return name
    return None


def _issues_from_error(
    model_cls: type[BaseModel],
    error: ValidationError,
) -> list[ValidationIssue]:
    issues = []
    for detail in error.errors():
        loc = detail.get("loc") or ()
        field = RECORD_FIELD
        if loc:
            field = _attribute_name(model_cls, loc[0]) or str(loc[0])

        message = detail.get("msg", "Invalid value")
        for prefix in _MESSAGE_PREFIXES:
            if message.startswith(prefix):
                message = message[len(prefix):]

        issue_type = detail.get("type", "invalid")
        if issue_type == "missing":
            message = f"{field} is required"

        issues.append(ValidationIssue(
            field=field,
            issue_type=issue_type,
            message=message,
        ))
    return issues


# =============================================================================
# VALIDATOR
# =============================================================================

class EntityValidator:
    """
    Validates raw input against an entity schema.

    Stage 1 is the pydantic schema; stage 2 is RECORD_RULES.
    """

    def validate(
        self,
        model_cls: type[ModelT],
        raw: Mapping[str, Any],
    ) -> ValidationResult[ModelT]:
        """
        Run both stages over ``raw``.

        Args:
            model_cls: Entity schema (e.g. NewMember)
            raw: Loosely typed input, keys in snake_case or camelCase

        Returns:
            ValidationSuccess with the normalized record, or
            ValidationFailure with every issue found
        """
        # Stage 1: Schema validation
        try:
            record = model_cls.model_validate(dict(raw))
        except ValidationError as e:
            return ValidationFailure(issues=_issues_from_error(model_cls, e))

        # Stage 2: Record validation (only if stage 1 passed)
        issues = self.check_record(record)
        if issues:
            return ValidationFailure(issues=issues)

        return ValidationSuccess[model_cls](record=record)

    def check_record(self, record: BaseModel) -> list[ValidationIssue]:
        """Run the record-level rules for an already typed record."""
        issues: list[ValidationIssue] = []
        for rule in _rules_for(type(record)):
            issues.extend(rule(record))
        return issues

    def validate_patch(
        self,
        model_cls: type[ModelT],
        existing: BaseModel,
        patch: Mapping[str, Any],
        immutable: Iterable[str] = (),
    ) -> tuple[ValidationResult[ModelT], set[str]]:
        """
        Validate an edit by merging it over the stored record.

        The merged record goes through the same schema and rules as a
        newly created one. Keys whose value is None are treated as not
        provided and are left untouched.

        Returns:
            (result, changed_fields) where changed_fields holds the
            attribute names the patch actually sets
        """
        locked = set(immutable) | {"id"}
        issues: list[ValidationIssue] = []
        changes: dict[str, Any] = {}

        for key, value in patch.items():
            name = _attribute_name(model_cls, key)
            if name is None:
                issues.append(ValidationIssue(
                    field=str(key),
                    issue_type="unknown_field",
                    message=f"Unknown field: {key}",
                ))
            elif name in locked:
                issues.append(ValidationIssue(
                    field=name,
                    issue_type="immutable",
                    message=f"{name} cannot be changed",
                ))
            elif value is not None:
                changes[name] = value

        if issues:
            return ValidationFailure(issues=issues), set()

        merged = existing.model_dump()
        merged.update(changes)
        return self.validate(model_cls, merged), set(changes)


_default_validator = EntityValidator()


# =============================================================================
# CONVENIENCE ENTRY POINTS
# =============================================================================

def validate_sign_up(raw: Mapping[str, Any]) -> ValidationResult[SignUpInput]:
    return _default_validator.validate(SignUpInput, raw)


def validate_organization(raw: Mapping[str, Any]) -> ValidationResult[NewOrganization]:
    return _default_validator.validate(NewOrganization, raw)


def validate_member(raw: Mapping[str, Any]) -> ValidationResult[NewMember]:
    return _default_validator.validate(NewMember, raw)


def validate_fee(raw: Mapping[str, Any]) -> ValidationResult[NewFee]:
    return _default_validator.validate(NewFee, raw)


def validate_transaction(raw: Mapping[str, Any]) -> ValidationResult[TransactionEntry]:
    return _default_validator.validate(TransactionEntry, raw)


def validate_member_edit(
    existing: Member,
    patch: Mapping[str, Any],
) -> tuple[ValidationResult[Member], set[str]]:
    """Inline member edit, validated like a new member."""
    return _default_validator.validate_patch(
        Member, existing, patch, immutable=("org_id", "created_at")
    )


def format_issues(result: ValidationFailure) -> str:
    """
    Generate a user-friendly summary of validation issues.

    One line per issue, grouped by field in the order they were found.
    """
    lines = ["Please fix the following:"]
    for issue in result.issues:
        label = "record" if issue.field == RECORD_FIELD else issue.field.replace("_", " ")
        lines.append(f"   • {label}: {issue.message}")
    return "\n".join(lines)
