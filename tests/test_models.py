"""
Tests for OrgLedger models

Test strategy:
1. Unit tests for individual components (models, validators)
2. Repository and flow tests against the in-memory services
3. No real Firebase calls in tests
"""

import pytest
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from pydantic import ValidationError

from orgledger.models import (
    AssignmentStatus,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    FeeAssignment,
    Member,
    MemberRole,
    NewFee,
    NewFeeAssignment,
    NewMember,
    NewTransaction,
    PaymentMethod,
    SignUpInput,
    TransactionEntry,
    TransactionType,
    ValidationFailure,
    ValidationIssue,
)

from helpers import ORG_ID, VALID_PHONE, fee_input, member_input, transaction_input


class TestMemberModels:
    """Tests for member models."""

    def test_member_defaults(self):
        """Role defaults to MEMBER; phone and status are absent."""
        member = NewMember.model_validate(member_input())
        assert member.role == MemberRole.MEMBER
        assert member.phone_number is None
        assert member.status is None
        assert member.created_at.tzinfo is not None

    def test_email_is_lowercased(self):
        """Emails are stored lower-cased so uniqueness ignores case."""
        member = NewMember.model_validate(member_input(email="  Ada@Example.COM "))
        assert member.email == "ada@example.com"

    def test_role_accepts_any_case(self):
        member = NewMember.model_validate(member_input(role="admin"))
        assert member.role == MemberRole.ADMIN

    def test_blank_status_is_absent(self):
        member = NewMember.model_validate(member_input(status=""))
        assert member.status is None

    def test_unknown_role_rejected(self):
        with pytest.raises(ValidationError):
            NewMember.model_validate(member_input(role="OWNER"))

    def test_short_name_rejected(self):
        with pytest.raises(ValidationError):
            NewMember.model_validate(member_input(name="A"))

    def test_phone_is_canonicalized(self):
        member = NewMember.model_validate(member_input(phoneNumber="+1 (404) 555-1234"))
        assert member.phone_number == VALID_PHONE

    def test_blank_phone_is_absent(self):
        member = NewMember.model_validate(member_input(phoneNumber="   "))
        assert member.phone_number is None

    def test_snake_case_input_accepted(self):
        """Attribute names work as well as the stored camelCase names."""
        member = NewMember.model_validate({
            "name": "Ada Lovelace",
            "email": "ada@example.com",
            "org_id": ORG_ID,
            "phone_number": VALID_PHONE,
        })
        assert member.org_id == ORG_ID
        assert member.phone_number == VALID_PHONE

    def test_to_document_uses_stored_names(self):
        """Documents use camelCase keys, enum values, and leave out id and None."""
        member = Member.model_validate({**member_input(role="ADMIN"), "id": "m1"})
        document = member.to_document()
        assert document["orgId"] == ORG_ID
        assert document["role"] == "ADMIN"
        assert "id" not in document
        assert "phoneNumber" not in document
        assert "createdAt" in document


class TestFeeModels:
    """Tests for fee and assignment models."""

    def test_amount_string_is_parsed(self):
        fee = NewFee.model_validate(fee_input(amount="12.50"))
        assert fee.amount == 12.5

    def test_zero_amount_allowed(self):
        fee = NewFee.model_validate(fee_input(amount=0))
        assert fee.amount == 0

    def test_negative_amount_rejected(self):
        with pytest.raises(ValidationError):
            NewFee.model_validate(fee_input(amount="-5"))

    def test_non_finite_amount_rejected(self):
        with pytest.raises(ValidationError):
            NewFee.model_validate(fee_input(amount="nan"))

    def test_member_ids_deduplicated_in_order(self):
        fee = NewFee.model_validate(fee_input(memberIds=["m2", "m1", "m2", "m3", "m1"]))
        assert fee.member_ids == ["m2", "m1", "m3"]

    def test_blank_member_id_rejected(self):
        with pytest.raises(ValidationError):
            NewFee.model_validate(fee_input(memberIds=["m1", " "]))

    def test_naive_due_date_is_utc(self):
        fee = NewFee.model_validate(fee_input(dueDate=datetime(2024, 4, 1, 12, 0)))
        assert fee.due_date == datetime(2024, 4, 1, 12, 0, tzinfo=timezone.utc)

    def test_aware_due_date_converted_to_utc(self):
        plus_two = timezone(timedelta(hours=2))
        fee = NewFee.model_validate(fee_input(dueDate=datetime(2024, 4, 1, 12, 0, tzinfo=plus_two)))
        assert fee.due_date == datetime(2024, 4, 1, 10, 0, tzinfo=timezone.utc)
        assert fee.due_date.utcoffset() == timedelta(0)

    def test_assignment_starts_unpaid(self):
        assignment = NewFeeAssignment(fee_id="f1", member_id="m1")
        assert assignment.is_paid is False
        assert assignment.status == AssignmentStatus.UNPAID
        assert assignment.to_document() == {"feeId": "f1", "memberId": "m1", "isPaid": False}

    def test_payment_method_normalized(self):
        assignment = FeeAssignment.model_validate({
            "id": "a1",
            "feeId": "f1",
            "memberId": "m1",
            "isPaid": True,
            "paymentMethod": "credit card",
        })
        assert assignment.payment_method == PaymentMethod.CREDIT_CARD
        assert assignment.status == AssignmentStatus.PAID

    def test_blank_notes_absent(self):
        assignment = NewFeeAssignment(fee_id="f1", member_id="m1", notes="")
        assert assignment.notes is None


class TestTransactionModels:
    """Tests for transaction models."""

    def test_amount_string_is_parsed(self):
        transaction = NewTransaction.model_validate(transaction_input(amount="12.50"))
        assert transaction.amount == 12.5

    @pytest.mark.parametrize("amount", ["-5", "0", "0.001", "abc", "inf"])
    def test_bad_amounts_rejected(self, amount):
        with pytest.raises(ValidationError):
            TransactionEntry.model_validate(transaction_input(amount=amount))

    def test_stored_amount_may_be_zero(self):
        """Only entered amounts need a cent; derived entries may be zero."""
        transaction = NewTransaction.model_validate(transaction_input(amount="0"))
        assert transaction.amount == 0.0

    @pytest.mark.parametrize("amount", ["-0.01", "nan"])
    def test_stored_amount_non_negative(self, amount):
        with pytest.raises(ValidationError):
            NewTransaction.model_validate(transaction_input(amount=amount))

    def test_income_is_revenue(self):
        """The historical "Income" spelling normalizes to Revenue."""
        transaction = NewTransaction.model_validate(transaction_input(type="Income"))
        assert transaction.type == TransactionType.REVENUE

    def test_type_any_case(self):
        transaction = NewTransaction.model_validate(transaction_input(type="expense"))
        assert transaction.type == TransactionType.EXPENSE

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            NewTransaction.model_validate(transaction_input(type="Transfer"))

    def test_description_may_be_empty(self):
        transaction = NewTransaction.model_validate(transaction_input(description=None))
        assert transaction.description == ""

    def test_defaults(self):
        transaction = NewTransaction.model_validate({
            "type": "Revenue",
            "amount": 5,
            "createdBy": "user-1",
            "orgId": ORG_ID,
        })
        assert transaction.category == "Other"
        assert transaction.receipt_url is None
        assert transaction.date.tzinfo is not None

    def test_type_stored_by_value(self):
        transaction = NewTransaction.model_validate(transaction_input(type="income"))
        assert transaction.to_document()["type"] == "Revenue"


class TestSignUpInput:
    """Tests for the sign-up form model."""

    def test_password_never_in_profile(self):
        form = SignUpInput.model_validate({
            "name": "Grace Hopper",
            "email": "Grace@Example.com",
            "password": "correct-horse",
            "organizationName": "Navy Club",
        })
        profile = form.profile().to_document()
        assert profile == {"name": "Grace Hopper", "email": "grace@example.com"}
        assert "correct-horse" not in repr(form)

    def test_short_password_rejected(self):
        with pytest.raises(ValidationError):
            SignUpInput.model_validate({
                "name": "Grace Hopper",
                "email": "grace@example.com",
                "password": "short",
                "organizationName": "Navy Club",
            })


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.MEMBER_ADDED,
            description="Member added",
        )
        assert event.event_type == AuditEventType.MEMBER_ADDED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.FEE_CREATED,
            description="Fee created",
            details={"amount": 25.0},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "fee_created"
        assert log_dict["details"]["amount"] == 25.0

    def test_audit_event_to_document(self):
        """Documents keep the native timestamp and drop empty fields."""
        event = AuditEvent(
            event_type=AuditEventType.MEMBER_DELETED,
            description="Member deleted",
        )
        document = event.to_document()
        assert document["timestamp"] == event.timestamp
        assert "error_message" not in document
        assert "correlation_id" not in document

    def test_audit_event_builder_member_added(self):
        """Test AuditEventBuilder.member_added."""
        correlation_id = uuid4()

        event = AuditEventBuilder.member_added(
            member_id="m1",
            org_id=ORG_ID,
            email="ada@example.com",
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.MEMBER_ADDED
        assert event.entity_id == "m1"
        assert event.correlation_id == correlation_id

    def test_audit_event_builder_fan_out_failed(self):
        """Partial fan-out failures are logged as errors."""
        event = AuditEventBuilder.fan_out_failed(
            operation="add_fee",
            entity_id="f1",
            error_message="boom",
            completed=2,
            failed=1,
        )

        assert event.severity == AuditSeverity.ERROR
        assert event.details == {"operation": "add_fee", "completed": 2, "failed": 1}

    def test_audit_event_builder_constraint(self):
        event = AuditEventBuilder.validation_failed("fee", [{"field": "member_ids"}], constraint=True)
        assert event.event_type == AuditEventType.CONSTRAINT_VIOLATED


class TestValidationResult:
    """Tests for the validation result models."""

    def test_failure_requires_an_issue(self):
        with pytest.raises(ValidationError):
            ValidationFailure(issues=[])

    def test_failure_helpers(self):
        failure = ValidationFailure(issues=[
            ValidationIssue(field="amount", issue_type="greater_than_equal", message="too small"),
            ValidationIssue(field="amount", issue_type="other", message="also bad"),
            ValidationIssue(field="name", issue_type="missing", message="name is required"),
        ])
        assert failure.ok is False
        assert failure.fields == {"amount", "name"}
        assert failure.messages_for("amount") == ["too small", "also bad"]
        assert failure.is_constraint_failure is False

    def test_constraint_only_failure(self):
        failure = ValidationFailure(issues=[
            ValidationIssue(field="member_ids", issue_type="constraint", message="empty"),
        ])
        assert failure.is_constraint_failure is True


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
