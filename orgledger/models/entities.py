"""
Core Data Models for OrgLedger

These models define the strict schemas for every persisted entity.
They are designed to:
1. Enforce type safety at runtime
2. Normalize untrusted input (phone numbers, amounts, dates, emails)
3. Provide clear validation error messages
4. Round-trip through the document store under camelCase field names

DESIGN DECISION: Only one schema version exists per entity. Historical
spellings seen in stored data or old forms ("Income", lowercase roles)
are accepted on input and normalized to the canonical values.

Each entity has a ``New*`` model (what a caller submits, no id yet) and a
persisted model that adds the store-assigned ``id``.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import (
    AfterValidator,
    BeforeValidator,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    SecretStr,
    field_validator,
)
from pydantic.alias_generators import to_camel

from orgledger.phone import get_phone_normalizer


SYSTEM_CREATOR_ID = "system"
MEMBERSHIP_FEES_CATEGORY = "Membership Fees"
MIN_TRANSACTION_AMOUNT = 0.01
PASSWORD_MIN_LENGTH = 8


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC; aware ones are converted."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class MemberRole(str, Enum):
    """Role of a member inside an organization."""
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


class MemberStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class PaymentMethod(str, Enum):
    """How a fee assignment was paid."""
    CASH = "CASH"
    CHECK = "CHECK"
    VENMO = "VENMO"
    ZELLE = "ZELLE"
    CREDIT_CARD = "CREDIT_CARD"
    OTHER = "OTHER"


class AssignmentStatus(str, Enum):
    """
    Fee assignment lifecycle.

    UNPAID -> PAID is the only transition. PAID is terminal.
    """
    UNPAID = "UNPAID"
    PAID = "PAID"


class TransactionType(str, Enum):
    """
    Ledger entry direction.

    "Income" is an older spelling of REVENUE and is normalized on input.
    """
    REVENUE = "Revenue"
    EXPENSE = "Expense"


TRANSACTION_CATEGORIES = (
    "Other",
    "Event",
    "Supplies",
    "Membership",
    "Sponsorship",
    MEMBERSHIP_FEES_CATEGORY,
)


# =============================================================================
# BASE MODEL
# =============================================================================

class LedgerModel(BaseModel):
    """
    Base for all stored entities.

    Attributes are snake_case; the stored and accepted input names are
    camelCase aliases (``org_id`` <-> ``orgId``). Either spelling is
    accepted on input.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_document(self) -> dict[str, Any]:
        """
        Convert to the stored document shape.

        The ``id`` is never part of the document body, None-valued
        optional fields are left out, enums are stored by value.
        """
        data = self.model_dump(by_alias=True, exclude={"id"}, exclude_none=True)
        return {key: _plain(value) for key, value in data.items()}


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, SecretStr):
        return value.get_secret_value()
    if isinstance(value, list):
        return [_plain(item) for item in value]
    return value


def _normalize_email(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower()
    return value


def _normalize_phone(value: str) -> Optional[str]:
    return get_phone_normalizer().normalize_optional(value)


LowerEmail = Annotated[EmailStr, BeforeValidator(_normalize_email)]
# Blank strings normalize to None ("absent")
PhoneNumber = Annotated[str, AfterValidator(_normalize_phone)]


# =============================================================================
# USERS & ORGANIZATIONS
# =============================================================================

class SignUpInput(LedgerModel):
    """
    Sign-up form input.

    The password is handed to the identity provider and never written to
    any application document.
    """

    name: str = Field(
        ...,
        min_length=2,
        max_length=100,
        description="Display name"
    )
    email: LowerEmail = Field(
        ...,
        description="Login email"
    )
    password: SecretStr = Field(
        ...,
        description="Password (write-only), at least PASSWORD_MIN_LENGTH characters"
    )
    phone_number: Optional[PhoneNumber] = Field(
        default=None,
        description="Phone number, normalized to E.164; blank means absent"
    )
    organization_name: str = Field(
        ...,
        min_length=2,
        max_length=100,
        description="Name of the organization created for this user"
    )

    @field_validator('password')
    @classmethod
    def password_long_enough(cls, v: SecretStr) -> SecretStr:
        if len(v.get_secret_value()) < PASSWORD_MIN_LENGTH:
            raise ValueError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
        return v

    def profile(self) -> "UserProfile":
        return UserProfile(
            name=self.name,
            email=self.email,
            phone_number=self.phone_number,
        )


class UserProfile(LedgerModel):
    """The users/{uid} document."""

    name: str = Field(..., min_length=1)
    email: LowerEmail
    phone_number: Optional[PhoneNumber] = None


class NewOrganization(LedgerModel):
    """An organization before it is stored."""

    name: str = Field(
        ...,
        min_length=2,
        max_length=100,
        description="Organization name"
    )
    owner_id: str = Field(
        ...,
        min_length=1,
        description="Identity-provider id of the single owning user"
    )
    created_at: UtcDatetime = Field(default_factory=utc_now)


class Organization(NewOrganization):
    id: str


# =============================================================================
# MEMBERS
# =============================================================================

class NewMember(LedgerModel):
    """
    A member before it is stored.

    (org_id, email) must be unique; the email is lower-cased so the
    uniqueness check is case-insensitive.
    """

    name: str = Field(
        ...,
        min_length=2,
        max_length=100,
        description="Member name"
    )
    email: LowerEmail = Field(
        ...,
        description="Member email, unique within the organization"
    )
    org_id: str = Field(
        ...,
        min_length=1,
        description="Owning organization"
    )
    role: MemberRole = Field(
        default=MemberRole.MEMBER,
        description="ADMIN or MEMBER"
    )
    phone_number: Optional[PhoneNumber] = Field(
        default=None,
        description="Phone number, normalized to E.164; blank means absent"
    )
    status: Optional[MemberStatus] = None
    created_at: UtcDatetime = Field(default_factory=utc_now)

    @field_validator('role', 'status', mode='before')
    @classmethod
    def upper_enum_input(cls, v: Any) -> Any:
        """Accept 'admin' / 'Member' style input."""
        if isinstance(v, str):
            return v.strip().upper() or None
        return v


class Member(NewMember):
    id: str


# =============================================================================
# FEES & ASSIGNMENTS
# =============================================================================

class NewFee(LedgerModel):
    """
    A fee before it is stored.

    ``member_ids`` lists who must pay. Duplicates are dropped, first
    occurrence wins. An empty list passes field validation but is
    rejected by the record-level check (see orgledger.validation).
    """

    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Fee name"
    )
    amount: float = Field(
        ...,
        ge=0,
        allow_inf_nan=False,
        description="Amount owed by each assigned member"
    )
    due_date: UtcDatetime = Field(
        ...,
        description="When the fee is due"
    )
    member_ids: list[str] = Field(
        default_factory=list,
        description="Members assigned to this fee"
    )
    org_id: str = Field(
        ...,
        min_length=1,
        description="Owning organization"
    )

    @field_validator('member_ids')
    @classmethod
    def dedupe_member_ids(cls, v: list[str]) -> list[str]:
        seen: dict[str, None] = {}
        for member_id in v:
            member_id = member_id.strip()
            if not member_id:
                raise ValueError("Member ids cannot be blank")
            seen.setdefault(member_id, None)
        return list(seen)


class Fee(NewFee):
    id: str


class NewFeeAssignment(LedgerModel):
    """One member's obligation for one fee."""

    fee_id: str = Field(..., min_length=1)
    member_id: str = Field(..., min_length=1)
    is_paid: bool = False
    paid_date: Optional[UtcDatetime] = None
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = Field(
        default=None,
        max_length=1000,
        description="Free-form payment notes"
    )
    transaction_id: Optional[str] = Field(
        default=None,
        description="Transaction created when this assignment was paid"
    )

    @field_validator('payment_method', mode='before')
    @classmethod
    def upper_payment_method(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            return v.upper().replace(" ", "_") if v else None
        return v

    @field_validator('notes')
    @classmethod
    def blank_notes_absent(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @property
    def status(self) -> AssignmentStatus:
        return AssignmentStatus.PAID if self.is_paid else AssignmentStatus.UNPAID


class FeeAssignment(NewFeeAssignment):
    id: str


# =============================================================================
# TRANSACTIONS
# =============================================================================

class NewTransaction(LedgerModel):
    """
    A ledger entry before it is stored.

    Transactions are immutable once created; there is no update path.
    Derived entries (fee payments) may carry a zero amount; user input
    goes through TransactionEntry.
    """

    type: TransactionType = Field(
        ...,
        description="Revenue or Expense"
    )
    amount: float = Field(
        ...,
        ge=0,
        allow_inf_nan=False,
        description="Non-negative amount"
    )
    category: str = Field(
        default="Other",
        min_length=1,
        max_length=100,
        description="Category; see TRANSACTION_CATEGORIES for common values"
    )
    description: str = Field(
        default="",
        max_length=500,
    )
    date: UtcDatetime = Field(
        default_factory=utc_now,
        description="When the money moved"
    )
    created_at: UtcDatetime = Field(default_factory=utc_now)
    created_by: str = Field(
        ...,
        min_length=1,
        description="User id of the author, or 'system' for derived entries"
    )
    org_id: str = Field(..., min_length=1)
    receipt_url: Optional[str] = Field(
        default=None,
        description="URL of the uploaded receipt"
    )

    @field_validator('type', mode='before')
    @classmethod
    def canonical_type(cls, v: Any) -> Any:
        if isinstance(v, str):
            key = v.strip().lower()
            if key in ("revenue", "income"):
                return TransactionType.REVENUE
            if key == "expense":
                return TransactionType.EXPENSE
        return v

    @field_validator('description', mode='before')
    @classmethod
    def none_description_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator('receipt_url')
    @classmethod
    def blank_receipt_absent(cls, v: Optional[str]) -> Optional[str]:
        return v or None


class TransactionEntry(NewTransaction):
    """A transaction typed in by a user; the amount is at least one cent."""

    amount: float = Field(
        ...,
        ge=MIN_TRANSACTION_AMOUNT,
        allow_inf_nan=False,
        description="Positive amount"
    )


class Transaction(NewTransaction):
    id: str
