"""Entity repositories over the document store."""

from orgledger.repository.base import (
    FEE_ASSIGNMENTS,
    FEES,
    MEMBERS,
    ORGANIZATIONS,
    TRANSACTIONS,
    USERS,
)
from orgledger.repository.errors import (
    ConstraintError,
    DuplicateMemberError,
    EntityNotFoundError,
    FanOutError,
    InvalidTransitionError,
    OrgLedgerError,
    ValidationFailedError,
)
from orgledger.repository.fees import FeeRepository
from orgledger.repository.members import MemberRepository
from orgledger.repository.organizations import OrganizationRepository
from orgledger.repository.transactions import TransactionRepository, TransactionStream

__all__ = [
    # Collections
    "FEE_ASSIGNMENTS",
    "FEES",
    "MEMBERS",
    "ORGANIZATIONS",
    "TRANSACTIONS",
    "USERS",
    # Errors
    "ConstraintError",
    "DuplicateMemberError",
    "EntityNotFoundError",
    "FanOutError",
    "InvalidTransitionError",
    "OrgLedgerError",
    "ValidationFailedError",
    # Repositories
    "FeeRepository",
    "MemberRepository",
    "OrganizationRepository",
    "TransactionRepository",
    "TransactionStream",
]
