"""
Shared fixtures.

Every test runs against the in-memory store, identity provider and blob
store; nothing talks to Firebase.
"""

import pytest

from orgledger.audit import AuditLogger
from orgledger.config import FanOutMode
from orgledger.repository import (
    FeeRepository,
    MemberRepository,
    OrganizationRepository,
    TransactionRepository,
)
from orgledger.services.blob import InMemoryBlobStore
from orgledger.services.identity import InMemoryIdentityProvider
from orgledger.services.storage import InMemoryDocumentStore


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def identity_provider():
    return InMemoryIdentityProvider()


@pytest.fixture
def blob_store():
    return InMemoryBlobStore()


@pytest.fixture
def audit_logger(store):
    return AuditLogger(store)


@pytest.fixture
def members(store, audit_logger):
    return MemberRepository(store, audit_logger)


@pytest.fixture
def transactions(store, audit_logger):
    return TransactionRepository(store, audit_logger)


@pytest.fixture
def organizations(store, audit_logger):
    return OrganizationRepository(store, audit_logger)


@pytest.fixture(params=[FanOutMode.ATOMIC, FanOutMode.BEST_EFFORT], ids=["atomic", "best_effort"])
def fees(request, store, transactions, audit_logger):
    """Fee repository in each fan-out mode."""
    return FeeRepository(
        store,
        transactions=transactions,
        audit_logger=audit_logger,
        fan_out_mode=request.param,
    )
