"""Audit logging package."""

from orgledger.audit.logger import (
    AUDIT_COLLECTION,
    AuditLogger,
    configure_logging,
    create_correlation_id,
)

__all__ = ["AUDIT_COLLECTION", "AuditLogger", "configure_logging", "create_correlation_id"]
