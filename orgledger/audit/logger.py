"""
Audit Logger

DESIGN DECISION: Every write the repository performs is logged.
This provides:
1. Complete traceability of an organization's books
2. Visibility into multi-document writes that only partly landed
3. Debugging capability

The audit logger:
- Is async so it fits the repository's call flow
- Gracefully handles failures (a failed audit write never fails the
  operation being audited)
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from orgledger.models.audit import AuditEvent, AuditSeverity
from orgledger.services.storage import DocumentStore


AUDIT_COLLECTION = "audit_events"


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through the stdlib root logger at ``level``."""
    logging.basicConfig(format="%(message)s", level=level.upper())


# Local log level per audit severity
_SEVERITY_LEVELS = {
    AuditSeverity.DEBUG: logging.DEBUG,
    AuditSeverity.INFO: logging.INFO,
    AuditSeverity.WARNING: logging.WARNING,
    AuditSeverity.ERROR: logging.ERROR,
    AuditSeverity.CRITICAL: logging.CRITICAL,
}


class AuditLogger:
    """
    Audit trail of an organization's books.

    Every event goes to the local structured log. With a store, it is
    also appended to the audit_events collection.
    """

    def __init__(self, store: Optional[DocumentStore] = None):
        self._store = store
        self._logger = structlog.get_logger("orgledger.audit")

    @property
    def persistent(self) -> bool:
        return self._store is not None

    async def log(self, event: AuditEvent) -> bool:
        """
        Record one audit event.

        Returns:
            False if the store rejected the event, True otherwise
        """
        entry = event.to_log_dict()
        log = self._logger.bind(
            event_type=entry.pop("event_type"),
            org_id=entry.pop("org_id"),
            correlation_id=entry.pop("correlation_id"),
        )
        log.log(_SEVERITY_LEVELS[event.severity], "audit_event", **entry)

        if not self.persistent:
            return True

        try:
            await self._store.insert(AUDIT_COLLECTION, event.to_document())
        except Exception as e:
            # Logged, never raised
            log.error("audit_storage_failed", error=str(e), event_id=entry["event_id"])
            return False
        return True


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a multi-step action (e.g., a CSV import)
    and pass it through all subsequent operations.
    """
    return uuid4()
