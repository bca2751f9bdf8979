"""
Repository Base

Shared plumbing for the entity repositories:
- collection names
- turning raw input into a validated record (or raising)
- decoding stored documents into persisted models
- best-effort audit logging
"""

from collections.abc import Iterable, Mapping
from typing import Any, Optional, TypeVar, Union

import structlog
from pydantic import BaseModel, ValidationError

from orgledger.audit import AuditLogger
from orgledger.models.audit import AuditEvent, AuditEventBuilder
from orgledger.models.validation import ValidationFailure
from orgledger.repository.errors import EntityNotFoundError, ValidationFailedError
from orgledger.services.storage import Document, DocumentStore
from orgledger.validation import EntityValidator


ModelT = TypeVar("ModelT", bound=BaseModel)


# Collection names as stored in Firestore
ORGANIZATIONS = "organizations"
USERS = "users"
MEMBERS = "members"
FEES = "fees"
FEE_ASSIGNMENTS = "feeAssignments"
TRANSACTIONS = "transactions"


logger = structlog.get_logger(__name__)


def decode_documents(model_cls: type[ModelT], documents: Iterable[Document]) -> list[ModelT]:
    """
    Decode stored documents, skipping any that no longer fit the schema.

    Legacy rows that fail validation are logged and left out rather than
    failing the whole read.
    """
    records = []
    for document in documents:
        try:
            records.append(model_cls.model_validate(document))
        except ValidationError as e:
            logger.warning(
                "skipped_malformed_document",
                model=model_cls.__name__,
                doc_id=document.get("id"),
                error_count=e.error_count(),
            )
    return records


def patch_document(record: BaseModel, changed: Iterable[str]) -> Document:
    """
    Stored field values for the attributes in ``changed``.

    Fields cleared to None are written as None so the stored value is
    cleared too.
    """
    document = record.to_document()
    fields = type(record).model_fields
    return {
        fields[name].alias or name: document.get(fields[name].alias or name)
        for name in changed
    }


class BaseRepository:
    """Store, validator and audit logger shared by every repository."""

    def __init__(
        self,
        store: DocumentStore,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[EntityValidator] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._validator = validator or EntityValidator()

    async def _audit(self, event: AuditEvent) -> None:
        if self._audit_logger:
            await self._audit_logger.log(event)

    async def _reject(self, entity_type: str, failure: ValidationFailure) -> None:
        await self._audit(AuditEventBuilder.validation_failed(
            entity_type=entity_type,
            issues=[issue.model_dump() for issue in failure.issues],
            constraint=failure.is_constraint_failure,
        ))
        raise ValidationFailedError.from_failure(entity_type, failure)

    async def _coerce(
        self,
        model_cls: type[ModelT],
        candidate: Union[ModelT, Mapping[str, Any]],
        entity_type: str,
    ) -> ModelT:
        """
        Validate ``candidate`` into a ``model_cls`` record.

        Already typed records skip the schema stage but still go through
        the record-level rules.

        Raises:
            ValidationFailedError: Field violations
            ConstraintError: Record-level violations only
        """
        if isinstance(candidate, model_cls):
            issues = self._validator.check_record(candidate)
            if issues:
                await self._reject(entity_type, ValidationFailure(issues=issues))
            return candidate

        result = self._validator.validate(model_cls, candidate)
        if not result.ok:
            await self._reject(entity_type, result)
        return result.record

    async def _patched(
        self,
        model_cls: type[ModelT],
        existing: ModelT,
        fields: Mapping[str, Any],
        entity_type: str,
        immutable: Iterable[str] = (),
    ) -> tuple[ModelT, set[str]]:
        """Merge ``fields`` over ``existing`` and validate the result."""
        result, changed = self._validator.validate_patch(
            model_cls, existing, fields, immutable=immutable
        )
        if not result.ok:
            await self._reject(entity_type, result)
        return result.record, changed

    async def _read(
        self,
        model_cls: type[ModelT],
        collection: str,
        doc_id: str,
    ) -> Optional[ModelT]:
        document = await self._store.get(collection, doc_id)
        if document is None:
            return None
        return model_cls.model_validate(document)

    async def _require(
        self,
        model_cls: type[ModelT],
        collection: str,
        doc_id: str,
        entity_type: str,
    ) -> ModelT:
        record = await self._read(model_cls, collection, doc_id)
        if record is None:
            raise EntityNotFoundError(entity_type, doc_id)
        return record
