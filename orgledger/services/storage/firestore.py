"""
Firestore Storage Implementation

DESIGN DECISION: Firestore is the production backend because:
1. The organization's data is a handful of small, independent documents
2. Live queries come built in (transactions screen updates itself)
3. Atomic write batches close the fee -> assignment fan-out gap
4. Firebase Auth and Storage live in the same project

TRADEOFFS:
- Equality queries only (all we need)
- Listeners run on a background thread (callers bridge to asyncio)

Timestamps cross the boundary as Firestore's native timestamp type and
are converted back to plain UTC datetimes on read.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from google.api_core import exceptions as google_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from orgledger.config import FirebaseSettings, get_settings
from orgledger.services.storage.interface import (
    AlreadyExistsError,
    Document,
    DocumentStore,
    NotFoundError,
    SnapshotCallback,
    StorageError,
    StoreConnectionError,
    Subscription,
    WriteBatch,
)


def _decode_value(value: Any) -> Any:
    if isinstance(value, datetime):
        value = value.astimezone(timezone.utc)
        return datetime(
            value.year, value.month, value.day,
            value.hour, value.minute, value.second, value.microsecond,
            tzinfo=timezone.utc,
        )
    if isinstance(value, list):
        return [_decode_value(item) for item in value]
    if isinstance(value, dict):
        return {key: _decode_value(item) for key, item in value.items()}
    return value


def _decode(snapshot) -> Document:
    document = {key: _decode_value(value) for key, value in (snapshot.to_dict() or {}).items()}
    document["id"] = snapshot.id
    return document


def _encode(record: Document) -> Document:
    return {key: value for key, value in record.items() if key != "id"}


class FirestoreClient:
    """
    Low-level Firestore client wrapper.

    Holds an async client for reads and writes and a sync client for
    listeners (the async client does not support on_snapshot).
    """

    def __init__(self, settings: Optional[FirebaseSettings] = None):
        self._settings = settings or get_settings().firebase
        self._async_client: Optional[firestore.AsyncClient] = None
        self._sync_client: Optional[firestore.Client] = None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> firestore.AsyncClient:
        """
        Establish the Firestore clients.

        Uses service account credentials for authentication.
        """
        if self._async_client is None:
            try:
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                )
                self._async_client = firestore.AsyncClient(
                    project=self._settings.project_id,
                    credentials=credentials,
                )
                self._sync_client = firestore.Client(
                    project=self._settings.project_id,
                    credentials=credentials,
                )
            except FileNotFoundError as e:
                raise StoreConnectionError(
                    f"Firebase credentials file not found: {self._settings.credentials_path}"
                ) from e
            except Exception as e:
                raise StoreConnectionError(f"Failed to connect to Firestore: {e}") from e

        return self._async_client

    @property
    def listener_client(self) -> firestore.Client:
        self.connect()
        return self._sync_client


class FirestoreDocumentStore(DocumentStore):
    """Firestore implementation of the document store."""

    def __init__(self, client: Optional[FirestoreClient] = None):
        self._client = client or FirestoreClient()

    @property
    def _db(self) -> firestore.AsyncClient:
        return self._client.connect()

    async def insert(
        self,
        collection: str,
        record: Document,
        doc_id: Optional[str] = None,
    ) -> str:
        try:
            if doc_id is None:
                _, ref = await self._db.collection(collection).add(_encode(record))
                return ref.id
            await self._db.collection(collection).document(doc_id).create(_encode(record))
            return doc_id
        except google_exceptions.Conflict as e:
            raise AlreadyExistsError(f"{collection}/{doc_id} already exists") from e
        except google_exceptions.GoogleAPICallError as e:
            raise StorageError(f"Failed to insert into {collection}: {e}") from e

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        try:
            snapshot = await self._db.collection(collection).document(doc_id).get()
        except google_exceptions.GoogleAPICallError as e:
            raise StorageError(f"Failed to read {collection}/{doc_id}: {e}") from e
        return _decode(snapshot) if snapshot.exists else None

    async def query_by_equality(self, collection: str, **criteria: Any) -> list[Document]:
        query = self._db.collection(collection)
        for key, value in criteria.items():
            query = query.where(filter=FieldFilter(key, "==", value))
        try:
            return [_decode(snapshot) async for snapshot in query.stream()]
        except google_exceptions.GoogleAPICallError as e:
            raise StorageError(f"Failed to query {collection}: {e}") from e

    async def update(self, collection: str, doc_id: str, fields: Document) -> None:
        try:
            await self._db.collection(collection).document(doc_id).update(_encode(fields))
        except google_exceptions.NotFound as e:
            raise NotFoundError(f"{collection}/{doc_id} not found") from e
        except google_exceptions.GoogleAPICallError as e:
            raise StorageError(f"Failed to update {collection}/{doc_id}: {e}") from e

    async def delete(self, collection: str, doc_id: str) -> None:
        try:
            await self._db.collection(collection).document(doc_id).delete()
        except google_exceptions.GoogleAPICallError as e:
            raise StorageError(f"Failed to delete {collection}/{doc_id}: {e}") from e

    def subscribe(
        self,
        collection: str,
        criteria: dict[str, Any],
        callback: SnapshotCallback,
    ) -> Subscription:
        query = self._client.listener_client.collection(collection)
        for key, value in criteria.items():
            query = query.where(filter=FieldFilter(key, "==", value))

        def on_snapshot(snapshots, changes, read_time) -> None:
            callback([_decode(snapshot) for snapshot in snapshots])

        watch = query.on_snapshot(on_snapshot)
        return Subscription(watch.unsubscribe)

    def batch(self) -> WriteBatch:
        return FirestoreWriteBatch(self._db)


class FirestoreWriteBatch(WriteBatch):
    """Thin wrapper over Firestore's atomic WriteBatch."""

    def __init__(self, db: firestore.AsyncClient):
        self._db = db
        self._batch = db.batch()

    def insert(self, collection: str, record: Document) -> str:
        ref = self._db.collection(collection).document()
        self._batch.create(ref, _encode(record))
        return ref.id

    def update(self, collection: str, doc_id: str, fields: Document) -> None:
        self._batch.update(self._db.collection(collection).document(doc_id), _encode(fields))

    def delete(self, collection: str, doc_id: str) -> None:
        self._batch.delete(self._db.collection(collection).document(doc_id))

    async def commit(self) -> None:
        try:
            await self._batch.commit()
        except google_exceptions.NotFound as e:
            raise NotFoundError(f"Batch referenced a missing document: {e}") from e
        except google_exceptions.GoogleAPICallError as e:
            raise StorageError(f"Failed to commit batch: {e}") from e
