"""
Receipt Storage using Firebase Storage

Receipts go to the project's default bucket. The returned URL is a
signed download URL; its lifetime comes from
AppSettings.receipt_url_ttl_days.
"""

import asyncio
from datetime import timedelta
from typing import Optional

from firebase_admin import storage
from google.api_core import exceptions as google_exceptions

from orgledger.config import AppSettings, FirebaseSettings, get_settings
from orgledger.services.blob.interface import BlobStorageError, BlobStore
from orgledger.services.firebase_app import get_firebase_app


class FirebaseBlobStore(BlobStore):
    """Blob store backed by a Cloud Storage bucket."""

    def __init__(
        self,
        settings: Optional[FirebaseSettings] = None,
        app_settings: Optional[AppSettings] = None,
    ):
        self._settings = settings or get_settings().firebase
        self._app_settings = app_settings or get_settings().app
        self._bucket = storage.bucket(app=get_firebase_app(self._settings))

    def _upload(self, path: str, data: bytes, content_type: str) -> str:
        blob = self._bucket.blob(path)
        blob.upload_from_string(data, content_type=content_type)
        return blob.generate_signed_url(
            expiration=timedelta(days=self._app_settings.receipt_url_ttl_days),
            version="v4",
        )

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        try:
            return await asyncio.to_thread(self._upload, path, data, content_type)
        except google_exceptions.GoogleAPICallError as e:
            raise BlobStorageError(f"Failed to upload {path}: {e}") from e
