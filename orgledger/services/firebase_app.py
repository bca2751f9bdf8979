"""Shared firebase-admin application for the Auth and Storage services."""

from typing import Optional

import firebase_admin
from firebase_admin import credentials

from orgledger.config import FirebaseSettings, get_settings


APP_NAME = "orgledger"


def get_firebase_app(settings: Optional[FirebaseSettings] = None) -> firebase_admin.App:
    """Initialize the named firebase-admin app once and reuse it."""
    try:
        return firebase_admin.get_app(APP_NAME)
    except ValueError:
        settings = settings or get_settings().firebase
        return firebase_admin.initialize_app(
            credentials.Certificate(settings.credentials_path),
            {
                "projectId": settings.project_id,
                "storageBucket": settings.bucket_name,
            },
            name=APP_NAME,
        )
