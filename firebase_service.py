"""
Firebase Service
Firestore document store and Firebase Authentication access for LogiTx
"""

import logging
import os
from typing import Optional
from flask import current_app, has_app_context
from firebase_admin import credentials, firestore, auth, initialize_app
from google.cloud.firestore_v1 import FieldFilter
import firebase_admin

from services.errors import StoreError

logger = logging.getLogger(__name__)

DEFAULT_CREDENTIALS_FILE = 'firebase-service-account.json'


class FirestoreService:
    """Lazily initialised Firebase Admin app with Firestore client access"""

    def __init__(self):
        self._app = None
        self._initialized = False

    def _credentials_path(self) -> Optional[str]:
        for candidate in (os.environ.get('FIREBASE_CREDENTIALS'),
                          os.environ.get('GOOGLE_APPLICATION_CREDENTIALS'),
                          DEFAULT_CREDENTIALS_FILE):
            if candidate and os.path.exists(candidate):
                return candidate
        return None

    def initialize(self) -> bool:
        """Initialize Firebase Admin SDK"""
        if self._initialized:
            return True

        try:
            if not firebase_admin._apps:
                path = self._credentials_path()
                project_id = os.environ.get('FIREBASE_PROJECT_ID')
                if path:
                    cred = credentials.Certificate(path)
                elif project_id:
                    # Running on GCP with ambient service account
                    cred = credentials.ApplicationDefault()
                else:
                    logger.warning("Firebase credentials not found. Document store disabled.")
                    return False

                options = {'projectId': project_id} if project_id else None
                self._app = initialize_app(cred, options)
                logger.info("Firebase Admin SDK initialized successfully")
            else:
                self._app = firebase_admin.get_app()

            self._initialized = True
            return True

        except Exception as e:
            logger.error(f"Failed to initialize Firebase: {str(e)}")
            return False

    def client(self):
        """Return a Firestore client, raising StoreError when Firebase is unavailable"""
        if not self.initialize():
            raise StoreError("Document store is not configured")
        return firestore.client(self._app)

    def create_user(self, email: str, password: str, display_name: Optional[str] = None) -> str:
        """
        Create a Firebase Authentication user.

        Returns:
            str: the new user's uid

        Raises:
            auth.EmailAlreadyExistsError: the email is already registered
        """
        if not self.initialize():
            raise StoreError("Authentication provider is not configured")
        user = auth.create_user(email=email, password=password, display_name=display_name)
        logger.info(f"Firebase user created: {user.uid}")
        return user.uid


firestore_service = FirestoreService()


def get_store():
    """
    Firestore client for the current request.

    ``FIRESTORE_CLIENT`` in the app config takes precedence so tests and
    emulators can inject their own client.
    """
    if has_app_context():
        override = current_app.config.get('FIRESTORE_CLIENT')
        if override is not None:
            return override
    return firestore_service.client()


def where_equals(query, field: str, value):
    """Apply an equality filter using the keyword filter API"""
    return query.where(filter=FieldFilter(field, '==', value))


def snapshot_to_record(snapshot) -> dict:
    """Flatten a document snapshot into a dict carrying its id"""
    record = {'id': snapshot.id}
    record.update(snapshot.to_dict() or {})
    return record


SERVER_TIMESTAMP = firestore.SERVER_TIMESTAMP
