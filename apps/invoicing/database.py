from __future__ import annotations

import logging
import os
import threading
from typing import Any, Dict

import firebase_admin
from firebase_admin import credentials, firestore

from .settings import settings

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_client = None


def _init_app() -> None:
    # Initialize Firebase only once
    if firebase_admin._apps:
        return

    options: Dict[str, Any] = {}
    if settings.FIREBASE_PROJECT_ID:
        options["projectId"] = settings.FIREBASE_PROJECT_ID

    key_path = settings.FIREBASE_CREDENTIALS_PATH
    if key_path and os.path.exists(key_path):
        cred = credentials.Certificate(key_path)
    else:
        logger.info("Service account key not found at %s; using application default credentials", key_path)
        cred = credentials.ApplicationDefault()
    firebase_admin.initialize_app(cred, options or None)


def get_db():
    """Return the process-wide Firestore client, initializing the app on first use."""
    global _client
    with _lock:
        if _client is None:
            _init_app()
            _client = firestore.client()
        return _client
