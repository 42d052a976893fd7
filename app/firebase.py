"""Process-wide handles to Firebase: Admin app, Firestore client, Identity Toolkit HTTP client"""

import logging
from typing import Optional

import firebase_admin
import httpx
from firebase_admin import credentials, firestore

from .config import GOOGLE_APPLICATION_CREDENTIALS, load_firebase_config, validate_firebase_config

logger = logging.getLogger(__name__)

_firestore_client = None
_http_client: Optional[httpx.AsyncClient] = None


def get_firebase_app() -> firebase_admin.App:
    """Initialize Firebase Admin SDK (only once)"""
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    config = validate_firebase_config(load_firebase_config())
    options = {"projectId": config.projectId, "storageBucket": config.storageBucket}

    if GOOGLE_APPLICATION_CREDENTIALS:
        cred = credentials.Certificate(GOOGLE_APPLICATION_CREDENTIALS)
        app = firebase_admin.initialize_app(cred, options)
        logger.info("Firebase Admin initialized with service account credentials")
        return app

    try:
        cred = credentials.ApplicationDefault()
        app = firebase_admin.initialize_app(cred, options)
        logger.info("Firebase Admin initialized with default credentials")
    except Exception:
        # Emulator / local setups without credentials
        app = firebase_admin.initialize_app(options=options)
        logger.info("Firebase Admin initialized with project ID only")
    return app


def get_firestore():
    """Get the Firestore client shared by all repositories"""
    global _firestore_client
    if _firestore_client is None:
        _firestore_client = firestore.client(get_firebase_app())
        logger.info("✅ Firestore client created")
    return _firestore_client


def get_http_client() -> httpx.AsyncClient:
    """Get the HTTP client used for Identity Toolkit calls"""
    global _http_client
    if _http_client is None or _http_client.is_closed:
        _http_client = httpx.AsyncClient()
    return _http_client


async def close_http_client() -> None:
    global _http_client
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None
