"""
Firebase Admin helpers

Only ID token verification is needed by the API. Helpers return
``(result, error)`` tuples instead of raising, and the caller maps the error
to an HTTP status.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional, Tuple

import firebase_admin
from firebase_admin import auth as firebase_auth, credentials
from firebase_admin.exceptions import FirebaseError

from soulseer.core.config import settings

logger = logging.getLogger(__name__)

APP_NAME = "soulseer-admin"


class FirebaseAdminService:
    """
    Thin wrapper around the firebase-admin SDK app used for token checks
    """

    _app: Optional[firebase_admin.App] = None

    @classmethod
    def get_app(cls) -> Optional[firebase_admin.App]:
        """
        Initialise the admin app once. Returns None when Firebase is not
        configured so the API can run on local JWTs only.
        """
        if cls._app is not None:
            return cls._app

        if not settings.firebase_enabled:
            return None

        try:
            cls._app = firebase_admin.get_app(APP_NAME)
            return cls._app
        except ValueError:
            pass

        try:
            if settings.FIREBASE_CREDENTIALS_PATH:
                credential = credentials.Certificate(str(settings.FIREBASE_CREDENTIALS_PATH))
            else:
                credential = credentials.ApplicationDefault()

            options = {}
            if settings.FIREBASE_PROJECT_ID:
                options["projectId"] = settings.FIREBASE_PROJECT_ID

            cls._app = firebase_admin.initialize_app(credential, options, name=APP_NAME)
            logger.info("Firebase Admin SDK initialized")
        except Exception as e:
            logger.error(f"Firebase Admin SDK initialization failed: {e}")
            if settings.DEPLOY_PHASE == "prod":
                raise
            cls._app = None

        return cls._app

    @classmethod
    async def verify_id_token(cls, id_token: str) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
        """
        Verify a Firebase ID token.

        Returns:
            success: (decoded claims, None)
            failure: (None, error message)
        """
        app = cls.get_app()
        if app is None:
            return None, "Firebase Admin not initialized"

        try:
            # the SDK fetches signing certificates over HTTP, keep it off the event loop
            claims = await asyncio.to_thread(firebase_auth.verify_id_token, id_token, app)
            return claims, None
        except (ValueError, FirebaseError) as e:
            logger.warning(f"Token verification failed: {e}")
            return None, str(e) or "Token verification failed"
