"""Push notification provider via FCM (Firebase Cloud Messaging)."""
import asyncio
import logging
import os
from typing import Optional

import firebase_admin
from firebase_admin import credentials, exceptions, messaging

from chat_relay.domain.common.errors import PushProviderError

logger = logging.getLogger(__name__)


class FirebasePushProvider:
    """PushProvider backed by firebase-admin. The Firebase app is initialized lazily on first send."""

    def __init__(self, push_enabled: bool, credentials_path: str = "", app_name: str = "chat-relay"):
        self.push_enabled = push_enabled
        self.credentials_path = credentials_path
        self.app_name = app_name
        self._app: Optional[firebase_admin.App] = None

    def _get_firebase_app(self) -> Optional[firebase_admin.App]:
        """Lazy-init the Firebase app. Returns None if push disabled or no credentials."""
        if self._app is not None:
            return self._app
        if not self.push_enabled:
            return None
        cred_path = self.credentials_path or os.environ.get("GOOGLE_APPLICATION_CREDENTIALS", "")
        if not cred_path:
            logger.debug("Push disabled: no GOOGLE_APPLICATION_CREDENTIALS or push_enabled=False")
            return None
        try:
            self._app = firebase_admin.get_app(self.app_name)
        except ValueError:
            try:
                self._app = firebase_admin.initialize_app(credentials.Certificate(cred_path), name=self.app_name)
            except (ValueError, OSError) as e:
                logger.warning("Firebase init failed (push disabled): %s", e)
                return None
        return self._app

    @property
    def configured(self) -> bool:
        return self._get_firebase_app() is not None

    async def send(self, token: str, title: str, body: str, data: dict[str, str]) -> str:
        app = self._get_firebase_app()
        if app is None:
            raise PushProviderError("push provider not configured", code="unavailable")
        message = messaging.Message(
            notification=messaging.Notification(title=title, body=body),
            data=data,
            token=token,
        )
        try:
            # messaging.send is blocking HTTP; keep it off the event loop.
            return await asyncio.to_thread(messaging.send, message, app=app)
        except exceptions.FirebaseError as e:
            raise PushProviderError(str(e), code=e.code)
        except ValueError as e:
            # Raised by the SDK for malformed messages/tokens before any network call.
            raise PushProviderError(str(e), code="invalid-argument")
