"""FCM push provider tests (firebase-admin patched; no network)."""
from unittest.mock import MagicMock, patch

import pytest
from firebase_admin import exceptions

from chat_relay.domain.common.errors import PushProviderError
from chat_relay.infra.push.sender import FirebasePushProvider


async def test_disabled_provider_is_unavailable():
    provider = FirebasePushProvider(push_enabled=False)

    assert provider.configured is False
    with pytest.raises(PushProviderError) as exc_info:
        await provider.send("T1", "Ada", "hi", {})
    assert exc_info.value.code == "unavailable"


async def test_enabled_without_credentials_is_unavailable(monkeypatch):
    monkeypatch.delenv("GOOGLE_APPLICATION_CREDENTIALS", raising=False)
    provider = FirebasePushProvider(push_enabled=True, credentials_path="")
    assert provider.configured is False


async def test_send_builds_notification_and_returns_message_id():
    provider = FirebasePushProvider(push_enabled=True)
    app = MagicMock()
    with patch.object(provider, "_get_firebase_app", return_value=app), \
            patch("chat_relay.infra.push.sender.messaging.send", return_value="projects/p/messages/1") as send:
        message_id = await provider.send("T1", "Ada", "hi", {"messageId": "m1"})

    assert message_id == "projects/p/messages/1"
    message = send.call_args.args[0]
    assert message.token == "T1"
    assert message.notification.title == "Ada"
    assert message.notification.body == "hi"
    assert message.data == {"messageId": "m1"}
    assert send.call_args.kwargs["app"] is app


async def test_firebase_error_keeps_provider_code():
    provider = FirebasePushProvider(push_enabled=True)
    error = exceptions.UnavailableError("backend unavailable")
    with patch.object(provider, "_get_firebase_app", return_value=MagicMock()), \
            patch("chat_relay.infra.push.sender.messaging.send", side_effect=error):
        with pytest.raises(PushProviderError) as exc_info:
            await provider.send("T1", "Ada", "hi", {})

    assert exc_info.value.code == exceptions.UNAVAILABLE


async def test_malformed_message_is_invalid_argument():
    provider = FirebasePushProvider(push_enabled=True)
    with patch.object(provider, "_get_firebase_app", return_value=MagicMock()), \
            patch("chat_relay.infra.push.sender.messaging.send", side_effect=ValueError("bad token")):
        with pytest.raises(PushProviderError) as exc_info:
            await provider.send("", "Ada", "hi", {})

    assert exc_info.value.code == "invalid-argument"
