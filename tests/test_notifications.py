"""Notification delivery tests."""

import hashlib
import hmac
import json
import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.core.config import get_settings
from app.services.notifications import LISTING_EXPIRED, notify_user

CLIENT_TARGET = "app.services.notifications.httpx.AsyncClient"


def _mock_client(**post_kwargs):
    instance = AsyncMock()
    instance.post = AsyncMock(**post_kwargs)
    instance.__aenter__ = AsyncMock(return_value=instance)
    instance.__aexit__ = AsyncMock(return_value=False)
    return instance


@pytest.fixture
def notification_endpoint(monkeypatch):
    settings = get_settings()
    monkeypatch.setattr(settings, "notification_url", "https://forum.example.com/notify")
    monkeypatch.setattr(settings, "notification_secret", "shh")
    return settings


@pytest.mark.asyncio
async def test_notify_sends_signed_request(notification_endpoint):
    user_id = uuid.uuid4()
    instance = _mock_client(return_value=MagicMock())

    with patch(CLIENT_TARGET, return_value=instance):
        await notify_user(user_id, LISTING_EXPIRED, {"business_name": "Acme"})

    instance.post.assert_called_once()
    url = instance.post.call_args.args[0]
    kwargs = instance.post.call_args.kwargs
    assert url == "https://forum.example.com/notify"

    body = json.loads(kwargs["content"])
    assert body == {
        "user_id": str(user_id),
        "event": LISTING_EXPIRED,
        "data": {"business_name": "Acme"},
    }
    expected = hmac.new(b"shh", kwargs["content"].encode(), hashlib.sha256).hexdigest()
    assert kwargs["headers"]["X-Directory-Signature"] == expected
    assert kwargs["headers"]["X-Directory-Event"] == LISTING_EXPIRED


@pytest.mark.asyncio
async def test_notify_failure_does_not_propagate(notification_endpoint):
    instance = _mock_client(side_effect=Exception("Connection refused"))

    with patch(CLIENT_TARGET, return_value=instance):
        await notify_user(uuid.uuid4(), LISTING_EXPIRED, {})

    instance.post.assert_called_once()


@pytest.mark.asyncio
async def test_notify_without_endpoint_is_a_no_op(monkeypatch):
    monkeypatch.setattr(get_settings(), "notification_url", "")

    with patch(CLIENT_TARGET) as client_cls:
        await notify_user(uuid.uuid4(), LISTING_EXPIRED, {})

    client_cls.assert_not_called()
