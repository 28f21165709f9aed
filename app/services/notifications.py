"""Best-effort user notifications, delivered to the host forum over HTTP."""

import hashlib
import hmac
import json
import logging
import uuid

import httpx

from app.core.config import get_settings

logger = logging.getLogger(__name__)

LISTING_EXPIRED = "company_directory_listing_expired"
LISTING_REACTIVATED = "company_directory_listing_reactivated"


async def notify_user(user_id: uuid.UUID, event_type: str, payload: dict) -> None:
    """Send a system message request for ``user_id``. Never raises."""
    settings = get_settings()
    if not settings.notification_url:
        logger.debug("No notification URL configured; dropping %s for %s", event_type, user_id)
        return

    body = json.dumps({"user_id": str(user_id), "event": event_type, "data": payload}, default=str)
    signature = hmac.new(
        settings.notification_secret.encode(), body.encode(), hashlib.sha256
    ).hexdigest()
    try:
        async with httpx.AsyncClient(timeout=10) as client:
            resp = await client.post(
                settings.notification_url,
                content=body,
                headers={
                    "Content-Type": "application/json",
                    "X-Directory-Signature": signature,
                    "X-Directory-Event": event_type,
                },
            )
            resp.raise_for_status()
    except Exception:
        logger.warning("Notification %s failed for user %s", event_type, user_id)
