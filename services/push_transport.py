# services/push_transport.py
"""
Web Push delivery for reminder notifications.

Wraps pywebpush and classifies failures: an endpoint the push service
reports as gone (HTTP 404/410) raises SubscriptionGoneError so the caller can
delete it; everything else raises PushDeliveryError and is left for the
next tick.
"""
import os
import json
import asyncio
import logging
from typing import Any, Dict, Optional

from pywebpush import webpush, WebPushException

from api.schemas.notifications import PushSubscription

logger = logging.getLogger("frogsy-api.push")

GONE_STATUS_CODES = {404, 410}
DEFAULT_VAPID_SUBJECT = "mailto:admin@frogsy.app"
PUSH_TIMEOUT_SECONDS = 10
# How long the push service keeps an undelivered reminder (four weeks)
PUSH_TTL_SECONDS = 2419200

REMINDER_PAYLOAD = {
    "title": "Frogsy Reminder 🐸",
    "body": "Time to log your pain!",
}

TEST_PAYLOAD = {
    "title": "🧪 Manual Test Notification",
    "body": "This is a manual test from Frogsy! Notifications are working!",
    "tag": "manual-test-notification",
    "requireInteraction": True,
}


class PushDeliveryError(Exception):
    """Transient delivery failure; the subscription is kept."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SubscriptionGoneError(PushDeliveryError):
    """The push service says this endpoint will never accept messages again."""


def _status_code(exc: WebPushException) -> Optional[int]:
    response = getattr(exc, "response", None)
    return getattr(response, "status_code", None) if response is not None else None


class PushTransport:
    """
    Sends JSON payloads to browser push subscriptions.

    VAPID settings come from VAPID_PRIVATE_KEY / VAPID_SUBJECT unless given
    explicitly.
    """

    def __init__(
        self,
        vapid_private_key: Optional[str] = None,
        vapid_subject: Optional[str] = None,
        timeout: int = PUSH_TIMEOUT_SECONDS
    ):
        self.vapid_private_key = vapid_private_key or os.getenv("VAPID_PRIVATE_KEY")
        self.vapid_subject = vapid_subject or os.getenv("VAPID_SUBJECT", DEFAULT_VAPID_SUBJECT)
        self.timeout = timeout

        if not self.vapid_private_key:
            raise ValueError("VAPID_PRIVATE_KEY must be set to send push notifications")

    def send_sync(self, subscription: PushSubscription, payload: Dict[str, Any]) -> None:
        """
        Deliver one payload.

        Raises:
            SubscriptionGoneError: Endpoint expired or unregistered (404/410)
            PushDeliveryError: Any other delivery failure
        """
        subscription_info = {
            "endpoint": subscription.endpoint,
            "keys": {"p256dh": subscription.p256dh, "auth": subscription.auth},
        }
        try:
            webpush(
                subscription_info=subscription_info,
                data=json.dumps(payload),
                vapid_private_key=self.vapid_private_key,
                # pywebpush fills in aud/exp on the dict it is given
                vapid_claims={"sub": self.vapid_subject},
                ttl=PUSH_TTL_SECONDS,
                timeout=self.timeout,
            )
        except WebPushException as e:
            status_code = _status_code(e)
            if status_code in GONE_STATUS_CODES:
                raise SubscriptionGoneError(
                    f"Subscription gone (HTTP {status_code})", status_code=status_code
                ) from e
            raise PushDeliveryError(f"Push delivery failed: {e}", status_code=status_code) from e

    async def send(self, subscription: PushSubscription, payload: Dict[str, Any]) -> None:
        """Async wrapper; pywebpush is blocking so it runs in a worker thread."""
        await asyncio.to_thread(self.send_sync, subscription, payload)
