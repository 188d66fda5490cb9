"""
Outgoing status-change webhooks.

Each event is POSTed as JSON with two headers the receiver can verify:
- X-Webhook-Timestamp: unix seconds at send time
- X-Webhook-Signature: "sha256=" + HMAC-SHA256(secret, "<timestamp>.<body>")
"""

import hashlib
import hmac
import json
import logging
import time
from typing import Any, Optional

import httpx

from .config import (
    BOOKING_WEBHOOK_URL,
    FACILITY_WEBHOOK_URL,
    WEBHOOK_SECRET,
    WEBHOOK_TIMEOUT_SECONDS,
)

logger = logging.getLogger(__name__)

# Maximum age of a signed event accepted by verify_signature (5 minutes)
MAX_WEBHOOK_AGE_SECONDS = 300


def constant_time_compare(a: str, b: str) -> bool:
    """Compare two strings in constant time"""
    if not a or not b:
        return False
    return hmac.compare_digest(a, b)


def compute_hmac_sha256(secret: str, payload: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def sign_payload(secret: str, timestamp: str, body: bytes) -> str:
    return "sha256=" + compute_hmac_sha256(secret, timestamp.encode("utf-8") + b"." + body)


def verify_signature(
    secret: str,
    timestamp: Optional[str],
    body: bytes,
    signature: Optional[str],
    max_age: int = MAX_WEBHOOK_AGE_SECONDS,
) -> bool:
    """Receiver-side check, also used by the tests"""
    if not timestamp or not signature:
        return False
    try:
        age = abs(int(time.time()) - int(timestamp))
    except (TypeError, ValueError):
        logger.warning(f"🚫 Invalid webhook timestamp format: {timestamp}")
        return False
    if age > max_age:
        logger.warning(f"🚫 Webhook timestamp too old: {age}s (max: {max_age}s)")
        return False
    return constant_time_compare(sign_payload(secret, timestamp, body), signature)


class WebhookNotifier:
    """Fires at most one webhook per call; never raises"""

    def __init__(
        self,
        url: Optional[str],
        secret: Optional[str] = WEBHOOK_SECRET,
        timeout: float = WEBHOOK_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.secret = secret
        self.timeout = timeout
        self.transport = transport

    async def notify(self, event: str, data: dict[str, Any]) -> bool:
        """Send the event; returns True only on a 2xx answer"""
        if not self.url:
            logger.debug(f"⚠️ No webhook URL configured for {event}, skipping")
            return False

        body = json.dumps({"event": event, "data": data}, default=str).encode("utf-8")
        timestamp = str(int(time.time()))
        headers = {"Content-Type": "application/json", "X-Webhook-Timestamp": timestamp}
        if self.secret:
            headers["X-Webhook-Signature"] = sign_payload(self.secret, timestamp, body)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.url, content=body, headers=headers)
            if response.is_success:
                logger.info(f"✅ Webhook {event} delivered ({response.status_code})")
                return True
            logger.warning(f"⚠️ Webhook {event} rejected: {response.status_code} {response.text[:200]}")
            return False
        except httpx.HTTPError as e:
            logger.error(f"❌ Webhook {event} failed: {e}")
            return False


def booking_notifier() -> WebhookNotifier:
    return WebhookNotifier(BOOKING_WEBHOOK_URL)


def facility_notifier() -> WebhookNotifier:
    return WebhookNotifier(FACILITY_WEBHOOK_URL)
