"""
Webhook authenticity checks.

Gateways sign the exact request body with HMAC-SHA256 and send the digest in
``x-signature``/``x-webhook-signature``, either bare or as a compound
``t=<unix-ts>,v1=<hex>`` header. A static API key in ``x-api-key`` is accepted
as a fallback credential.
"""

import base64
import hashlib
import hmac
import time
from datetime import datetime
from typing import Dict, Optional, Tuple

from src.config.settings import settings
from src.shared.utils import get_logger

logger = get_logger(__name__)

DEFAULT_TIMESTAMP_TOLERANCE = 300


def parse_signature_header(header: str) -> Dict[str, str]:
    """Split ``k=v,k=v`` into a dict; parts without ``=`` or an empty value are skipped."""
    parts: Dict[str, str] = {}
    for part in header.split(","):
        key, sep, value = part.strip().partition("=")
        if sep and key and value:
            parts[key.strip()] = value.strip()
    return parts


def parse_timestamp(value: str) -> Optional[float]:
    """Unix seconds or ISO-8601; None when unparseable."""
    try:
        if value.isascii() and value.isdigit():
            return float(value)
        return datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp()
    except ValueError:
        return None


def _canonical_forms(digest: bytes) -> Tuple[str, str]:
    """Lower-case hex and padded base64; a provided digest must match one exactly."""
    return digest.hex(), base64.b64encode(digest).decode("ascii")


class WebhookSignatureVerifier:
    def __init__(
        self,
        secret: Optional[str] = None,
        api_key: Optional[str] = None,
        production: bool = False,
        tolerance_seconds: int = DEFAULT_TIMESTAMP_TOLERANCE,
        enforce_timestamp: bool = True,
        require_timestamp: bool = False,
    ):
        self.secret = secret
        self.api_key = api_key
        self.production = production
        self.tolerance_seconds = tolerance_seconds
        self.enforce_timestamp = enforce_timestamp
        self.require_timestamp = require_timestamp

    @classmethod
    def from_settings(cls) -> "WebhookSignatureVerifier":
        return cls(
            secret=settings.WEBHOOK_SECRET,
            api_key=settings.WEBHOOK_API_KEY,
            production=settings.is_production,
            tolerance_seconds=settings.WEBHOOK_TIMESTAMP_TOLERANCE,
            enforce_timestamp=settings.WEBHOOK_ENFORCE_TIMESTAMP,
            require_timestamp=settings.WEBHOOK_REQUIRE_TIMESTAMP,
        )

    def verify_signature(
        self, raw_body: bytes, header: Optional[str], now: Optional[float] = None
    ) -> bool:
        if not header:
            return False

        if not self.secret:
            logger.warning("WEBHOOK_SECRET not configured")
            # Fail closed in production; local development may post unsigned webhooks
            return not self.production

        parsed = parse_signature_header(header)
        provided = parsed.get("v1") or parsed.get("sha256") or header.strip()

        if not self._is_fresh(parsed.get("t"), now):
            return False

        expected = hmac.new(
            self.secret.encode("utf-8"), raw_body, hashlib.sha256
        ).digest()

        hex_form, base64_form = _canonical_forms(expected)
        # Hex is case-insensitive; base64 is compared verbatim
        return hmac.compare_digest(
            provided.lower().encode("utf-8"), hex_form.encode("utf-8")
        ) or hmac.compare_digest(provided.encode("utf-8"), base64_form.encode("utf-8"))

    def _is_fresh(self, timestamp: Optional[str], now: Optional[float]) -> bool:
        if timestamp is None:
            if self.require_timestamp:
                logger.warning("Webhook signature missing timestamp; rejecting")
                return False
            logger.warning("Webhook signature missing timestamp; skipping freshness check")
            return True

        sent_at = parse_timestamp(timestamp)
        current = time.time() if now is None else now
        if sent_at is None or abs(current - sent_at) > self.tolerance_seconds:
            logger.warning(f"Webhook timestamp outside allowed window: t={timestamp}")
            return not self.enforce_timestamp
        return True

    def verify_api_key(self, provided: Optional[str]) -> bool:
        if not provided or not self.api_key:
            return False
        return hmac.compare_digest(provided.encode("utf-8"), self.api_key.encode("utf-8"))

    def authenticate(
        self,
        raw_body: bytes,
        signature: Optional[str],
        api_key: Optional[str],
        now: Optional[float] = None,
    ) -> bool:
        """Signature or static API key; both are evaluated."""
        signature_ok = self.verify_signature(raw_body, signature, now=now)
        api_key_ok = self.verify_api_key(api_key)
        return signature_ok or api_key_ok
