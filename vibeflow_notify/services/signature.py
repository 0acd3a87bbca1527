"""Slack request signing verification.

Slack signs every Events API request with the app's signing secret:
``v0=`` followed by the hex HMAC-SHA256 of ``v0:{timestamp}:{raw body}``.
Requests older (or newer) than five minutes are rejected to limit replay.

See https://api.slack.com/authentication/verifying-requests-from-slack
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import time

logger = logging.getLogger(__name__)

SIGNATURE_VERSION = "v0"
MAX_CLOCK_SKEW_SECONDS = 300


def _as_bytes(value: str | bytes) -> bytes:
    return value if isinstance(value, bytes) else value.encode("utf-8")


def compute_slack_signature(timestamp: str | int, raw_body: str | bytes, signing_secret: str) -> str:
    base = b"%s:%s:%s" % (
        SIGNATURE_VERSION.encode(), str(timestamp).encode(), _as_bytes(raw_body),
    )
    digest = hmac.new(signing_secret.encode("utf-8"), base, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_VERSION}={digest}"


def verify_slack_signature(
    raw_body: str | bytes,
    timestamp: str | None,
    signature: str | None,
    signing_secret: str,
    *,
    now: float | None = None,
) -> bool:
    """Return True only for a correctly signed, fresh request."""
    if not raw_body or not timestamp or not signature or not signing_secret:
        logger.warning("[signature.verify] missing body, headers or secret")
        return False

    try:
        ts = int(timestamp)
    except ValueError:
        logger.warning("[signature.verify] malformed timestamp %r", timestamp)
        return False

    current = int(time.time() if now is None else now)
    if abs(current - ts) > MAX_CLOCK_SKEW_SECONDS:
        logger.warning("[signature.verify] stale timestamp (skew=%ds)", current - ts)
        return False

    expected = compute_slack_signature(timestamp, raw_body, signing_secret).encode("utf-8")
    provided = signature.encode("utf-8")
    if len(provided) != len(expected):
        logger.warning("[signature.verify] signature length mismatch")
        return False

    if not hmac.compare_digest(provided, expected):
        logger.warning("[signature.verify] signature mismatch")
        return False
    return True
