"""ElevenLabs post-call webhook verification.

The voice agent signs each delivery with an ``ElevenLabs-Signature`` header of
the form ``t=<unix-seconds>,v0=<hex hmac-sha256>``. The signed content is
``"{t}.{raw body}"``; the HMAC must be computed over the exact bytes received,
never over re-serialized JSON.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import time
from dataclasses import dataclass, field
from typing import Any

SIGNATURE_HEADER = "ElevenLabs-Signature"
DEFAULT_TOLERANCE_SECONDS = 30 * 60


class WebhookVerificationError(Exception):
    """Base class for signature/freshness failures (HTTP 401 at intake)."""


class MalformedHeader(WebhookVerificationError):
    pass


class StaleTimestamp(WebhookVerificationError):
    pass


class InvalidSignature(WebhookVerificationError):
    pass


@dataclass(frozen=True)
class WebhookEnvelope:
    type: str
    event_timestamp: int | None
    data: dict[str, Any] = field(default_factory=dict)


def _parse_header(header: str) -> tuple[str, str]:
    timestamp = ""
    signature = ""
    for part in header.split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            timestamp = value
        elif key == "v0":
            signature = value
    return timestamp, signature


def _verify_timestamp(timestamp: str, *, now: int, tolerance: int) -> int:
    try:
        parsed = int(timestamp, 10)
    except ValueError as exc:
        raise MalformedHeader("Invalid signature header: timestamp is not a number") from exc

    if now - parsed > tolerance:
        raise StaleTimestamp("Webhook timestamp is too old")
    return parsed


def _verify_signature(body: bytes, timestamp: str, signature: str, secret: str) -> None:
    signed_content = timestamp.encode("utf-8") + b"." + body
    expected = hmac.new(secret.encode("utf-8"), signed_content, hashlib.sha256).digest()

    try:
        received = bytes.fromhex(signature)
    except ValueError as exc:
        raise InvalidSignature("Invalid webhook signature") from exc

    # Length is checked first; compare_digest only runs on equal-length buffers.
    if len(received) != len(expected):
        raise InvalidSignature("Invalid webhook signature")
    if not hmac.compare_digest(expected, received):
        raise InvalidSignature("Invalid webhook signature")


def construct_webhook_event(
    body: bytes,
    signature_header: str,
    secret: str,
    *,
    tolerance: int = DEFAULT_TOLERANCE_SECONDS,
    now: int | None = None,
) -> WebhookEnvelope:
    """
    Verify a delivery and return its envelope.

    Raises:
        MalformedHeader: ``t`` or ``v0`` missing, or ``t`` not an integer
        StaleTimestamp: ``t`` older than ``tolerance`` seconds
        InvalidSignature: HMAC mismatch
        json.JSONDecodeError: signature valid but body is not JSON (caller's concern)
    """
    timestamp, signature = _parse_header(signature_header or "")
    if not timestamp or not signature:
        raise MalformedHeader("Invalid signature header: missing timestamp or signature")

    current = int(time.time()) if now is None else now
    _verify_timestamp(timestamp, now=current, tolerance=tolerance)
    _verify_signature(body, timestamp, signature, secret)

    payload = json.loads(body)
    if not isinstance(payload, dict):
        payload = {}
    data = payload.get("data")
    event_timestamp = payload.get("event_timestamp")
    return WebhookEnvelope(
        type=str(payload.get("type") or ""),
        event_timestamp=event_timestamp if isinstance(event_timestamp, int) else None,
        data=data if isinstance(data, dict) else {},
    )


def sign_payload(body: bytes, secret: str, *, timestamp: int | None = None) -> str:
    """Build a header value the way the voice agent does (fixtures and local replay)."""
    ts = str(int(time.time()) if timestamp is None else timestamp)
    digest = hmac.new(
        secret.encode("utf-8"), ts.encode("utf-8") + b"." + body, hashlib.sha256
    ).hexdigest()
    return f"t={ts},v0={digest}"
