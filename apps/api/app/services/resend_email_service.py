"""Resend Email Service.

Sends transactional post-call emails via the Resend API. A failed send is
reported to the caller as EmailSendFailure and is not retried.
"""

from __future__ import annotations

import base64
import html as html_module
import logging
import re
from dataclasses import dataclass, field

import httpx

from app.core.structured_logging import mask_email

logger = logging.getLogger(__name__)

RESEND_SEND_URL = "https://api.resend.com/emails"
RESEND_TIMEOUT_SECONDS = 20.0


class EmailSendFailure(Exception):
    """Resend did not accept the message."""


@dataclass(frozen=True)
class EmailAttachment:
    filename: str
    content: bytes

    def to_payload(self) -> dict[str, str]:
        return {
            "filename": self.filename,
            "content": base64.b64encode(self.content).decode("ascii"),
        }


@dataclass(frozen=True)
class EmailMessage:
    from_address: str
    to: str
    subject: str
    html: str
    attachments: list[EmailAttachment] = field(default_factory=list)


def _html_to_text(content: str) -> str:
    """Convert HTML into readable text (deliverability + inbox previews).

    Keep this small and dependency-free; we don't need full fidelity, just a
    reasonable plain-text alternative.
    """
    text = re.sub(r"<(script|style)[^>]*>.*?</\1>", "", content, flags=re.DOTALL | re.I)
    text = re.sub(r"<[^>]+>", " ", text)
    text = re.sub(r"\s+", " ", text).strip()
    return html_module.unescape(text)


def _error_detail(response: httpx.Response) -> str | None:
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict):
        detail = data.get("message") or data.get("error")
        return str(detail) if detail else None
    return None


class ResendEmailClient:
    def __init__(
        self,
        api_key: str,
        *,
        timeout: float = RESEND_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

    async def send(self, message: EmailMessage) -> str | None:
        """
        Send one message.

        Returns:
            Resend message id (may be None if the API omits it)

        Raises:
            EmailSendFailure: connection error, timeout or non-2xx response
        """
        payload: dict[str, object] = {
            "from": message.from_address,
            "to": [message.to],
            "subject": message.subject,
            "html": message.html,
        }

        # Add plain text version for deliverability
        text = _html_to_text(message.html)
        if text:
            payload["text"] = text
        if message.attachments:
            payload["attachments"] = [attachment.to_payload() for attachment in message.attachments]

        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(RESEND_SEND_URL, headers=headers, json=payload)
        except httpx.TimeoutException as exc:
            raise EmailSendFailure("Connection timeout") from exc
        except httpx.HTTPError as exc:
            raise EmailSendFailure(f"Connection error: {exc.__class__.__name__}") from exc

        if 200 <= response.status_code < 300:
            data = response.json()
            message_id = data.get("id") if isinstance(data, dict) else None
            logger.info(
                "Email sent to %s, message_id=%s", mask_email(message.to), message_id
            )
            return message_id

        error_msg = f"Resend API error: {response.status_code}"
        detail = _error_detail(response)
        if detail:
            error_msg = f"{error_msg} ({detail})"
        raise EmailSendFailure(error_msg)
