"""Webhooks router - voice agent post-call events."""

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.core.deps import get_db, get_pipeline
from app.core.pipeline import Pipeline
from app.core.structured_logging import build_log_context
from app.schemas.call import WebhookAck
from app.services import call_event_service
from app.services.call_event_service import TRANSCRIPTION_EVENT, StoreWriteFailure
from app.services.webhooks.elevenlabs import (
    SIGNATURE_HEADER,
    WebhookVerificationError,
    construct_webhook_event,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/elevenlabs")
async def elevenlabs_webhook_status():
    """Liveness probe for the voice agent's webhook configuration screen."""
    return {"status": "webhook listening"}


@router.post("/elevenlabs", response_model=WebhookAck)
async def receive_elevenlabs_webhook(
    request: Request,
    db: Session = Depends(get_db),
    pipeline: Pipeline = Depends(get_pipeline),
):
    """
    Receive an ElevenLabs post-call webhook.

    Security:
    - Validates payload size
    - Verifies the ElevenLabs-Signature HMAC over the raw body

    Processing:
    - Upserts the call event by conversation id
    - Returns before the notification pipeline runs
    """
    log_context = build_log_context(route="/webhooks/elevenlabs", method="POST")

    # 1. Check payload size
    content_length = request.headers.get("content-length", "0")
    try:
        if int(content_length) > pipeline.webhook_max_payload_bytes:
            raise HTTPException(413, "Payload too large")
    except ValueError:
        pass

    # 2. Raw body; the signature covers these exact bytes
    body = await request.body()
    if len(body) > pipeline.webhook_max_payload_bytes:
        raise HTTPException(413, "Payload too large")

    signature_header = request.headers.get(SIGNATURE_HEADER)
    if not signature_header:
        logger.warning("ElevenLabs webhook missing signature", extra=log_context)
        raise HTTPException(401, f"Missing {SIGNATURE_HEADER} header")

    if not pipeline.webhook_secret:
        logger.error("ELEVENLABS_WEBHOOK_SECRET is not configured", extra=log_context)
        raise HTTPException(500, "Webhook secret not configured")

    # 3. Verify
    try:
        event = construct_webhook_event(
            body,
            signature_header,
            pipeline.webhook_secret,
            tolerance=pipeline.webhook_tolerance_seconds,
        )
    except WebhookVerificationError as exc:
        logger.warning("Webhook verification failed: %s", exc, extra=log_context)
        raise HTTPException(401, str(exc))
    except json.JSONDecodeError:
        raise HTTPException(400, "Invalid JSON")

    # 4. Store
    try:
        call_event = call_event_service.upsert_call_event(db, event)
    except StoreWriteFailure:
        logger.exception("Failed to store webhook event", extra=log_context)
        raise HTTPException(500, "Failed to store event")

    # 5. Notify (detached)
    if event.type == TRANSCRIPTION_EVENT:
        pipeline.schedule_notifications(event.data, call_event.id)

    return WebhookAck(received=True)
