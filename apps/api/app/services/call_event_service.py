"""Call event persistence.

Request handlers use the session-level functions with the request's session.
Detached notification work outlives the request, so it goes through
``CallEventStore``, which opens a short session per write. Writers do not
coordinate: every update is a plain per-field overwrite (last write wins).
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from app.core.structured_logging import build_log_context
from app.db.enums import VideoStatus
from app.db.models import CallEvent, Patient
from app.services.call_insights import derive_call_fields
from app.services.webhooks.elevenlabs import WebhookEnvelope

logger = logging.getLogger(__name__)

TRANSCRIPTION_EVENT = "post_call_transcription"


class StoreWriteFailure(Exception):
    """The call event could not be written."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _event_values(envelope: WebhookEnvelope) -> dict:
    data = envelope.data
    derived = derive_call_fields(data)
    status = data.get("status") if envelope.type == TRANSCRIPTION_EVENT else None
    agent_id = data.get("agent_id")
    return {
        "event_type": envelope.type,
        "event_timestamp": envelope.event_timestamp,
        "agent_id": str(agent_id) if agent_id else None,
        "status": str(status) if status else None,
        "data": data,
        "call_successful": derived.call_successful,
        "call_duration_secs": derived.call_duration_secs,
        "vision_scale": derived.vision_scale,
        "activities": derived.activities,
        "vision_preference": derived.vision_preference,
        "extracted_email": derived.email,
    }


def _apply(event: CallEvent, values: dict) -> None:
    for key, value in values.items():
        setattr(event, key, value)


def upsert_call_event(db: Session, envelope: WebhookEnvelope) -> CallEvent:
    """
    Store a webhook delivery keyed by its conversation id.

    A repeated conversation id overwrites the stored payload and derived
    scalars; a delivery without one always inserts. Raises StoreWriteFailure.
    """
    raw_conversation_id = envelope.data.get("conversation_id")
    conversation_id = str(raw_conversation_id) if raw_conversation_id else None
    values = _event_values(envelope)

    try:
        event = get_call_event_by_conversation(db, conversation_id) if conversation_id else None
        if event is None:
            event = CallEvent(conversation_id=conversation_id, **values)
            db.add(event)
        else:
            _apply(event, values)
        try:
            db.commit()
        except IntegrityError:
            # Another delivery inserted the same conversation first.
            db.rollback()
            event = get_call_event_by_conversation(db, conversation_id) if conversation_id else None
            if event is None:
                raise
            _apply(event, values)
            db.commit()
        db.refresh(event)
    except SQLAlchemyError as exc:
        db.rollback()
        raise StoreWriteFailure("Failed to store event") from exc

    logger.info(
        "Stored call event",
        extra=build_log_context(
            call_id=str(event.id), conversation_id=conversation_id, stage="ingest"
        ),
    )
    return event


def get_call_event(db: Session, call_id: UUID) -> CallEvent | None:
    return (
        db.query(CallEvent)
        .options(joinedload(CallEvent.patient))
        .filter(CallEvent.id == call_id)
        .first()
    )


def get_call_event_by_conversation(db: Session, conversation_id: str) -> CallEvent | None:
    return db.query(CallEvent).filter(CallEvent.conversation_id == conversation_id).first()


def toggle_review(db: Session, event: CallEvent) -> CallEvent:
    """Mark the call reviewed, or clear the mark when it is already set."""
    event.reviewed_at = None if event.reviewed_at else _now()
    db.commit()
    db.refresh(event)
    return event


def get_patient(db: Session, patient_id: UUID) -> Patient | None:
    return db.query(Patient).filter(Patient.id == patient_id).first()


def assign_patient(db: Session, event: CallEvent, patient: Patient | None) -> CallEvent:
    """Attach the call to a patient, or detach it when ``patient`` is None."""
    event.patient_id = patient.id if patient else None
    db.commit()
    db.refresh(event)
    return event


def patient_display_name_for(event: CallEvent) -> str | None:
    if event.patient is None:
        return None
    return event.patient.display_name or None


class CallEventStore:
    """Record access for work that runs after the request has finished."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def get(self, call_id: UUID) -> CallEvent | None:
        # Patient is eager-loaded, so the detached row stays readable.
        with self._session_factory() as db:
            return get_call_event(db, call_id)

    def update_fields(self, call_id: UUID, **fields: object) -> None:
        try:
            with self._session_factory() as db:
                updated = (
                    db.query(CallEvent)
                    .filter(CallEvent.id == call_id)
                    .update(fields, synchronize_session=False)
                )
                db.commit()
        except SQLAlchemyError as exc:
            raise StoreWriteFailure(f"Failed to update call event {call_id}") from exc
        if not updated:
            logger.warning(
                "Call event disappeared before update",
                extra=build_log_context(call_id=str(call_id), stage="store"),
            )

    def set_video_status(
        self, call_id: UUID, status: VideoStatus, *, video_url: str | None = None
    ) -> None:
        fields: dict[str, object] = {"video_status": status.value}
        if video_url is not None:
            fields["video_url"] = video_url
        self.update_fields(call_id, **fields)

    def mark_doctor_email_sent(self, call_id: UUID) -> None:
        self.update_fields(call_id, doctor_email_sent_at=_now())

    def mark_patient_email_sent(self, call_id: UUID, email: str) -> None:
        self.update_fields(call_id, patient_email_sent_at=_now(), patient_email=email)


def parse_call_id(value: str | None) -> UUID | None:
    if not value:
        return None
    try:
        return UUID(str(value))
    except ValueError:
        return None
