"""Call-completion events received from the voice agent."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.db.enums import DEFAULT_VIDEO_STATUS

if TYPE_CHECKING:
    from app.db.models import Patient


class CallEvent(Base):
    """
    One row per voice-agent conversation.

    ``data`` keeps the webhook payload verbatim. The derived scalars are
    computed once when the event is ingested and are not recomputed on read.
    Notification columns are written in place by the post-call pipeline.
    """

    __tablename__ = "call_events"
    __table_args__ = (
        Index("idx_call_events_created", "created_at"),
        Index("idx_call_events_patient", "patient_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    conversation_id: Mapped[str | None] = mapped_column(String(128), unique=True, nullable=True)
    agent_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    event_type: Mapped[str] = mapped_column(String(64), nullable=False)
    event_timestamp: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    status: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Raw payload kept verbatim. Plain JSON (not JSONB) so key order survives
    # storage; field extraction is first-match over that order.
    data: Mapped[dict] = mapped_column(JSON, nullable=False)

    # Derived at ingestion
    call_successful: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    call_duration_secs: Mapped[float | None] = mapped_column(Float, nullable=True)
    vision_scale: Mapped[int | None] = mapped_column(Integer, nullable=True)
    activities: Mapped[str | None] = mapped_column(Text, nullable=True)
    vision_preference: Mapped[str | None] = mapped_column(Text, nullable=True)
    extracted_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Notification status
    doctor_email_sent_at: Mapped[datetime | None] = mapped_column(nullable=True)
    patient_email_sent_at: Mapped[datetime | None] = mapped_column(nullable=True)
    patient_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    video_status: Mapped[str] = mapped_column(
        String(20),
        default=DEFAULT_VIDEO_STATUS.value,
        server_default=text(f"'{DEFAULT_VIDEO_STATUS.value}'"),
        nullable=False,
    )
    video_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # Manual tagging only; never inferred from extraction
    patient_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("patients.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    patient: Mapped["Patient | None"] = relationship(back_populates="call_events")
