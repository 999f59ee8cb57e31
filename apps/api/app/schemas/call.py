"""Pydantic schemas for call events, resends and video status."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.db.enums import ResendType


class WebhookAck(BaseModel):
    received: bool = True


class ResendRequest(BaseModel):
    """Manual resend body. ``callId`` is checked by the handler (400 when absent)."""

    model_config = ConfigDict(populate_by_name=True)

    call_id: str | None = Field(default=None, alias="callId")
    type: ResendType | None = None
    force: bool = False


class ResendResponse(BaseModel):
    success: bool
    message: str


class VideoStatusRead(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    video_status: str = Field(serialization_alias="videoStatus")
    video_url: str | None = Field(default=None, serialization_alias="videoUrl")


class PatientAssignRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    patient_id: UUID | None = Field(default=None, alias="patientId")


class CallEventRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    conversation_id: str | None
    event_type: str
    event_timestamp: int | None
    status: str | None
    call_successful: bool | None
    call_duration_secs: float | None
    vision_scale: int | None
    activities: str | None
    vision_preference: str | None
    extracted_email: str | None
    doctor_email_sent_at: datetime | None
    patient_email_sent_at: datetime | None
    video_status: str
    video_url: str | None
    reviewed_at: datetime | None
    patient_id: UUID | None


class PropensityFactorRead(BaseModel):
    name: str
    weight: float
    score: int | None


class PropensityRead(BaseModel):
    overall_score: int
    tier: str
    label: str
    factors: list[PropensityFactorRead]


class DataCollectionEntryRead(BaseModel):
    key: str
    label: str
    value: str
    rationale: str


class CallInsightsRead(BaseModel):
    call_id: UUID
    patient_name: str | None
    occupation: str | None
    sentiment: str | None
    readiness: str | None
    readiness_label: str | None
    premium_lens_interest: str | None
    premium_lens_label: str | None
    laser_interest: str | None
    laser_interest_label: str | None
    impact_scale: int | None
    activities: str | None
    hobbies: str | None
    glasses_preference: str | None
    vision_preference: str | None
    medical_history: str | None
    concerns: str | None
    driver_info: str | None
    email: str | None
    other: list[DataCollectionEntryRead]
    propensity: PropensityRead
