"""Pydantic schemas for API request/response models."""

from app.schemas.call import (
    CallEventRead,
    CallInsightsRead,
    PatientAssignRequest,
    ResendRequest,
    ResendResponse,
    VideoStatusRead,
    WebhookAck,
)

__all__ = [
    "CallEventRead",
    "CallInsightsRead",
    "PatientAssignRequest",
    "ResendRequest",
    "ResendResponse",
    "VideoStatusRead",
    "WebhookAck",
]
