"""Enum definitions for application constants."""

from app.db.enums.calls import (
    DEFAULT_VIDEO_STATUS,
    CallOutcome,
    ResendType,
    VideoStatus,
)

__all__ = [
    "CallOutcome",
    "DEFAULT_VIDEO_STATUS",
    "ResendType",
    "VideoStatus",
]
