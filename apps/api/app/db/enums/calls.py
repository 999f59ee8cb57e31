"""Call-event enums."""

from enum import Enum


class VideoStatus(str, Enum):
    """
    Lifecycle of the personalized video for one call.

    none → generating → ready | failed. A manual resend may start again from
    ready, failed or none.
    """

    NONE = "none"
    GENERATING = "generating"
    READY = "ready"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (VideoStatus.READY, VideoStatus.FAILED)


class CallOutcome(str, Enum):
    """Tri-state call outcome reported by the voice agent."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    UNKNOWN = "unknown"

    @property
    def label(self) -> str:
        return {
            CallOutcome.SUCCEEDED: "Success",
            CallOutcome.FAILED: "Failed",
            CallOutcome.UNKNOWN: "Unknown",
        }[self]


class ResendType(str, Enum):
    """Channels a manual resend asks for."""

    PATIENT = "patient"
    DOCTOR = "doctor"
    BOTH = "both"


DEFAULT_VIDEO_STATUS = VideoStatus.NONE
