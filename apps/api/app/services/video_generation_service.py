"""Personalized post-call video generation (Gemini Veo).

The controller drives one generation run per call:
``none -> generating -> ready | failed``. Each transition is written to the
call record before the controller moves on, so a status read during polling
sees ``generating``. A run never retries: a timeout or an empty result is
terminal for that run, and the only way to try again is a manual resend.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any
from uuid import UUID

import httpx

from app.core.structured_logging import build_log_context
from app.db.enums import VideoStatus
from app.services.call_event_service import CallEventStore
from app.services.call_insights import CallDisplayFields
from app.services.storage_client import S3AssetStore

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

BASE_PROMPT = (
    "A calm, professional medical animation explaining cataract surgery in a warm, reassuring style.",
    "Clean white and soft blue color palette, modern medical illustration style.",
    "Show a gentle cross-section of an eye with a cloudy lens being replaced by a clear artificial lens.",
)
PREMIUM_LENS_CLAUSE = (
    "Highlight the premium lens implant with a subtle golden glow, showing how it provides "
    "clear vision at multiple distances."
)
LASER_CLAUSE = (
    "Show a precise laser beam making a clean circular incision, emphasizing computer-guided accuracy."
)
DRIVING_CLOSING = "End with a scene of clear nighttime driving vision, headlights without glare or halos."
READING_CLOSING = "End with a scene of crisp, clear text on a page coming into focus."
OUTDOOR_CLOSING = "End with a bright outdoor scene coming into sharp, vivid focus."
GENERIC_CLOSING = (
    "End with a bright, clear view of an everyday scene coming into sharp focus, "
    "symbolizing restored vision."
)
PROMPT_SUFFIX = "No text overlays, no narration, no people's faces. Smooth transitions, soothing pace."

INTEREST_KEYWORDS = ("yes", "interested", "maybe")

# Closing clause categories, checked in order.
CLOSING_RULES = (
    (("driv", "night"), DRIVING_CLOSING),
    (("read", "book", "computer"), READING_CLOSING),
    (("golf", "sport", "outdoor"), OUTDOOR_CLOSING),
)


class VideoGenerationFailure(Exception):
    """The video API rejected a request or returned something unusable."""


class VideoTimeout(VideoGenerationFailure):
    """The operation did not finish within the polling budget."""


@dataclass(frozen=True)
class VideoCallData:
    premium_lens_interest: str | None = None
    laser_interest: str | None = None
    activities: str | None = None
    vision_preference: str | None = None
    concerns: str | None = None

    @classmethod
    def from_display_fields(cls, fields: CallDisplayFields) -> "VideoCallData":
        return cls(
            premium_lens_interest=fields.premium_lens_interest,
            laser_interest=fields.laser_interest,
            activities=fields.activities,
            vision_preference=fields.vision_preference,
            concerns=fields.concerns,
        )


@dataclass(frozen=True)
class VideoConfig:
    model: str
    aspect_ratio: str = "16:9"


@dataclass(frozen=True)
class VideoOperation:
    name: str
    done: bool = False
    video_uri: str | None = None
    error: str | None = None


def _shows_interest(value: str | None) -> bool:
    lower = (value or "").lower()
    return any(keyword in lower for keyword in INTEREST_KEYWORDS)


def _closing_clause(activities: str | None) -> str:
    if not activities:
        return GENERIC_CLOSING
    lower = activities.lower()
    for keywords, clause in CLOSING_RULES:
        if any(keyword in lower for keyword in keywords):
            return clause
    return GENERIC_CLOSING


def build_video_prompt(data: VideoCallData) -> str:
    """Deterministic prompt text for one call."""
    parts = list(BASE_PROMPT)
    if _shows_interest(data.premium_lens_interest):
        parts.append(PREMIUM_LENS_CLAUSE)
    if _shows_interest(data.laser_interest):
        parts.append(LASER_CLAUSE)
    parts.append(_closing_clause(data.activities))
    parts.append(PROMPT_SUFFIX)
    return " ".join(parts)


def _first_video_uri(response: Mapping[str, Any]) -> str | None:
    # REST responses nest samples under generateVideoResponse; SDK-shaped
    # payloads use generatedVideos.
    container = response.get("generateVideoResponse") or response
    samples = container.get("generatedSamples") or container.get("generatedVideos") or []
    if not samples or not isinstance(samples[0], Mapping):
        return None
    video = samples[0].get("video") or {}
    uri = video.get("uri") if isinstance(video, Mapping) else None
    return str(uri) if uri else None


def parse_operation(payload: Mapping[str, Any]) -> VideoOperation:
    name = payload.get("name")
    if not name:
        raise VideoGenerationFailure("Video operation response has no name")
    error = payload.get("error")
    response = payload.get("response")
    return VideoOperation(
        name=str(name),
        done=bool(payload.get("done")),
        video_uri=_first_video_uri(response) if isinstance(response, Mapping) else None,
        error=str(error.get("message") or error) if isinstance(error, Mapping) else None,
    )


class VeoClient:
    """Gemini long-running video generation over REST."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = GEMINI_BASE_URL,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def submit(self, prompt: str, config: VideoConfig) -> VideoOperation:
        request_body = {
            "instances": [{"prompt": prompt}],
            "parameters": {"aspectRatio": config.aspect_ratio},
        }
        async with self._client() as client:
            response = await client.post(
                f"{self.base_url}/models/{config.model}:predictLongRunning",
                params={"key": self.api_key},
                headers={"Content-Type": "application/json"},
                json=request_body,
            )
            response.raise_for_status()
            return parse_operation(response.json())

    async def poll(self, operation: VideoOperation) -> VideoOperation:
        async with self._client() as client:
            response = await client.get(
                f"{self.base_url}/{operation.name}",
                params={"key": self.api_key},
            )
            response.raise_for_status()
            return parse_operation(response.json())

    async def download(self, uri: str) -> bytes:
        """Fetch a generated file; provider URIs need the API key."""
        async with self._client() as client:
            response = await client.get(
                uri, params={"key": self.api_key}, follow_redirects=True
            )
            response.raise_for_status()
            return response.content


class VideoGenerationController:
    def __init__(
        self,
        store: CallEventStore,
        client: VeoClient | None,
        *,
        config: VideoConfig,
        asset_store: S3AssetStore | None = None,
        poll_interval: float = 10.0,
        max_poll_attempts: int = 60,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._store = store
        self._client = client
        self._config = config
        self._asset_store = asset_store
        self._poll_interval = poll_interval
        self._max_poll_attempts = max_poll_attempts
        self._sleep = sleep

    @property
    def configured(self) -> bool:
        return self._client is not None

    async def generate(self, call_data: VideoCallData, call_id: UUID) -> str | None:
        """
        Run one generation and return the stored video URL, or None.

        Never raises. Without a configured client it returns None before
        touching the call record.
        """
        log_context = build_log_context(call_id=str(call_id), stage="video")
        if self._client is None:
            logger.warning("Video generation not configured; skipping", extra=log_context)
            return None

        try:
            self._store.set_video_status(call_id, VideoStatus.GENERATING)
            prompt = build_video_prompt(call_data)
            operation = await self._client.submit(prompt, self._config)
            operation = await self._await_completion(operation)

            if operation.error or not operation.video_uri:
                logger.error(
                    "Video generation finished without a video: %s",
                    operation.error or "empty response",
                    extra=log_context,
                )
                self._mark_failed(call_id)
                return None

            video_url = await self._publish(operation.video_uri, call_id)
            self._store.set_video_status(call_id, VideoStatus.READY, video_url=video_url)
            logger.info("Video ready", extra=log_context)
            return video_url
        except VideoTimeout:
            logger.error(
                "Video generation timed out after %s polls",
                self._max_poll_attempts,
                extra=log_context,
            )
        except Exception:
            logger.exception("Video generation failed", extra=log_context)

        self._mark_failed(call_id)
        return None

    async def _await_completion(self, operation: VideoOperation) -> VideoOperation:
        attempts = 0
        while not operation.done:
            if attempts >= self._max_poll_attempts:
                raise VideoTimeout(operation.name)
            await self._sleep(self._poll_interval)
            operation = await self._client.poll(operation)
            attempts += 1
        return operation

    async def _publish(self, video_uri: str, call_id: UUID) -> str:
        if self._asset_store is None:
            return video_uri
        body = await self._client.download(video_uri)
        return await self._asset_store.put(f"videos/{call_id}.mp4", body, "video/mp4")

    def _mark_failed(self, call_id: UUID) -> None:
        try:
            self._store.set_video_status(call_id, VideoStatus.FAILED)
        except Exception:
            logger.exception(
                "Could not record failed video status",
                extra=build_log_context(call_id=str(call_id), stage="video"),
            )
