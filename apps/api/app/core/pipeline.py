"""Startup wiring for the post-call pipeline.

Every external client is built once here from ``Settings`` and stored on
``app.state.pipeline``; request handlers reach it through ``get_pipeline``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.background import BackgroundTaskRunner
from app.core.config import Settings
from app.services.call_event_service import CallEventStore
from app.services.notification_service import PostCallNotifier
from app.services.resend_email_service import ResendEmailClient
from app.services.storage_client import build_asset_store
from app.services.video_generation_service import (
    VeoClient,
    VideoConfig,
    VideoGenerationController,
)


@dataclass
class Pipeline:
    runner: BackgroundTaskRunner
    store: CallEventStore
    video_controller: VideoGenerationController
    notifier: PostCallNotifier
    webhook_secret: str
    webhook_tolerance_seconds: int
    webhook_max_payload_bytes: int

    def schedule_notifications(self, call_data: Mapping, call_id: UUID):
        """Start a notification run without waiting for it."""
        return self.runner.submit(
            self.notifier.run(call_data, call_id),
            name=f"notify:{call_id}",
            call_id=str(call_id),
        )


def build_pipeline(
    config: Settings,
    session_factory: Callable[[], Session],
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> Pipeline:
    runner = BackgroundTaskRunner()
    store = CallEventStore(session_factory)

    email_client = (
        ResendEmailClient(config.RESEND_API_KEY, timeout=config.RESEND_TIMEOUT_SECONDS)
        if config.RESEND_API_KEY
        else None
    )
    veo_client = VeoClient(config.GEMINI_API_KEY) if config.video_generation_configured else None
    video_controller = VideoGenerationController(
        store,
        veo_client,
        config=VideoConfig(model=config.VIDEO_MODEL, aspect_ratio=config.VIDEO_ASPECT_RATIO),
        asset_store=build_asset_store(config),
        poll_interval=config.VIDEO_POLL_INTERVAL_SECONDS,
        max_poll_attempts=config.VIDEO_MAX_POLL_ATTEMPTS,
        sleep=sleep,
    )
    notifier = PostCallNotifier(
        store,
        email_client,
        video_controller,
        runner,
        from_email=config.FROM_EMAIL,
        doctor_email=config.DOCTOR_EMAIL,
    )
    return Pipeline(
        runner=runner,
        store=store,
        video_controller=video_controller,
        notifier=notifier,
        webhook_secret=config.ELEVENLABS_WEBHOOK_SECRET,
        webhook_tolerance_seconds=config.WEBHOOK_TOLERANCE_SECONDS,
        webhook_max_payload_bytes=config.WEBHOOK_MAX_PAYLOAD_BYTES,
    )
