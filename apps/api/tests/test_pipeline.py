"""Tests for startup wiring."""

import uuid

import pytest

from app.core.config import Settings
from app.core.pipeline import build_pipeline
from app.db.session import SessionLocal


def _settings(**overrides) -> Settings:
    values = {
        "RESEND_API_KEY": "",
        "GEMINI_API_KEY": "",
        "VIDEO_S3_BUCKET": "",
        "VIDEO_PUBLIC_BASE_URL": "",
        "FROM_EMAIL": "care@clinic.test",
        "ELEVENLABS_WEBHOOK_SECRET": "wsec_1",
    }
    values.update(overrides)
    return Settings(**values)


def test_unconfigured_providers_are_left_out():
    pipeline = build_pipeline(_settings(), SessionLocal)

    assert pipeline.video_controller.configured is False
    assert pipeline.webhook_secret == "wsec_1"
    assert pipeline.webhook_tolerance_seconds == 1800


def test_gemini_key_enables_video():
    pipeline = build_pipeline(_settings(GEMINI_API_KEY="gem-key"), SessionLocal)

    assert pipeline.video_controller.configured is True


@pytest.mark.asyncio
async def test_schedule_notifications_runs_notifier():
    pipeline = build_pipeline(_settings(), SessionLocal)
    seen: list = []

    async def fake_run(call_data, call_id):
        seen.append((call_data, call_id))

    pipeline.notifier.run = fake_run
    call_id = uuid.uuid4()

    task = pipeline.schedule_notifications({"conversation_id": "c1"}, call_id)

    assert task.get_name() == f"notify:{call_id}"
    await pipeline.runner.drain(timeout=5)
    assert seen == [({"conversation_id": "c1"}, call_id)]
