"""Tests for call actions, manual resends and video status."""

import uuid

import pytest

from app.db.enums import VideoStatus
from app.db.models import CallEvent, Patient
from app.services import call_event_service
from app.services.webhooks.elevenlabs import WebhookEnvelope


@pytest.fixture
def stored_call(db, call_data) -> CallEvent:
    return call_event_service.upsert_call_event(
        db,
        WebhookEnvelope(type="post_call_transcription", event_timestamp=1792288800, data=call_data),
    )


def _set_video_status(db, event: CallEvent, status: VideoStatus, url: str | None = None) -> None:
    event.video_status = status.value
    event.video_url = url
    db.commit()


# =============================================================================
# Resend
# =============================================================================


@pytest.mark.asyncio
async def test_resend_requires_call_id(client):
    res = await client.post("/emails/resend", json={"type": "both"})

    assert res.status_code == 400


@pytest.mark.asyncio
async def test_resend_unknown_call(client):
    res = await client.post("/emails/resend", json={"callId": str(uuid.uuid4())})

    assert res.status_code == 404


@pytest.mark.asyncio
async def test_resend_invalid_call_id(client):
    res = await client.post("/emails/resend", json={"callId": "not-a-uuid"})

    assert res.status_code == 404


@pytest.mark.asyncio
async def test_resend_runs_full_sequence(client, pipeline, email_client, stored_call):
    res = await client.post(
        "/emails/resend", json={"callId": str(stored_call.id), "type": "both"}
    )

    assert res.status_code == 200
    assert res.json() == {
        "success": True,
        "message": f"Resending both email(s) for call {stored_call.id}",
    }
    await pipeline.runner.drain(timeout=10)
    assert email_client.recipients() == ["doctor@clinic.test", "jane.doe@example.com"]


@pytest.mark.asyncio
async def test_resend_single_channel_still_runs_everything(client, pipeline, email_client, stored_call):
    res = await client.post(
        "/emails/resend", json={"callId": str(stored_call.id), "type": "patient"}
    )

    assert res.status_code == 200
    assert res.json()["message"] == f"Resending patient email(s) for call {stored_call.id}"
    await pipeline.runner.drain(timeout=10)
    assert email_client.recipients() == ["doctor@clinic.test", "jane.doe@example.com"]


@pytest.mark.asyncio
async def test_resend_refused_while_video_generating(client, db, pipeline, email_client, stored_call):
    _set_video_status(db, stored_call, VideoStatus.GENERATING)

    res = await client.post("/emails/resend", json={"callId": str(stored_call.id)})

    assert res.status_code == 409
    await pipeline.runner.drain(timeout=10)
    assert email_client.sent == []


@pytest.mark.asyncio
async def test_resend_forced_while_video_generating(client, db, pipeline, email_client, stored_call):
    _set_video_status(db, stored_call, VideoStatus.GENERATING)

    res = await client.post(
        "/emails/resend", json={"callId": str(stored_call.id), "force": True}
    )

    assert res.status_code == 200
    await pipeline.runner.drain(timeout=10)
    assert len(email_client.sent) == 2


@pytest.mark.asyncio
async def test_resend_rejects_unknown_type(client, stored_call):
    res = await client.post(
        "/emails/resend", json={"callId": str(stored_call.id), "type": "sms"}
    )

    assert res.status_code == 422


# =============================================================================
# Video status
# =============================================================================


@pytest.mark.asyncio
async def test_video_status_default(client, stored_call):
    res = await client.get(f"/videos/status/{stored_call.id}")

    assert res.status_code == 200
    assert res.json() == {"videoStatus": "none", "videoUrl": None}


@pytest.mark.asyncio
async def test_video_status_ready(client, db, stored_call):
    _set_video_status(db, stored_call, VideoStatus.READY, "https://cdn.test/v.mp4")

    res = await client.get(f"/videos/status/{stored_call.id}")

    assert res.json() == {"videoStatus": "ready", "videoUrl": "https://cdn.test/v.mp4"}


@pytest.mark.asyncio
async def test_video_status_unknown_call(client):
    res = await client.get(f"/videos/status/{uuid.uuid4()}")

    assert res.status_code == 404


# =============================================================================
# Review and patient tagging
# =============================================================================


@pytest.mark.asyncio
async def test_toggle_review(client, stored_call):
    res = await client.patch(f"/calls/{stored_call.id}/review")
    assert res.status_code == 200
    assert res.json()["reviewed_at"] is not None

    res = await client.patch(f"/calls/{stored_call.id}/review")
    assert res.json()["reviewed_at"] is None


@pytest.mark.asyncio
async def test_assign_patient(client, db, stored_call):
    patient = Patient(first_name="Ann", last_name="Lee", email="ann@example.com")
    db.add(patient)
    db.commit()

    res = await client.patch(
        f"/calls/{stored_call.id}/patient", json={"patientId": str(patient.id)}
    )
    assert res.status_code == 200
    assert res.json()["patient_id"] == str(patient.id)

    res = await client.patch(f"/calls/{stored_call.id}/patient", json={"patientId": None})
    assert res.status_code == 200
    assert res.json()["patient_id"] is None


@pytest.mark.asyncio
async def test_assign_unknown_patient(client, stored_call):
    res = await client.patch(
        f"/calls/{stored_call.id}/patient", json={"patientId": str(uuid.uuid4())}
    )

    assert res.status_code == 404


# =============================================================================
# Insights
# =============================================================================


@pytest.mark.asyncio
async def test_insights(client, stored_call):
    res = await client.get(f"/calls/{stored_call.id}/insights")

    assert res.status_code == 200
    data = res.json()
    assert data["patient_name"] == "Jane Doe"
    assert data["impact_scale"] == 8
    assert data["readiness_label"] == "Ready"
    assert data["premium_lens_label"] == "Highly Interested"
    assert data["email"] == "jane.doe@example.com"
    assert data["other"] == []
    # 95*.30 + 90*.20 + 80*.20 + 90*.15 + 65*.15 = 85.75
    assert data["propensity"]["overall_score"] == 86
    assert data["propensity"]["tier"] == "high"
    assert len(data["propensity"]["factors"]) == 5


@pytest.mark.asyncio
async def test_insights_report_unmatched_entries(client, db, make_call_data):
    data = make_call_data(
        results={
            "patient_name": {"value": "Ann Lee"},
            "preferred_pharmacy": {"value": "Main St", "rationale": "Mentioned near the end."},
        }
    )
    event = call_event_service.upsert_call_event(
        db, WebhookEnvelope(type="post_call_transcription", event_timestamp=None, data=data)
    )

    res = await client.get(f"/calls/{event.id}/insights")

    body = res.json()
    assert body["other"] == [
        {
            "key": "preferred_pharmacy",
            "label": "Preferred Pharmacy",
            "value": "Main St",
            "rationale": "Mentioned near the end.",
        }
    ]
    assert body["propensity"]["tier"] == "insufficient"


# =============================================================================
# Health
# =============================================================================


@pytest.mark.asyncio
async def test_health(client):
    res = await client.get("/health")

    assert res.status_code == 200
    assert res.json()["status"] == "ok"
