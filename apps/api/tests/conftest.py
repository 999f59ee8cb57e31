"""
Test configuration and fixtures.

Provides:
- SQLite database (file in a temp dir) with tables created once per session
- Database session; rows are cleared after each test
- Post-call pipeline wired with fake email / video collaborators
- HTTPX AsyncClient against the ASGI app
"""
import copy
import os
import tempfile
from typing import AsyncGenerator, Generator

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.orm import Session

_TEST_DB_DIR = tempfile.mkdtemp(prefix="post-call-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_DB_DIR, 'test.db')}"
os.environ["ENV"] = "test"

from app.main import app  # noqa: E402
from app.core.background import BackgroundTaskRunner  # noqa: E402
from app.core.deps import get_db  # noqa: E402
from app.core.pipeline import Pipeline  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.db.models import CallEvent, Patient  # noqa: E402
from app.db.session import SessionLocal, engine  # noqa: E402
from app.services.call_event_service import CallEventStore  # noqa: E402
from app.services.notification_service import PostCallNotifier  # noqa: E402
from app.services.resend_email_service import EmailSendFailure  # noqa: E402
from app.services.video_generation_service import (  # noqa: E402
    VideoConfig,
    VideoGenerationController,
)

WEBHOOK_SECRET = "wsec_test_secret"
FROM_EMAIL = "care@clinic.test"
DOCTOR_EMAIL = "doctor@clinic.test"


# =============================================================================
# Payloads
# =============================================================================

DEFAULT_RESULTS = {
    "patient_name": {"value": "Jane Doe", "rationale": "Stated at the start of the call."},
    "vision_impact_scale": {"value": "8", "rationale": "Rated her vision problems an 8."},
    "activities_affected": {"value": "Night driving and reading", "rationale": ""},
    "premium_lens_interest": {"value": "Yes, very interested", "rationale": ""},
    "surgery_readiness": {"value": "Ready to schedule", "rationale": ""},
    "glasses_preference": {"value": "Wants to be rid of glasses", "rationale": ""},
    "email_address": {"value": "jane.doe@example.com", "rationale": ""},
}


def build_call_data(
    *,
    conversation_id: str | None = "conv_123",
    results: dict | None = None,
    call_successful: object = "success",
    duration: float | None = 185,
) -> dict:
    data: dict = {
        "agent_id": "agent_abc",
        "status": "done",
        "metadata": {"call_duration_secs": duration},
        "analysis": {
            "call_successful": call_successful,
            "transcript_summary": "Patient discussed cataract surgery options.",
            "evaluation_criteria_results": {
                "patient_understood_procedure": {
                    "criteria_id": "patient_understood_procedure",
                    "result": "success",
                    "rationale": "Confirmed understanding of the steps.",
                }
            },
            "data_collection_results": copy.deepcopy(
                DEFAULT_RESULTS if results is None else results
            ),
        },
    }
    if conversation_id is not None:
        data["conversation_id"] = conversation_id
    return data


@pytest.fixture
def make_call_data():
    return build_call_data


@pytest.fixture
def call_data() -> dict:
    return build_call_data()


# =============================================================================
# Fakes
# =============================================================================


class FakeEmailClient:
    """Records messages instead of calling Resend."""

    def __init__(self, fail_for: tuple[str, ...] = ()) -> None:
        self.sent = []
        self.fail_for = set(fail_for)

    async def send(self, message):
        if message.to in self.fail_for:
            raise EmailSendFailure("Resend API error: 422")
        self.sent.append(message)
        return f"msg_{len(self.sent)}"

    def recipients(self) -> list[str]:
        return [message.to for message in self.sent]


async def no_sleep(_seconds: float) -> None:
    return None


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def _create_tables() -> Generator[None, None, None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Database session for one test.

    App code commits for real (detached notification work reads through its
    own sessions), so tables are emptied afterwards instead of rolled back.
    """
    session = SessionLocal()
    yield session
    session.close()
    with SessionLocal() as cleanup:
        cleanup.query(CallEvent).delete()
        cleanup.query(Patient).delete()
        cleanup.commit()


# =============================================================================
# Pipeline Fixtures
# =============================================================================


@pytest.fixture
def email_client() -> FakeEmailClient:
    return FakeEmailClient()


@pytest.fixture
def pipeline(email_client: FakeEmailClient) -> Pipeline:
    """Pipeline with a fake mailer and no video provider configured."""
    runner = BackgroundTaskRunner()
    store = CallEventStore(SessionLocal)
    video_controller = VideoGenerationController(
        store, None, config=VideoConfig(model="veo-test"), sleep=no_sleep
    )
    notifier = PostCallNotifier(
        store,
        email_client,
        video_controller,
        runner,
        from_email=FROM_EMAIL,
        doctor_email=DOCTOR_EMAIL,
    )
    return Pipeline(
        runner=runner,
        store=store,
        video_controller=video_controller,
        notifier=notifier,
        webhook_secret=WEBHOOK_SECRET,
        webhook_tolerance_seconds=30 * 60,
        webhook_max_payload_bytes=1_000_000,
    )


# =============================================================================
# Client Fixtures
# =============================================================================


@pytest.fixture(scope="function")
async def client(db: Session, pipeline: Pipeline) -> AsyncGenerator[AsyncClient, None]:
    """
    Create AsyncClient for the API.

    ASGITransport does not run the lifespan, so the pipeline is set here.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    previous = getattr(app.state, "pipeline", None)
    app.state.pipeline = pipeline

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as c:
        yield c

    await pipeline.runner.drain(timeout=10)
    app.state.pipeline = previous
    app.dependency_overrides.clear()
