"""Tests for structured logging helpers."""

from app.core.structured_logging import build_log_context, mask_email


def test_build_log_context_includes_only_provided_fields():
    context = build_log_context(
        call_id="call-1",
        conversation_id="conv-1",
        stage="notify",
        request_id="req-1",
        route="/webhooks/elevenlabs",
        method="POST",
    )

    assert context == {
        "call_id": "call-1",
        "conversation_id": "conv-1",
        "stage": "notify",
        "request_id": "req-1",
        "route": "/webhooks/elevenlabs",
        "method": "POST",
    }


def test_build_log_context_ignores_empty_fields():
    context = build_log_context(
        call_id="",
        conversation_id=None,
        request_id="req-1",
    )

    assert context == {"request_id": "req-1"}


def test_mask_email():
    assert mask_email("jane.doe@example.com") == "jan...@example.com"
    assert mask_email("jo") == "jo..."
    assert mask_email(None) == ""
