"""Structured logging helpers (PHI-safe)."""

from typing import Any


def build_log_context(
    *,
    call_id: str | None = None,
    conversation_id: str | None = None,
    stage: str | None = None,
    request_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a PHI-safe log context dict."""
    context: dict[str, Any] = {}
    if call_id:
        context["call_id"] = str(call_id)
    if conversation_id:
        context["conversation_id"] = conversation_id
    if stage:
        context["stage"] = stage
    if request_id:
        context["request_id"] = request_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context


def mask_email(email: str | None) -> str:
    """Mask an address for log lines: keep a short local prefix and the domain."""
    if not email:
        return ""
    local, _, domain = email.partition("@")
    prefix = local[:3] if local else ""
    return f"{prefix}...@{domain}" if domain else f"{prefix}..."
