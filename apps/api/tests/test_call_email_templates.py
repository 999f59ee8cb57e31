"""Tests for post-call email rendering."""

from dataclasses import replace

from app.db.enums import CallOutcome
from app.services import call_email_templates
from app.services.call_insights import resolve_display_fields


def _fields(call_data, **overrides):
    fields = resolve_display_fields(call_data, 1792288800)
    return replace(fields, **overrides) if overrides else fields


def test_doctor_summary(call_data):
    rendered = call_email_templates.render_doctor_summary(_fields(call_data))

    assert rendered.subject == "Call Summary: Jane Doe — October 17, 2026"
    assert "8/10" in rendered.html
    assert call_email_templates.CRITICAL_COLOR in rendered.html
    assert "Patient Understood Procedure" in rendered.html
    assert "Patient discussed cataract surgery options." in rendered.html
    assert "3m 5s" in rendered.html
    assert "Success" in rendered.html


def test_doctor_summary_marks_missing_answers(call_data):
    fields = _fields(
        call_data,
        vision_scale=None,
        laser_interest=None,
        call_summary=None,
        evaluation_results=[],
        call_outcome=CallOutcome.UNKNOWN,
    )

    rendered = call_email_templates.render_doctor_summary(fields)

    assert "N/A" in rendered.html
    assert "Not discussed" in rendered.html
    assert "Call Summary</h3>" not in rendered.html
    assert "Evaluation Criteria" not in rendered.html


def test_values_are_escaped(call_data):
    fields = _fields(call_data, patient_name="<script>x</script>", concerns="a < b")

    rendered = call_email_templates.render_doctor_summary(fields)

    assert "<script>" not in rendered.html
    assert "&lt;script&gt;" in rendered.html
    assert "a &lt; b" in rendered.html


def test_patient_guide_email(call_data):
    rendered = call_email_templates.render_patient_guide_email(_fields(call_data))

    assert rendered.subject == "Your Cataract Surgery Guide — October 17, 2026"
    assert "Hi Jane Doe," in rendered.html


def test_video_ready_email(call_data):
    rendered = call_email_templates.render_video_ready_email(
        _fields(call_data), "https://cdn.test/v.mp4?a=1&b=2"
    )

    assert rendered.subject == "Your Personalized Surgery Video Is Ready"
    assert 'href="https://cdn.test/v.mp4?a=1&amp;b=2"' in rendered.html


def test_colors():
    assert call_email_templates.vision_scale_color(3) == call_email_templates.SUCCESS_COLOR
    assert call_email_templates.vision_scale_color(6) == call_email_templates.WARNING_COLOR
    assert call_email_templates.vision_scale_color(7) == call_email_templates.CRITICAL_COLOR
    assert call_email_templates.criteria_color("failure") == call_email_templates.CRITICAL_COLOR
    assert call_email_templates.criteria_color("unknown") == call_email_templates.WARNING_COLOR


def test_attachment_filename():
    assert (
        call_email_templates.guide_attachment_filename("Ann  Marie Lee")
        == "cataract-surgery-guide-ann-marie-lee.pdf"
    )
