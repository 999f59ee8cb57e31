"""HTML bodies and subjects for the post-call emails.

All interpolated values are escaped; only the fixed markup below is trusted.
"""

from __future__ import annotations

from dataclasses import dataclass
from html import escape

from app.db.enums import CallOutcome
from app.services.call_insights import CallDisplayFields, EvaluationResult

SUCCESS_COLOR = "#16a34a"
WARNING_COLOR = "#d97706"
CRITICAL_COLOR = "#dc2626"
NEUTRAL_COLOR = "#6b7280"
HEADER_COLOR = "#1e3a5f"


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str


def vision_scale_color(scale: int) -> str:
    if scale <= 3:
        return SUCCESS_COLOR
    if scale <= 6:
        return WARNING_COLOR
    return CRITICAL_COLOR


def outcome_color(outcome: CallOutcome) -> str:
    if outcome is CallOutcome.SUCCEEDED:
        return SUCCESS_COLOR
    if outcome is CallOutcome.FAILED:
        return CRITICAL_COLOR
    return NEUTRAL_COLOR


def criteria_color(result: str) -> str:
    if result == "success":
        return SUCCESS_COLOR
    if result == "failure":
        return CRITICAL_COLOR
    return WARNING_COLOR


def _layout(title: str, subtitle_html: str, content_html: str, footer: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #374151; background: #f4f4f5; max-width: 600px; margin: 0 auto; padding: 20px;">
    <div style="background: {HEADER_COLOR}; padding: 32px; border-radius: 8px 8px 0 0; text-align: center;">
        <h1 style="color: white; margin: 0; font-size: 24px;">{escape(title)}</h1>
        {subtitle_html}
    </div>
    <div style="background: #ffffff; padding: 32px; border: 1px solid #e5e7eb; border-top: none;">
{content_html}
    </div>
    <div style="background: #f9fafb; padding: 16px 32px; border-radius: 0 0 8px 8px; border: 1px solid #e5e7eb; border-top: none;">
        <p style="color: #9ca3af; font-size: 11px; text-align: center; margin: 0;">{escape(footer)}</p>
    </div>
</body>
</html>"""


def _field_row(label: str, value: str | None) -> str:
    if not value:
        return ""
    return (
        f'<tr><td style="padding: 8px 0; color: #6b7280; vertical-align: top; width: 40%;">{escape(label)}:</td>'
        f'<td style="padding: 8px 0;"><strong>{escape(value)}</strong></td></tr>'
    )


def _evaluation_block(results: list[EvaluationResult]) -> str:
    if not results:
        return ""
    items = "".join(
        f"""
            <div style="border-left: 3px solid {criteria_color(item.result)}; padding: 4px 12px; margin: 12px 0;">
                <p style="margin: 0; font-weight: 600;">{escape(item.label)}
                    <span style="color: {criteria_color(item.result)}; text-transform: uppercase; font-size: 12px;">{escape(item.result)}</span></p>
                <p style="margin: 4px 0 0; color: #6b7280; font-size: 13px;">{escape(item.rationale)}</p>
            </div>"""
        for item in results
    )
    return f"""
        <h3 style="color: {HEADER_COLOR}; margin: 24px 0 8px;">Evaluation Criteria</h3>{items}"""


def render_doctor_summary(fields: CallDisplayFields) -> RenderedEmail:
    scale_html = (
        f'<strong style="color: {vision_scale_color(fields.vision_scale)}; font-size: 28px;">'
        f"{fields.vision_scale}/10</strong>"
        if fields.vision_scale is not None
        else '<strong style="color: #6b7280;">N/A</strong>'
    )
    outcome = fields.call_outcome
    subtitle = (
        f'<p style="color: #b3c7e0; margin: 8px 0 0;">{escape(fields.patient_name)} &middot; '
        f"{escape(fields.call_date_label)} &middot; {escape(fields.duration_label)}</p>"
        f'<p style="display: inline-block; background: white; color: {outcome_color(outcome)}; '
        f'padding: 2px 12px; border-radius: 12px; font-weight: 600; margin: 12px 0 0;">{escape(outcome.label)}</p>'
    )

    metrics = "".join(
        (
            f'<tr><td style="padding: 8px 0; color: #6b7280;">Vision Scale:</td><td style="padding: 8px 0;">{scale_html}</td></tr>',
            _field_row("Glasses Preference", fields.glasses_preference or "Not discussed"),
            _field_row("Premium Lens Interest", fields.premium_lens_interest or "Not discussed"),
            _field_row("Femtosecond Laser", fields.laser_interest or "Not discussed"),
        )
    )
    snapshot_rows = "".join(
        (
            _field_row("Activities Affected", fields.activities),
            _field_row("Medical Conditions", fields.medical_conditions),
            _field_row("Patient Concerns", fields.concerns),
        )
    )
    snapshot = (
        f"""
        <h3 style="color: {HEADER_COLOR}; margin: 24px 0 8px;">Patient Snapshot</h3>
        <table style="width: 100%; border-collapse: collapse;">{snapshot_rows}</table>"""
        if snapshot_rows
        else ""
    )
    summary = (
        f"""
        <h3 style="color: {HEADER_COLOR}; margin: 24px 0 8px;">Call Summary</h3>
        <p style="margin: 0;">{escape(fields.call_summary)}</p>"""
        if fields.call_summary
        else ""
    )

    content = f"""        <table style="width: 100%; border-collapse: collapse;">{metrics}</table>{snapshot}{summary}{_evaluation_block(fields.evaluation_results)}"""
    html = _layout(
        "Pre-Surgery Call Summary",
        subtitle,
        content,
        "Generated automatically from the patient's pre-surgery consultation call.",
    )
    return RenderedEmail(
        subject=f"Call Summary: {fields.patient_name} — {fields.call_date_label}",
        html=html,
    )


def render_patient_guide_email(fields: CallDisplayFields) -> RenderedEmail:
    name = escape(fields.patient_name)
    content = f"""        <p style="font-size: 18px; font-weight: 600; color: #111827;">Hi {name},</p>
        <p>Thank you for your recent conversation about your upcoming cataract surgery. We've put together a personalized guide based on what we discussed during your call on {escape(fields.call_date_label)}.</p>
        <p><strong>Attached to this email</strong> you'll find a PDF that includes:</p>
        <ul style="font-size: 14px; line-height: 1.8;">
            <li>Your vision goals and preferences</li>
            <li>The procedure options we discussed</li>
            <li>Answers to your questions and concerns</li>
            <li>Next steps to prepare for your surgery</li>
        </ul>
        <hr style="border: none; border-top: 1px solid #e5e7eb; margin: 24px 0;">
        <p style="color: #6b7280; font-size: 14px; font-style: italic;">We're also preparing a short personalized video to help explain your procedure. We'll send it to you in a separate email once it's ready.</p>
        <hr style="border: none; border-top: 1px solid #e5e7eb; margin: 24px 0;">
        <p>If you have any additional questions, please don't hesitate to reach out to our office. We're here to help make your experience as comfortable as possible.</p>
        <p style="margin-top: 24px;">Warm regards,<br>Your Surgical Team</p>"""
    html = _layout(
        "Your Cataract Surgery Guide",
        "",
        content,
        "This email was sent based on your pre-surgery consultation call. The attached guide is "
        "for informational purposes and does not replace medical advice.",
    )
    return RenderedEmail(
        subject=f"Your Cataract Surgery Guide — {fields.call_date_label}",
        html=html,
    )


def render_video_ready_email(fields: CallDisplayFields, video_url: str) -> RenderedEmail:
    content = f"""        <p style="font-size: 18px; font-weight: 600; color: #111827;">Hi {escape(fields.patient_name)},</p>
        <p>The personalized video we mentioned in our earlier email is now ready. This short animation was created specifically for you to help explain your upcoming cataract surgery procedure.</p>
        <div style="margin: 25px 0; text-align: center;">
            <a href="{escape(video_url)}" style="display: inline-block; padding: 12px 32px; background: {HEADER_COLOR}; color: white; text-decoration: none; border-radius: 6px; font-weight: 600;">Watch Your Video</a>
        </div>
        <p style="color: #6b7280; font-size: 14px;">If you have any questions about what you see in the video, please bring them up at your pre-operative consultation.</p>
        <p style="margin-top: 24px;">Warm regards,<br>Your Surgical Team</p>"""
    html = _layout(
        "Your Video Is Ready",
        "",
        content,
        "This video is for educational purposes only and does not replace medical advice from "
        "your surgical team.",
    )
    return RenderedEmail(subject="Your Personalized Surgery Video Is Ready", html=html)


def guide_attachment_filename(patient_name: str) -> str:
    slug = "-".join(patient_name.split()).lower()
    return f"cataract-surgery-guide-{slug}.pdf"
