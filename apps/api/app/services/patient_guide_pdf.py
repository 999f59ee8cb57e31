"""
Patient Guide PDF Service.

Builds the personalized "Your Cataract Surgery Guide" handout that is attached
to the patient email. Output is byte-for-byte reproducible for the same
inputs: reportlab runs in invariant mode, document metadata is fixed, and the
only date printed is the call date.
"""

from __future__ import annotations

import html
import io
from dataclasses import dataclass

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import (
    HRFlowable,
    KeepTogether,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from app.services.call_insights import CallDisplayFields


class DocumentSynthesisFailure(Exception):
    """The patient guide could not be rendered."""


PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN = 42
FOOTER_HEIGHT = 36
# Frame padding is 6pt per side.
CONTENT_WIDTH = PAGE_WIDTH - 2 * MARGIN - 12
BANNER_PADDING = 14
CALLOUT_PADDING = 10

NAVY = colors.HexColor("#1e3a5f")
TEAL = colors.HexColor("#0d7377")
TEAL_LIGHT = colors.HexColor("#d9f2f2")
BODY = colors.HexColor("#333333")
MUTED = colors.HexColor("#808080")
LIGHT = colors.HexColor("#ededed")
SUCCESS = colors.HexColor("#16a34a")
SUCCESS_LIGHT = colors.HexColor("#e8faed")
WARNING = colors.HexColor("#d97706")
WARNING_LIGHT = colors.HexColor("#fff7e3")
CRITICAL = colors.HexColor("#dc2626")
CRITICAL_LIGHT = colors.HexColor("#fff0f0")

DOCUMENT_TITLE = "Your Cataract Surgery Guide"
DISCLAIMER = (
    "For informational purposes only. Does not replace medical advice from "
    "your surgical team."
)

PROCEDURE_STEPS = (
    ("Numbing drops", "No needles, no pain"),
    ("Tiny opening", "2-3mm incision"),
    ("Lens removed", "Gentle ultrasound"),
    ("New lens placed", "Custom to your eyes"),
)
RECOVERY_MILESTONES = (
    ("Day 1", "Rest"),
    ("Week 1", "Clearer"),
    ("Month 1", "Healed"),
)
NEXT_STEPS = (
    "Schedule pre-op appointment",
    "List all current medications",
    "Arrange a ride home",
    "Follow eye drop instructions",
    "No food/drink after midnight (if told)",
    "Wear comfortable clothes",
)


@dataclass(frozen=True)
class PatientGuideData:
    patient_name: str
    call_timestamp: int
    call_date_label: str
    vision_scale: int | None = None
    vision_preference: str | None = None
    glasses_preference: str | None = None
    premium_lens_interest: str | None = None
    laser_interest: str | None = None
    activities: str | None = None
    hobbies: str | None = None
    concerns: str | None = None
    medical_conditions: str | None = None
    driver_info: str | None = None


def build_patient_guide_data(fields: CallDisplayFields) -> PatientGuideData:
    return PatientGuideData(
        patient_name=fields.patient_name,
        call_timestamp=fields.call_timestamp,
        call_date_label=fields.call_date_label,
        vision_scale=fields.vision_scale,
        vision_preference=fields.vision_preference,
        glasses_preference=fields.glasses_preference,
        premium_lens_interest=fields.premium_lens_interest,
        laser_interest=fields.laser_interest,
        activities=fields.activities,
        hobbies=fields.hobbies,
        concerns=fields.concerns,
        medical_conditions=fields.medical_conditions,
        driver_info=fields.driver_info,
    )


def _severity(scale: int) -> tuple[colors.Color, colors.Color, str]:
    if scale <= 3:
        return SUCCESS, SUCCESS_LIGHT, "Mild"
    if scale <= 6:
        return WARNING, WARNING_LIGHT, "Moderate"
    return CRITICAL, CRITICAL_LIGHT, "Significant"


def _text(value: str) -> str:
    return html.escape(value, quote=False).replace("\n", "<br/>")


class _Styles:
    def __init__(self) -> None:
        base = getSampleStyleSheet()
        self.title = ParagraphStyle(
            "GuideTitle",
            parent=base["Heading1"],
            fontName="Helvetica-Bold",
            fontSize=20,
            leading=24,
            textColor=colors.white,
            spaceAfter=4,
        )
        # Background padding equals the indents so the fill spans the frame.
        self.subtitle = ParagraphStyle(
            "GuideSubtitle",
            parent=base["Normal"],
            fontSize=10,
            leading=13,
            textColor=colors.HexColor("#b3c7e0"),
            backColor=NAVY,
            leftIndent=BANNER_PADDING,
            rightIndent=BANNER_PADDING,
            borderPadding=BANNER_PADDING,
        )
        self.section = ParagraphStyle(
            "GuideSection",
            parent=base["Heading2"],
            fontName="Helvetica-Bold",
            fontSize=11,
            leading=14,
            textColor=colors.white,
        )
        self.label = ParagraphStyle(
            "GuideLabel",
            parent=base["Normal"],
            fontName="Helvetica-Bold",
            fontSize=7,
            leading=10,
            textColor=MUTED,
            spaceBefore=6,
        )
        self.body = ParagraphStyle(
            "GuideBody",
            parent=base["Normal"],
            fontSize=9.5,
            leading=14,
            textColor=BODY,
        )
        self.score = ParagraphStyle(
            "GuideScore",
            parent=base["Normal"],
            fontName="Helvetica-Bold",
            fontSize=36,
            leading=40,
        )
        self.callout = ParagraphStyle(
            "GuideCallout",
            parent=self.body,
            fontName="Helvetica-Bold",
            textColor=TEAL,
        )

    def callout_text(self, background: colors.Color) -> ParagraphStyle:
        return ParagraphStyle(
            "GuideCalloutText",
            parent=self.body,
            backColor=background,
            leftIndent=CALLOUT_PADDING,
            rightIndent=CALLOUT_PADDING,
            borderPadding=CALLOUT_PADDING,
        )


def _section(title: str, color: colors.Color, body: list, styles: _Styles) -> KeepTogether:
    """Coloured header strip followed by the body flowables.

    KeepTogether moves a section to a fresh page when it would not fit;
    a section taller than a page still splits and continues.
    """
    header = Table([[Paragraph(_text(title.upper()), styles.section)]], colWidths=[CONTENT_WIDTH])
    header.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, -1), color),
                ("LEFTPADDING", (0, 0), (-1, -1), 12),
                ("TOPPADDING", (0, 0), (-1, -1), 7),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 7),
            ]
        )
    )
    return KeepTogether([header, Spacer(1, 8), *body, Spacer(1, 16)])


def _callout(text: str, accent: colors.Color, background: colors.Color, style) -> Table:
    table = Table([[Paragraph(_text(text), style)]], colWidths=[CONTENT_WIDTH])
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, -1), background),
                ("LINEBEFORE", (0, 0), (0, -1), 3, accent),
                ("LEFTPADDING", (0, 0), (-1, -1), 10),
                ("TOPPADDING", (0, 0), (-1, -1), 6),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
            ]
        )
    )
    return table


def _answer_callout(
    label: str, answer: str, accent: colors.Color, background: colors.Color, styles: _Styles
) -> list:
    """Short label strip plus the patient's answer as a paragraph that can split across pages."""
    strip = Table([[Paragraph(_text(label), styles.callout)]], colWidths=[CONTENT_WIDTH])
    strip.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, -1), background),
                ("LINEBEFORE", (0, 0), (0, -1), 3, accent),
                ("LEFTPADDING", (0, 0), (-1, -1), CALLOUT_PADDING),
                ("TOPPADDING", (0, 0), (-1, -1), 6),
                ("BOTTOMPADDING", (0, 0), (-1, -1), CALLOUT_PADDING),
            ]
        )
    )
    return [strip, Paragraph(_text(answer), styles.callout_text(background)), Spacer(1, CALLOUT_PADDING)]


def _labelled(label: str, value: str, styles: _Styles) -> list:
    return [Paragraph(_text(label.upper()), styles.label), Paragraph(_text(value), styles.body)]


def _header_block(data: PatientGuideData, styles: _Styles) -> list:
    banner = Table([[Paragraph(DOCUMENT_TITLE, styles.title)]], colWidths=[CONTENT_WIDTH])
    banner.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, -1), NAVY),
                ("LEFTPADDING", (0, 0), (-1, -1), BANNER_PADDING),
                ("TOPPADDING", (0, 0), (-1, -1), BANNER_PADDING),
                ("BOTTOMPADDING", (0, 0), (-1, -1), BANNER_PADDING),
            ]
        )
    )
    # The name line is a paragraph so a very long name wraps onto the next page.
    byline = Paragraph(_text(f"{data.patient_name}  |  {data.call_date_label}"), styles.subtitle)
    rule = HRFlowable(
        width="100%", thickness=3, color=TEAL, spaceBefore=BANNER_PADDING, spaceAfter=0
    )
    return [banner, byline, rule]


def _vision_profile(data: PatientGuideData, styles: _Styles) -> KeepTogether | None:
    if not any(
        (data.vision_scale is not None, data.vision_preference, data.glasses_preference, data.activities)
    ):
        return None

    body: list = []
    if data.vision_scale is not None:
        fill, background, label = _severity(data.vision_scale)
        score_style = ParagraphStyle("GuideScoreValue", parent=styles.score, textColor=fill)
        severity_style = ParagraphStyle(
            "GuideSeverity", parent=styles.body, textColor=fill, backColor=background
        )
        score = Table(
            [
                [
                    Paragraph(f'{data.vision_scale}<font size="14" color="#808080">/10</font>', score_style),
                    Paragraph(f"<b>{label}</b>", severity_style),
                ]
            ],
            colWidths=[CONTENT_WIDTH * 0.3, CONTENT_WIDTH * 0.7],
        )
        score.setStyle(TableStyle([("VALIGN", (0, 0), (-1, -1), "MIDDLE")]))
        body.append(score)
        body.append(_scale_bar(data.vision_scale, fill))
    if data.vision_preference:
        body.extend(_labelled("Vision goal", data.vision_preference, styles))
    if data.glasses_preference:
        body.extend(_labelled("Glasses", data.glasses_preference, styles))
    if data.activities:
        body.extend(_labelled("Activities affected", data.activities, styles))
    return _section("Your Vision Profile", NAVY, body, styles)


def _scale_bar(scale: int, fill: colors.Color) -> Table:
    filled = max(1, min(scale, 10))
    cells = [["" for _ in range(10)]]
    bar = Table(cells, colWidths=[CONTENT_WIDTH / 10] * 10, rowHeights=[8])
    commands = [("BACKGROUND", (0, 0), (-1, -1), LIGHT)]
    commands.append(("BACKGROUND", (0, 0), (filled - 1, 0), fill))
    bar.setStyle(TableStyle(commands))
    return bar


def _procedure(styles: _Styles) -> KeepTogether:
    rows = [
        [Paragraph(f"<b>{index}</b>", styles.callout), Paragraph(f"<b>{title}</b><br/>{detail}", styles.body)]
        for index, (title, detail) in enumerate(PROCEDURE_STEPS, start=1)
    ]
    steps = Table(rows, colWidths=[28, CONTENT_WIDTH - 28])
    steps.setStyle(
        TableStyle(
            [
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ("BACKGROUND", (0, 0), (0, -1), TEAL_LIGHT),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
            ]
        )
    )
    body = [
        steps,
        Spacer(1, 8),
        _callout("Most procedures take 15-20 minutes", TEAL, TEAL_LIGHT, styles.callout),
    ]
    return _section("The Procedure", TEAL, body, styles)


def _recovery(styles: _Styles) -> KeepTogether:
    timeline = Table(
        [
            [Paragraph(f"<b>{label}</b>", styles.body) for label, _ in RECOVERY_MILESTONES],
            [Paragraph(_text(desc), styles.body) for _, desc in RECOVERY_MILESTONES],
        ],
        colWidths=[CONTENT_WIDTH / len(RECOVERY_MILESTONES)] * len(RECOVERY_MILESTONES),
    )
    timeline.setStyle(
        TableStyle(
            [
                ("ALIGN", (0, 0), (-1, -1), "CENTER"),
                ("LINEABOVE", (0, 0), (-1, 0), 2, TEAL),
                ("TOPPADDING", (0, 0), (-1, 0), 8),
            ]
        )
    )
    return _section("Recovery", TEAL, [timeline], styles)


def _plan(data: PatientGuideData, styles: _Styles) -> KeepTogether | None:
    if not (data.premium_lens_interest or data.laser_interest):
        return None
    body: list = [Paragraph("PROCEDURE OPTIONS", styles.label)]
    body.extend(_labelled("Premium lens", data.premium_lens_interest or "Not discussed", styles))
    body.extend(_labelled("Laser-assisted", data.laser_interest or "Not discussed", styles))
    if data.hobbies:
        body.extend(_labelled("Lifestyle", data.hobbies, styles))
    return _section("Your Plan", colors.HexColor("#294770"), body, styles)


def _concerns(data: PatientGuideData, styles: _Styles) -> KeepTogether | None:
    if data.concerns:
        body = [
            Paragraph(_text(data.concerns), styles.body),
            Spacer(1, 8),
            _callout(
                "Your team will address these before surgery",
                SUCCESS,
                SUCCESS_LIGHT,
                styles.body,
            ),
        ]
        return _section("Your Concerns", colors.HexColor("#294770"), body, styles)
    if data.medical_conditions:
        body = [Paragraph(_text(data.medical_conditions), styles.body)]
        return _section("Medical Information", colors.HexColor("#294770"), body, styles)
    return None


def _next_steps(data: PatientGuideData, styles: _Styles) -> KeepTogether:
    checklist = Table(
        [["o", Paragraph(_text(step), styles.body)] for step in NEXT_STEPS],
        colWidths=[18, CONTENT_WIDTH - 18],
    )
    checklist.setStyle(
        TableStyle(
            [
                ("TEXTCOLOR", (0, 0), (0, -1), TEAL),
                ("FONTNAME", (0, 0), (0, -1), "ZapfDingbats"),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ]
        )
    )
    body: list = [checklist]
    if data.driver_info:
        body.append(Spacer(1, 8))
        body.extend(_answer_callout("Ride home", data.driver_info, WARNING, WARNING_LIGHT, styles))
    return _section("Next Steps", TEAL, body, styles)


def _draw_footer(canvas, doc) -> None:
    canvas.saveState()
    canvas.setFont("Helvetica", 7)
    canvas.setFillColor(MUTED)
    canvas.drawString(MARGIN, FOOTER_HEIGHT / 2, DISCLAIMER)
    canvas.drawRightString(PAGE_WIDTH - MARGIN, FOOTER_HEIGHT / 2, f"Page {doc.page}")
    canvas.restoreState()


def generate_patient_guide_pdf(data: PatientGuideData) -> bytes:
    """
    Render the patient guide.

    Raises:
        DocumentSynthesisFailure: reportlab could not lay out or write the file
    """
    styles = _Styles()
    elements: list = [*_header_block(data, styles), Spacer(1, 18)]

    for section in (
        _vision_profile(data, styles),
        _procedure(styles),
        _recovery(styles),
        _plan(data, styles),
        _concerns(data, styles),
        _next_steps(data, styles),
    ):
        if section is not None:
            elements.append(section)

    buffer = io.BytesIO()
    try:
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            leftMargin=MARGIN,
            rightMargin=MARGIN,
            topMargin=MARGIN,
            bottomMargin=MARGIN + FOOTER_HEIGHT / 2,
            title=DOCUMENT_TITLE,
            author="Surgical Care Team",
            subject=f"Cataract surgery guide for {data.patient_name}",
            creator="post-call-pipeline",
            invariant=1,
        )
        doc.build(elements, onFirstPage=_draw_footer, onLaterPages=_draw_footer)
    except Exception as exc:
        raise DocumentSynthesisFailure("Failed to render patient guide") from exc
    return buffer.getvalue()
