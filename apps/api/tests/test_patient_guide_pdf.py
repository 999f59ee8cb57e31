"""Tests for the patient guide PDF."""

import io
import re
from dataclasses import replace

import pytest
from pypdf import PdfReader

from app.services import patient_guide_pdf
from app.services.call_insights import resolve_display_fields
from app.services.patient_guide_pdf import (
    DocumentSynthesisFailure,
    PatientGuideData,
    build_patient_guide_data,
    generate_patient_guide_pdf,
)


def _text(pdf_bytes: bytes) -> str:
    reader = PdfReader(io.BytesIO(pdf_bytes))
    text = " ".join(page.extract_text() or "" for page in reader.pages)
    return re.sub(r"\s+", " ", text)


def _full_data() -> PatientGuideData:
    return PatientGuideData(
        patient_name="Ann Lee",
        call_timestamp=1792288800,
        call_date_label="October 17, 2026",
        vision_scale=8,
        vision_preference="See clearly at distance",
        glasses_preference="Wants to be glasses-free",
        premium_lens_interest="Very interested",
        laser_interest="Maybe",
        activities="Night driving & reading",
        hobbies="Golf",
        concerns="Worried about pain",
        medical_conditions="Type 2 diabetes",
        driver_info="Daughter will drive",
    )


def test_output_is_a_pdf_with_metadata():
    pdf_bytes = generate_patient_guide_pdf(_full_data())

    assert pdf_bytes.startswith(b"%PDF")
    reader = PdfReader(io.BytesIO(pdf_bytes))
    assert reader.metadata.title == "Your Cataract Surgery Guide"


def test_same_inputs_produce_identical_bytes():
    assert generate_patient_guide_pdf(_full_data()) == generate_patient_guide_pdf(_full_data())


def test_full_guide_contains_personalized_sections():
    text = _text(generate_patient_guide_pdf(_full_data()))

    assert "Your Cataract Surgery Guide" in text
    assert "Ann Lee" in text
    assert "October 17, 2026" in text
    assert "YOUR VISION PROFILE" in text
    assert "YOUR PLAN" in text
    assert "YOUR CONCERNS" in text
    assert "Worried about pain" in text
    assert "Night driving & reading" in text
    assert "Daughter will drive" in text
    # Concerns take the slot; medical info is the fallback only.
    assert "MEDICAL INFORMATION" not in text


def test_conditional_sections_are_omitted_without_data():
    data = PatientGuideData(
        patient_name="Patient",
        call_timestamp=1792288800,
        call_date_label="October 17, 2026",
    )

    text = _text(generate_patient_guide_pdf(data))

    assert "YOUR VISION PROFILE" not in text
    assert "YOUR PLAN" not in text
    assert "YOUR CONCERNS" not in text
    assert "THE PROCEDURE" in text
    assert "RECOVERY" in text
    assert "NEXT STEPS" in text
    assert "Ride home" not in text


def test_medical_information_used_when_no_concerns():
    data = PatientGuideData(
        patient_name="Ann Lee",
        call_timestamp=1792288800,
        call_date_label="October 17, 2026",
        medical_conditions="Glaucoma drops daily",
    )

    text = _text(generate_patient_guide_pdf(data))

    assert "MEDICAL INFORMATION" in text
    assert "Glaucoma drops daily" in text


def test_markup_in_answers_is_rendered_as_text():
    data = PatientGuideData(
        patient_name="<b>Ann</b>",
        call_timestamp=1792288800,
        call_date_label="October 17, 2026",
        concerns="Is it <safe>?",
    )

    text = _text(generate_patient_guide_pdf(data))

    assert "<b>Ann</b>" in text
    assert "Is it <safe>?" in text


def test_build_from_display_fields(call_data):
    fields = resolve_display_fields(call_data, 1792288800)

    data = build_patient_guide_data(fields)

    assert data.patient_name == "Jane Doe"
    assert data.vision_scale == 8
    assert data.call_date_label == "October 17, 2026"


def test_layout_errors_are_wrapped(monkeypatch):
    def _boom(*args, **kwargs):
        raise RuntimeError("layout failed")

    monkeypatch.setattr(patient_guide_pdf.SimpleDocTemplate, "build", _boom)

    with pytest.raises(DocumentSynthesisFailure):
        generate_patient_guide_pdf(_full_data())


LONG_ANSWER = "my daughter will drive me home after the appointment. " * 400 + "Zanzibar"


@pytest.mark.parametrize(
    "overrides",
    [
        {"patient_name": "Jane " * 3000 + "Zanzibar"},
        {"activities": LONG_ANSWER},
        {"hobbies": LONG_ANSWER},
        {"concerns": LONG_ANSWER},
        {"concerns": None, "medical_conditions": LONG_ANSWER},
        {"driver_info": LONG_ANSWER},
    ],
    ids=["name", "activities", "hobbies", "concerns", "medical", "ride_home"],
)
def test_long_answers_flow_onto_later_pages(overrides):
    pdf_bytes = generate_patient_guide_pdf(replace(_full_data(), **overrides))

    reader = PdfReader(io.BytesIO(pdf_bytes))
    assert len(reader.pages) > 2
    assert "Zanzibar" in _text(pdf_bytes)
