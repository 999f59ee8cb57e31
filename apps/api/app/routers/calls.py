"""Calls router - review, patient tagging, insights, resends and video status."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.deps import get_db, get_pipeline
from app.core.pipeline import Pipeline
from app.core.structured_logging import build_log_context
from app.db.enums import ResendType, VideoStatus
from app.db.models import CallEvent
from app.schemas.call import (
    CallEventRead,
    CallInsightsRead,
    DataCollectionEntryRead,
    PatientAssignRequest,
    PropensityFactorRead,
    PropensityRead,
    ResendRequest,
    ResendResponse,
    VideoStatusRead,
)
from app.services import call_event_service
from app.services.call_insights import (
    CallHints,
    data_collection_results,
    extract_call_insights,
)
from app.services.propensity_service import (
    compute_propensity_score,
    propensity_inputs_from_insights,
)
from app.utils.presentation import humanize_identifier

router = APIRouter()
emails_router = APIRouter()
videos_router = APIRouter()
logger = logging.getLogger(__name__)


def _get_call_or_404(db: Session, call_id: str | None) -> CallEvent:
    parsed = call_event_service.parse_call_id(call_id)
    event = call_event_service.get_call_event(db, parsed) if parsed else None
    if event is None:
        raise HTTPException(status_code=404, detail="Call not found")
    return event


@router.patch("/{call_id}/review", response_model=CallEventRead)
def toggle_call_review(call_id: str, db: Session = Depends(get_db)):
    """Toggle the reviewed mark on a call."""
    event = _get_call_or_404(db, call_id)
    return call_event_service.toggle_review(db, event)


@router.patch("/{call_id}/patient", response_model=CallEventRead)
def assign_call_patient(
    call_id: str,
    data: PatientAssignRequest,
    db: Session = Depends(get_db),
):
    """Attach a call to a patient (or detach it with ``patientId: null``)."""
    event = _get_call_or_404(db, call_id)
    patient = None
    if data.patient_id is not None:
        patient = call_event_service.get_patient(db, data.patient_id)
        if patient is None:
            raise HTTPException(status_code=404, detail="Patient not found")
    return call_event_service.assign_patient(db, event, patient)


@router.get("/{call_id}/insights", response_model=CallInsightsRead)
def get_call_insights(call_id: str, db: Session = Depends(get_db)):
    """Extracted insights and propensity breakdown for one call."""
    event = _get_call_or_404(db, call_id)
    insights = extract_call_insights(
        data_collection_results(event.data),
        CallHints(impact_scale=event.vision_scale, activities=event.activities),
        patient_name=call_event_service.patient_display_name_for(event),
    )
    propensity = compute_propensity_score(propensity_inputs_from_insights(insights))

    return CallInsightsRead(
        call_id=event.id,
        patient_name=insights.patient_name,
        occupation=insights.occupation,
        sentiment=insights.sentiment,
        readiness=insights.readiness_value,
        readiness_label=insights.readiness_label,
        premium_lens_interest=insights.premium_lens_value,
        premium_lens_label=insights.premium_lens_label,
        laser_interest=insights.laser_interest_value,
        laser_interest_label=insights.laser_interest_label,
        impact_scale=insights.impact_scale,
        activities=insights.activities,
        hobbies=insights.hobbies,
        glasses_preference=insights.glasses_preference,
        vision_preference=insights.vision_preference,
        medical_history=insights.medical_history,
        concerns=insights.concerns,
        driver_info=insights.driver_info,
        email=insights.email,
        other=[
            DataCollectionEntryRead(
                key=key,
                label=humanize_identifier(key),
                value=entry.value,
                rationale=entry.rationale,
            )
            for key, entry in insights.other_entries
        ],
        propensity=PropensityRead(
            overall_score=propensity.overall_score,
            tier=propensity.tier.value,
            label=propensity.label,
            factors=[
                PropensityFactorRead(name=factor.name, weight=factor.weight, score=factor.score)
                for factor in propensity.factors
            ],
        ),
    )


@emails_router.post("/resend", response_model=ResendResponse)
async def resend_call_emails(
    data: ResendRequest,
    db: Session = Depends(get_db),
    pipeline: Pipeline = Depends(get_pipeline),
):
    """
    Re-run the post-call notification pipeline for a stored call.

    The whole sequence runs again whatever ``type`` is requested. A resend is
    refused with 409 while a video is still generating unless ``force`` is set.
    """
    if not data.call_id:
        raise HTTPException(status_code=400, detail="callId is required")

    event = _get_call_or_404(db, data.call_id)
    log_context = build_log_context(call_id=str(event.id), route="/emails/resend", method="POST")

    if event.video_status == VideoStatus.GENERATING.value and not data.force:
        raise HTTPException(
            status_code=409,
            detail="Video generation in progress; retry later or pass force=true",
        )

    requested = data.type or ResendType.BOTH
    if requested is not ResendType.BOTH:
        logger.warning(
            "Resend requested for %s only; the full notification sequence will run",
            requested.value,
            extra=log_context,
        )

    pipeline.schedule_notifications(event.data, event.id)
    return ResendResponse(
        success=True,
        message=f"Resending {requested.value} email(s) for call {data.call_id}",
    )


@videos_router.get("/status/{call_id}", response_model=VideoStatusRead)
def get_video_status(call_id: str, db: Session = Depends(get_db)):
    event = _get_call_or_404(db, call_id)
    return VideoStatusRead(video_status=event.video_status, video_url=event.video_url)
