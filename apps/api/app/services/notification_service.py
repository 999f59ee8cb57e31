"""Post-call notification pipeline.

One run per webhook delivery (or manual resend):

1. resolve display fields from the stored payload
2. render the patient guide PDF
3. start video generation in the background
4. clinician summary email (when a clinician address is configured)
5. patient email with the guide attached (needs an address and a PDF)
6. wait for the video and send the "video ready" follow-up

Each stage has its own error boundary; a failed stage is logged and the run
moves on. Nothing is retried.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from uuid import UUID

from app.core.background import BackgroundTaskRunner
from app.core.structured_logging import build_log_context, mask_email
from app.services import call_email_templates
from app.services.call_event_service import CallEventStore, patient_display_name_for
from app.services.call_insights import CallDisplayFields, format_call_date, resolve_display_fields
from app.services.patient_guide_pdf import (
    DocumentSynthesisFailure,
    build_patient_guide_data,
    generate_patient_guide_pdf,
)
from app.services.resend_email_service import (
    EmailAttachment,
    EmailMessage,
    EmailSendFailure,
    ResendEmailClient,
)
from app.services.video_generation_service import VideoCallData, VideoGenerationController

logger = logging.getLogger(__name__)


class PostCallNotifier:
    def __init__(
        self,
        store: CallEventStore,
        email_client: ResendEmailClient | None,
        video_controller: VideoGenerationController,
        runner: BackgroundTaskRunner,
        *,
        from_email: str,
        doctor_email: str = "",
    ) -> None:
        self._store = store
        self._email_client = email_client
        self._video = video_controller
        self._runner = runner
        self._from_email = from_email
        self._doctor_email = doctor_email

    async def run(self, call_data: Mapping, call_id: UUID) -> None:
        log_context = build_log_context(call_id=str(call_id), stage="notify")
        if not self._from_email:
            logger.error("FROM_EMAIL not configured, skipping post-call emails", extra=log_context)
            return

        fields = self._resolve_fields(call_data, call_id)
        pdf_bytes = self._render_guide(fields, call_id)

        video_task = self._runner.submit(
            self._video.generate(VideoCallData.from_display_fields(fields), call_id),
            name=f"video:{call_id}",
            call_id=str(call_id),
        )

        if self._doctor_email:
            await self._send_doctor_summary(fields, call_id)

        if fields.patient_email and pdf_bytes is not None:
            await self._send_patient_guide(fields, pdf_bytes, call_id)
        elif not fields.patient_email:
            logger.info("No patient email found, skipping patient email", extra=log_context)

        # Video failures are logged inside the controller.
        video_url = await video_task
        if video_url and fields.patient_email:
            await self._send_video_ready(fields, video_url, call_id)

    def _resolve_fields(self, call_data: Mapping, call_id: UUID) -> CallDisplayFields:
        call_timestamp: int | None = None
        patient_name: str | None = None
        try:
            record = self._store.get(call_id)
        except Exception:
            logger.exception(
                "Could not load call record; using payload only",
                extra=build_log_context(call_id=str(call_id), stage="notify"),
            )
            record = None
        if record is not None:
            call_timestamp = record.event_timestamp
            patient_name = patient_display_name_for(record)
        if call_timestamp is not None:
            try:
                format_call_date(call_timestamp)
            except (ValueError, OverflowError, OSError):
                logger.warning(
                    "Call timestamp %s is out of range; using current time",
                    call_timestamp,
                    extra=build_log_context(call_id=str(call_id), stage="notify"),
                )
                call_timestamp = None
        if call_timestamp is None:
            call_timestamp = int(time.time())
        return resolve_display_fields(call_data, call_timestamp, patient_name=patient_name)

    def _render_guide(self, fields: CallDisplayFields, call_id: UUID) -> bytes | None:
        try:
            return generate_patient_guide_pdf(build_patient_guide_data(fields))
        except DocumentSynthesisFailure:
            logger.exception(
                "PDF generation failed",
                extra=build_log_context(call_id=str(call_id), stage="pdf"),
            )
            return None

    async def _send(self, to: str, rendered, attachments: list[EmailAttachment] | None = None) -> None:
        if self._email_client is None:
            raise EmailSendFailure("RESEND_API_KEY not configured")
        await self._email_client.send(
            EmailMessage(
                from_address=self._from_email,
                to=to,
                subject=rendered.subject,
                html=rendered.html,
                attachments=attachments or [],
            )
        )

    async def _send_doctor_summary(self, fields: CallDisplayFields, call_id: UUID) -> None:
        log_context = build_log_context(call_id=str(call_id), stage="doctor_email")
        try:
            await self._send(self._doctor_email, call_email_templates.render_doctor_summary(fields))
        except Exception:
            logger.exception("Failed to send doctor email", extra=log_context)
            return
        logger.info("Doctor email sent", extra=log_context)
        try:
            self._store.mark_doctor_email_sent(call_id)
        except Exception:
            logger.exception("Doctor email sent but status not recorded", extra=log_context)

    async def _send_patient_guide(
        self, fields: CallDisplayFields, pdf_bytes: bytes, call_id: UUID
    ) -> None:
        log_context = build_log_context(call_id=str(call_id), stage="patient_email")
        email = fields.patient_email
        attachment = EmailAttachment(
            filename=call_email_templates.guide_attachment_filename(fields.patient_name),
            content=pdf_bytes,
        )
        try:
            await self._send(
                email,
                call_email_templates.render_patient_guide_email(fields),
                [attachment],
            )
        except Exception:
            logger.exception("Failed to send patient email", extra=log_context)
            return
        logger.info("Patient email sent to %s", mask_email(email), extra=log_context)
        try:
            self._store.mark_patient_email_sent(call_id, email)
        except Exception:
            logger.exception("Patient email sent but status not recorded", extra=log_context)

    async def _send_video_ready(
        self, fields: CallDisplayFields, video_url: str, call_id: UUID
    ) -> None:
        log_context = build_log_context(call_id=str(call_id), stage="video_email")
        try:
            await self._send(
                fields.patient_email,
                call_email_templates.render_video_ready_email(fields, video_url),
            )
            logger.info("Patient video email sent", extra=log_context)
        except Exception:
            logger.exception("Failed to send video follow-up email", extra=log_context)
