"""SQLAlchemy ORM models."""

from app.db.models.call_events import CallEvent
from app.db.models.patients import Patient, patient_display_name

__all__ = [
    "CallEvent",
    "Patient",
    "patient_display_name",
]
