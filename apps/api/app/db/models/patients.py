"""Clinic-side patient records that calls can be attached to."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base

if TYPE_CHECKING:
    from app.db.models import CallEvent


class Patient(Base):
    """
    A patient known to the clinic.

    Older rows only carry the single legacy ``name`` column; newer rows use
    ``first_name``/``last_name``. At least one of them is always present.
    """

    __tablename__ = "patients"
    __table_args__ = (
        CheckConstraint(
            "first_name IS NOT NULL OR last_name IS NOT NULL OR name IS NOT NULL",
            name="ck_patients_has_name",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    call_events: Mapped[list["CallEvent"]] = relationship(back_populates="patient")

    @property
    def display_name(self) -> str:
        return patient_display_name(self.first_name, self.last_name, self.name)


def patient_display_name(
    first_name: str | None, last_name: str | None, name: str | None
) -> str:
    """``"First Last"`` when either part is set, else the legacy single name."""
    joined = " ".join(part.strip() for part in (first_name, last_name) if part and part.strip())
    return joined or (name or "").strip()
