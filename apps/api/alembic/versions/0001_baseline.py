"""Baseline migration - patients and call events

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-18

Creates:
- patients (first/last name with legacy single-name fallback)
- call_events (one row per voice-agent conversation)
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ==========================================================================
    # patients
    # ==========================================================================
    op.create_table(
        'patients',
        sa.Column('id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=True),
        sa.Column('last_name', sa.String(100), nullable=True),
        sa.Column('name', sa.String(200), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            'first_name IS NOT NULL OR last_name IS NOT NULL OR name IS NOT NULL',
            name='ck_patients_has_name',
        ),
    )

    # ==========================================================================
    # call_events
    # ==========================================================================
    op.create_table(
        'call_events',
        sa.Column('id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('conversation_id', sa.String(128), nullable=True),
        sa.Column('agent_id', sa.String(128), nullable=True),
        sa.Column('event_type', sa.String(64), nullable=False),
        sa.Column('event_timestamp', sa.BigInteger(), nullable=True),
        sa.Column('status', sa.String(50), nullable=True),

        # Raw payload (plain JSON keeps key order)
        sa.Column('data', sa.JSON(), nullable=False),

        # Derived at ingestion
        sa.Column('call_successful', sa.Boolean(), nullable=True),
        sa.Column('call_duration_secs', sa.Float(), nullable=True),
        sa.Column('vision_scale', sa.Integer(), nullable=True),
        sa.Column('activities', sa.Text(), nullable=True),
        sa.Column('vision_preference', sa.Text(), nullable=True),
        sa.Column('extracted_email', sa.String(255), nullable=True),

        # Notification status
        sa.Column('doctor_email_sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('patient_email_sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('patient_email', sa.String(255), nullable=True),
        sa.Column('video_status', sa.String(20), server_default=sa.text("'none'"), nullable=False),
        sa.Column('video_url', sa.Text(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),

        sa.Column('patient_id', sa.Uuid(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['patient_id'], ['patients.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('conversation_id'),
    )
    op.create_index('idx_call_events_created', 'call_events', ['created_at'])
    op.create_index('idx_call_events_patient', 'call_events', ['patient_id'])


def downgrade() -> None:
    op.drop_index('idx_call_events_patient', table_name='call_events')
    op.drop_index('idx_call_events_created', table_name='call_events')
    op.drop_table('call_events')
    op.drop_table('patients')
