"""SQLAlchemy table definitions.

These map to the frozen dataclass domain models in pathway_engine/models/.
Repos convert between SQLAlchemy rows and domain dataclasses.
"""

from __future__ import annotations

import datetime
import uuid

from sqlalchemy import (
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from pathway_engine.db.engine import Base

# --- Catalog (owned by the catalog editor; read here) ---


class ActivityRow(Base):
    __tablename__ = "activities"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    pathway_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    activity_type: Mapped[str] = mapped_column(
        String(32), nullable=False
    )  # external_course|self_assessment|peer_assessment|attendance|observation
    weight: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    ordering_hint: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default="active"
    )  # active|removed
    external_ref: Mapped[str | None] = mapped_column(Text, nullable=True)


class PrerequisiteGroupRow(Base):
    __tablename__ = "activity_prereq_groups"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    activity_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("activities.id"), nullable=False, index=True
    )
    prereq_type: Mapped[str] = mapped_column(
        String(16), nullable=False, default="all_of"
    )  # all_of|any_of|n_of_m
    n_required: Mapped[int | None] = mapped_column(Integer, nullable=True)


class PrerequisiteItemRow(Base):
    __tablename__ = "activity_prereq_items"

    group_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("activity_prereq_groups.id"), primary_key=True
    )
    prerequisite_activity_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("activities.id"), primary_key=True
    )


class DripRuleRow(Base):
    __tablename__ = "activity_drip_rules"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    activity_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("activities.id"), nullable=False, index=True
    )
    drip_type: Mapped[str] = mapped_column(
        String(32), nullable=False
    )  # fixed_date|after_completion_delay
    release_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    base_activity_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("activities.id"), nullable=True
    )
    delay_days: Mapped[int | None] = mapped_column(Integer, nullable=True)


# --- Enrollment (owned by the enrollment subsystem; read here) ---


class EnrollmentRow(Base):
    __tablename__ = "enrollments"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    track_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, index=True
    )
    assigned_pathway_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True
    )
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default="active"
    )  # active|inactive


# --- Completion signals, overrides and the cached rollup ---


class ActivityStateRow(Base):
    __tablename__ = "activity_states"

    enrollment_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("enrollments.id"), primary_key=True
    )
    activity_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("activities.id"), primary_key=True
    )
    completion_percent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completion_status: Mapped[str] = mapped_column(
        String(16), nullable=False, default="not_started"
    )  # not_started|in_progress|complete
    completed_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    evidence_ref: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_computed_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )


class OverrideRow(Base):
    __tablename__ = "activity_overrides"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    enrollment_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("enrollments.id"), nullable=False, index=True
    )
    activity_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("activities.id"), nullable=False, index=True
    )
    override_type: Mapped[str] = mapped_column(
        String(16), nullable=False
    )  # exempt|manual_unlock|grace_unlock
    applied_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True
    )
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )


class CompletionRollupRow(Base):
    __tablename__ = "completion_rollups"

    enrollment_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("enrollments.id"), primary_key=True
    )
    track_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True, index=True
    )
    pathway_completion_percent: Mapped[float] = mapped_column(
        Numeric(5, 2, asdecimal=False), nullable=False, default=0.0
    )
    track_completion_percent: Mapped[float] = mapped_column(
        Numeric(5, 2, asdecimal=False), nullable=False, default=0.0
    )
    last_computed_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
