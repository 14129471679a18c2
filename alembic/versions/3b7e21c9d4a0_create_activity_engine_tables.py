"""create activity engine tables

Revision ID: 3b7e21c9d4a0
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b7e21c9d4a0"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "activities",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("pathway_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("activity_type", sa.String(length=32), nullable=False),
        sa.Column("weight", sa.Float(), nullable=False, server_default="1.0"),
        sa.Column("ordering_hint", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
        sa.Column("external_ref", sa.Text(), nullable=True),
    )
    op.create_index("ix_activities_pathway_id", "activities", ["pathway_id"])

    op.create_table(
        "activity_prereq_groups",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "activity_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("activities.id"),
            nullable=False,
        ),
        sa.Column("prereq_type", sa.String(length=16), nullable=False, server_default="all_of"),
        sa.Column("n_required", sa.Integer(), nullable=True),
    )
    op.create_index(
        "ix_activity_prereq_groups_activity_id", "activity_prereq_groups", ["activity_id"]
    )

    op.create_table(
        "activity_prereq_items",
        sa.Column(
            "group_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("activity_prereq_groups.id"),
            primary_key=True,
        ),
        sa.Column(
            "prerequisite_activity_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("activities.id"),
            primary_key=True,
        ),
    )

    op.create_table(
        "activity_drip_rules",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "activity_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("activities.id"),
            nullable=False,
        ),
        sa.Column("drip_type", sa.String(length=32), nullable=False),
        sa.Column("release_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "base_activity_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("activities.id"),
            nullable=True,
        ),
        sa.Column("delay_days", sa.Integer(), nullable=True),
    )
    op.create_index(
        "ix_activity_drip_rules_activity_id", "activity_drip_rules", ["activity_id"]
    )

    op.create_table(
        "enrollments",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("track_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("assigned_pathway_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
    )
    op.create_index("ix_enrollments_track_id", "enrollments", ["track_id"])

    op.create_table(
        "activity_states",
        sa.Column(
            "enrollment_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("enrollments.id"),
            primary_key=True,
        ),
        sa.Column(
            "activity_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("activities.id"),
            primary_key=True,
        ),
        sa.Column("completion_percent", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "completion_status",
            sa.String(length=16),
            nullable=False,
            server_default="not_started",
        ),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("evidence_ref", sa.Text(), nullable=True),
        sa.Column("last_computed_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "activity_overrides",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "enrollment_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("enrollments.id"),
            nullable=False,
        ),
        sa.Column(
            "activity_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("activities.id"),
            nullable=False,
        ),
        sa.Column("override_type", sa.String(length=16), nullable=False),
        sa.Column("applied_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_activity_overrides_enrollment_id", "activity_overrides", ["enrollment_id"]
    )
    op.create_index(
        "ix_activity_overrides_activity_id", "activity_overrides", ["activity_id"]
    )

    op.create_table(
        "completion_rollups",
        sa.Column(
            "enrollment_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("enrollments.id"),
            primary_key=True,
        ),
        sa.Column("track_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column(
            "pathway_completion_percent",
            sa.Numeric(5, 2),
            nullable=False,
            server_default="0",
        ),
        sa.Column(
            "track_completion_percent",
            sa.Numeric(5, 2),
            nullable=False,
            server_default="0",
        ),
        sa.Column("last_computed_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_completion_rollups_track_id", "completion_rollups", ["track_id"])


def downgrade() -> None:
    op.drop_index("ix_completion_rollups_track_id", table_name="completion_rollups")
    op.drop_table("completion_rollups")
    op.drop_index("ix_activity_overrides_activity_id", table_name="activity_overrides")
    op.drop_index("ix_activity_overrides_enrollment_id", table_name="activity_overrides")
    op.drop_table("activity_overrides")
    op.drop_table("activity_states")
    op.drop_index("ix_enrollments_track_id", table_name="enrollments")
    op.drop_table("enrollments")
    op.drop_index("ix_activity_drip_rules_activity_id", table_name="activity_drip_rules")
    op.drop_table("activity_drip_rules")
    op.drop_table("activity_prereq_items")
    op.drop_index(
        "ix_activity_prereq_groups_activity_id", table_name="activity_prereq_groups"
    )
    op.drop_table("activity_prereq_groups")
    op.drop_index("ix_activities_pathway_id", table_name="activities")
    op.drop_table("activities")
