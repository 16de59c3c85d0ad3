"""Content pipeline review, production and sequence tables."""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql as pg


# revision identifiers, used by Alembic.
revision = "20261019_01_content_pipeline"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", pg.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(), nullable=False, unique=True),
        sa.Column("full_name", sa.String(), nullable=True),
        sa.Column("role", sa.String(length=32), nullable=False, server_default="script_writer"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True, server_default=sa.text("now()")),
    )

    op.create_table(
        "content_profiles",
        sa.Column("id", pg.UUID(as_uuid=True), primary_key=True),
        sa.Column("code", sa.String(length=16), nullable=False, unique=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("platform", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True, server_default=sa.text("now()")),
    )

    op.create_table(
        "content_records",
        sa.Column("id", pg.UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("script_body", sa.Text(), nullable=True),
        sa.Column("namespace_code", sa.String(length=16), nullable=True),
        sa.Column("submitted_by_id", pg.UUID(as_uuid=True), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="pending"),
        sa.Column("stage", sa.String(length=32), nullable=False, server_default="not_started"),
        sa.Column("content_code", sa.String(length=64), nullable=True, unique=True),
        sa.Column("rejection_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("disapproval_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_dissolved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("dissolution_reason", sa.Text(), nullable=True),
        sa.Column("disapproval_reason", sa.Text(), nullable=True),
        sa.Column("review_feedback", sa.Text(), nullable=True),
        sa.Column("reviewed_by_id", pg.UUID(as_uuid=True), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_disapproved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("stage_entered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("posted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["submitted_by_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["reviewed_by_id"], ["users.id"]),
        sa.CheckConstraint("rejection_count >= 0", name="ck_content_records_rejection_count"),
        sa.CheckConstraint("disapproval_count >= 0", name="ck_content_records_disapproval_count"),
    )
    op.create_index("ix_content_records_status_stage", "content_records", ["status", "stage"])

    op.create_table(
        "content_assignments",
        sa.Column("id", pg.UUID(as_uuid=True), primary_key=True),
        sa.Column("record_id", pg.UUID(as_uuid=True), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False),
        sa.Column("user_id", pg.UUID(as_uuid=True), nullable=False),
        sa.Column("assigned_by_id", pg.UUID(as_uuid=True), nullable=True),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=True, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["record_id"], ["content_records.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["assigned_by_id"], ["users.id"]),
        sa.UniqueConstraint("record_id", "role", name="uq_content_assignments_record_role"),
    )
    op.create_index("ix_content_assignments_user_role", "content_assignments", ["user_id", "role"])

    op.create_table(
        "sequence_counters",
        sa.Column("namespace_code", sa.String(length=16), primary_key=True),
        sa.Column("next_value", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True, server_default=sa.text("now()")),
    )

    op.create_table(
        "used_content_codes",
        sa.Column("code", sa.String(length=64), primary_key=True),
        sa.Column("namespace_code", sa.String(length=16), nullable=False),
        sa.Column("record_id", pg.UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["record_id"], ["content_records.id"]),
    )
    op.create_index("ix_used_content_codes_namespace_code", "used_content_codes", ["namespace_code"])

    op.create_table(
        "content_events",
        sa.Column("id", pg.UUID(as_uuid=True), primary_key=True),
        sa.Column("record_id", pg.UUID(as_uuid=True), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("event_type", sa.String(), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column("actor_id", pg.UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["record_id"], ["content_records.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["actor_id"], ["users.id"]),
        sa.UniqueConstraint("record_id", "sequence", name="uq_content_events_record_sequence"),
    )


def downgrade() -> None:
    op.drop_table("content_events")
    op.drop_index("ix_used_content_codes_namespace_code", table_name="used_content_codes")
    op.drop_table("used_content_codes")
    op.drop_table("sequence_counters")
    op.drop_index("ix_content_assignments_user_role", table_name="content_assignments")
    op.drop_table("content_assignments")
    op.drop_index("ix_content_records_status_stage", table_name="content_records")
    op.drop_table("content_records")
    op.drop_table("content_profiles")
    op.drop_table("users")
