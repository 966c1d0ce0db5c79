"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-17 09:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="student"),
        sa.Column("subscription_tier", sa.String(length=20), nullable=False, server_default="free"),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True)),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "mentors",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("bio", sa.Text()),
        sa.Column("current_role", sa.String(length=255)),
        sa.Column("company", sa.String(length=255)),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("session_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("average_rating", sa.Numeric(3, 2)),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_mentors_id", "mentors", ["id"])

    op.create_table(
        "mentor_availability",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("mentor_id", sa.Integer(), sa.ForeignKey("mentors.id", ondelete="CASCADE"), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("timezone", sa.String(length=64), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_availability_day_of_week"),
    )
    op.create_index("ix_mentor_availability_id", "mentor_availability", ["id"])
    op.create_index("ix_mentor_availability_mentor_id", "mentor_availability", ["mentor_id"])

    op.create_table(
        "mentor_connections",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("mentor_id", sa.Integer(), sa.ForeignKey("mentors.id", ondelete="CASCADE"), nullable=False),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("message", sa.Text()),
        sa.Column("mentor_response", sa.Text()),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("mentor_id", "student_id", name="uq_connection_mentor_student"),
    )
    op.create_index("ix_mentor_connections_id", "mentor_connections", ["id"])
    op.create_index("ix_mentor_connections_mentor_id", "mentor_connections", ["mentor_id"])
    op.create_index("ix_mentor_connections_student_id", "mentor_connections", ["student_id"])

    op.create_table(
        "mentorship_sessions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("mentor_id", sa.Integer(), sa.ForeignKey("mentors.id", ondelete="CASCADE"), nullable=False),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("scheduled_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False, server_default="60"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="scheduled"),
        sa.Column("topic", sa.String(length=255)),
        sa.Column("meeting_url", sa.Text()),
        sa.Column("notes", sa.Text()),
        sa.Column("student_notes", sa.Text()),
        sa.Column("mentor_feedback", sa.Text()),
        sa.Column("rating", sa.Integer()),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("duration_minutes BETWEEN 15 AND 90", name="ck_session_duration"),
        sa.CheckConstraint("rating IS NULL OR rating BETWEEN 1 AND 5", name="ck_session_rating"),
    )
    op.create_index("ix_mentorship_sessions_id", "mentorship_sessions", ["id"])
    op.create_index("ix_mentorship_sessions_mentor_id", "mentorship_sessions", ["mentor_id"])
    op.create_index("ix_mentorship_sessions_student_id", "mentorship_sessions", ["student_id"])
    op.create_index("ix_mentorship_sessions_scheduled_at", "mentorship_sessions", ["scheduled_at"])
    op.create_index("ix_mentorship_sessions_status", "mentorship_sessions", ["status"])

    op.create_table(
        "sent_reminders",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "session_id",
            sa.Integer(),
            sa.ForeignKey("mentorship_sessions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("reminder_type", sa.String(length=8), nullable=False),
        sa.Column("sent_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("session_id", "reminder_type", name="uq_sent_reminder_session_type"),
    )
    op.create_index("ix_sent_reminders_id", "sent_reminders", ["id"])
    op.create_index("ix_sent_reminders_session_id", "sent_reminders", ["session_id"])

    # Two scheduled sessions of one mentor may never overlap.
    if op.get_bind().dialect.name == "postgresql":
        op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
        op.execute(
            """
            ALTER TABLE mentorship_sessions
            ADD CONSTRAINT ex_mentorship_sessions_no_overlap
            EXCLUDE USING gist (
                mentor_id WITH =,
                tstzrange(
                    scheduled_at,
                    scheduled_at + make_interval(mins => duration_minutes),
                    '[)'
                ) WITH &&
            )
            WHERE (status = 'scheduled')
            """
        )


def downgrade() -> None:
    if op.get_bind().dialect.name == "postgresql":
        op.execute(
            "ALTER TABLE mentorship_sessions DROP CONSTRAINT IF EXISTS ex_mentorship_sessions_no_overlap"
        )
    op.drop_table("sent_reminders")
    op.drop_table("mentorship_sessions")
    op.drop_table("mentor_connections")
    op.drop_table("mentor_availability")
    op.drop_table("mentors")
    op.drop_table("users")
