"""initial enrollment schema: registry mirror, enrollments, waitlist, audit log

Revision ID: a1c2e3f4b5d6
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "a1c2e3f4b5d6"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── Enums ────────────────────────────────────────────────────────────
    op.execute("CREATE TYPE course_status AS ENUM ('DRAFT', 'ACTIVE', 'ARCHIVED')")
    op.execute("CREATE TYPE enrollment_status AS ENUM ('ACTIVE', 'COMPLETED', 'DROPPED')")
    op.execute("CREATE TYPE waitlist_exit_reason AS ENUM ('PROMOTED', 'WITHDRAWN')")
    op.execute(
        "CREATE TYPE enrollment_action AS ENUM "
        "('ENROLLED', 'WAITLISTED', 'DROPPED', 'PROMOTED', 'WAITLIST_REMOVED')"
    )
    course_status = postgresql.ENUM(name="course_status", create_type=False)
    enrollment_status = postgresql.ENUM(name="enrollment_status", create_type=False)
    waitlist_exit_reason = postgresql.ENUM(name="waitlist_exit_reason", create_type=False)
    enrollment_action = postgresql.ENUM(name="enrollment_action", create_type=False)

    # ── Course registry mirror ───────────────────────────────────────────
    op.create_table(
        "courses",
        sa.Column("course_id", sa.Uuid(), primary_key=True),
        sa.Column("title", sa.String(length=300), nullable=False),
        sa.Column("max_students", sa.Integer(), nullable=False),
        sa.Column("status", course_status, nullable=False, server_default="DRAFT"),
        sa.Column("enrollment_start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("enrollment_end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("max_students > 0", name="ck_courses_max_students_positive"),
    )
    op.create_index("ix_courses_status", "courses", ["status"])

    op.create_table(
        "course_prerequisites",
        sa.Column(
            "course_id", sa.Uuid(),
            sa.ForeignKey("courses.course_id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column(
            "prerequisite_course_id", sa.Uuid(),
            sa.ForeignKey("courses.course_id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.CheckConstraint(
            "course_id <> prerequisite_course_id", name="ck_course_prerequisites_not_self"
        ),
    )

    op.create_table(
        "course_instructors",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "course_id", sa.Uuid(),
            sa.ForeignKey("courses.course_id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("instructor_id", sa.Uuid(), nullable=False),
        sa.Column("role", sa.String(length=50), nullable=False, server_default="instructor"),
        sa.Column("added_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("course_id", "instructor_id", name="uq_course_instructor"),
    )
    op.create_index("ix_course_instructors_instructor_id", "course_instructors", ["instructor_id"])

    # ── Enrollments ──────────────────────────────────────────────────────
    op.create_table(
        "enrollments",
        sa.Column("enrollment_id", sa.Uuid(), primary_key=True),
        sa.Column("student_id", sa.Uuid(), nullable=False),
        sa.Column(
            "course_id", sa.Uuid(),
            sa.ForeignKey("courses.course_id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("status", enrollment_status, nullable=False, server_default="ACTIVE"),
        sa.Column("progress_pct", sa.Numeric(precision=5, scale=2), nullable=False, server_default="0"),
        sa.Column("enrolled_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("dropped_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("student_id", "course_id", name="uq_enrollments_student_course"),
    )
    op.create_index("ix_enrollments_course_status", "enrollments", ["course_id", "status"])
    op.create_index("ix_enrollments_student_id", "enrollments", ["student_id"])

    # ── Waitlist ─────────────────────────────────────────────────────────
    op.create_table(
        "course_waitlist",
        sa.Column("waitlist_id", sa.Uuid(), primary_key=True),
        sa.Column(
            "course_id", sa.Uuid(),
            sa.ForeignKey("courses.course_id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("student_id", sa.Uuid(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("deactivated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deactivation_reason", waitlist_exit_reason, nullable=True),
        sa.UniqueConstraint("course_id", "student_id", name="uq_course_waitlist_course_student"),
    )
    op.create_index(
        "uq_course_waitlist_active_position",
        "course_waitlist",
        ["course_id", "position"],
        unique=True,
        postgresql_where=sa.text("is_active"),
    )
    op.create_index("ix_course_waitlist_student_id", "course_waitlist", ["student_id"])

    # ── Audit log ────────────────────────────────────────────────────────
    op.create_table(
        "enrollment_audit_log",
        sa.Column("audit_id", sa.Uuid(), primary_key=True),
        sa.Column("course_id", sa.Uuid(), nullable=False),
        sa.Column("student_id", sa.Uuid(), nullable=True),
        sa.Column("action", enrollment_action, nullable=False),
        sa.Column("performed_by", sa.Uuid(), nullable=False),
        sa.Column("performed_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column(
            "metadata", postgresql.JSONB(astext_type=sa.Text()),
            nullable=False, server_default="{}",
        ),
    )
    op.create_index("ix_enrollment_audit_log_course_id", "enrollment_audit_log", ["course_id"])
    op.create_index("ix_enrollment_audit_log_student_id", "enrollment_audit_log", ["student_id"])
    op.create_index("ix_enrollment_audit_log_performed_at", "enrollment_audit_log", ["performed_at"])


def downgrade() -> None:
    op.drop_table("enrollment_audit_log")
    op.drop_table("course_waitlist")
    op.drop_table("enrollments")
    op.drop_table("course_instructors")
    op.drop_table("course_prerequisites")
    op.drop_table("courses")
    op.execute("DROP TYPE IF EXISTS enrollment_action")
    op.execute("DROP TYPE IF EXISTS waitlist_exit_reason")
    op.execute("DROP TYPE IF EXISTS enrollment_status")
    op.execute("DROP TYPE IF EXISTS course_status")
