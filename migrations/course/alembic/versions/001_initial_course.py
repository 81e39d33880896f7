"""Initial learning schema: accounts, courses, lessons, enrollments, certificates

Revision ID: 001_initial_course
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from sqlalchemy.dialects.postgresql import UUID

# revision identifiers, used by Alembic.
revision: str = "001_initial_course"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

course_status = sa.Enum(
    "draft", "submitted", "published", "rejected", "pending_review",
    name="course_status",
)
course_category = sa.Enum(
    "programming", "design", "business", "marketing", "data-science", "other",
    name="course_category",
)
course_level = sa.Enum("beginner", "intermediate", "advanced", name="course_level")
user_role = sa.Enum("learner", "creator", "admin", name="user_role")
account_status = sa.Enum("active", "blocked", "suspended", "deleted", name="account_status")
certificate_grade = sa.Enum("A+", "A", "B+", "B", "C+", "C", "Pass", name="certificate_grade")

_ENUMS = (
    course_status, course_category, course_level, user_role, account_status, certificate_grade,
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False,
            server_default=sa.text("now()"),
        ),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in _ENUMS:
        enum_type.create(bind, checkfirst=True)

    # ── users ────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("user_id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column(
            "role", postgresql.ENUM(name="user_role", create_type=False),
            nullable=False, server_default="learner",
        ),
        sa.Column(
            "account_status", postgresql.ENUM(name="account_status", create_type=False),
            nullable=False, server_default="active",
        ),
        sa.Column("status_reason", sa.String(500), nullable=True),
        sa.Column("status_changed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_account_status", "users", ["account_status"])

    # ── courses ──────────────────────────────────────────────────────────
    op.create_table(
        "courses",
        sa.Column(
            "course_id", UUID(as_uuid=True), primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("category", postgresql.ENUM(name="course_category", create_type=False), nullable=False),
        sa.Column(
            "level", postgresql.ENUM(name="course_level", create_type=False),
            nullable=False, server_default="beginner",
        ),
        sa.Column(
            "creator_id", UUID(as_uuid=True),
            sa.ForeignKey("users.user_id", ondelete="RESTRICT"), nullable=False,
        ),
        sa.Column("thumbnail_url", sa.String(500), nullable=True),
        sa.Column("thumbnail_key", sa.String(500), nullable=True),
        sa.Column(
            "status", postgresql.ENUM(name="course_status", create_type=False),
            nullable=False, server_default="draft",
        ),
        sa.Column("total_duration_mins", sa.Integer, nullable=False, server_default="0"),
        sa.Column("enrollment_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("rating_avg", sa.Numeric(3, 2), nullable=False, server_default="0.00"),
        sa.Column("rating_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("rejection_reason", sa.String(1000), nullable=True),
        sa.Column("requires_reapproval", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("modification_reason", sa.String(500), nullable=True),
        sa.Column("last_modified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed_by", UUID(as_uuid=True), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_courses_creator_id", "courses", ["creator_id"])
    op.create_index("ix_courses_status", "courses", ["status"])
    op.create_index("ix_courses_category", "courses", ["category"])
    op.create_index("ix_courses_created_at", "courses", ["created_at"])

    # ── lessons ──────────────────────────────────────────────────────────
    op.create_table(
        "lessons",
        sa.Column(
            "lesson_id", UUID(as_uuid=True), primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column(
            "course_id", UUID(as_uuid=True),
            sa.ForeignKey("courses.course_id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("video_url", sa.String(500), nullable=True),
        sa.Column("duration_mins", sa.Integer, nullable=False),
        sa.Column("sort_order", sa.Integer, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        *_timestamps(),
        sa.UniqueConstraint("course_id", "sort_order", name="uq_lessons_course_order"),
    )
    op.create_index("ix_lessons_course_id", "lessons", ["course_id"])

    # ── enrollments ──────────────────────────────────────────────────────
    op.create_table(
        "enrollments",
        sa.Column(
            "enrollment_id", UUID(as_uuid=True), primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column(
            "user_id", UUID(as_uuid=True),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "course_id", UUID(as_uuid=True),
            sa.ForeignKey("courses.course_id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("progress", sa.Integer, nullable=False, server_default="0"),
        sa.Column("certificate_issued", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("certificate_hash", sa.String(32), nullable=True),
        sa.Column("rating", sa.Integer, nullable=True),
        sa.Column(
            "enrolled_at", sa.DateTime(timezone=True), nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "last_accessed_at", sa.DateTime(timezone=True), nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.UniqueConstraint("user_id", "course_id", name="uq_enrollments_user_course"),
        sa.CheckConstraint("progress BETWEEN 0 AND 100", name="ck_enrollments_progress_range"),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_enrollments_rating_range"),
    )
    op.create_index("ix_enrollments_user_id", "enrollments", ["user_id"])
    op.create_index("ix_enrollments_course_id", "enrollments", ["course_id"])

    # ── lesson_completions ───────────────────────────────────────────────
    op.create_table(
        "lesson_completions",
        sa.Column(
            "completion_id", UUID(as_uuid=True), primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column(
            "enrollment_id", UUID(as_uuid=True),
            sa.ForeignKey("enrollments.enrollment_id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "lesson_id", UUID(as_uuid=True),
            sa.ForeignKey("lessons.lesson_id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "completed_at", sa.DateTime(timezone=True), nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.UniqueConstraint(
            "enrollment_id", "lesson_id", name="uq_lesson_completions_enrollment_lesson",
        ),
    )
    op.create_index("ix_lesson_completions_lesson_id", "lesson_completions", ["lesson_id"])

    # ── certificates ─────────────────────────────────────────────────────
    op.create_table(
        "certificates",
        sa.Column(
            "certificate_id", UUID(as_uuid=True), primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("user_id", UUID(as_uuid=True), nullable=False),
        sa.Column(
            "course_id", UUID(as_uuid=True),
            sa.ForeignKey("courses.course_id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("enrollment_id", UUID(as_uuid=True), nullable=True),
        sa.Column("serial_hash", sa.String(32), nullable=False, unique=True),
        sa.Column("learner_name", sa.String(200), nullable=False),
        sa.Column("course_title", sa.String(300), nullable=False),
        sa.Column("total_lessons", sa.Integer, nullable=False),
        sa.Column("course_duration_mins", sa.Integer, nullable=False),
        sa.Column("issued_by_id", UUID(as_uuid=True), nullable=True),
        sa.Column("issued_by_name", sa.String(200), nullable=False),
        sa.Column(
            "grade", postgresql.ENUM(name="certificate_grade", create_type=False),
            nullable=False, server_default="Pass",
        ),
        sa.Column(
            "completion_date", sa.DateTime(timezone=True), nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column("is_valid", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("invalidated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("invalidated_by", UUID(as_uuid=True), nullable=True),
        sa.UniqueConstraint("user_id", "course_id", name="uq_certificates_user_course"),
    )
    op.create_index("ix_certificates_user_id", "certificates", ["user_id"])

    # ── course_restrictions ──────────────────────────────────────────────
    op.create_table(
        "course_restrictions",
        sa.Column(
            "restriction_id", UUID(as_uuid=True), primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column(
            "user_id", UUID(as_uuid=True),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "course_id", UUID(as_uuid=True),
            sa.ForeignKey("courses.course_id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("restricted_by", UUID(as_uuid=True), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.UniqueConstraint("user_id", "course_id", name="uq_course_restrictions_user_course"),
    )


def downgrade() -> None:
    op.drop_table("course_restrictions")
    op.drop_index("ix_certificates_user_id", table_name="certificates")
    op.drop_table("certificates")
    op.drop_index("ix_lesson_completions_lesson_id", table_name="lesson_completions")
    op.drop_table("lesson_completions")
    op.drop_index("ix_enrollments_course_id", table_name="enrollments")
    op.drop_index("ix_enrollments_user_id", table_name="enrollments")
    op.drop_table("enrollments")
    op.drop_index("ix_lessons_course_id", table_name="lessons")
    op.drop_table("lessons")
    for name in (
        "ix_courses_created_at", "ix_courses_category", "ix_courses_status", "ix_courses_creator_id",
    ):
        op.drop_index(name, table_name="courses")
    op.drop_table("courses")
    op.drop_index("ix_users_account_status", table_name="users")
    op.drop_index("ix_users_role", table_name="users")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_type in reversed(_ENUMS):
        enum_type.drop(bind, checkfirst=True)
