import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from shared.database.postgres import Base

from .enums import (
    CourseCategory,
    CourseLevel,
    CourseStatus,
    course_category_enum,
    course_level_enum,
    course_status_enum,
)


class Course(Base):
    __tablename__ = "courses"

    course_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[CourseCategory] = mapped_column(course_category_enum, nullable=False)
    level: Mapped[CourseLevel] = mapped_column(
        course_level_enum, nullable=False, default=CourseLevel.BEGINNER
    )
    creator_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.user_id", ondelete="RESTRICT"), nullable=False
    )
    thumbnail_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    # Blob-store key of the thumbnail, needed to delete it later
    thumbnail_key: Mapped[str | None] = mapped_column(String(500), nullable=True)
    status: Mapped[CourseStatus] = mapped_column(
        course_status_enum, nullable=False, default=CourseStatus.DRAFT
    )
    # Sum of active lesson durations; recomputed after every lesson mutation
    total_duration_mins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Denormalized; recomputed with COUNT(*) on enroll and by the nightly reconcile job
    enrollment_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rating_avg: Mapped[Decimal] = mapped_column(
        Numeric(3, 2), nullable=False, default=Decimal("0.00")
    )
    rating_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Moderation
    rejection_reason: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    requires_reapproval: Mapped[bool] = mapped_column(default=False, nullable=False)
    modification_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    last_modified_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("ix_courses_creator_id", "creator_id"),
        Index("ix_courses_status", "status"),
        Index("ix_courses_category", "category"),
        Index("ix_courses_created_at", "created_at"),
    )
