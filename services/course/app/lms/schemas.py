"""LMS domain Pydantic V2 schemas.

Covers Course and Lesson authoring plus the public catalog.
Follows RORO: separate request models from response models.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, HttpUrl

from app.models.enums import CourseCategory, CourseLevel, CourseStatus


# ---------------------------------------------------------------------------
# Course request schemas
# ---------------------------------------------------------------------------


class CreateCourseRequest(BaseModel):
    """Request body for creating a new course (always starts as draft)."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=100, description="Course title.")
    description: str = Field(min_length=1, max_length=1000, description="Course description.")
    category: CourseCategory = Field(description="Catalog category.")
    level: CourseLevel = Field(default=CourseLevel.BEGINNER, description="Difficulty level.")


class UpdateCourseRequest(BaseModel):
    """Partial update. Editing core fields of a live course sends it back for review."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, min_length=1, max_length=1000)
    category: CourseCategory | None = None
    level: CourseLevel | None = None


# ---------------------------------------------------------------------------
# Course response schemas
# ---------------------------------------------------------------------------


class CourseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    course_id: UUID
    title: str
    description: str
    category: CourseCategory
    level: CourseLevel
    creator_id: UUID
    status: CourseStatus
    thumbnail_url: str | None = None
    total_duration_mins: int
    enrollment_count: int
    rating_avg: Decimal
    rating_count: int
    rejection_reason: str | None = None
    requires_reapproval: bool
    modification_reason: str | None = None
    last_modified_at: datetime | None = None
    submitted_at: datetime | None = None
    reviewed_by: UUID | None = None
    reviewed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class CourseSummary(BaseModel):
    """Lightweight catalog card."""

    model_config = ConfigDict(from_attributes=True)

    course_id: UUID
    title: str
    category: CourseCategory
    level: CourseLevel
    thumbnail_url: str | None = None
    total_duration_mins: int
    enrollment_count: int
    rating_avg: Decimal
    status: CourseStatus


# ---------------------------------------------------------------------------
# Lesson schemas
# ---------------------------------------------------------------------------


class CreateLessonRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    video_url: HttpUrl | None = Field(default=None, description="Hosted video location.")
    duration_mins: int = Field(ge=1, description="Lesson length in minutes.")
    order: int | None = Field(
        default=None,
        ge=1,
        description="1-based position. Appended after the last lesson if omitted.",
    )
    is_active: bool = True


class UpdateLessonRequest(BaseModel):
    """Partial update. Use the reorder endpoint to change positions."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    video_url: HttpUrl | None = None
    duration_mins: int | None = Field(default=None, ge=1)
    is_active: bool | None = Field(
        default=None,
        description="Soft-delete flag. Inactive lessons do not count toward progress.",
    )


class ReorderLessonsRequest(BaseModel):
    lesson_ids: list[UUID] = Field(
        min_length=1,
        description="Every lesson id of the course, in the desired order.",
    )


class LessonResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    lesson_id: UUID
    course_id: UUID
    title: str
    description: str | None = None
    video_url: str | None = None
    duration_mins: int
    order: int
    is_active: bool
    created_at: datetime
    updated_at: datetime


class NextOrderResponse(BaseModel):
    next_order: int
