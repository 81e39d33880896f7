"""Learning-side Pydantic V2 schemas: enrollment, completion, progress and ratings."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.lms.schemas import CourseSummary


class EnrollmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    enrollment_id: UUID
    course_id: UUID
    enrolled_at: datetime


class LessonCompletionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    lesson_id: UUID
    progress: int = Field(ge=0, le=100)
    completed_lessons_count: int
    total_lessons: int
    course_completed: bool
    certificate_issued: bool


class ProgressResponse(BaseModel):
    enrollment_id: UUID
    course_id: UUID
    progress: int = Field(ge=0, le=100, description="Integer percentage of active lessons completed.")
    completed_lessons: list[UUID]
    total_lessons: int
    certificate_issued: bool
    certificate_hash: str | None = None
    enrolled_at: datetime
    completed_at: datetime | None = None
    last_accessed_at: datetime


class MyEnrollmentItem(BaseModel):
    enrollment_id: UUID
    progress: int
    certificate_issued: bool
    enrolled_at: datetime
    completed_at: datetime | None = None
    course: CourseSummary


class LearningStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_enrolled: int
    completed_courses: int
    in_progress: int
    total_completed_lessons: int
    total_learning_time_mins: int
    average_progress: int


class RateCourseRequest(BaseModel):
    rating: int = Field(ge=1, le=5, description="Whole stars, 1 to 5.")


class CourseRatingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    course_id: UUID
    rating_avg: Decimal
    rating_count: int
