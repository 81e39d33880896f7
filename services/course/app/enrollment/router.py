"""Learning router — enrollment, lesson completion, progress and certificate download."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.user import CurrentUser

from app.config import Settings
from app.database import get_db
from app.dependencies import get_current_user, get_settings
from app.enrollment import controller
from app.enrollment.schemas import (
    CourseRatingResponse,
    EnrollmentResponse,
    LearningStatsResponse,
    LessonCompletionResponse,
    MyEnrollmentItem,
    ProgressResponse,
    RateCourseRequest,
)
from app.pagination import OffsetPage

router = APIRouter(prefix="/learning", tags=["Learning"])


@router.post(
    "/courses/{course_id}/enroll",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll in a course",
    description="Only published courses (or those awaiting re-approval) accept enrollments. "
    "Returns 409 if already enrolled.",
)
async def enroll(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> EnrollmentResponse:
    return await controller.enroll(db, user.id, course_id)


@router.post(
    "/courses/{course_id}/lessons/{lesson_id}/complete",
    response_model=LessonCompletionResponse,
    summary="Mark a lesson complete",
    description="Recomputes progress. Reaching 100% issues the certificate; "
    "if that fails the completion still succeeds and issuance is retried later.",
)
async def complete_lesson(
    course_id: UUID,
    lesson_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> LessonCompletionResponse:
    return await controller.complete_lesson(db, user.id, course_id, lesson_id, settings)


@router.get(
    "/courses/{course_id}/progress",
    response_model=ProgressResponse,
    summary="Get my progress in a course",
)
async def get_progress(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> ProgressResponse:
    return await controller.get_progress(db, user.id, course_id)


@router.get(
    "/courses/{course_id}/certificate",
    response_class=Response,
    summary="Download my certificate (PDF)",
    description="Issues the certificate on demand if the course is complete but "
    "issuance had previously failed.",
    responses={200: {"content": {"application/pdf": {}}}},
)
async def download_certificate(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> Response:
    return await controller.download_certificate(db, user.id, course_id, settings)


@router.post(
    "/courses/{course_id}/rate",
    response_model=CourseRatingResponse,
    summary="Rate a course I am enrolled in",
    description="Scores are whole stars from 1 to 5. Rating again replaces your earlier score; "
    "the course average is recomputed from every learner's current rating.",
)
async def rate_course(
    course_id: UUID,
    body: RateCourseRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> CourseRatingResponse:
    return await controller.rate_course(db, user.id, course_id, body.rating)


@router.get(
    "/courses",
    response_model=OffsetPage[MyEnrollmentItem],
    summary="List my enrollments",
)
async def list_my_enrollments(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> OffsetPage[MyEnrollmentItem]:
    return await controller.list_my_enrollments(db, user.id, limit=limit, offset=offset)


@router.get(
    "/stats",
    response_model=LearningStatsResponse,
    summary="My learning statistics",
)
async def get_learning_stats(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> LearningStatsResponse:
    return await controller.get_learning_stats(db, user.id)
