"""Learning controller — maps service results to HTTP responses, catches domain exceptions."""

from __future__ import annotations

from uuid import UUID

from fastapi import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.enrollment import service
from app.enrollment.schemas import (
    CourseRatingResponse,
    EnrollmentResponse,
    LearningStatsResponse,
    LessonCompletionResponse,
    MyEnrollmentItem,
    ProgressResponse,
)
from app.exceptions import DomainError
from app.http_errors import to_http_exception
from app.lms.schemas import CourseSummary
from app.pagination import OffsetPage


async def enroll(db: AsyncSession, user_id: UUID, course_id: UUID) -> EnrollmentResponse:
    try:
        enrollment = await service.enroll(db, user_id, course_id)
        return EnrollmentResponse.model_validate(enrollment)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def complete_lesson(
    db: AsyncSession,
    user_id: UUID,
    course_id: UUID,
    lesson_id: UUID,
    settings: Settings,
) -> LessonCompletionResponse:
    try:
        result = await service.complete_lesson(db, user_id, course_id, lesson_id, settings)
        return LessonCompletionResponse.model_validate(result)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def get_progress(db: AsyncSession, user_id: UUID, course_id: UUID) -> ProgressResponse:
    try:
        snapshot = await service.get_progress(db, user_id, course_id)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    enrollment = snapshot.enrollment
    return ProgressResponse(
        enrollment_id=enrollment.enrollment_id,
        course_id=enrollment.course_id,
        progress=snapshot.progress,
        completed_lessons=snapshot.completed_lesson_ids,
        total_lessons=snapshot.total_lessons,
        certificate_issued=enrollment.certificate_issued,
        certificate_hash=enrollment.certificate_hash,
        enrolled_at=enrollment.enrolled_at,
        completed_at=enrollment.completed_at,
        last_accessed_at=enrollment.last_accessed_at,
    )


async def download_certificate(
    db: AsyncSession,
    user_id: UUID,
    course_id: UUID,
    settings: Settings,
) -> Response:
    try:
        cert, pdf = await service.render_certificate(db, user_id, course_id, settings)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="certificate-{cert.serial_hash}.pdf"',
        },
    )


async def rate_course(
    db: AsyncSession, user_id: UUID, course_id: UUID, rating: int,
) -> CourseRatingResponse:
    try:
        course = await service.rate_course(db, user_id, course_id, rating)
        return CourseRatingResponse.model_validate(course)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def list_my_enrollments(
    db: AsyncSession,
    user_id: UUID,
    *,
    limit: int,
    offset: int,
) -> OffsetPage[MyEnrollmentItem]:
    rows, total = await service.get_my_enrollments(db, user_id, limit=limit, offset=offset)
    items = [
        MyEnrollmentItem(
            enrollment_id=enrollment.enrollment_id,
            progress=progress,
            certificate_issued=enrollment.certificate_issued,
            enrolled_at=enrollment.enrolled_at,
            completed_at=enrollment.completed_at,
            course=CourseSummary.model_validate(course),
        )
        for enrollment, course, progress in rows
    ]
    return OffsetPage[MyEnrollmentItem](items=items, total=total, limit=limit, offset=offset)


async def get_learning_stats(db: AsyncSession, user_id: UUID) -> LearningStatsResponse:
    stats = await service.get_learning_stats(db, user_id)
    return LearningStatsResponse.model_validate(stats)
