"""Moderation controller — maps service results to HTTP responses, catches domain exceptions."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.user import CurrentUser

from app.exceptions import DomainError
from app.http_errors import to_http_exception
from app.lms.schemas import CourseResponse, CourseSummary
from app.moderation import service
from app.moderation.workflow import CourseAction
from app.pagination import OffsetPage


async def submit_course(
    db: AsyncSession,
    course_id: UUID,
    user: CurrentUser,
) -> CourseResponse:
    try:
        course = await service.submit_course(db, course_id, user.id, is_admin=user.is_admin)
        return CourseResponse.model_validate(course)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def review_course(
    db: AsyncSession,
    course_id: UUID,
    admin: CurrentUser,
    *,
    action: CourseAction,
    reason: str | None = None,
) -> CourseResponse:
    try:
        course = await service.review_course(
            db, course_id, admin.id, action=action, reason=reason,
        )
        return CourseResponse.model_validate(course)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def list_review_queue(
    db: AsyncSession,
    *,
    limit: int,
    offset: int,
) -> OffsetPage[CourseSummary]:
    courses, total = await service.list_review_queue(db, limit=limit, offset=offset)
    return OffsetPage[CourseSummary](
        items=[CourseSummary.model_validate(c) for c in courses],
        total=total,
        limit=limit,
        offset=offset,
    )
