"""LMS controller — maps service results to HTTP responses, catches domain exceptions."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.user import CurrentUser

from app.config import Settings
from app.exceptions import DomainError
from app.http_errors import to_http_exception
from app.lms import service
from app.lms.schemas import (
    CourseResponse,
    CourseSummary,
    CreateCourseRequest,
    CreateLessonRequest,
    LessonResponse,
    NextOrderResponse,
    ReorderLessonsRequest,
    UpdateCourseRequest,
    UpdateLessonRequest,
)
from app.models.enums import CourseCategory, CourseLevel, CourseStatus
from app.pagination import OffsetPage


def _url_or_none(value: object | None) -> str | None:
    return str(value) if value is not None else None


# ---------------------------------------------------------------------------
# Course
# ---------------------------------------------------------------------------


async def create_course(
    db: AsyncSession,
    user: CurrentUser,
    body: CreateCourseRequest,
) -> CourseResponse:
    try:
        course = await service.create_course(db, user.id, **body.model_dump())
        return CourseResponse.model_validate(course)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def get_course(
    db: AsyncSession,
    course_id: UUID,
    viewer: CurrentUser | None,
) -> CourseResponse:
    try:
        course = await service.get_course_for_viewer(
            db, course_id,
            viewer.id if viewer else None,
            is_admin=bool(viewer and viewer.is_admin),
        )
        return CourseResponse.model_validate(course)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def list_courses(
    db: AsyncSession,
    *,
    category: CourseCategory | None,
    level: CourseLevel | None,
    search: str | None,
    limit: int,
    offset: int,
) -> OffsetPage[CourseSummary]:
    courses, total = await service.list_courses(
        db, category=category, level=level, search=search, limit=limit, offset=offset,
    )
    return OffsetPage[CourseSummary](
        items=[CourseSummary.model_validate(c) for c in courses],
        total=total,
        limit=limit,
        offset=offset,
    )


async def list_my_courses(
    db: AsyncSession,
    user: CurrentUser,
    *,
    status: CourseStatus | None,
    limit: int,
    offset: int,
) -> OffsetPage[CourseResponse]:
    courses, total = await service.list_creator_courses(
        db, user.id, status=status, limit=limit, offset=offset,
    )
    return OffsetPage[CourseResponse](
        items=[CourseResponse.model_validate(c) for c in courses],
        total=total,
        limit=limit,
        offset=offset,
    )


async def update_course(
    db: AsyncSession,
    course_id: UUID,
    user: CurrentUser,
    body: UpdateCourseRequest,
) -> CourseResponse:
    try:
        course = await service.update_course(
            db, course_id, user.id,
            is_admin=user.is_admin,
            **body.model_dump(exclude_unset=True),
        )
        return CourseResponse.model_validate(course)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def delete_course(
    db: AsyncSession,
    course_id: UUID,
    user: CurrentUser,
    settings: Settings,
) -> None:
    try:
        await service.delete_course(db, course_id, user.id, settings, is_admin=user.is_admin)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def upload_thumbnail(
    db: AsyncSession,
    course_id: UUID,
    user: CurrentUser,
    settings: Settings,
    *,
    content: bytes,
    content_type: str,
) -> CourseResponse:
    try:
        course = await service.set_thumbnail(
            db, course_id, user.id, settings,
            content=content,
            content_type=content_type,
            is_admin=user.is_admin,
        )
        return CourseResponse.model_validate(course)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


# ---------------------------------------------------------------------------
# Lesson
# ---------------------------------------------------------------------------


async def create_lesson(
    db: AsyncSession,
    course_id: UUID,
    user: CurrentUser,
    body: CreateLessonRequest,
) -> LessonResponse:
    try:
        lesson = await service.create_lesson(
            db, course_id, user.id,
            title=body.title,
            description=body.description,
            video_url=_url_or_none(body.video_url),
            duration_mins=body.duration_mins,
            order=body.order,
            is_active=body.is_active,
            is_admin=user.is_admin,
        )
        return LessonResponse.model_validate(lesson)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def list_lessons(
    db: AsyncSession,
    course_id: UUID,
    viewer: CurrentUser | None,
) -> list[LessonResponse]:
    try:
        lessons = await service.list_lessons(
            db, course_id,
            viewer.id if viewer else None,
            is_admin=bool(viewer and viewer.is_admin),
        )
        return [LessonResponse.model_validate(lesson) for lesson in lessons]
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def get_next_order(
    db: AsyncSession,
    course_id: UUID,
    user: CurrentUser,
) -> NextOrderResponse:
    try:
        course = await service.get_course_by_id(db, course_id)
        service.ensure_can_write(course, user.id, is_admin=user.is_admin)
        return NextOrderResponse(next_order=await service.get_next_order(db, course_id))
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def update_lesson(
    db: AsyncSession,
    course_id: UUID,
    lesson_id: UUID,
    user: CurrentUser,
    body: UpdateLessonRequest,
) -> LessonResponse:
    fields = body.model_dump(exclude_unset=True)
    if "video_url" in fields:
        fields["video_url"] = _url_or_none(body.video_url)
    try:
        lesson = await service.update_lesson(
            db, course_id, lesson_id, user.id,
            is_admin=user.is_admin,
            **fields,
        )
        return LessonResponse.model_validate(lesson)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def delete_lesson(
    db: AsyncSession,
    course_id: UUID,
    lesson_id: UUID,
    user: CurrentUser,
) -> None:
    try:
        await service.delete_lesson(db, course_id, lesson_id, user.id, is_admin=user.is_admin)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def reorder_lessons(
    db: AsyncSession,
    course_id: UUID,
    user: CurrentUser,
    body: ReorderLessonsRequest,
) -> list[LessonResponse]:
    try:
        lessons = await service.reorder_lessons(
            db, course_id, user.id,
            lesson_ids=body.lesson_ids,
            is_admin=user.is_admin,
        )
        return [LessonResponse.model_validate(lesson) for lesson in lessons]
    except DomainError as exc:
        raise to_http_exception(exc) from exc
