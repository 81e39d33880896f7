"""LMS router — HTTP layer only.

Course authoring, lesson management and the public catalog.
Delegates to controller for business logic orchestration.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.user import CurrentUser

from app.config import Settings
from app.database import get_db
from app.dependencies import get_optional_user, get_settings, require_creator
from app.lms import controller
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
from app.moderation import controller as moderation_controller
from app.pagination import OffsetPage

router = APIRouter(prefix="/lms", tags=["LMS"])


# ======================================================================
# Course endpoints
# ======================================================================


@router.post(
    "/courses",
    response_model=CourseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new course",
    description="Creator starts a new course. It is always created as a draft.",
)
async def create_course(
    body: CreateCourseRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_creator),
) -> CourseResponse:
    return await controller.create_course(db, user, body)


@router.get(
    "/courses",
    response_model=OffsetPage[CourseSummary],
    summary="Browse the course catalog",
    description="Public catalog. Only published courses and courses "
    "awaiting re-approval are listed.",
)
async def list_courses(
    category: CourseCategory | None = Query(None, description="Filter by category."),
    level: CourseLevel | None = Query(None, description="Filter by difficulty level."),
    search: str | None = Query(None, description="Search in title and description."),
    limit: int = Query(20, ge=1, le=100, description="Items per page."),
    offset: int = Query(0, ge=0, description="Number of items to skip."),
    db: AsyncSession = Depends(get_db),
) -> OffsetPage[CourseSummary]:
    return await controller.list_courses(
        db,
        category=category,
        level=level,
        search=search,
        limit=limit,
        offset=offset,
    )


@router.get(
    "/courses/mine",
    response_model=OffsetPage[CourseResponse],
    summary="List my authored courses",
)
async def list_my_courses(
    status_filter: CourseStatus | None = Query(None, alias="status", description="Filter by status."),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_creator),
) -> OffsetPage[CourseResponse]:
    return await controller.list_my_courses(
        db, user, status=status_filter, limit=limit, offset=offset,
    )


@router.get(
    "/courses/{course_id}",
    response_model=CourseResponse,
    summary="Get course by ID",
    description="Drafts and rejected courses are only visible to their creator and admins.",
)
async def get_course(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    viewer: CurrentUser | None = Depends(get_optional_user),
) -> CourseResponse:
    return await controller.get_course(db, course_id, viewer)


@router.patch(
    "/courses/{course_id}",
    response_model=CourseResponse,
    summary="Update course",
    description="Editing title, description, category or level of a live course "
    "sends it back to the review queue.",
)
async def update_course(
    course_id: UUID,
    body: UpdateCourseRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_creator),
) -> CourseResponse:
    return await controller.update_course(db, course_id, user, body)


@router.delete(
    "/courses/{course_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete course",
    description="Blocked for live courses with enrollments unless the caller is an admin. "
    "Issued certificates are kept.",
)
async def delete_course(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_creator),
    settings: Settings = Depends(get_settings),
) -> None:
    await controller.delete_course(db, course_id, user, settings)


@router.put(
    "/courses/{course_id}/thumbnail",
    response_model=CourseResponse,
    summary="Upload course thumbnail",
    description="Accepts JPEG, PNG or WebP. Replaces any previous thumbnail.",
)
async def upload_thumbnail(
    course_id: UUID,
    file: UploadFile = File(..., description="Thumbnail image."),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_creator),
    settings: Settings = Depends(get_settings),
) -> CourseResponse:
    content = await file.read()
    return await controller.upload_thumbnail(
        db, course_id, user, settings,
        content=content,
        content_type=file.content_type or "",
    )


@router.put(
    "/courses/{course_id}/submit",
    response_model=CourseResponse,
    summary="Submit course for review",
    description="Moves a draft or rejected course to pending review. "
    "Requires at least one active lesson and a thumbnail.",
)
async def submit_course(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_creator),
) -> CourseResponse:
    return await moderation_controller.submit_course(db, course_id, user)


# ======================================================================
# Lesson endpoints
# ======================================================================


@router.get(
    "/courses/{course_id}/lessons/next-order",
    response_model=NextOrderResponse,
    summary="Next free lesson position",
)
async def get_next_order(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_creator),
) -> NextOrderResponse:
    return await controller.get_next_order(db, course_id, user)


@router.post(
    "/courses/{course_id}/lessons",
    response_model=LessonResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a lesson",
)
async def create_lesson(
    course_id: UUID,
    body: CreateLessonRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_creator),
) -> LessonResponse:
    return await controller.create_lesson(db, course_id, user, body)


@router.get(
    "/courses/{course_id}/lessons",
    response_model=list[LessonResponse],
    summary="List lessons in order",
)
async def list_lessons(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    viewer: CurrentUser | None = Depends(get_optional_user),
) -> list[LessonResponse]:
    return await controller.list_lessons(db, course_id, viewer)


@router.put(
    "/courses/{course_id}/lessons/reorder",
    response_model=list[LessonResponse],
    summary="Reorder all lessons of a course",
)
async def reorder_lessons(
    course_id: UUID,
    body: ReorderLessonsRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_creator),
) -> list[LessonResponse]:
    return await controller.reorder_lessons(db, course_id, user, body)


@router.patch(
    "/courses/{course_id}/lessons/{lesson_id}",
    response_model=LessonResponse,
    summary="Update a lesson",
)
async def update_lesson(
    course_id: UUID,
    lesson_id: UUID,
    body: UpdateLessonRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_creator),
) -> LessonResponse:
    return await controller.update_lesson(db, course_id, lesson_id, user, body)


@router.delete(
    "/courses/{course_id}/lessons/{lesson_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a lesson",
    description="Remaining lessons are renumbered so positions stay contiguous.",
)
async def delete_lesson(
    course_id: UUID,
    lesson_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_creator),
) -> None:
    await controller.delete_lesson(db, course_id, lesson_id, user)
