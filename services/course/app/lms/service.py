"""LMS service — pure business logic, no FastAPI imports.

Handles course CRUD, lesson management and ordering, thumbnails and the
denormalized course counters. Status changes caused by content edits are
delegated to ``app.moderation.workflow``.

Lesson orders are kept dense (1..N) per course. Bulk renumbering negates
the affected rows first and flips them back in a second statement, so the
unique (course_id, sort_order) key never sees a transient duplicate.
"""

from __future__ import annotations

import logging
import uuid
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app import storage
from app.config import Settings
from app.exceptions import (
    CourseDeletionBlockedError,
    CourseNotFoundError,
    InvalidLessonOrderError,
    LessonDeletionBlockedError,
    LessonNotFoundError,
    LessonOrderConflictError,
    NotCourseOwnerError,
    UnsupportedThumbnailError,
    UserNotFoundError,
)
from app.models.certificate import Certificate
from app.models.course import Course
from app.models.enrollment import Enrollment
from app.models.enums import LIVE_COURSE_STATUSES, CourseCategory, CourseLevel, CourseStatus
from app.models.lesson import Lesson
from app.models.lesson_completion import LessonCompletion
from app.models.user import CourseRestriction, User
from app.moderation.workflow import (
    COURSE_MODIFIED_REASON,
    LESSON_MODIFIED_REASON,
    apply_modification,
)

logger = logging.getLogger(__name__)

# Edits to these fields on a live course send it back for review
CORE_COURSE_FIELDS = frozenset({"title", "description", "category", "level"})

THUMBNAIL_CONTENT_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


# ---------------------------------------------------------------------------
# Access helpers
# ---------------------------------------------------------------------------


def ensure_can_write(course: Course, actor_id: UUID, *, is_admin: bool) -> None:
    if not is_admin and course.creator_id != actor_id:
        raise NotCourseOwnerError()


def is_live(course: Course) -> bool:
    return course.status in LIVE_COURSE_STATUSES


# ---------------------------------------------------------------------------
# Course CRUD
# ---------------------------------------------------------------------------


async def create_course(
    db: AsyncSession,
    creator_id: UUID,
    *,
    title: str,
    description: str,
    category: CourseCategory,
    level: CourseLevel,
) -> Course:
    if await db.get(User, creator_id) is None:
        raise UserNotFoundError(str(creator_id))
    course = Course(
        title=title,
        description=description,
        category=category,
        level=level,
        creator_id=creator_id,
        status=CourseStatus.DRAFT,
    )
    db.add(course)
    await db.flush()
    await db.refresh(course)
    logger.info("Course %s created by %s", course.course_id, creator_id)
    return course


async def get_course_by_id(db: AsyncSession, course_id: UUID) -> Course:
    course = await db.get(Course, course_id)
    if course is None:
        raise CourseNotFoundError(str(course_id))
    return course


async def get_course_for_viewer(
    db: AsyncSession,
    course_id: UUID,
    viewer_id: UUID | None,
    *,
    is_admin: bool = False,
) -> Course:
    """Unpublished courses are invisible to everyone but their owner and admins."""
    course = await get_course_by_id(db, course_id)
    if is_live(course) or is_admin or (viewer_id is not None and course.creator_id == viewer_id):
        return course
    raise CourseNotFoundError(str(course_id))


async def list_courses(
    db: AsyncSession,
    *,
    category: CourseCategory | None = None,
    level: CourseLevel | None = None,
    search: str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[Course], int]:
    """Public catalog — only live courses."""
    filters = [Course.status.in_(list(LIVE_COURSE_STATUSES))]
    if category is not None:
        filters.append(Course.category == category)
    if level is not None:
        filters.append(Course.level == level)
    if search:
        pattern = f"%{search.strip()}%"
        filters.append(Course.title.ilike(pattern) | Course.description.ilike(pattern))

    total = await db.scalar(select(func.count()).select_from(Course).where(*filters)) or 0
    stmt = (
        select(Course)
        .where(*filters)
        .order_by(Course.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all()), total


async def list_creator_courses(
    db: AsyncSession,
    creator_id: UUID,
    *,
    status: CourseStatus | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[Course], int]:
    filters = [Course.creator_id == creator_id]
    if status is not None:
        filters.append(Course.status == status)
    total = await db.scalar(select(func.count()).select_from(Course).where(*filters)) or 0
    stmt = (
        select(Course)
        .where(*filters)
        .order_by(Course.updated_at.desc())
        .limit(limit)
        .offset(offset)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all()), total


async def update_course(
    db: AsyncSession,
    course_id: UUID,
    actor_id: UUID,
    *,
    is_admin: bool = False,
    **fields: object,
) -> Course:
    course = await get_course_by_id(db, course_id)
    ensure_can_write(course, actor_id, is_admin=is_admin)

    changed = set()
    for key, value in fields.items():
        if value is not None and getattr(course, key) != value:
            setattr(course, key, value)
            changed.add(key)

    if changed and not is_admin:
        # Rejected courses reset to draft on any edit; live ones only on core edits
        if course.status == CourseStatus.REJECTED or (
            is_live(course) and changed & CORE_COURSE_FIELDS
        ):
            apply_modification(course, COURSE_MODIFIED_REASON)

    await db.flush()
    await db.refresh(course)
    return course


async def delete_course(
    db: AsyncSession,
    course_id: UUID,
    actor_id: UUID,
    settings: Settings,
    *,
    is_admin: bool = False,
) -> None:
    course = await get_course_by_id(db, course_id)
    ensure_can_write(course, actor_id, is_admin=is_admin)
    if not is_admin and is_live(course) and course.enrollment_count > 0:
        raise CourseDeletionBlockedError()

    enrollment_ids = select(Enrollment.enrollment_id).where(Enrollment.course_id == course_id)
    await db.execute(
        delete(LessonCompletion)
        .where(LessonCompletion.enrollment_id.in_(enrollment_ids))
        .execution_options(synchronize_session=False)
    )
    await db.execute(delete(Enrollment).where(Enrollment.course_id == course_id))
    await db.execute(delete(Lesson).where(Lesson.course_id == course_id))
    await db.execute(delete(CourseRestriction).where(CourseRestriction.course_id == course_id))
    # Certificates outlive the course; their snapshot is self-contained
    await db.execute(
        update(Certificate).where(Certificate.course_id == course_id).values(course_id=None)
    )
    thumbnail_key = course.thumbnail_key
    await db.delete(course)
    await db.flush()

    if thumbnail_key:
        storage.delete_object(thumbnail_key, settings)
    logger.info("Course %s deleted by %s (admin=%s)", course_id, actor_id, is_admin)


async def set_thumbnail(
    db: AsyncSession,
    course_id: UUID,
    actor_id: UUID,
    settings: Settings,
    *,
    content: bytes,
    content_type: str,
    is_admin: bool = False,
) -> Course:
    course = await get_course_by_id(db, course_id)
    ensure_can_write(course, actor_id, is_admin=is_admin)

    extension = THUMBNAIL_CONTENT_TYPES.get(content_type)
    if extension is None:
        raise UnsupportedThumbnailError(f"Unsupported thumbnail type: {content_type}")
    if not content or len(content) > settings.thumbnail_max_bytes:
        raise UnsupportedThumbnailError(
            f"Thumbnail must be between 1 and {settings.thumbnail_max_bytes} bytes"
        )

    key = f"{settings.s3_thumbnail_prefix}{course_id}/{uuid.uuid4().hex}.{extension}"
    url = storage.put_object(key, content, content_type, settings)

    previous_key = course.thumbnail_key
    course.thumbnail_url = url
    course.thumbnail_key = key
    await db.flush()
    await db.refresh(course)

    if previous_key:
        storage.delete_object(previous_key, settings)
    return course


# ---------------------------------------------------------------------------
# Lesson helpers
# ---------------------------------------------------------------------------


async def get_next_order(db: AsyncSession, course_id: UUID) -> int:
    current = await db.scalar(
        select(func.max(Lesson.order)).where(Lesson.course_id == course_id)
    )
    return (current or 0) + 1


async def recalculate_duration(db: AsyncSession, course: Course) -> int:
    total = await db.scalar(
        select(func.coalesce(func.sum(Lesson.duration_mins), 0)).where(
            Lesson.course_id == course.course_id,
            Lesson.is_active.is_(True),
        )
    )
    course.total_duration_mins = int(total or 0)
    return course.total_duration_mins


async def _compact_orders_after(db: AsyncSession, course_id: UUID, removed_order: int) -> None:
    """Shift every order above ``removed_order`` down by one."""
    await db.execute(
        update(Lesson)
        .where(Lesson.course_id == course_id, Lesson.order > removed_order)
        .values({Lesson.order: -(Lesson.order - 1)})
        .execution_options(synchronize_session="fetch")
    )
    await db.execute(
        update(Lesson)
        .where(Lesson.course_id == course_id, Lesson.order < 0)
        .values({Lesson.order: -Lesson.order})
        .execution_options(synchronize_session="fetch")
    )


# ---------------------------------------------------------------------------
# Lesson CRUD
# ---------------------------------------------------------------------------


async def create_lesson(
    db: AsyncSession,
    course_id: UUID,
    actor_id: UUID,
    *,
    title: str,
    duration_mins: int,
    description: str | None = None,
    video_url: str | None = None,
    order: int | None = None,
    is_active: bool = True,
    is_admin: bool = False,
) -> Lesson:
    course = await get_course_by_id(db, course_id)
    ensure_can_write(course, actor_id, is_admin=is_admin)

    if order is None:
        order = await get_next_order(db, course_id)
    else:
        taken = await db.scalar(
            select(Lesson.lesson_id).where(Lesson.course_id == course_id, Lesson.order == order)
        )
        if taken is not None:
            raise LessonOrderConflictError(order)

    lesson = Lesson(
        course_id=course_id,
        title=title,
        description=description,
        video_url=video_url,
        duration_mins=duration_mins,
        order=order,
        is_active=is_active,
    )
    try:
        async with db.begin_nested():
            db.add(lesson)
            await db.flush()
    except IntegrityError:
        raise LessonOrderConflictError(order) from None

    await recalculate_duration(db, course)
    if not is_admin:
        apply_modification(course, LESSON_MODIFIED_REASON)
    await db.flush()
    await db.refresh(lesson)
    return lesson


async def get_lesson(db: AsyncSession, course_id: UUID, lesson_id: UUID) -> Lesson:
    lesson = await db.get(Lesson, lesson_id)
    if lesson is None or lesson.course_id != course_id:
        raise LessonNotFoundError(str(lesson_id))
    return lesson


async def list_lessons(
    db: AsyncSession,
    course_id: UUID,
    viewer_id: UUID | None,
    *,
    is_admin: bool = False,
) -> list[Lesson]:
    """Owners and admins see inactive lessons too; everyone else only active ones."""
    course = await get_course_for_viewer(db, course_id, viewer_id, is_admin=is_admin)
    stmt = select(Lesson).where(Lesson.course_id == course_id).order_by(Lesson.order)
    if not (is_admin or course.creator_id == viewer_id):
        stmt = stmt.where(Lesson.is_active.is_(True))
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def update_lesson(
    db: AsyncSession,
    course_id: UUID,
    lesson_id: UUID,
    actor_id: UUID,
    *,
    is_admin: bool = False,
    **fields: object,
) -> Lesson:
    course = await get_course_by_id(db, course_id)
    ensure_can_write(course, actor_id, is_admin=is_admin)
    lesson = await get_lesson(db, course_id, lesson_id)

    changed = False
    for key, value in fields.items():
        if value is not None and getattr(lesson, key) != value:
            setattr(lesson, key, value)
            changed = True

    if changed:
        await db.flush()
        await recalculate_duration(db, course)
        if not is_admin:
            apply_modification(course, LESSON_MODIFIED_REASON)
    await db.flush()
    await db.refresh(lesson)
    return lesson


async def delete_lesson(
    db: AsyncSession,
    course_id: UUID,
    lesson_id: UUID,
    actor_id: UUID,
    *,
    is_admin: bool = False,
) -> None:
    course = await get_course_by_id(db, course_id)
    ensure_can_write(course, actor_id, is_admin=is_admin)
    if not is_admin and is_live(course):
        raise LessonDeletionBlockedError()
    lesson = await get_lesson(db, course_id, lesson_id)
    removed_order = lesson.order

    await db.execute(delete(LessonCompletion).where(LessonCompletion.lesson_id == lesson_id))
    await db.delete(lesson)
    await db.flush()
    await _compact_orders_after(db, course_id, removed_order)
    await recalculate_duration(db, course)
    if not is_admin:
        apply_modification(course, LESSON_MODIFIED_REASON)
    await db.flush()
    logger.info("Lesson %s removed from course %s (order %d)", lesson_id, course_id, removed_order)


async def reorder_lessons(
    db: AsyncSession,
    course_id: UUID,
    actor_id: UUID,
    *,
    lesson_ids: list[UUID],
    is_admin: bool = False,
) -> list[Lesson]:
    course = await get_course_by_id(db, course_id)
    ensure_can_write(course, actor_id, is_admin=is_admin)

    result = await db.execute(select(Lesson).where(Lesson.course_id == course_id))
    lessons = {lesson.lesson_id: lesson for lesson in result.scalars().all()}
    if len(lesson_ids) != len(set(lesson_ids)) or set(lesson_ids) != set(lessons):
        raise InvalidLessonOrderError("lesson_ids must list every lesson of the course exactly once")

    for idx, lid in enumerate(lesson_ids, start=1):
        lessons[lid].order = -idx
    await db.flush()
    for idx, lid in enumerate(lesson_ids, start=1):
        lessons[lid].order = idx
    await db.flush()

    if not is_admin:
        apply_modification(course, LESSON_MODIFIED_REASON)
        await db.flush()
    return [lessons[lid] for lid in lesson_ids]
