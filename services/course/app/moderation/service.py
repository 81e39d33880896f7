"""
Moderation domain — pure business logic (zero FastAPI imports).

Submit and review are the only entry points that move a course between
review states; both delegate the legality check to ``workflow.next_status``.
Approve and reject share ``review_course`` so the two admin endpoints cannot
drift apart.

Transaction contract: these functions only flush() — the get_db dependency
commits at request end.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import (
    InvalidStatusTransitionError,
    RejectionReasonRequiredError,
    SubmissionRequirementError,
)
from app.lms.service import ensure_can_write, get_course_by_id
from app.models.course import Course
from app.models.enums import CourseStatus
from app.models.lesson import Lesson
from app.moderation.workflow import CourseAction, next_status

logger = logging.getLogger(__name__)

REVIEW_QUEUE_STATUSES = (CourseStatus.SUBMITTED, CourseStatus.PENDING_REVIEW)
REVIEW_ACTIONS = (CourseAction.APPROVE, CourseAction.REJECT)


async def submit_course(
    db: AsyncSession,
    course_id: UUID,
    actor_id: UUID,
    *,
    is_admin: bool = False,
) -> Course:
    course = await get_course_by_id(db, course_id)
    ensure_can_write(course, actor_id, is_admin=is_admin)
    target = next_status(course.status, CourseAction.SUBMIT)

    active_lessons = await db.scalar(
        select(func.count())
        .select_from(Lesson)
        .where(Lesson.course_id == course_id, Lesson.is_active.is_(True))
    ) or 0
    if active_lessons == 0:
        raise SubmissionRequirementError("Course must have at least one lesson")
    if not course.thumbnail_url:
        raise SubmissionRequirementError("Course must have a thumbnail")

    course.status = target
    course.submitted_at = datetime.now(timezone.utc)
    await db.flush()
    await db.refresh(course)
    logger.info("Course %s submitted for review by %s", course_id, actor_id)
    return course


async def review_course(
    db: AsyncSession,
    course_id: UUID,
    admin_id: UUID,
    *,
    action: CourseAction,
    reason: str | None = None,
) -> Course:
    """Apply an admin APPROVE or REJECT decision."""
    course = await get_course_by_id(db, course_id)
    if action not in REVIEW_ACTIONS:
        raise InvalidStatusTransitionError(course.status.value, action.value)
    target = next_status(course.status, action)

    reason = (reason or "").strip()
    if action == CourseAction.REJECT and not reason:
        raise RejectionReasonRequiredError()

    course.status = target
    course.rejection_reason = reason if action == CourseAction.REJECT else None
    course.requires_reapproval = False
    course.modification_reason = None
    course.reviewed_by = admin_id
    course.reviewed_at = datetime.now(timezone.utc)
    await db.flush()
    await db.refresh(course)
    logger.info("Course %s %s by admin %s", course_id, target.value, admin_id)
    return course


async def list_review_queue(
    db: AsyncSession,
    *,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[Course], int]:
    """Courses waiting for an admin decision, longest-waiting first.

    A course re-entering review after a live edit queues by the time of that
    edit; a fresh submission by its submission time.
    """
    flt = Course.status.in_(REVIEW_QUEUE_STATUSES)
    total = await db.scalar(select(func.count()).select_from(Course).where(flt)) or 0
    stmt = (
        select(Course)
        .where(flt)
        .order_by(
            case(
                (Course.status == CourseStatus.PENDING_REVIEW, Course.last_modified_at),
                else_=Course.submitted_at,
            ).asc(),
            Course.created_at.asc(),
        )
        .limit(limit)
        .offset(offset)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all()), total
