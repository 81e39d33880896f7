"""Enrollment service — enroll, lesson completion, progress, certificates and ratings.

Pure business logic, no FastAPI imports.

Progress is never incremented in place: every completion inserts one
``lesson_completions`` row (the unique key turns a repeat into a conflict)
and then recomputes the percentage from the authoritative counts, so two
concurrent completions cannot lose each other's update.

Reaching 100% triggers certificate issuance inside the same call. That is
the one place where a failure is recovered locally: the completion still
succeeds, the error is logged, and a deferred retry is queued. Fetching the
certificate later re-attempts issuance as well.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.certificates import service as certificate_service
from app.config import Settings
from app.enrollment.progress import average_progress, average_rating, compute_progress
from app.events.publishers import publish_course_completed
from app.exceptions import (
    AccountBlockedError,
    AlreadyEnrolledError,
    CertificateAlreadyIssuedError,
    CertificateNotFoundError,
    CertificateNotIssuedError,
    CourseNotFoundError,
    CourseNotPublishedError,
    CourseRestrictedError,
    EnrollmentNotFoundError,
    InvalidRatingError,
    LessonAlreadyCompletedError,
    LessonNotFoundError,
    UserNotFoundError,
)
from app.models.certificate import Certificate
from app.models.course import Course
from app.models.enrollment import Enrollment
from app.models.enums import LIVE_COURSE_STATUSES, AccountStatus
from app.models.lesson import Lesson
from app.models.lesson_completion import LessonCompletion
from app.models.user import CourseRestriction, User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompletionResult:
    lesson_id: UUID
    progress: int
    completed_lessons_count: int
    total_lessons: int
    course_completed: bool
    certificate_issued: bool


@dataclass(frozen=True)
class ProgressSnapshot:
    enrollment: Enrollment
    total_lessons: int
    completed_lesson_ids: list[UUID]
    progress: int


@dataclass(frozen=True)
class LearningStats:
    total_enrolled: int
    completed_courses: int
    in_progress: int
    total_completed_lessons: int
    total_learning_time_mins: int
    average_progress: int


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


async def _get_enrollment(
    db: AsyncSession,
    user_id: UUID,
    course_id: UUID,
    *,
    for_update: bool = False,
) -> Enrollment | None:
    stmt = select(Enrollment).where(
        Enrollment.user_id == user_id,
        Enrollment.course_id == course_id,
    )
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_enrollment(db: AsyncSession, user_id: UUID, course_id: UUID) -> Enrollment:
    enrollment = await _get_enrollment(db, user_id, course_id)
    if enrollment is None:
        raise EnrollmentNotFoundError(f"user={user_id} course={course_id}")
    return enrollment


async def _count_active_lessons(db: AsyncSession, course_id: UUID) -> int:
    stmt = (
        select(func.count())
        .select_from(Lesson)
        .where(Lesson.course_id == course_id, Lesson.is_active.is_(True))
    )
    return await db.scalar(stmt) or 0


async def _completed_active_lesson_ids(
    db: AsyncSession,
    enrollment: Enrollment,
) -> list[UUID]:
    """Completed lessons that are still active, in course order."""
    stmt = (
        select(Lesson.lesson_id)
        .join(LessonCompletion, LessonCompletion.lesson_id == Lesson.lesson_id)
        .where(
            LessonCompletion.enrollment_id == enrollment.enrollment_id,
            Lesson.course_id == enrollment.course_id,
            Lesson.is_active.is_(True),
        )
        .order_by(Lesson.order)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def recount_enrollments(db: AsyncSession, course: Course) -> int:
    """Full recount rather than ``+= 1`` so drift heals itself."""
    count = await db.scalar(
        select(func.count())
        .select_from(Enrollment)
        .where(Enrollment.course_id == course.course_id)
    ) or 0
    course.enrollment_count = count
    return count


# ---------------------------------------------------------------------------
# Enroll
# ---------------------------------------------------------------------------


async def _ensure_can_learn(db: AsyncSession, user_id: UUID, course_id: UUID) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise UserNotFoundError(str(user_id))
    if user.account_status != AccountStatus.ACTIVE:
        raise AccountBlockedError(user.account_status.value)
    restricted = await db.scalar(
        select(CourseRestriction.restriction_id).where(
            CourseRestriction.user_id == user_id,
            CourseRestriction.course_id == course_id,
        )
    )
    if restricted is not None:
        raise CourseRestrictedError()
    return user


async def enroll(db: AsyncSession, user_id: UUID, course_id: UUID) -> Enrollment:
    await _ensure_can_learn(db, user_id, course_id)

    course = await db.get(Course, course_id)
    if course is None:
        raise CourseNotFoundError(str(course_id))
    if course.status not in LIVE_COURSE_STATUSES:
        raise CourseNotPublishedError()

    if await _get_enrollment(db, user_id, course_id) is not None:
        raise AlreadyEnrolledError()

    enrollment = Enrollment(user_id=user_id, course_id=course_id, progress=0)
    try:
        async with db.begin_nested():
            db.add(enrollment)
            await db.flush()
    except IntegrityError:
        # Lost a race with a concurrent enroll for the same pair
        raise AlreadyEnrolledError() from None

    await recount_enrollments(db, course)
    await db.flush()
    await db.refresh(enrollment)
    logger.info("User %s enrolled in course %s", user_id, course_id)
    return enrollment


# ---------------------------------------------------------------------------
# Lesson completion
# ---------------------------------------------------------------------------


async def _issue_for_enrollment(
    db: AsyncSession,
    enrollment: Enrollment,
    settings: Settings,
) -> Certificate:
    """Issue, or adopt the certificate a concurrent caller already created."""
    try:
        cert = await certificate_service.issue_certificate(
            db, enrollment.user_id, enrollment.course_id, settings,
            enrollment_id=enrollment.enrollment_id,
        )
    except CertificateAlreadyIssuedError:
        cert = await certificate_service.get_certificate_for_course(
            db, enrollment.user_id, enrollment.course_id,
        )
        if cert is None:
            raise
        logger.info(
            "Certificate for enrollment %s already issued; using %s",
            enrollment.enrollment_id, cert.serial_hash,
        )
    enrollment.certificate_issued = True
    enrollment.certificate_hash = cert.serial_hash
    return cert


async def complete_lesson(
    db: AsyncSession,
    user_id: UUID,
    course_id: UUID,
    lesson_id: UUID,
    settings: Settings,
) -> CompletionResult:
    enrollment = await _get_enrollment(db, user_id, course_id, for_update=True)
    if enrollment is None:
        raise EnrollmentNotFoundError(f"user={user_id} course={course_id}")

    lesson = await db.get(Lesson, lesson_id)
    if lesson is None or lesson.course_id != course_id or not lesson.is_active:
        raise LessonNotFoundError(str(lesson_id))

    now = datetime.now(timezone.utc)
    try:
        async with db.begin_nested():
            db.add(LessonCompletion(
                enrollment_id=enrollment.enrollment_id,
                lesson_id=lesson_id,
                completed_at=now,
            ))
            await db.flush()
    except IntegrityError:
        raise LessonAlreadyCompletedError(str(lesson_id)) from None

    total = await _count_active_lessons(db, course_id)
    completed_ids = await _completed_active_lesson_ids(db, enrollment)
    enrollment.progress = compute_progress(len(completed_ids), total)
    enrollment.last_accessed_at = now

    course_completed = enrollment.progress == 100
    if course_completed and enrollment.completed_at is None:
        enrollment.completed_at = now

    if course_completed and not enrollment.certificate_issued:
        try:
            # A failing issuer statement only rolls back to here, never the completion
            async with db.begin_nested():
                await _issue_for_enrollment(db, enrollment, settings)
        except Exception:
            # Savepoint rollback may expire the row; reload what was flushed above
            await db.refresh(enrollment)
            logger.warning(
                "Certificate issuance failed for enrollment=%s; queued for retry",
                enrollment.enrollment_id, exc_info=True,
            )
            await publish_course_completed(
                user_id, course_id, enrollment.enrollment_id, settings,
            )

    await db.flush()
    return CompletionResult(
        lesson_id=lesson_id,
        progress=enrollment.progress,
        completed_lessons_count=len(completed_ids),
        total_lessons=total,
        course_completed=course_completed,
        certificate_issued=enrollment.certificate_issued,
    )


# ---------------------------------------------------------------------------
# Progress & certificate reads
# ---------------------------------------------------------------------------


async def _snapshot(db: AsyncSession, enrollment: Enrollment) -> ProgressSnapshot:
    total = await _count_active_lessons(db, enrollment.course_id)
    completed_ids = await _completed_active_lesson_ids(db, enrollment)
    return ProgressSnapshot(
        enrollment=enrollment,
        total_lessons=total,
        completed_lesson_ids=completed_ids,
        progress=compute_progress(len(completed_ids), total),
    )


async def get_progress(db: AsyncSession, user_id: UUID, course_id: UUID) -> ProgressSnapshot:
    enrollment = await get_enrollment(db, user_id, course_id)
    return await _snapshot(db, enrollment)


async def ensure_certificate(
    db: AsyncSession,
    user_id: UUID,
    course_id: UUID,
    settings: Settings,
) -> Certificate | None:
    """Retry path: issue the certificate if the course is complete but none exists.

    Returns ``None`` when the learner has not completed the course yet.
    """
    enrollment = await _get_enrollment(db, user_id, course_id, for_update=True)
    if enrollment is None:
        raise EnrollmentNotFoundError(f"user={user_id} course={course_id}")

    if enrollment.certificate_issued:
        return await certificate_service.get_certificate_for_course(db, user_id, course_id)

    snapshot = await _snapshot(db, enrollment)
    if snapshot.progress < 100:
        return None

    enrollment.progress = snapshot.progress
    if enrollment.completed_at is None:
        enrollment.completed_at = datetime.now(timezone.utc)
    cert = await _issue_for_enrollment(db, enrollment, settings)
    await db.flush()
    return cert


async def get_certificate(
    db: AsyncSession,
    user_id: UUID,
    course_id: UUID,
    settings: Settings,
) -> Certificate:
    enrollment = await get_enrollment(db, user_id, course_id)
    if not enrollment.certificate_issued:
        cert = await ensure_certificate(db, user_id, course_id, settings)
        if cert is None:
            raise CertificateNotIssuedError()
        return cert

    cert = await certificate_service.get_certificate_for_course(db, user_id, course_id)
    if cert is None:
        raise CertificateNotFoundError(enrollment.certificate_hash or "")
    return cert


async def render_certificate(
    db: AsyncSession,
    user_id: UUID,
    course_id: UUID,
    settings: Settings,
) -> tuple[Certificate, bytes]:
    cert = await get_certificate(db, user_id, course_id, settings)
    return cert, certificate_service.render_certificate(cert, settings)


# ---------------------------------------------------------------------------
# Ratings
# ---------------------------------------------------------------------------


async def rate_course(db: AsyncSession, user_id: UUID, course_id: UUID, rating: int) -> Course:
    """Record an enrolled learner's 1-5 rating and refresh the course aggregate.

    One rating per enrollment; rating again replaces the earlier score. The
    average is recomputed from the stored ratings under a course row lock so
    concurrent raters cannot lose an update.
    """
    if not 1 <= rating <= 5:
        raise InvalidRatingError(rating)
    course = await db.scalar(
        select(Course).where(Course.course_id == course_id).with_for_update()
    )
    if course is None:
        raise CourseNotFoundError(str(course_id))
    enrollment = await _get_enrollment(db, user_id, course_id, for_update=True)
    if enrollment is None:
        raise EnrollmentNotFoundError(f"user={user_id} course={course_id}")

    enrollment.rating = rating
    await db.flush()

    count, total = (
        await db.execute(
            select(func.count(Enrollment.rating), func.coalesce(func.sum(Enrollment.rating), 0))
            .where(Enrollment.course_id == course_id, Enrollment.rating.is_not(None))
        )
    ).one()
    course.rating_count = int(count)
    course.rating_avg = average_rating(int(total), int(count))
    await db.flush()
    logger.info(
        "User %s rated course %s: %d (avg %s over %d)",
        user_id, course_id, rating, course.rating_avg, course.rating_count,
    )
    return course


# ---------------------------------------------------------------------------
# Learner dashboards
# ---------------------------------------------------------------------------


async def _current_progress(
    db: AsyncSession,
    enrollments: list[Enrollment],
) -> dict[UUID, int]:
    """Progress per enrollment against the lessons active right now.

    The stored ``progress`` column only refreshes on the next completion.
    """
    if not enrollments:
        return {}
    course_ids = {e.course_id for e in enrollments}
    active_rows = await db.execute(
        select(Lesson.course_id, func.count())
        .where(Lesson.course_id.in_(course_ids), Lesson.is_active.is_(True))
        .group_by(Lesson.course_id)
    )
    active_by_course = {course_id: count for course_id, count in active_rows.all()}

    done_rows = await db.execute(
        select(LessonCompletion.enrollment_id, func.count())
        .join(Lesson, Lesson.lesson_id == LessonCompletion.lesson_id)
        .join(Enrollment, Enrollment.enrollment_id == LessonCompletion.enrollment_id)
        .where(
            LessonCompletion.enrollment_id.in_([e.enrollment_id for e in enrollments]),
            Lesson.course_id == Enrollment.course_id,
            Lesson.is_active.is_(True),
        )
        .group_by(LessonCompletion.enrollment_id)
    )
    done_by_enrollment = {enrollment_id: count for enrollment_id, count in done_rows.all()}

    return {
        e.enrollment_id: compute_progress(
            done_by_enrollment.get(e.enrollment_id, 0),
            active_by_course.get(e.course_id, 0),
        )
        for e in enrollments
    }


async def get_my_enrollments(
    db: AsyncSession,
    user_id: UUID,
    *,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[tuple[Enrollment, Course, int]], int]:
    total = await db.scalar(
        select(func.count()).select_from(Enrollment).where(Enrollment.user_id == user_id)
    ) or 0
    stmt = (
        select(Enrollment, Course)
        .join(Course, Course.course_id == Enrollment.course_id)
        .where(Enrollment.user_id == user_id)
        .order_by(Enrollment.enrolled_at.desc())
        .limit(limit)
        .offset(offset)
    )
    result = await db.execute(stmt)
    rows = [(row[0], row[1]) for row in result.all()]
    progress = await _current_progress(db, [enrollment for enrollment, _ in rows])
    return [
        (enrollment, course, progress[enrollment.enrollment_id]) for enrollment, course in rows
    ], total


async def get_learning_stats(db: AsyncSession, user_id: UUID) -> LearningStats:
    result = await db.execute(select(Enrollment).where(Enrollment.user_id == user_id))
    enrollments = list(result.scalars().all())

    completed_rows = await db.execute(
        select(func.count(Lesson.lesson_id), func.coalesce(func.sum(Lesson.duration_mins), 0))
        .join(LessonCompletion, LessonCompletion.lesson_id == Lesson.lesson_id)
        .join(Enrollment, Enrollment.enrollment_id == LessonCompletion.enrollment_id)
        .where(Enrollment.user_id == user_id, Lesson.is_active.is_(True))
    )
    lesson_count, minutes = completed_rows.one()

    progress = list((await _current_progress(db, enrollments)).values())
    completed = sum(1 for value in progress if value == 100)
    return LearningStats(
        total_enrolled=len(enrollments),
        completed_courses=completed,
        in_progress=len(enrollments) - completed,
        total_completed_lessons=int(lesson_count),
        total_learning_time_mins=int(minutes),
        average_progress=average_progress(progress),
    )
