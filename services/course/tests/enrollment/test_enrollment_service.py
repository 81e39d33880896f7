import uuid
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import func, select, update

from app.certificates import service as certificate_service
from app.enrollment import service
from app.exceptions import (
    AccountBlockedError,
    AlreadyEnrolledError,
    CertificateIssueError,
    CertificateNotIssuedError,
    CourseNotFoundError,
    CourseNotPublishedError,
    CourseRestrictedError,
    EnrollmentNotFoundError,
    InvalidRatingError,
    LessonAlreadyCompletedError,
    LessonNotFoundError,
)
from app.models.certificate import Certificate
from app.models.course import Course
from app.models.enrollment import Enrollment
from app.models.enums import AccountStatus, CourseStatus, UserRole
from app.models.lesson_completion import LessonCompletion
from app.models.user import CourseRestriction


@pytest_asyncio.fixture
async def learning_setup(make_user, make_course):
    creator = await make_user(UserRole.CREATOR, name="Grace Hopper")
    learner = await make_user(UserRole.LEARNER, name="Alan Turing")
    course = await make_course(creator, lessons=(5, 10, 15, 20))
    return creator, learner, course


# ── Enroll ─────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_enroll_creates_enrollment_and_counts(db_session, learning_setup) -> None:
    _, learner, course = learning_setup
    enrollment = await service.enroll(db_session, learner.user_id, course.course_id)

    assert enrollment.progress == 0
    assert enrollment.certificate_issued is False
    assert enrollment.enrolled_at is not None
    assert course.enrollment_count == 1


@pytest.mark.asyncio
async def test_enroll_twice_conflicts(db_session, learning_setup) -> None:
    _, learner, course = learning_setup
    await service.enroll(db_session, learner.user_id, course.course_id)
    with pytest.raises(AlreadyEnrolledError):
        await service.enroll(db_session, learner.user_id, course.course_id)

    count = await db_session.scalar(select(func.count()).select_from(Enrollment))
    assert count == 1
    assert course.enrollment_count == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [CourseStatus.DRAFT, CourseStatus.SUBMITTED, CourseStatus.REJECTED])
async def test_enroll_requires_live_course(db_session, make_user, make_course, status) -> None:
    creator = await make_user(UserRole.CREATOR)
    learner = await make_user()
    course = await make_course(creator, status=status)
    with pytest.raises(CourseNotPublishedError):
        await service.enroll(db_session, learner.user_id, course.course_id)


@pytest.mark.asyncio
async def test_enroll_allowed_while_pending_reapproval(db_session, make_user, make_course) -> None:
    creator = await make_user(UserRole.CREATOR)
    learner = await make_user()
    course = await make_course(creator, status=CourseStatus.PENDING_REVIEW)
    enrollment = await service.enroll(db_session, learner.user_id, course.course_id)
    assert enrollment.course_id == course.course_id


@pytest.mark.asyncio
async def test_blocked_learner_cannot_enroll(db_session, make_user, make_course) -> None:
    creator = await make_user(UserRole.CREATOR)
    learner = await make_user(account_status=AccountStatus.BLOCKED)
    course = await make_course(creator)
    with pytest.raises(AccountBlockedError):
        await service.enroll(db_session, learner.user_id, course.course_id)


@pytest.mark.asyncio
async def test_restricted_learner_cannot_enroll(db_session, learning_setup) -> None:
    creator, learner, course = learning_setup
    db_session.add(CourseRestriction(
        user_id=learner.user_id, course_id=course.course_id, restricted_by=creator.user_id,
    ))
    await db_session.flush()
    with pytest.raises(CourseRestrictedError):
        await service.enroll(db_session, learner.user_id, course.course_id)


# ── Completion ─────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_completing_every_lesson_issues_certificate(
    db_session, learning_setup, lessons_of, settings,
) -> None:
    _, learner, course = learning_setup
    await service.enroll(db_session, learner.user_id, course.course_id)
    lessons = await lessons_of(db_session, course.course_id)

    for lesson in lessons[:3]:
        result = await service.complete_lesson(
            db_session, learner.user_id, course.course_id, lesson.lesson_id, settings,
        )
    assert result.progress == 75
    assert result.completed_lessons_count == 3
    assert result.total_lessons == 4
    assert result.certificate_issued is False
    assert result.course_completed is False

    result = await service.complete_lesson(
        db_session, learner.user_id, course.course_id, lessons[3].lesson_id, settings,
    )
    assert result.progress == 100
    assert result.course_completed is True
    assert result.certificate_issued is True

    cert = await service.get_certificate(db_session, learner.user_id, course.course_id, settings)
    assert cert.learner_name == "Alan Turing"
    assert cert.course_title == course.title
    assert cert.issued_by_name == "Grace Hopper"
    assert cert.total_lessons == 4
    assert cert.course_duration_mins == 50

    enrollment = await service.get_enrollment(db_session, learner.user_id, course.course_id)
    assert enrollment.completed_at is not None
    assert enrollment.certificate_hash == cert.serial_hash


@pytest.mark.asyncio
async def test_complete_lesson_without_enrollment_is_not_found(
    db_session, make_user, make_course, lessons_of, settings,
) -> None:
    creator = await make_user(UserRole.CREATOR)
    learner = await make_user()
    enrolled_course = await make_course(creator, title="Enrolled")
    other_course = await make_course(creator, title="Not enrolled")
    await service.enroll(db_session, learner.user_id, enrolled_course.course_id)
    foreign_lesson = (await lessons_of(db_session, other_course.course_id))[0]

    with pytest.raises(EnrollmentNotFoundError):
        await service.complete_lesson(
            db_session, learner.user_id, other_course.course_id,
            foreign_lesson.lesson_id, settings,
        )
    # A lesson from another course under the enrolled course id
    with pytest.raises(LessonNotFoundError):
        await service.complete_lesson(
            db_session, learner.user_id, enrolled_course.course_id,
            foreign_lesson.lesson_id, settings,
        )


@pytest.mark.asyncio
async def test_completing_same_lesson_twice_conflicts_without_side_effects(
    db_session, learning_setup, lessons_of, settings,
) -> None:
    _, learner, course = learning_setup
    await service.enroll(db_session, learner.user_id, course.course_id)
    lesson = (await lessons_of(db_session, course.course_id))[0]

    await service.complete_lesson(
        db_session, learner.user_id, course.course_id, lesson.lesson_id, settings,
    )
    with pytest.raises(LessonAlreadyCompletedError):
        await service.complete_lesson(
            db_session, learner.user_id, course.course_id, lesson.lesson_id, settings,
        )

    snapshot = await service.get_progress(db_session, learner.user_id, course.course_id)
    assert snapshot.progress == 25
    assert snapshot.completed_lesson_ids == [lesson.lesson_id]
    rows = await db_session.scalar(select(func.count()).select_from(LessonCompletion))
    assert rows == 1


@pytest.mark.asyncio
async def test_inactive_lessons_do_not_count(
    db_session, learning_setup, lessons_of, settings,
) -> None:
    _, learner, course = learning_setup
    await service.enroll(db_session, learner.user_id, course.course_id)
    lessons = await lessons_of(db_session, course.course_id)

    await service.complete_lesson(
        db_session, learner.user_id, course.course_id, lessons[0].lesson_id, settings,
    )
    lessons[1].is_active = False
    await db_session.flush()

    snapshot = await service.get_progress(db_session, learner.user_id, course.course_id)
    assert snapshot.total_lessons == 3
    assert snapshot.progress == 33

    with pytest.raises(LessonNotFoundError):
        await service.complete_lesson(
            db_session, learner.user_id, course.course_id, lessons[1].lesson_id, settings,
        )


@pytest.mark.asyncio
async def test_issuer_failure_does_not_fail_completion(
    db_session, learning_setup, lessons_of, settings, monkeypatch, caplog,
) -> None:
    _, learner, course = learning_setup
    enrollment = await service.enroll(db_session, learner.user_id, course.course_id)
    lessons = await lessons_of(db_session, course.course_id)
    for lesson in lessons[:3]:
        await service.complete_lesson(
            db_session, learner.user_id, course.course_id, lesson.lesson_id, settings,
        )

    async def _broken_issuer(*args, **kwargs):
        raise CertificateIssueError("renderer unavailable")

    published = []

    async def _record_publish(user_id, course_id, enrollment_id, settings):
        published.append((user_id, course_id, enrollment_id))
        return "job-1"

    monkeypatch.setattr(certificate_service, "issue_certificate", _broken_issuer)
    monkeypatch.setattr(service, "publish_course_completed", _record_publish)

    result = await service.complete_lesson(
        db_session, learner.user_id, course.course_id, lessons[3].lesson_id, settings,
    )

    # Progress is saved even though issuance failed
    assert result.progress == 100
    assert result.course_completed is True
    assert result.certificate_issued is False
    assert published == [(learner.user_id, course.course_id, enrollment.enrollment_id)]
    assert "Certificate issuance failed" in caplog.text
    certs = await db_session.scalar(select(func.count()).select_from(Certificate))
    assert certs == 0

    # The next certificate fetch retries issuance
    monkeypatch.undo()
    cert = await service.get_certificate(db_session, learner.user_id, course.course_id, settings)
    assert cert.learner_name == "Alan Turing"
    enrollment = await service.get_enrollment(db_session, learner.user_id, course.course_id)
    assert enrollment.certificate_issued is True
    assert enrollment.certificate_hash == cert.serial_hash


@pytest.mark.asyncio
async def test_failed_issuance_rolls_back_only_its_own_writes(
    db_session, learning_setup, lessons_of, settings, monkeypatch,
) -> None:
    _, learner, course = learning_setup
    await service.enroll(db_session, learner.user_id, course.course_id)
    lessons = await lessons_of(db_session, course.course_id)
    for lesson in lessons[:3]:
        await service.complete_lesson(
            db_session, learner.user_id, course.course_id, lesson.lesson_id, settings,
        )

    async def _half_written_issuer(db, user_id, course_id, settings, **kwargs):
        await db.execute(
            update(Course)
            .where(Course.course_id == course_id)
            .values(title="Half written")
            .execution_options(synchronize_session=False)
        )
        await db.flush()
        raise CertificateIssueError("storage went away mid-write")

    async def _record_publish(user_id, course_id, enrollment_id, settings):
        return "job-1"

    monkeypatch.setattr(certificate_service, "issue_certificate", _half_written_issuer)
    monkeypatch.setattr(service, "publish_course_completed", _record_publish)

    result = await service.complete_lesson(
        db_session, learner.user_id, course.course_id, lessons[3].lesson_id, settings,
    )
    assert result.progress == 100
    assert result.certificate_issued is False

    # The completion survives while the issuer's partial write is undone
    title = await db_session.scalar(select(Course.title).where(Course.course_id == course.course_id))
    assert title == "Intro to Unit Testing"
    completions = await db_session.scalar(select(func.count()).select_from(LessonCompletion))
    assert completions == 4
    stored = await db_session.scalar(
        select(Enrollment.progress).where(Enrollment.user_id == learner.user_id)
    )
    assert stored == 100


@pytest.mark.asyncio
async def test_completion_adopts_certificate_issued_concurrently(
    db_session, learning_setup, lessons_of, settings,
) -> None:
    _, learner, course = learning_setup
    await service.enroll(db_session, learner.user_id, course.course_id)
    lessons = await lessons_of(db_session, course.course_id)
    for lesson in lessons[:3]:
        await service.complete_lesson(
            db_session, learner.user_id, course.course_id, lesson.lesson_id, settings,
        )

    # Another request won the race and already stored the certificate
    winner = await certificate_service.issue_certificate(
        db_session, learner.user_id, course.course_id, settings,
    )

    result = await service.complete_lesson(
        db_session, learner.user_id, course.course_id, lessons[3].lesson_id, settings,
    )
    assert result.certificate_issued is True

    enrollment = await service.get_enrollment(db_session, learner.user_id, course.course_id)
    assert enrollment.certificate_hash == winner.serial_hash
    certs = await db_session.scalar(select(func.count()).select_from(Certificate))
    assert certs == 1


@pytest.mark.asyncio
async def test_get_certificate_before_completion(
    db_session, learning_setup, settings,
) -> None:
    _, learner, course = learning_setup
    await service.enroll(db_session, learner.user_id, course.course_id)
    with pytest.raises(CertificateNotIssuedError):
        await service.get_certificate(db_session, learner.user_id, course.course_id, settings)


@pytest.mark.asyncio
async def test_ensure_certificate_skips_incomplete_enrollment(
    db_session, learning_setup, settings,
) -> None:
    _, learner, course = learning_setup
    await service.enroll(db_session, learner.user_id, course.course_id)
    assert await service.ensure_certificate(
        db_session, learner.user_id, course.course_id, settings,
    ) is None


@pytest.mark.asyncio
async def test_render_certificate_returns_pdf(
    db_session, learning_setup, lessons_of, settings,
) -> None:
    _, learner, course = learning_setup
    await service.enroll(db_session, learner.user_id, course.course_id)
    for lesson in await lessons_of(db_session, course.course_id):
        await service.complete_lesson(
            db_session, learner.user_id, course.course_id, lesson.lesson_id, settings,
        )

    cert, pdf = await service.render_certificate(
        db_session, learner.user_id, course.course_id, settings,
    )
    assert pdf.startswith(b"%PDF")
    assert cert.serial_hash.encode() in pdf


# ── Dashboards ─────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_my_enrollments_and_stats(
    db_session, make_user, make_course, lessons_of, settings,
) -> None:
    creator = await make_user(UserRole.CREATOR)
    learner = await make_user()
    finished = await make_course(creator, lessons=(10, 20), title="Finished")
    started = await make_course(creator, lessons=(5, 5, 5, 5), title="Started")
    await service.enroll(db_session, learner.user_id, finished.course_id)
    await service.enroll(db_session, learner.user_id, started.course_id)

    for lesson in await lessons_of(db_session, finished.course_id):
        await service.complete_lesson(
            db_session, learner.user_id, finished.course_id, lesson.lesson_id, settings,
        )
    first = (await lessons_of(db_session, started.course_id))[0]
    await service.complete_lesson(
        db_session, learner.user_id, started.course_id, first.lesson_id, settings,
    )

    rows, total = await service.get_my_enrollments(db_session, learner.user_id)
    assert total == 2
    assert {(course.title, progress) for _, course, progress in rows} == {
        ("Finished", 100),
        ("Started", 25),
    }

    stats = await service.get_learning_stats(db_session, learner.user_id)
    assert stats.total_enrolled == 2
    assert stats.completed_courses == 1
    assert stats.in_progress == 1
    assert stats.total_completed_lessons == 3
    assert stats.total_learning_time_mins == 35
    assert stats.average_progress == 63  # (100 + 25) / 2 rounds half up


@pytest.mark.asyncio
async def test_dashboards_follow_deactivated_lessons(
    db_session, learning_setup, lessons_of, settings,
) -> None:
    _, learner, course = learning_setup
    await service.enroll(db_session, learner.user_id, course.course_id)
    lessons = await lessons_of(db_session, course.course_id)
    for lesson in lessons[:3]:
        await service.complete_lesson(
            db_session, learner.user_id, course.course_id, lesson.lesson_id, settings,
        )

    # The only unfinished lesson is retired; the stored column still says 75
    lessons[3].is_active = False
    await db_session.flush()
    enrollment = await service.get_enrollment(db_session, learner.user_id, course.course_id)
    assert enrollment.progress == 75

    rows, _ = await service.get_my_enrollments(db_session, learner.user_id)
    assert [progress for _, _, progress in rows] == [100]

    stats = await service.get_learning_stats(db_session, learner.user_id)
    assert stats.completed_courses == 1
    assert stats.in_progress == 0
    assert stats.average_progress == 100


@pytest.mark.asyncio
async def test_recount_enrollments_heals_drift(db_session, learning_setup) -> None:
    _, learner, course = learning_setup
    await service.enroll(db_session, learner.user_id, course.course_id)
    course.enrollment_count = 42
    assert await service.recount_enrollments(db_session, course) == 1
    assert course.enrollment_count == 1


# ── Ratings ────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_rating_keeps_running_average(db_session, learning_setup, make_user) -> None:
    _, learner, course = learning_setup
    classmates = [await make_user() for _ in range(2)]
    for user in (learner, *classmates):
        await service.enroll(db_session, user.user_id, course.course_id)

    await service.rate_course(db_session, learner.user_id, course.course_id, 5)
    await service.rate_course(db_session, classmates[0].user_id, course.course_id, 4)
    rated = await service.rate_course(db_session, classmates[1].user_id, course.course_id, 4)
    assert rated.rating_count == 3
    assert rated.rating_avg == Decimal("4.33")

    # Rating again replaces the learner's earlier score
    rated = await service.rate_course(db_session, learner.user_id, course.course_id, 1)
    assert rated.rating_count == 3
    assert rated.rating_avg == Decimal("3.00")
    enrollment = await service.get_enrollment(db_session, learner.user_id, course.course_id)
    assert enrollment.rating == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("rating", [0, 6, -1])
async def test_rating_out_of_range(db_session, learning_setup, rating) -> None:
    _, learner, course = learning_setup
    await service.enroll(db_session, learner.user_id, course.course_id)

    with pytest.raises(InvalidRatingError):
        await service.rate_course(db_session, learner.user_id, course.course_id, rating)
    assert course.rating_count == 0


@pytest.mark.asyncio
async def test_rating_requires_enrollment(db_session, learning_setup) -> None:
    _, learner, course = learning_setup
    with pytest.raises(EnrollmentNotFoundError):
        await service.rate_course(db_session, learner.user_id, course.course_id, 5)


@pytest.mark.asyncio
async def test_rating_unknown_course(db_session, learning_setup) -> None:
    _, learner, _ = learning_setup
    with pytest.raises(CourseNotFoundError):
        await service.rate_course(db_session, learner.user_id, uuid.uuid4(), 5)
