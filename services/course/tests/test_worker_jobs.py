import uuid

import pytest
from arq import Retry

from app import worker
from app.database import set_session_factory
from app.enrollment import service as enrollment_service
from app.models.course import Course
from app.models.enums import UserRole
from app.models.lesson_completion import LessonCompletion


@pytest.fixture
def ctx(settings, session_factory):
    set_session_factory(session_factory)
    return {"settings": settings, "job_try": 1}


async def _completed_enrollment(db_session, make_user, make_course, lessons_of):
    learner = await make_user(name="Alan Turing")
    course = await make_course(await make_user(UserRole.CREATOR), lessons=(3, 4))
    enrollment = await enrollment_service.enroll(db_session, learner.user_id, course.course_id)
    for lesson in await lessons_of(db_session, course.course_id):
        db_session.add(LessonCompletion(enrollment_id=enrollment.enrollment_id, lesson_id=lesson.lesson_id))
    enrollment.progress = 100
    await db_session.commit()
    return learner, course, enrollment


def _payload(user_id, course_id, enrollment_id) -> dict:
    return {
        "user_id": str(user_id),
        "course_id": str(course_id),
        "enrollment_id": str(enrollment_id),
    }


@pytest.mark.asyncio
async def test_issue_certificate_job_is_idempotent(
    ctx, db_session, make_user, make_course, lessons_of,
) -> None:
    learner, course, enrollment = await _completed_enrollment(
        db_session, make_user, make_course, lessons_of,
    )
    payload = _payload(learner.user_id, course.course_id, enrollment.enrollment_id)

    serial = await worker.issue_certificate(ctx, payload)
    assert len(serial) == 16
    assert await worker.issue_certificate(ctx, payload) == serial


@pytest.mark.asyncio
async def test_issue_certificate_job_skips_incomplete_enrollment(
    ctx, db_session, make_user, make_course,
) -> None:
    learner = await make_user()
    course = await make_course(await make_user(UserRole.CREATOR))
    enrollment = await enrollment_service.enroll(db_session, learner.user_id, course.course_id)
    await db_session.commit()

    payload = _payload(learner.user_id, course.course_id, enrollment.enrollment_id)
    assert await worker.issue_certificate(ctx, payload) == "skipped"
    assert await worker.issue_certificate(
        ctx, _payload(uuid.uuid4(), course.course_id, uuid.uuid4()),
    ) == "skipped"


@pytest.mark.asyncio
async def test_issue_certificate_job_asks_arq_to_retry(ctx, monkeypatch) -> None:
    async def _boom(*args, **kwargs):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(enrollment_service, "ensure_certificate", _boom)
    with pytest.raises(Retry):
        await worker.issue_certificate(ctx, _payload(uuid.uuid4(), uuid.uuid4(), uuid.uuid4()))


@pytest.mark.asyncio
async def test_reconcile_enrollment_counts(ctx, db_session, make_user, make_course) -> None:
    course = await make_course(await make_user(UserRole.CREATOR))
    await enrollment_service.enroll(db_session, (await make_user()).user_id, course.course_id)
    course.enrollment_count = 7
    await db_session.commit()

    assert await worker.reconcile_enrollment_counts(ctx) == 1
    refreshed = await db_session.get(Course, course.course_id, populate_existing=True)
    assert refreshed.enrollment_count == 1
    assert await worker.reconcile_enrollment_counts(ctx) == 0
