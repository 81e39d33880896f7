from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from app.enrollment import service as enrollment_service
from app.exceptions import (
    InvalidStatusTransitionError,
    NotCourseOwnerError,
    RejectionReasonRequiredError,
    SubmissionRequirementError,
)
from app.lms import service as lms_service
from app.models.enums import CourseStatus, UserRole
from app.moderation import service
from app.moderation.workflow import CourseAction


@pytest_asyncio.fixture
async def people(make_user):
    creator = await make_user(UserRole.CREATOR)
    admin = await make_user(UserRole.ADMIN)
    return creator, admin


@pytest.mark.asyncio
async def test_submit_requires_a_lesson(db_session, people, make_course) -> None:
    creator, _ = people
    course = await make_course(creator, lessons=(), status=CourseStatus.DRAFT)
    with pytest.raises(SubmissionRequirementError, match="at least one lesson"):
        await service.submit_course(db_session, course.course_id, creator.user_id)
    assert course.status == CourseStatus.DRAFT


@pytest.mark.asyncio
async def test_submit_ignores_inactive_lessons(db_session, people, make_course, lessons_of) -> None:
    creator, _ = people
    course = await make_course(creator, lessons=(5,), status=CourseStatus.DRAFT)
    (lesson,) = await lessons_of(db_session, course.course_id)
    lesson.is_active = False
    await db_session.flush()
    with pytest.raises(SubmissionRequirementError):
        await service.submit_course(db_session, course.course_id, creator.user_id)


@pytest.mark.asyncio
async def test_submit_requires_a_thumbnail(db_session, people, make_course) -> None:
    creator, _ = people
    course = await make_course(creator, status=CourseStatus.DRAFT, with_thumbnail=False)
    with pytest.raises(SubmissionRequirementError, match="thumbnail"):
        await service.submit_course(db_session, course.course_id, creator.user_id)


@pytest.mark.asyncio
async def test_only_owner_or_admin_can_submit(db_session, people, make_user, make_course) -> None:
    creator, admin = people
    stranger = await make_user(UserRole.CREATOR)
    course = await make_course(creator, status=CourseStatus.DRAFT)
    with pytest.raises(NotCourseOwnerError):
        await service.submit_course(db_session, course.course_id, stranger.user_id)

    submitted = await service.submit_course(
        db_session, course.course_id, admin.user_id, is_admin=True,
    )
    assert submitted.status == CourseStatus.SUBMITTED


@pytest.mark.asyncio
async def test_published_course_cannot_be_resubmitted(db_session, people, make_course) -> None:
    creator, _ = people
    course = await make_course(creator)
    with pytest.raises(InvalidStatusTransitionError):
        await service.submit_course(db_session, course.course_id, creator.user_id)


@pytest.mark.asyncio
async def test_submit_then_approve(db_session, people, make_course) -> None:
    creator, admin = people
    course = await make_course(creator, status=CourseStatus.DRAFT)

    course = await service.submit_course(db_session, course.course_id, creator.user_id)
    assert course.status == CourseStatus.SUBMITTED
    assert course.submitted_at is not None

    queue, total = await service.list_review_queue(db_session)
    assert total == 1
    assert queue[0].course_id == course.course_id

    course = await service.review_course(
        db_session, course.course_id, admin.user_id, action=CourseAction.APPROVE,
    )
    assert course.status == CourseStatus.PUBLISHED
    assert course.reviewed_by == admin.user_id
    assert course.reviewed_at is not None
    assert (await service.list_review_queue(db_session))[1] == 0


@pytest.mark.asyncio
async def test_reject_edit_resubmit_cycle(db_session, people, make_course) -> None:
    creator, admin = people
    course = await make_course(creator, status=CourseStatus.SUBMITTED)

    course = await service.review_course(
        db_session, course.course_id, admin.user_id,
        action=CourseAction.REJECT, reason="  low audio quality ",
    )
    assert course.status == CourseStatus.REJECTED
    assert course.rejection_reason == "low audio quality"

    course = await lms_service.update_course(
        db_session, course.course_id, creator.user_id, description="Re-recorded audio.",
    )
    assert course.status == CourseStatus.DRAFT
    assert course.rejection_reason is None

    course = await service.submit_course(db_session, course.course_id, creator.user_id)
    assert course.status == CourseStatus.SUBMITTED
    assert course.rejection_reason is None


@pytest.mark.asyncio
@pytest.mark.parametrize("reason", [None, "", "   "])
async def test_reject_requires_reason(db_session, people, make_course, reason) -> None:
    creator, admin = people
    course = await make_course(creator, status=CourseStatus.SUBMITTED)
    with pytest.raises(RejectionReasonRequiredError):
        await service.review_course(
            db_session, course.course_id, admin.user_id,
            action=CourseAction.REJECT, reason=reason,
        )
    assert course.status == CourseStatus.SUBMITTED


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [CourseStatus.DRAFT, CourseStatus.PUBLISHED, CourseStatus.REJECTED])
async def test_review_requires_pending_course(db_session, people, make_course, status) -> None:
    creator, admin = people
    course = await make_course(creator, status=status)
    with pytest.raises(InvalidStatusTransitionError):
        await service.review_course(
            db_session, course.course_id, admin.user_id, action=CourseAction.APPROVE,
        )


@pytest.mark.asyncio
async def test_review_rejects_non_review_actions(db_session, people, make_course) -> None:
    creator, admin = people
    course = await make_course(creator, status=CourseStatus.SUBMITTED)
    with pytest.raises(InvalidStatusTransitionError):
        await service.review_course(
            db_session, course.course_id, admin.user_id, action=CourseAction.SUBMIT,
        )


@pytest.mark.asyncio
async def test_editing_live_course_keeps_it_enrollable(
    db_session, people, make_user, make_course,
) -> None:
    creator, admin = people
    learner = await make_user()
    late_learner = await make_user()
    course = await make_course(creator)
    await enrollment_service.enroll(db_session, learner.user_id, course.course_id)

    course = await lms_service.update_course(
        db_session, course.course_id, creator.user_id, description="Now with exercises.",
    )
    assert course.status == CourseStatus.PENDING_REVIEW
    assert course.requires_reapproval is True
    assert course.modification_reason is not None

    # Still live: visible in the catalog and open to new learners
    catalog, _ = await lms_service.list_courses(db_session)
    assert course.course_id in {c.course_id for c in catalog}
    await enrollment_service.enroll(db_session, late_learner.user_id, course.course_id)
    assert course.enrollment_count == 2

    course = await service.review_course(
        db_session, course.course_id, admin.user_id, action=CourseAction.APPROVE,
    )
    assert course.status == CourseStatus.PUBLISHED
    assert course.requires_reapproval is False
    assert course.modification_reason is None


@pytest.mark.asyncio
async def test_admin_edits_do_not_trigger_review(db_session, people, make_course) -> None:
    creator, admin = people
    course = await make_course(creator)
    course = await lms_service.update_course(
        db_session, course.course_id, admin.user_id, is_admin=True, title="Fixed typo",
    )
    assert course.status == CourseStatus.PUBLISHED
    assert course.title == "Fixed typo"


@pytest.mark.asyncio
async def test_review_queue_orders_by_time_entered_review(db_session, people, make_course) -> None:
    creator, _ = people
    start = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

    # Published long ago, edited while live at 11:00; touched least recently
    edited = await make_course(creator, status=CourseStatus.PENDING_REVIEW, title="Edited live")
    edited.submitted_at = start - timedelta(days=30)
    edited.last_modified_at = start + timedelta(hours=2)
    edited.updated_at = start

    # Submitted at 10:00, then touched by an admin afterwards
    fresh = await make_course(creator, status=CourseStatus.SUBMITTED, title="Fresh")
    fresh.submitted_at = start + timedelta(hours=1)
    fresh.updated_at = start + timedelta(hours=5)

    # Edited as a draft at 09:00 but only submitted at 13:00
    resubmitted = await make_course(creator, status=CourseStatus.SUBMITTED, title="Resubmitted")
    resubmitted.last_modified_at = start
    resubmitted.submitted_at = start + timedelta(hours=4)
    resubmitted.updated_at = start + timedelta(hours=1)
    await db_session.flush()

    queue, total = await service.list_review_queue(db_session)
    assert total == 3
    assert [course.title for course in queue] == ["Fresh", "Edited live", "Resubmitted"]
