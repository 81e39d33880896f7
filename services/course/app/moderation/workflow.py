"""
Course moderation state machine — pure, no DB or FastAPI imports.

Transition table (status × action → status):
  DRAFT          → SUBMITTED        SUBMIT    creator sends for review
  REJECTED       → SUBMITTED        SUBMIT
  SUBMITTED      → PUBLISHED        APPROVE   admin
  PENDING_REVIEW → PUBLISHED        APPROVE
  SUBMITTED      → REJECTED         REJECT    admin, reason required
  PENDING_REVIEW → REJECTED         REJECT
  PUBLISHED      → PENDING_REVIEW   MODIFY    creator edits live content
  PENDING_REVIEW → PENDING_REVIEW   MODIFY
  DRAFT          → DRAFT            MODIFY
  SUBMITTED      → SUBMITTED        MODIFY
  REJECTED       → DRAFT            MODIFY    clears the rejection reason

Anything else raises InvalidStatusTransitionError. Every status change in
the service layer goes through ``next_status`` so the rules live in one place.
"""
from __future__ import annotations

import enum
from datetime import datetime, timezone

from app.exceptions import InvalidStatusTransitionError
from app.models.course import Course
from app.models.enums import CourseStatus

COURSE_MODIFIED_REASON = "Course content modified - requires re-approval"
LESSON_MODIFIED_REASON = "Lesson content modified - requires re-approval"


class CourseAction(str, enum.Enum):
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    MODIFY = "modify"


TRANSITIONS: dict[tuple[CourseStatus, CourseAction], CourseStatus] = {
    (CourseStatus.DRAFT, CourseAction.SUBMIT): CourseStatus.SUBMITTED,
    (CourseStatus.REJECTED, CourseAction.SUBMIT): CourseStatus.SUBMITTED,
    (CourseStatus.SUBMITTED, CourseAction.APPROVE): CourseStatus.PUBLISHED,
    (CourseStatus.PENDING_REVIEW, CourseAction.APPROVE): CourseStatus.PUBLISHED,
    (CourseStatus.SUBMITTED, CourseAction.REJECT): CourseStatus.REJECTED,
    (CourseStatus.PENDING_REVIEW, CourseAction.REJECT): CourseStatus.REJECTED,
    (CourseStatus.PUBLISHED, CourseAction.MODIFY): CourseStatus.PENDING_REVIEW,
    (CourseStatus.PENDING_REVIEW, CourseAction.MODIFY): CourseStatus.PENDING_REVIEW,
    (CourseStatus.DRAFT, CourseAction.MODIFY): CourseStatus.DRAFT,
    (CourseStatus.SUBMITTED, CourseAction.MODIFY): CourseStatus.SUBMITTED,
    (CourseStatus.REJECTED, CourseAction.MODIFY): CourseStatus.DRAFT,
}


def next_status(current: CourseStatus, action: CourseAction) -> CourseStatus:
    try:
        return TRANSITIONS[(current, action)]
    except KeyError:
        raise InvalidStatusTransitionError(current.value, action.value) from None


def allowed_actions(current: CourseStatus) -> list[CourseAction]:
    return [action for (status, action) in TRANSITIONS if status == current]


def apply_modification(course: Course, reason: str) -> CourseStatus:
    """Route a creator's content edit through MODIFY and stamp the course.

    A live course keeps serving learners but is flagged for re-approval;
    a rejected course drops back to draft with its rejection cleared.
    """
    previous = course.status
    course.status = next_status(previous, CourseAction.MODIFY)
    now = datetime.now(timezone.utc)
    course.last_modified_at = now
    if course.status == CourseStatus.PENDING_REVIEW:
        course.requires_reapproval = True
        course.modification_reason = reason
    if previous == CourseStatus.REJECTED:
        course.rejection_reason = None
    return course.status
