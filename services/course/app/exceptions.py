"""Shared domain exception classes for the course service.

These are raised by service-layer code and caught by controllers
to map to appropriate HTTP responses. Every error belongs to exactly
one category base; the category's ``code`` is the stable identifier
returned to API clients.
"""


class DomainError(Exception):
    code = "domain_error"


class NotFoundError(DomainError):
    code = "not_found"


class ConflictError(DomainError):
    code = "conflict"


class ForbiddenError(DomainError):
    code = "forbidden"


class InvalidStateError(DomainError):
    code = "invalid_state"


class InternalError(DomainError):
    code = "internal"


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------


class CourseNotFoundError(NotFoundError):
    """Raised when a course cannot be found by ID."""

    def __init__(self, identifier: str = ""):
        self.identifier = identifier
        super().__init__(f"Course not found: {identifier}")


class LessonNotFoundError(NotFoundError):
    def __init__(self, lesson_id: str = ""):
        self.lesson_id = lesson_id
        super().__init__(f"Lesson not found: {lesson_id}")


class EnrollmentNotFoundError(NotFoundError):
    def __init__(self, identifier: str = ""):
        self.identifier = identifier
        super().__init__(f"Enrollment not found: {identifier}")


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: str = ""):
        self.user_id = user_id
        super().__init__(f"User not found: {user_id}")


class CertificateNotFoundError(NotFoundError):
    def __init__(self, identifier: str = ""):
        self.identifier = identifier
        super().__init__(f"Certificate not found: {identifier}")


# ---------------------------------------------------------------------------
# Conflict
# ---------------------------------------------------------------------------


class AlreadyEnrolledError(ConflictError):
    """Raised when user tries to enroll in a course they are already enrolled in."""

    def __init__(self) -> None:
        super().__init__("Already enrolled in this course")


class LessonAlreadyCompletedError(ConflictError):
    def __init__(self, lesson_id: str = ""):
        self.lesson_id = lesson_id
        super().__init__(f"Lesson already completed: {lesson_id}")


class CertificateAlreadyIssuedError(ConflictError):
    """Raised when a certificate already exists for this (learner, course)."""

    def __init__(self) -> None:
        super().__init__("Certificate already issued for this course")


class LessonOrderConflictError(ConflictError):
    def __init__(self, order: int):
        self.order = order
        super().__init__(f"Lesson order {order} is already taken in this course")


class EmailAlreadyInUseError(ConflictError):
    def __init__(self) -> None:
        super().__init__("Email address is already used by another account")


# ---------------------------------------------------------------------------
# Forbidden
# ---------------------------------------------------------------------------


class NotCourseOwnerError(ForbiddenError):
    """Raised when a non-owner tries to modify a course they don't own."""

    def __init__(self) -> None:
        super().__init__("Not the course owner")


class AccountBlockedError(ForbiddenError):
    """Raised when a blocked, suspended or deleted account attempts to learn."""

    def __init__(self, account_status: str):
        self.account_status = account_status
        super().__init__(f"Account is {account_status}")


class CourseRestrictedError(ForbiddenError):
    def __init__(self) -> None:
        super().__init__("Access to this course has been restricted")


class AdminAccountProtectedError(ForbiddenError):
    def __init__(self) -> None:
        super().__init__("Admin accounts cannot be blocked, suspended or deleted")


# ---------------------------------------------------------------------------
# Invalid state
# ---------------------------------------------------------------------------


class CourseNotPublishedError(InvalidStateError):
    """Raised when enrollment is attempted on a course that is not live."""

    def __init__(self) -> None:
        super().__init__("Course is not published")


class InvalidStatusTransitionError(InvalidStateError):
    """Raised when a course status transition is not allowed."""

    def __init__(self, current: str, action: str):
        self.current = current
        self.action = action
        super().__init__(f"Cannot {action} a course in status {current}")


class SubmissionRequirementError(InvalidStateError):
    """Raised when a course does not meet the requirements for review."""


class RejectionReasonRequiredError(InvalidStateError):
    def __init__(self) -> None:
        super().__init__("A rejection reason is required")


class CourseDeletionBlockedError(InvalidStateError):
    def __init__(self) -> None:
        super().__init__("Cannot delete a published course with active enrollments")


class LessonDeletionBlockedError(InvalidStateError):
    def __init__(self) -> None:
        super().__init__("Cannot delete lessons from a published course")


class CertificateNotIssuedError(InvalidStateError):
    def __init__(self) -> None:
        super().__init__("Certificate not yet issued")


class InvalidLessonOrderError(InvalidStateError):
    """Raised when a reorder request does not list exactly the course's lessons."""


class UnsupportedThumbnailError(InvalidStateError):
    """Raised when an uploaded thumbnail has a disallowed type or size."""


class InvalidRatingError(InvalidStateError):
    def __init__(self, rating: int):
        self.rating = rating
        super().__init__(f"Rating must be between 1 and 5, got {rating}")


# ---------------------------------------------------------------------------
# Internal
# ---------------------------------------------------------------------------


class CertificateIssueError(InternalError):
    """Raised when a unique serial hash could not be allocated."""
