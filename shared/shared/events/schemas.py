from datetime import datetime, timezone
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CourseCompleted(BaseModel):
    """Queue event: a learner's progress reached 100% but no certificate exists yet."""

    model_config = ConfigDict(extra="forbid")

    event_type: str = "course.completed"
    user_id: UUID
    course_id: UUID
    enrollment_id: UUID
    occurred_at: datetime = Field(default_factory=_utcnow)


class CertificateIssued(BaseModel):
    """Queue event: a certificate row was created."""

    model_config = ConfigDict(extra="forbid")

    event_type: str = "certificate.issued"
    certificate_id: UUID
    user_id: UUID
    course_id: UUID
    serial_hash: str
    occurred_at: datetime = Field(default_factory=_utcnow)
