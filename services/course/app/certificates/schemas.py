"""Certificate domain Pydantic V2 schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import CertificateGrade


class CertificateResponse(BaseModel):
    """Issued certificate record. Snapshot fields never change after issuance."""

    model_config = ConfigDict(from_attributes=True)

    certificate_id: UUID
    user_id: UUID
    course_id: UUID | None = Field(
        default=None,
        description="Null once the course has been deleted.",
    )
    enrollment_id: UUID | None = None
    serial_hash: str
    learner_name: str
    course_title: str
    total_lessons: int
    course_duration_mins: int
    issued_by_name: str
    grade: CertificateGrade
    completion_date: datetime
    is_valid: bool
    invalidated_at: datetime | None = None


class CertificateVerifyResponse(BaseModel):
    """Public verification result (reached by scanning the QR code)."""

    is_valid: bool
    serial_hash: str
    certificate_id: UUID | None = None
    learner_name: str | None = None
    course_title: str | None = None
    course_duration_mins: int | None = None
    total_lessons: int | None = None
    grade: CertificateGrade | None = None
    issued_by_name: str | None = None
    completion_date: datetime | None = None
