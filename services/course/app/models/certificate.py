import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from shared.database.postgres import Base

from .enums import CertificateGrade, certificate_grade_enum


class Certificate(Base):
    __tablename__ = "certificates"

    certificate_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    # Nulled if the course is later deleted; the snapshot below stays readable
    course_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("courses.course_id", ondelete="SET NULL"), nullable=True
    )
    enrollment_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    serial_hash: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)

    # Snapshot at issuance, never updated
    learner_name: Mapped[str] = mapped_column(String(200), nullable=False)
    course_title: Mapped[str] = mapped_column(String(300), nullable=False)
    total_lessons: Mapped[int] = mapped_column(Integer, nullable=False)
    course_duration_mins: Mapped[int] = mapped_column(Integer, nullable=False)
    issued_by_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    issued_by_name: Mapped[str] = mapped_column(String(200), nullable=False)
    grade: Mapped[CertificateGrade] = mapped_column(
        certificate_grade_enum, nullable=False, default=CertificateGrade.PASS
    )
    completion_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    # Admin invalidation is the only permitted mutation
    is_valid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    invalidated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    invalidated_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_certificates_user_course"),
        Index("ix_certificates_user_id", "user_id"),
    )
