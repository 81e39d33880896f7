"""Certificate service — issuance, retrieval, rendering and public verification.

Pure business logic, no FastAPI imports.

A certificate is an immutable snapshot taken the moment a learner first
reaches 100% on a course. The unique key on (user_id, course_id) is the
at-most-once guarantee; callers racing to issue the same certificate get
``CertificateAlreadyIssuedError`` and are expected to read the winner's row.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.certificates.pdf_generator import CertificatePDFData, generate_certificate_pdf
from app.config import Settings
from app.events.publishers import publish_certificate_issued
from app.exceptions import (
    CertificateAlreadyIssuedError,
    CertificateIssueError,
    CertificateNotFoundError,
    CourseNotFoundError,
    UserNotFoundError,
)
from app.models.certificate import Certificate
from app.models.course import Course
from app.models.enums import CertificateGrade
from app.models.lesson import Lesson
from app.models.user import User

logger = logging.getLogger(__name__)

# One retry with a fresh timestamp on a serial-hash collision
_SERIAL_ATTEMPTS = 2


# ---------------------------------------------------------------------------
# Serial hash
# ---------------------------------------------------------------------------


def generate_serial_hash(
    user_id: UUID,
    course_id: UUID,
    timestamp: datetime,
    secret: str,
) -> str:
    """HMAC-SHA256(userId:courseId:timestamp, secret) → 16 uppercase hex chars."""
    message = f"{user_id}:{course_id}:{timestamp.isoformat()}"
    digest = hmac.new(
        secret.encode(), message.encode(), hashlib.sha256,
    ).hexdigest()
    return digest[:16].upper()


# ---------------------------------------------------------------------------
# Issuance
# ---------------------------------------------------------------------------


async def _active_lesson_totals(db: AsyncSession, course_id: UUID) -> tuple[int, int]:
    """Return (active lesson count, summed active duration in minutes)."""
    stmt = select(
        func.count(Lesson.lesson_id),
        func.coalesce(func.sum(Lesson.duration_mins), 0),
    ).where(Lesson.course_id == course_id, Lesson.is_active.is_(True))
    row = (await db.execute(stmt)).one()
    return int(row[0]), int(row[1])


async def get_certificate_for_course(
    db: AsyncSession,
    user_id: UUID,
    course_id: UUID,
) -> Certificate | None:
    stmt = select(Certificate).where(
        Certificate.user_id == user_id,
        Certificate.course_id == course_id,
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def issue_certificate(
    db: AsyncSession,
    user_id: UUID,
    course_id: UUID,
    settings: Settings,
    *,
    enrollment_id: UUID | None = None,
    grade: CertificateGrade = CertificateGrade.PASS,
) -> Certificate:
    """Snapshot learner and course data into a new certificate row.

    Raises ``CertificateAlreadyIssuedError`` if one exists (or appears
    concurrently) and ``CertificateIssueError`` if no unique serial hash
    could be allocated.
    """
    if await get_certificate_for_course(db, user_id, course_id) is not None:
        raise CertificateAlreadyIssuedError()

    learner = await db.get(User, user_id)
    if learner is None:
        raise UserNotFoundError(str(user_id))
    course = await db.get(Course, course_id)
    if course is None:
        raise CourseNotFoundError(str(course_id))

    creator = await db.get(User, course.creator_id)
    issued_by_name = creator.name if creator and creator.name else settings.certificate_issuer_name
    total_lessons, duration_mins = await _active_lesson_totals(db, course_id)

    for attempt in range(1, _SERIAL_ATTEMPTS + 1):
        issued_at = datetime.now(timezone.utc)
        serial_hash = generate_serial_hash(
            user_id, course_id, issued_at, settings.certificate_signing_secret,
        )
        cert = Certificate(
            user_id=user_id,
            course_id=course_id,
            enrollment_id=enrollment_id,
            serial_hash=serial_hash,
            learner_name=learner.name,
            course_title=course.title,
            total_lessons=total_lessons,
            course_duration_mins=duration_mins,
            issued_by_id=course.creator_id,
            issued_by_name=issued_by_name,
            grade=grade,
            completion_date=issued_at,
        )
        try:
            async with db.begin_nested():
                db.add(cert)
                await db.flush()
        except IntegrityError:
            # Either another request won the (learner, course) race or the serial collided
            if await get_certificate_for_course(db, user_id, course_id) is not None:
                raise CertificateAlreadyIssuedError() from None
            logger.warning(
                "Serial hash collision for user=%s course=%s (attempt %d)",
                user_id, course_id, attempt,
            )
            continue

        await db.refresh(cert)
        publish_certificate_issued(cert.certificate_id, user_id, course_id, cert.serial_hash)
        return cert

    raise CertificateIssueError("Could not allocate a unique certificate serial hash")


# ---------------------------------------------------------------------------
# Retrieval
# ---------------------------------------------------------------------------


async def get_certificate_by_id(
    db: AsyncSession,
    certificate_id: UUID,
) -> Certificate:
    cert = await db.get(Certificate, certificate_id)
    if cert is None:
        raise CertificateNotFoundError(str(certificate_id))
    return cert


async def get_certificate_by_serial(db: AsyncSession, serial_hash: str) -> Certificate:
    stmt = select(Certificate).where(Certificate.serial_hash == serial_hash.upper())
    result = await db.execute(stmt)
    cert = result.scalar_one_or_none()
    if cert is None:
        raise CertificateNotFoundError(serial_hash)
    return cert


async def get_my_certificates(
    db: AsyncSession,
    user_id: UUID,
) -> list[Certificate]:
    stmt = (
        select(Certificate)
        .where(Certificate.user_id == user_id)
        .order_by(Certificate.completion_date.desc())
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def build_pdf_data(cert: Certificate, settings: Settings) -> CertificatePDFData:
    return CertificatePDFData(
        learner_name=cert.learner_name,
        course_title=cert.course_title,
        course_duration=cert.course_duration_mins,
        total_lessons=cert.total_lessons,
        completion_date=cert.completion_date,
        serial_hash=cert.serial_hash,
        grade=cert.grade.value,
        issued_by_name=cert.issued_by_name,
        verification_url=f"{settings.certificate_base_url}/{cert.serial_hash}",
    )


def render_certificate(cert: Certificate, settings: Settings) -> bytes:
    return generate_certificate_pdf(build_pdf_data(cert, settings))


# ---------------------------------------------------------------------------
# Public verification / admin invalidation
# ---------------------------------------------------------------------------


async def verify_certificate(
    db: AsyncSession,
    serial_hash: str,
) -> dict:
    """Public verification — no auth required.

    An unknown serial is reported as invalid rather than 404 so the endpoint
    does not distinguish "never existed" from "revoked" to scanners.
    """
    try:
        cert = await get_certificate_by_serial(db, serial_hash)
    except CertificateNotFoundError:
        return {"is_valid": False, "serial_hash": serial_hash.upper()}

    return {
        "is_valid": cert.is_valid,
        "serial_hash": cert.serial_hash,
        "certificate_id": cert.certificate_id,
        "learner_name": cert.learner_name,
        "course_title": cert.course_title,
        "course_duration_mins": cert.course_duration_mins,
        "total_lessons": cert.total_lessons,
        "grade": cert.grade,
        "issued_by_name": cert.issued_by_name,
        "completion_date": cert.completion_date,
    }


async def invalidate_certificate(
    db: AsyncSession,
    certificate_id: UUID,
    admin_id: UUID,
) -> Certificate:
    cert = await get_certificate_by_id(db, certificate_id)
    if cert.is_valid:
        cert.is_valid = False
        cert.invalidated_at = datetime.now(timezone.utc)
        cert.invalidated_by = admin_id
        await db.flush()
        await db.refresh(cert)
        logger.info("Certificate %s invalidated by admin %s", certificate_id, admin_id)
    return cert
