import uuid
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from app.certificates import service
from app.exceptions import (
    CertificateAlreadyIssuedError,
    CertificateIssueError,
    CertificateNotFoundError,
)
from app.models.certificate import Certificate
from app.models.enums import CertificateGrade, UserRole

FIXED_TS = datetime(2026, 3, 14, 15, 9, 26, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def issued(db_session, make_user, make_course, settings):
    creator = await make_user(UserRole.CREATOR, name="Barbara Liskov")
    learner = await make_user(name="Edsger Dijkstra")
    course = await make_course(creator, lessons=(7, 8), title="Structured Programming")
    cert = await service.issue_certificate(db_session, learner.user_id, course.course_id, settings)
    return learner, course, cert


def test_serial_hash_is_16_uppercase_hex_and_deterministic() -> None:
    user_id = uuid.UUID("11111111-1111-4111-8111-111111111111")
    course_id = uuid.UUID("22222222-2222-4222-8222-222222222222")

    first = service.generate_serial_hash(user_id, course_id, FIXED_TS, "secret")
    second = service.generate_serial_hash(user_id, course_id, FIXED_TS, "secret")

    assert first == second
    assert len(first) == 16
    assert first == first.upper()
    int(first, 16)


def test_serial_hash_depends_on_every_input() -> None:
    user_id, course_id = uuid.uuid4(), uuid.uuid4()
    base = service.generate_serial_hash(user_id, course_id, FIXED_TS, "secret")

    assert service.generate_serial_hash(uuid.uuid4(), course_id, FIXED_TS, "secret") != base
    assert service.generate_serial_hash(user_id, uuid.uuid4(), FIXED_TS, "secret") != base
    assert service.generate_serial_hash(
        user_id, course_id, FIXED_TS.replace(microsecond=1), "secret",
    ) != base
    assert service.generate_serial_hash(user_id, course_id, FIXED_TS, "other") != base


@pytest.mark.asyncio
async def test_issue_snapshots_learner_and_course(issued) -> None:
    learner, course, cert = issued
    assert cert.user_id == learner.user_id
    assert cert.course_id == course.course_id
    assert cert.learner_name == "Edsger Dijkstra"
    assert cert.course_title == "Structured Programming"
    assert cert.issued_by_name == "Barbara Liskov"
    assert cert.total_lessons == 2
    assert cert.course_duration_mins == 15
    assert cert.grade == CertificateGrade.PASS
    assert cert.is_valid is True


@pytest.mark.asyncio
async def test_second_issue_conflicts(db_session, issued, settings) -> None:
    learner, course, _ = issued
    with pytest.raises(CertificateAlreadyIssuedError):
        await service.issue_certificate(db_session, learner.user_id, course.course_id, settings)
    count = await db_session.scalar(select(func.count()).select_from(Certificate))
    assert count == 1


@pytest.mark.asyncio
async def test_serial_collision_is_retried_once(
    db_session, issued, make_user, settings, monkeypatch,
) -> None:
    _, course, existing = issued
    other = await make_user(name="Tony Hoare")
    serials = iter([existing.serial_hash, "0123456789ABCDEF"])
    monkeypatch.setattr(service, "generate_serial_hash", lambda *args: next(serials))

    cert = await service.issue_certificate(db_session, other.user_id, course.course_id, settings)
    assert cert.serial_hash == "0123456789ABCDEF"


@pytest.mark.asyncio
async def test_serial_collision_exhaustion_is_internal_error(
    db_session, issued, make_user, settings, monkeypatch,
) -> None:
    _, course, existing = issued
    other = await make_user()
    monkeypatch.setattr(service, "generate_serial_hash", lambda *args: existing.serial_hash)

    with pytest.raises(CertificateIssueError):
        await service.issue_certificate(db_session, other.user_id, course.course_id, settings)
    assert await service.get_certificate_for_course(db_session, other.user_id, course.course_id) is None


@pytest.mark.asyncio
async def test_lookup_by_serial_is_case_insensitive(db_session, issued) -> None:
    _, _, cert = issued
    found = await service.get_certificate_by_serial(db_session, cert.serial_hash.lower())
    assert found.certificate_id == cert.certificate_id

    with pytest.raises(CertificateNotFoundError):
        await service.get_certificate_by_serial(db_session, "FFFFFFFFFFFFFFFF")


@pytest.mark.asyncio
async def test_verify_and_invalidate(db_session, issued, make_user) -> None:
    _, _, cert = issued
    admin = await make_user(UserRole.ADMIN)

    result = await service.verify_certificate(db_session, cert.serial_hash)
    assert result["is_valid"] is True
    assert result["learner_name"] == "Edsger Dijkstra"

    invalidated = await service.invalidate_certificate(db_session, cert.certificate_id, admin.user_id)
    assert invalidated.is_valid is False
    assert invalidated.invalidated_by == admin.user_id
    assert invalidated.invalidated_at is not None

    result = await service.verify_certificate(db_session, cert.serial_hash)
    assert result["is_valid"] is False
    assert result["certificate_id"] == cert.certificate_id


@pytest.mark.asyncio
async def test_verify_unknown_serial_is_invalid(db_session) -> None:
    result = await service.verify_certificate(db_session, "deadbeefdeadbeef")
    assert result == {"is_valid": False, "serial_hash": "DEADBEEFDEADBEEF"}


@pytest.mark.asyncio
async def test_invalidate_unknown_certificate(db_session, make_user) -> None:
    admin = await make_user(UserRole.ADMIN)
    with pytest.raises(CertificateNotFoundError):
        await service.invalidate_certificate(db_session, uuid.uuid4(), admin.user_id)


@pytest.mark.asyncio
async def test_my_certificates(db_session, issued, make_user) -> None:
    learner, _, cert = issued
    assert [c.certificate_id for c in await service.get_my_certificates(db_session, learner.user_id)] == [
        cert.certificate_id
    ]
    stranger = await make_user()
    assert await service.get_my_certificates(db_session, stranger.user_id) == []


def test_build_pdf_data_points_at_verification_url(settings) -> None:
    cert = Certificate(
        certificate_id=uuid.uuid4(),
        user_id=uuid.uuid4(),
        course_id=uuid.uuid4(),
        serial_hash="ABCDEF0123456789",
        learner_name="Ada Lovelace",
        course_title="Analytical Engines",
        total_lessons=3,
        course_duration_mins=42,
        issued_by_name="Charles Babbage",
        grade=CertificateGrade.A,
        completion_date=FIXED_TS,
    )
    data = service.build_pdf_data(cert, settings)
    assert data.verification_url == "https://verify.example.com/certificates/ABCDEF0123456789"
    assert data.grade == "A"
    assert data.course_duration == 42
