"""Certificate controller — maps service results to HTTP responses, catches domain exceptions."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.certificates import service
from app.certificates.schemas import CertificateResponse, CertificateVerifyResponse
from app.exceptions import DomainError
from app.http_errors import to_http_exception


async def get_my_certificates(db: AsyncSession, user_id: UUID) -> list[CertificateResponse]:
    certs = await service.get_my_certificates(db, user_id)
    return [CertificateResponse.model_validate(c) for c in certs]


async def verify_certificate(db: AsyncSession, serial_hash: str) -> CertificateVerifyResponse:
    result = await service.verify_certificate(db, serial_hash)
    return CertificateVerifyResponse(**result)


async def invalidate_certificate(
    db: AsyncSession,
    certificate_id: UUID,
    admin_id: UUID,
) -> CertificateResponse:
    try:
        cert = await service.invalidate_certificate(db, certificate_id, admin_id)
        return CertificateResponse.model_validate(cert)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
