"""Certificate router — learner listing, public verification and admin invalidation.

The PDF itself is served from the learning router, keyed by course.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.user import CurrentUser

from app.certificates import controller
from app.certificates.schemas import CertificateResponse, CertificateVerifyResponse
from app.database import get_db
from app.dependencies import get_current_user, require_admin

router = APIRouter(prefix="/certificates", tags=["Certificates"])
admin_router = APIRouter(prefix="/admin/certificates", tags=["Certificates"])


@router.get(
    "/me",
    response_model=list[CertificateResponse],
    summary="List my certificates",
    description="All certificates earned by the authenticated user, newest first.",
)
async def get_my_certificates(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> list[CertificateResponse]:
    return await controller.get_my_certificates(db, user.id)


@router.get(
    "/verify/{serial_hash}",
    response_model=CertificateVerifyResponse,
    summary="Verify certificate (public)",
    description="No authentication required. Unknown serials report is_valid=false.",
)
async def verify_certificate(
    serial_hash: str,
    db: AsyncSession = Depends(get_db),
) -> CertificateVerifyResponse:
    return await controller.verify_certificate(db, serial_hash)


@admin_router.patch(
    "/{certificate_id}/invalidate",
    response_model=CertificateResponse,
    summary="Invalidate a certificate",
)
async def invalidate_certificate(
    certificate_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
) -> CertificateResponse:
    return await controller.invalidate_certificate(db, certificate_id, admin.id)
