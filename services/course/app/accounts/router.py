"""Accounts router — the caller's profile and admin account management."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.user import CurrentUser

from app.accounts import controller
from app.accounts.schemas import (
    AccountStatusRequest,
    CourseRestrictionResponse,
    UpdateProfileRequest,
    UserResponse,
)
from app.database import get_db
from app.dependencies import get_current_user, require_admin
from app.models.enums import AccountStatus, UserRole

router = APIRouter(prefix="/accounts", tags=["Accounts"])
admin_router = APIRouter(prefix="/admin/users", tags=["Admin: Users"])


# ======================================================================
# Self-service
# ======================================================================


@router.get("/me", response_model=UserResponse, summary="Get my account")
async def get_me(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> UserResponse:
    return await controller.get_me(db, user)


@router.put(
    "/me",
    response_model=UserResponse,
    summary="Create or update my account",
    description="Name and email come from the body; the role is taken from the access token.",
)
async def update_me(
    body: UpdateProfileRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> UserResponse:
    return await controller.update_me(db, user, body)


# ======================================================================
# Admin
# ======================================================================


@admin_router.get("", response_model=list[UserResponse], summary="List accounts")
async def list_users(
    role: UserRole | None = Query(None),
    account_status: AccountStatus | None = Query(None, alias="status"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    _admin: CurrentUser = Depends(require_admin),
) -> list[UserResponse]:
    return await controller.list_users(
        db, role=role, account_status=account_status, limit=limit, offset=offset,
    )


@admin_router.put("/{user_id}/block", response_model=UserResponse, summary="Block account")
async def block_user(
    user_id: UUID,
    body: AccountStatusRequest,
    db: AsyncSession = Depends(get_db),
    _admin: CurrentUser = Depends(require_admin),
) -> UserResponse:
    return await controller.set_account_status(
        db, user_id, AccountStatus.BLOCKED, reason=body.reason,
    )


@admin_router.put("/{user_id}/unblock", response_model=UserResponse, summary="Reactivate account")
async def unblock_user(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    _admin: CurrentUser = Depends(require_admin),
) -> UserResponse:
    return await controller.set_account_status(db, user_id, AccountStatus.ACTIVE)


@admin_router.put("/{user_id}/suspend", response_model=UserResponse, summary="Suspend account")
async def suspend_user(
    user_id: UUID,
    body: AccountStatusRequest | None = None,
    db: AsyncSession = Depends(get_db),
    _admin: CurrentUser = Depends(require_admin),
) -> UserResponse:
    return await controller.set_account_status(
        db, user_id, AccountStatus.SUSPENDED, reason=body.reason if body else None,
    )


@admin_router.delete(
    "/{user_id}",
    response_model=UserResponse,
    summary="Soft-delete account",
    description="The row is kept so issued certificates stay verifiable.",
)
async def delete_user(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    _admin: CurrentUser = Depends(require_admin),
) -> UserResponse:
    return await controller.set_account_status(db, user_id, AccountStatus.DELETED)


@admin_router.get(
    "/{user_id}/restrictions",
    response_model=list[UUID],
    summary="List courses the account is barred from",
)
async def list_restrictions(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    _admin: CurrentUser = Depends(require_admin),
) -> list[UUID]:
    return await controller.list_restrictions(db, user_id)


@admin_router.post(
    "/{user_id}/restrictions/{course_id}",
    response_model=CourseRestrictionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Bar an account from one course",
)
async def restrict_course(
    user_id: UUID,
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
) -> CourseRestrictionResponse:
    return await controller.restrict_course(db, user_id, course_id, admin)


@admin_router.delete(
    "/{user_id}/restrictions/{course_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Lift a course restriction",
)
async def unrestrict_course(
    user_id: UUID,
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    _admin: CurrentUser = Depends(require_admin),
) -> None:
    await controller.unrestrict_course(db, user_id, course_id)
