"""Accounts controller — maps service results to HTTP responses, catches domain exceptions."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.user import CurrentUser

from app.accounts import service
from app.accounts.schemas import CourseRestrictionResponse, UpdateProfileRequest, UserResponse
from app.dependencies import primary_role
from app.exceptions import DomainError
from app.http_errors import to_http_exception
from app.models.enums import AccountStatus, UserRole


async def get_me(db: AsyncSession, user: CurrentUser) -> UserResponse:
    try:
        account = await service.get_user(db, user.id)
        return UserResponse.model_validate(account)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def update_me(
    db: AsyncSession,
    user: CurrentUser,
    body: UpdateProfileRequest,
) -> UserResponse:
    try:
        account = await service.upsert_profile(
            db, user.id,
            name=body.name,
            email=str(body.email),
            role=primary_role(user),
        )
        return UserResponse.model_validate(account)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def list_users(
    db: AsyncSession,
    *,
    role: UserRole | None,
    account_status: AccountStatus | None,
    limit: int,
    offset: int,
) -> list[UserResponse]:
    users = await service.list_users(
        db, role=role, account_status=account_status, limit=limit, offset=offset,
    )
    return [UserResponse.model_validate(u) for u in users]


async def set_account_status(
    db: AsyncSession,
    user_id: UUID,
    status: AccountStatus,
    *,
    reason: str | None = None,
) -> UserResponse:
    try:
        account = await service.set_account_status(db, user_id, status, reason=reason)
        return UserResponse.model_validate(account)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def restrict_course(
    db: AsyncSession,
    user_id: UUID,
    course_id: UUID,
    admin: CurrentUser,
) -> CourseRestrictionResponse:
    try:
        restriction = await service.restrict_course(db, user_id, course_id, admin.id)
        return CourseRestrictionResponse.model_validate(restriction)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


async def unrestrict_course(db: AsyncSession, user_id: UUID, course_id: UUID) -> None:
    await service.unrestrict_course(db, user_id, course_id)


async def list_restrictions(db: AsyncSession, user_id: UUID) -> list[UUID]:
    try:
        await service.get_user(db, user_id)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return await service.list_restricted_course_ids(db, user_id)
