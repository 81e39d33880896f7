"""Accounts service — learner profiles, account status and course restrictions.

Pure business logic, no FastAPI imports. Credentials live with the token
issuer; this module only keeps what the learning side needs: a display
name for certificates, the role, and whether the account may learn.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import (
    AdminAccountProtectedError,
    CourseNotFoundError,
    EmailAlreadyInUseError,
    UserNotFoundError,
)
from app.models.course import Course
from app.models.enums import AccountStatus, UserRole
from app.models.user import CourseRestriction, User

logger = logging.getLogger(__name__)


async def get_user(db: AsyncSession, user_id: UUID) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise UserNotFoundError(str(user_id))
    return user


async def upsert_profile(
    db: AsyncSession,
    user_id: UUID,
    *,
    name: str,
    email: str,
    role: UserRole,
) -> User:
    """Create or refresh the caller's account row from their token claims."""
    user = await db.get(User, user_id)
    try:
        async with db.begin_nested():
            if user is None:
                user = User(user_id=user_id, name=name, email=email, role=role)
                db.add(user)
                logger.info("Account %s created (role=%s)", user_id, role.value)
            else:
                user.name = name
                user.email = email
                user.role = role
            await db.flush()
    except IntegrityError:
        raise EmailAlreadyInUseError() from None
    await db.refresh(user)
    return user


async def list_users(
    db: AsyncSession,
    *,
    role: UserRole | None = None,
    account_status: AccountStatus | None = None,
    limit: int = 20,
    offset: int = 0,
) -> list[User]:
    stmt = select(User)
    if role is not None:
        stmt = stmt.where(User.role == role)
    if account_status is not None:
        stmt = stmt.where(User.account_status == account_status)
    stmt = stmt.order_by(User.created_at.desc()).limit(limit).offset(offset)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def set_account_status(
    db: AsyncSession,
    user_id: UUID,
    status: AccountStatus,
    *,
    reason: str | None = None,
) -> User:
    user = await get_user(db, user_id)
    if user.role == UserRole.ADMIN and status != AccountStatus.ACTIVE:
        raise AdminAccountProtectedError()
    user.account_status = status
    user.status_reason = reason if status != AccountStatus.ACTIVE else None
    user.status_changed_at = datetime.now(timezone.utc)
    await db.flush()
    await db.refresh(user)
    logger.info("Account %s set to %s", user_id, status.value)
    return user


async def restrict_course(
    db: AsyncSession,
    user_id: UUID,
    course_id: UUID,
    admin_id: UUID,
) -> CourseRestriction:
    """Idempotent: restricting twice returns the existing row."""
    await get_user(db, user_id)
    if await db.get(Course, course_id) is None:
        raise CourseNotFoundError(str(course_id))

    existing = await db.scalar(
        select(CourseRestriction).where(
            CourseRestriction.user_id == user_id,
            CourseRestriction.course_id == course_id,
        )
    )
    if existing is not None:
        return existing
    restriction = CourseRestriction(user_id=user_id, course_id=course_id, restricted_by=admin_id)
    db.add(restriction)
    await db.flush()
    await db.refresh(restriction)
    return restriction


async def unrestrict_course(db: AsyncSession, user_id: UUID, course_id: UUID) -> None:
    existing = await db.scalar(
        select(CourseRestriction).where(
            CourseRestriction.user_id == user_id,
            CourseRestriction.course_id == course_id,
        )
    )
    if existing is not None:
        await db.delete(existing)
        await db.flush()


async def list_restricted_course_ids(db: AsyncSession, user_id: UUID) -> list[UUID]:
    result = await db.execute(
        select(CourseRestriction.course_id).where(CourseRestriction.user_id == user_id)
    )
    return list(result.scalars().all())
