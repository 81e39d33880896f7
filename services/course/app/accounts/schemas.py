"""Account Pydantic V2 schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.models.enums import AccountStatus, UserRole


class UpdateProfileRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=200, description="Name printed on certificates.")
    email: EmailStr


class AccountStatusRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    reason: str | None = Field(default=None, max_length=500)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    name: str
    email: str
    role: UserRole
    account_status: AccountStatus
    status_reason: str | None = None
    status_changed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class CourseRestrictionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    course_id: UUID
    restricted_by: UUID
    created_at: datetime
