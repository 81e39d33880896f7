"""Moderation Pydantic V2 schemas."""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict, Field


class ReviewDecision(str, enum.Enum):
    APPROVE = "approve"
    REJECT = "reject"


class ReviewCourseRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    action: ReviewDecision
    reason: str | None = Field(
        default=None,
        max_length=1000,
        description="Required when rejecting. Shown to the creator.",
    )


class RejectCourseRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    reason: str = Field(max_length=1000, description="Why the course was rejected.")
