"""Admin moderation router — HTTP layer only.

Submission lives on the LMS router next to the rest of the creator's
course endpoints; the review side is admin-only.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.user import CurrentUser

from app.database import get_db
from app.dependencies import require_admin
from app.lms.schemas import CourseResponse, CourseSummary
from app.moderation import controller
from app.moderation.schemas import RejectCourseRequest, ReviewCourseRequest
from app.moderation.workflow import CourseAction
from app.pagination import OffsetPage

router = APIRouter(prefix="/admin/courses", tags=["Moderation"])


@router.get(
    "/pending",
    response_model=OffsetPage[CourseSummary],
    summary="Review queue",
    description="Submitted courses and live courses awaiting re-approval, oldest first.",
)
async def list_pending(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    _admin: CurrentUser = Depends(require_admin),
) -> OffsetPage[CourseSummary]:
    return await controller.list_review_queue(db, limit=limit, offset=offset)


@router.put(
    "/{course_id}/review",
    response_model=CourseResponse,
    summary="Approve or reject a course",
)
async def review_course(
    course_id: UUID,
    body: ReviewCourseRequest,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
) -> CourseResponse:
    return await controller.review_course(
        db, course_id, admin,
        action=CourseAction(body.action.value),
        reason=body.reason,
    )


@router.put(
    "/{course_id}/approve",
    response_model=CourseResponse,
    summary="Approve a course",
)
async def approve_course(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
) -> CourseResponse:
    return await controller.review_course(db, course_id, admin, action=CourseAction.APPROVE)


@router.put(
    "/{course_id}/reject",
    response_model=CourseResponse,
    summary="Reject a course",
    description="A non-empty reason is required (422 otherwise).",
)
async def reject_course(
    course_id: UUID,
    body: RejectCourseRequest,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
) -> CourseResponse:
    return await controller.review_course(
        db, course_id, admin,
        action=CourseAction.REJECT,
        reason=body.reason,
    )
