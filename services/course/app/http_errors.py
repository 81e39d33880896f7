"""Map domain exception categories to HTTP responses.

Controllers catch ``DomainError`` and re-raise the result of
``to_http_exception``. Anything else propagates to the error envelope
middleware and becomes a logged 500.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

from app.exceptions import (
    ConflictError,
    DomainError,
    ForbiddenError,
    InternalError,
    InvalidStateError,
    NotFoundError,
    RejectionReasonRequiredError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_CATEGORY: list[tuple[type[DomainError], int]] = [
    # Most specific first
    (RejectionReasonRequiredError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
    (InvalidStateError, status.HTTP_400_BAD_REQUEST),
    (InternalError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def to_http_exception(exc: DomainError) -> HTTPException:
    for category, status_code in _STATUS_BY_CATEGORY:
        if isinstance(exc, category):
            if status_code >= 500:
                logger.error("Internal domain error: %s", exc, exc_info=exc)
            return HTTPException(
                status_code=status_code,
                detail={"code": exc.code, "message": str(exc)},
            )
    logger.error("Unmapped domain error %s: %s", type(exc).__name__, exc)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"code": "internal", "message": "Internal error."},
    )
