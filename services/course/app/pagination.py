"""Pagination envelope for the course service.

Offset-based pagination is used by the catalog, creator dashboards,
learner enrollments and the admin review queue. Routers declare
``limit`` / ``offset`` as query parameters and echo them back here.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class OffsetPage[T](BaseModel):
    """Offset-paginated response envelope."""

    model_config = ConfigDict(from_attributes=True)

    items: list[T]
    total: int
    limit: int
    offset: int
