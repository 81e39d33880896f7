"""Progress and rating arithmetic for enrollments.

Pure utility, no DB imports. Progress is an integer percentage rounded
half-up; the denominator is the number of lessons active right now, so
toggling a lesson's ``is_active`` flag moves every enrollment's progress.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal


def compute_progress(completed_active: int, total_active: int) -> int:
    """Return round_half_up(100 * completed / total), 0 for an empty course."""
    if total_active <= 0:
        return 0
    completed = max(0, min(completed_active, total_active))
    pct = (Decimal(100) * completed / Decimal(total_active)).quantize(
        Decimal("1"), rounding=ROUND_HALF_UP,
    )
    return int(pct)


def average_progress(values: list[int]) -> int:
    if not values:
        return 0
    avg = (Decimal(sum(values)) / Decimal(len(values))).quantize(
        Decimal("1"), rounding=ROUND_HALF_UP,
    )
    return int(avg)


def average_rating(total: int, count: int) -> Decimal:
    """Mean of ``count`` ratings summing to ``total``, two places, half-up."""
    if count <= 0:
        return Decimal("0.00")
    return (Decimal(total) / Decimal(count)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
