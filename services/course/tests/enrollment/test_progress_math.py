from decimal import Decimal

import pytest

from app.enrollment.progress import average_progress, average_rating, compute_progress


@pytest.mark.parametrize(
    ("completed", "total", "expected"),
    [
        (0, 4, 0),
        (3, 4, 75),
        (4, 4, 100),
        (1, 3, 33),
        (2, 3, 67),
        (1, 8, 13),  # 12.5 rounds half up
        (1, 200, 1),  # 0.5 rounds half up
    ],
)
def test_compute_progress_rounds_half_up(completed: int, total: int, expected: int) -> None:
    assert compute_progress(completed, total) == expected


def test_compute_progress_empty_course_is_zero() -> None:
    assert compute_progress(0, 0) == 0
    assert compute_progress(3, 0) == 0


def test_compute_progress_is_clamped() -> None:
    assert compute_progress(5, 4) == 100
    assert compute_progress(-1, 4) == 0


def test_average_progress() -> None:
    assert average_progress([]) == 0
    assert average_progress([100, 50]) == 75
    assert average_progress([0, 0, 1]) == 0
    assert average_progress([50, 51]) == 51


def test_average_rating() -> None:
    assert average_rating(0, 0) == Decimal("0.00")
    assert average_rating(9, 2) == Decimal("4.50")
    assert average_rating(13, 3) == Decimal("4.33")
    assert average_rating(14, 3) == Decimal("4.67")
    assert average_rating(5, 8) == Decimal("0.63")  # 0.625 rounds half up
