from decimal import Decimal

import pytest

from apps.result.grading import GPA_SCALE, grade, grade_point


@pytest.mark.parametrize("mark, expected", [
    (100, "A+"),
    (80, "A+"),
    (79.99, "A"),
    (70, "A"),
    (60, "A-"),
    (50, "B"),
    (40, "C"),
    (33, "D"),
    (32.99, "F"),
    (0, "F"),
])
def test_grade_boundaries_are_inclusive(mark, expected):
    assert grade(mark, 100) == expected


def test_grade_uses_percentage_of_max_mark():
    assert grade(40, 50) == "A+"
    assert grade(17, 50) == "D"
    assert grade(16, 50) == "F"


def test_non_positive_max_mark_fails():
    assert grade(10, 0) == "F"
    assert grade(10, -5) == "F"


def test_grade_points():
    assert grade_point("A+") == Decimal("5.0")
    assert grade_point("A-") == Decimal("3.5")
    assert grade_point("D") == Decimal("1.0")
    assert grade_point("unknown") == GPA_SCALE["F"]
