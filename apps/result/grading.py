"""
Letter grades and grade points.

Pure functions, no database access.
"""
from decimal import Decimal

# (minimum percentage, letter), checked top-down with >=
GRADE_THRESHOLDS = (
    (80, "A+"),
    (70, "A"),
    (60, "A-"),
    (50, "B"),
    (40, "C"),
    (33, "D"),
)
FAIL = "F"

GPA_SCALE = {
    "A+": Decimal("5.0"),
    "A": Decimal("4.0"),
    "A-": Decimal("3.5"),
    "B": Decimal("3.0"),
    "C": Decimal("2.0"),
    "D": Decimal("1.0"),
    "F": Decimal("0.0"),
}


def grade(mark, max_mark):
    """
    Letter grade for ``mark`` out of ``max_mark``.

    >>> grade(80, 100)
    'A+'
    >>> grade(79, 100)
    'A'
    """
    max_mark = Decimal(str(max_mark or 0))
    if max_mark <= 0:
        return FAIL
    percentage = Decimal(str(mark or 0)) * 100 / max_mark
    for minimum, letter in GRADE_THRESHOLDS:
        if percentage >= minimum:
            return letter
    return FAIL


def grade_point(letter):
    return GPA_SCALE.get(letter, GPA_SCALE[FAIL])
