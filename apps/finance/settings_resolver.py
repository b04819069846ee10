"""
Fee settings lookup for a class and year.

A missing settings row is normal (new class, new year) and resolves to a
zeroed schedule. Only the monthly fee has a fallback, because every student
is expected to pay something each month.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings
from django.db import DEFAULT_DB_ALIAS

from apps.corecode.utils import ZERO, class_name_of

from .models import FeeSettings

logger = logging.getLogger(__name__)

TERM_FIELDS = {
    '1st-term': 'first_term_fee',
    '2nd-term': 'second_term_fee',
    'final-term': 'final_term_fee',
}


def default_monthly_fee():
    return Decimal(str(getattr(settings, 'FEE_DEFAULT_MONTHLY_FEE', 500)))


@dataclass(frozen=True)
class FeeSchedule:
    class_name: str
    year: int
    monthly_fee: Decimal
    admission_fee: Decimal = ZERO
    session_fee: Decimal = ZERO
    first_term_fee: Decimal = ZERO
    second_term_fee: Decimal = ZERO
    final_term_fee: Decimal = ZERO
    stock: Decimal = ZERO

    @property
    def settings_key(self):
        return f"{self.class_name}-{self.year}"

    @property
    def yearly_monthly_fee(self):
        return self.monthly_fee * 12

    def exam_fee(self, term_key):
        """Fee for a term key such as ``1st-term``; unknown or missing terms cost 0"""
        field = TERM_FIELDS.get(term_key)
        if field is None:
            return ZERO
        return getattr(self, field)

    def admission_or_session_fee(self, session):
        return self.session_fee if session else self.admission_fee


def exam_fee_for(schedule, term_key):
    return schedule.exam_fee(term_key)


def resolve_fee_settings(student_class, year, using=DEFAULT_DB_ALIAS):
    """
    Return the FeeSchedule for ``student_class`` (instance or name) in ``year``.

    Never raises for missing configuration.
    """
    class_name = class_name_of(student_class)
    year = int(year)
    row = (
        FeeSettings.objects.using(using)
        .filter(student_class__name=class_name, year=year)
        .first()
    ) if class_name else None

    if row is None:
        logger.debug(f"No fee settings for {class_name}-{year}, using defaults")
        return FeeSchedule(class_name=class_name, year=year, monthly_fee=default_monthly_fee())

    return FeeSchedule(
        class_name=class_name,
        year=year,
        # A zero monthly fee is treated the same as a missing one
        monthly_fee=row.monthly_fee or default_monthly_fee(),
        admission_fee=row.admission_fee or ZERO,
        session_fee=row.session_fee or ZERO,
        first_term_fee=row.first_term_fee or ZERO,
        second_term_fee=row.second_term_fee or ZERO,
        final_term_fee=row.final_term_fee or ZERO,
        stock=row.stock or ZERO,
    )


class ScheduleCache:
    """Per-call memo of schedules, keyed by class name and year"""

    def __init__(self, using=DEFAULT_DB_ALIAS):
        self.using = using
        self._schedules = {}

    def get(self, student_class, year):
        key = (class_name_of(student_class), int(year))
        if key not in self._schedules:
            self._schedules[key] = resolve_fee_settings(key[0], key[1], using=self.using)
        return self._schedules[key]
