"""
Shared helpers for amounts, years and class lookups
"""
import datetime
from decimal import Decimal, InvalidOperation

from django.core.exceptions import ValidationError
from django.utils import timezone
from django.utils.dateparse import parse_date
from django.utils.translation import gettext_lazy as _

ZERO = Decimal("0")


def to_decimal(value, field="amount"):
    """
    Coerce form/JSON input into a Decimal.

    Empty values become zero; anything unparsable raises ValidationError.
    """
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError({field: _("Enter a valid number.")})


def non_negative(value, field="amount"):
    amount = to_decimal(value, field)
    if amount < 0:
        raise ValidationError({field: _("Amount cannot be negative.")})
    return amount


def current_year():
    return timezone.localdate().year


def class_name_of(student_class):
    """Accept a StudentClass, a plain class name or None."""
    if student_class is None:
        return ""
    return getattr(student_class, "name", student_class) or ""


def to_date(value, field="date"):
    """
    Accept a date, datetime or ``YYYY-MM-DD`` string.

    Returns None for empty input; malformed strings raise ValidationError.
    """
    if not value:
        return None
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    try:
        parsed = parse_date(str(value).strip())
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError({field: _("Enter a valid date.")})
    return parsed


def collector_label(collector):
    """Stored name of whoever collected a fee (Teacher, Admin, User or plain text)"""
    if collector is None:
        return ""
    for attr in ("email", "name"):
        value = getattr(collector, attr, None)
        if value:
            return str(value)
    return str(collector).strip()
