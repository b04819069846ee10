import datetime
from decimal import Decimal

import pytest
from django.utils import timezone

from apps.corecode.models import StudentClass
from apps.finance.models import FeeSettings
from apps.result.models import Exam
from apps.staffs.models import Teacher
from apps.students.models import Student

YEAR = 2025


@pytest.fixture(autouse=True)
def inline_fee_tasks(monkeypatch):
    """Bulk summary refreshes run in-process instead of going to the broker"""
    from tasks.config import TASK_CONFIG

    monkeypatch.setitem(TASK_CONFIG, 'USE_CELERY', False)


@pytest.fixture
def year():
    return YEAR


@pytest.fixture
def class_six(db):
    return StudentClass.objects.create(name="Six", numeric_name=6)


@pytest.fixture
def fee_settings(class_six):
    return FeeSettings.objects.create(
        student_class=class_six,
        year=YEAR,
        monthly_fee=Decimal("500"),
        admission_fee=Decimal("1000"),
        session_fee=Decimal("800"),
        first_term_fee=Decimal("200"),
        second_term_fee=Decimal("250"),
        final_term_fee=Decimal("300"),
        stock=Decimal("400"),
    )


@pytest.fixture
def make_student(class_six):
    counter = {'n': 0}

    def _make(**kwargs):
        counter['n'] += 1
        n = counter['n']
        defaults = {
            'admission_no': f"ADM{n:03d}",
            'roll': n,
            'name': f"Student {n}",
            'gender': Student.Gender.MALE,
            'current_class': class_six,
            'email': f"student{n}@example.com",
        }
        defaults.update(kwargs)
        return Student.objects.create(**defaults)

    return _make


@pytest.fixture
def student(make_student):
    return make_student(name="Rahim", father_email="karim@example.com", father_phone="01710000000")


@pytest.fixture
def teacher(db):
    return Teacher.objects.create(
        name="Nasrin", email="nasrin@example.com", status=Teacher.Status.APPROVED
    )


@pytest.fixture
def make_exam(db):
    def _make(name, term='', start=None, status=Exam.Status.UNPUBLISHED):
        start = start or timezone.make_aware(datetime.datetime(YEAR, 4, 1, 10, 0))
        return Exam.objects.create(name=name, term=term, start_date=start, status=status)

    return _make


@pytest.fixture
def collection_date():
    return datetime.date(YEAR, 3, 5)
