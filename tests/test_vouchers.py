import threading

import pytest
from django.db import IntegrityError, connection, transaction

from apps.finance.ledgers import MonthlyFeeLedger
from apps.finance.models import MONTHS, Voucher, VoucherCounter
from apps.finance.vouchers import (
    admission_scope,
    exam_scope,
    find_issued,
    issue_voucher,
    monthly_scope,
    peek_next_voucher,
)


def test_scope_keys():
    assert monthly_scope(2025) == "monthly_fees_2025"
    assert admission_scope(2025) == "admission_fees_2025"
    assert exam_scope(17) == "exam_fees_17"


def test_peek_starts_at_one_and_does_not_consume(db):
    assert peek_next_voucher("monthly_fees_2025") == 1
    assert peek_next_voucher("monthly_fees_2025") == 1
    assert not VoucherCounter.objects.exists()


def test_issued_numbers_are_consecutive_per_scope(student):
    with transaction.atomic():
        numbers = [
            issue_voucher("monthly_fees_2025", Voucher.Category.MONTHLY, student=student).number
            for _ in range(3)
        ]
        other = issue_voucher("monthly_fees_2026", Voucher.Category.MONTHLY, student=student).number

    assert numbers == [1, 2, 3]
    assert other == 1
    assert peek_next_voucher("monthly_fees_2025") == 4
    assert VoucherCounter.objects.get(scope_key="monthly_fees_2025").last_voucher == 3
    assert list(
        Voucher.objects.filter(scope_key="monthly_fees_2025").values_list("number", flat=True)
    ) == [1, 2, 3]


def test_rolled_back_issue_does_not_consume_a_number(student):
    with pytest.raises(RuntimeError):
        with transaction.atomic():
            issue_voucher("exam_fees_1", Voucher.Category.EXAM, student=student)
            raise RuntimeError("ledger write failed")

    assert peek_next_voucher("exam_fees_1") == 1
    with transaction.atomic():
        assert issue_voucher("exam_fees_1", Voucher.Category.EXAM, student=student).number == 1


def test_duplicate_number_in_scope_is_rejected(student):
    Voucher.objects.create(scope_key="admission_fees_2025", number=1, category=Voucher.Category.ADMISSION)

    with pytest.raises(IntegrityError):
        with transaction.atomic():
            Voucher.objects.create(
                scope_key="admission_fees_2025", number=1, category=Voucher.Category.ADMISSION
            )


def test_find_issued_by_idempotency_key(student):
    with transaction.atomic():
        voucher = issue_voucher(
            "monthly_fees_2025", Voucher.Category.MONTHLY, student=student, idempotency_key="abc-1"
        )

    assert find_issued("abc-1") == voucher
    assert find_issued("missing") is None
    assert find_issued(None) is None


@pytest.mark.django_db(transaction=True)
def test_concurrent_collections_get_consecutive_vouchers(make_student, fee_settings, year, collection_date):
    students = [make_student() for _ in range(8)]
    barrier = threading.Barrier(len(students))
    numbers, errors = [], []

    def collect(student):
        try:
            barrier.wait()
            receipt = MonthlyFeeLedger().collect(student, year, MONTHS[0], 500, "Office", collection_date)
            numbers.append(receipt.voucher_no)
        except Exception as e:
            errors.append(e)
        finally:
            connection.close()

    threads = [threading.Thread(target=collect, args=(s,)) for s in students]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert sorted(numbers) == list(range(1, len(students) + 1))
    assert VoucherCounter.objects.get(scope_key=monthly_scope(year)).last_voucher == len(students)
    assert Voucher.objects.filter(scope_key=monthly_scope(year)).count() == len(students)
