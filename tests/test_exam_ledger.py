from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError

from apps.finance.ledgers import ExamFeeLedger, resolve_exam_fee, resolve_exam_term
from apps.finance.models import ExamFeeRecord
from apps.finance.settings_resolver import resolve_fee_settings
from apps.result.models import Exam


@pytest.mark.parametrize("name, term, expected", [
    ("1st Term Examination", "", "1st-term"),
    ("প্রথম সাময়িক পরীক্ষা", "", "1st-term"),
    ("2nd Term Exam", "", "2nd-term"),
    ("দ্বিতীয় সাময়িক পরীক্ষা", "", "2nd-term"),
    ("FINAL EXAM", "", "final-term"),
    ("বার্ষিক পরীক্ষা", "", "final-term"),
    ("Weekly class test", "", None),
    ("1st Term Examination", "final-term", "final-term"),
])
def test_resolve_exam_term(name, term, expected):
    assert resolve_exam_term(Exam(name=name, term=term)) == expected


def test_unmatched_exam_costs_nothing(fee_settings, class_six, year):
    schedule = resolve_fee_settings(class_six, year)

    assert resolve_exam_fee(Exam(name="Model test"), schedule) == 0
    assert resolve_exam_fee(Exam(name="Half-yearly", term="2nd-term"), schedule) == Decimal("250")


def test_load_unpaid_exam(student, fee_settings, make_exam):
    exam = make_exam("1st Term Examination")
    ledger = ExamFeeLedger()

    record = ledger.load(exam, student)

    assert record.pk is None
    assert ledger.exam_fee(exam, student) == Decimal("200")
    assert ledger.due(exam, student) == Decimal("200")


def test_collect_exam_fee(student, fee_settings, make_exam, teacher, collection_date):
    exam = make_exam("Final Exam")
    ledger = ExamFeeLedger()

    receipt = ledger.collect(exam, student, 200, 50, teacher, collection_date)

    record = ExamFeeRecord.objects.get(exam=exam, student=student)
    assert receipt.scope_key == f"exam_fees_{exam.pk}"
    assert receipt.voucher_no == 1
    assert record.paid_amount == Decimal("200")
    assert record.discount == Decimal("50")
    assert ledger.due(exam, student) == Decimal("50")


def test_each_exam_has_its_own_voucher_sequence(student, fee_settings, make_exam, collection_date):
    first, second = make_exam("1st Term"), make_exam("2nd Term")
    ledger = ExamFeeLedger()

    assert ledger.collect(first, student, 200, 0, "Office", collection_date).voucher_no == 1
    assert ledger.collect(second, student, 250, 0, "Office", collection_date).voucher_no == 1
    assert ledger.collect(first, student, 200, 0, "Office", collection_date).voucher_no == 2
    assert ExamFeeRecord.objects.count() == 2


def test_exam_collection_validation(student, fee_settings, make_exam):
    exam = make_exam("1st Term")

    with pytest.raises(ValidationError) as excinfo:
        ExamFeeLedger().collect(exam, student, -5, 0, "", None)

    assert {'paid_amount', 'collected_by', 'collection_date'} <= set(excinfo.value.message_dict)
    assert not ExamFeeRecord.objects.exists()
