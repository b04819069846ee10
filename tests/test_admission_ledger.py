from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError

from apps.finance.ledgers import AdmissionFeeLedger
from apps.finance.models import AdmissionFeeRecord, StockItem, Voucher


@pytest.fixture
def books(class_six):
    return [
        StockItem.objects.create(name="Bangla Reader", student_class=class_six, selling_price=Decimal("150")),
        StockItem.objects.create(name="Math Workbook", student_class=class_six, selling_price=Decimal("250")),
    ]


def test_new_student_gets_admission_fee(student, fee_settings, year):
    record = AdmissionFeeLedger().load_or_init(student, year)

    assert record.pk is None
    assert record.fee_type == AdmissionFeeRecord.FeeType.ADMISSION
    assert record.total_fee == Decimal("1000")
    assert record.total_stock == Decimal("400")
    assert record.fee_deposited == 0
    assert record.total_due == Decimal("1400")


def test_returning_student_gets_session_fee(make_student, fee_settings, year):
    returning = make_student(admission_no="ADMT-2019-044")

    record = AdmissionFeeLedger().load_or_init(returning, year)

    assert record.fee_type == AdmissionFeeRecord.FeeType.SESSION
    assert record.total_fee == Decimal("800")


def test_collect_computes_stock_from_catalog(student, fee_settings, books, teacher, year, collection_date):
    receipt = AdmissionFeeLedger().collect(student, year, {
        'fee_deposited': "600",
        'stock_deposited': "300",
        'discount': "100",
        'selected_stock_items': [b.pk for b in books],
        'collected_by': teacher,
        'collection_date': collection_date,
    })

    record = AdmissionFeeRecord.objects.get(student=student, year=year)
    assert receipt.voucher_no == 1
    assert receipt.scope_key == f"admission_fees_{year}"
    assert record.total_fee == Decimal("1000")
    assert record.total_stock == Decimal("400")
    assert record.fee_due == Decimal("300")
    assert record.stock_due == Decimal("100")
    assert record.total_due == Decimal("400")
    assert record.voucher_no == 1
    assert set(record.selected_stock_items.all()) == set(books)
    assert Voucher.objects.get().amount == Decimal("900")


def test_collect_without_items_has_no_stock_charge(student, fee_settings, year, collection_date):
    AdmissionFeeLedger().collect(student, year, {
        'fee_deposited': 1000,
        'collected_by': "Office",
        'collection_date': collection_date,
    })

    record = AdmissionFeeRecord.objects.get()
    assert record.total_stock == 0
    assert record.total_due == 0


def test_second_collection_updates_the_same_record(student, fee_settings, books, year, collection_date):
    ledger = AdmissionFeeLedger()
    data = {
        'fee_deposited': 500,
        'selected_stock_items': [books[0].pk],
        'collected_by': "Office",
        'collection_date': collection_date,
    }
    ledger.collect(student, year, data)
    second = ledger.collect(student, year, {**data, 'fee_deposited': 1000, 'total_fee': 1200})

    record = AdmissionFeeRecord.objects.get()
    assert second.voucher_no == 2
    assert record.total_fee == Decimal("1200")
    assert record.fee_deposited == Decimal("1000")
    assert record.total_due == Decimal("350")


def test_collect_requires_collector_and_date(student, fee_settings, year):
    with pytest.raises(ValidationError) as excinfo:
        AdmissionFeeLedger().collect(student, year, {'fee_deposited': 100})

    assert {'collected_by', 'collection_date'} <= set(excinfo.value.message_dict)
    assert not AdmissionFeeRecord.objects.exists()


def test_negative_discount_is_rejected(student, fee_settings, year, collection_date):
    with pytest.raises(ValidationError) as excinfo:
        AdmissionFeeLedger().collect(student, year, {
            'discount': -50, 'collected_by': "Office", 'collection_date': collection_date,
        })

    assert 'discount' in excinfo.value.message_dict
