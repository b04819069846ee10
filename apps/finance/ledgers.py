"""
Fee ledgers: monthly, admission/session and exam fees.

Each collection validates its input first, then writes the ledger row and
issues the voucher inside one transaction. A failure anywhere in that
transaction rolls back both; callers see a FeeCollectionError and nothing is
saved.
"""
import logging
from dataclasses import dataclass, replace
from typing import Optional

from django.core.exceptions import ValidationError
from django.db import DEFAULT_DB_ALIAS, IntegrityError, OperationalError, transaction
from django.utils.translation import gettext_lazy as _

from apps.corecode.utils import ZERO, collector_label, non_negative, to_date
from apps.students.models import Student

from .models import (
    MONTHS,
    AdmissionFeeRecord,
    ExamFeeRecord,
    MonthlyFeePayment,
    MonthlyFeeRecord,
    StockItem,
    Voucher,
)
from .settings_resolver import resolve_fee_settings
from .vouchers import admission_scope, exam_scope, find_issued, issue_voucher, monthly_scope

logger = logging.getLogger(__name__)


class FeeCollectionError(Exception):
    """A ledger transaction was aborted. Nothing from it was saved."""

    def __init__(self, message, scope_key=None, conflict=False):
        super().__init__(message)
        self.scope_key = scope_key
        # True when another write got in first (lock timeout, duplicate voucher)
        self.conflict = conflict


@dataclass
class Receipt:
    scope_key: str
    voucher_no: int
    record: object
    replayed: bool = False


class BaseLedger:
    """Shared validation and transaction handling for the fee ledgers"""

    category = None

    def __init__(self, using=DEFAULT_DB_ALIAS):
        self.using = using

    def schedule_for(self, student, year):
        return resolve_fee_settings(student.current_class, year, using=self.using)

    def validate_collection(self, collector, collection_date, errors=None):
        errors = dict(errors or {})
        label = collector_label(collector)
        if not label:
            errors['collected_by'] = _("Select who collected the fee.")
        try:
            date = to_date(collection_date, 'collection_date')
        except ValidationError as e:
            errors.update(e.message_dict)
            date = None
        else:
            if date is None:
                errors['collection_date'] = _("Collection date is required.")
        if errors:
            raise ValidationError(errors)
        return label, date

    def replay(self, idempotency_key, lookup):
        """Receipt of an earlier collection made with the same key, if any"""
        voucher = find_issued(idempotency_key, using=self.using)
        if voucher is None:
            return None
        logger.info(f"↩️ Replayed collection {voucher.scope_key} #{voucher.number}")
        return Receipt(voucher.scope_key, voucher.number, lookup(), replayed=True)

    def commit(self, scope_key, write, idempotency_key=None, lookup=None):
        """Run ``write`` in one transaction and translate backend failures"""
        try:
            with transaction.atomic(using=self.using):
                return write()
        except ValidationError:
            raise
        except IntegrityError as e:
            # A concurrent request with the same key may have won the race
            if idempotency_key and lookup is not None:
                receipt = self.replay(idempotency_key, lookup)
                if receipt is not None:
                    return receipt
            logger.error(f"❌ Fee collection conflict in {scope_key}: {e}")
            raise FeeCollectionError(
                _("Another collection was saved at the same time. Please try again."),
                scope_key=scope_key, conflict=True,
            ) from e
        except OperationalError as e:
            logger.error(f"❌ Fee collection timed out in {scope_key}: {e}")
            raise FeeCollectionError(
                _("The ledger is busy. Please try again."), scope_key=scope_key, conflict=True,
            ) from e
        except Exception as e:
            logger.exception(f"❌ Fee collection failed in {scope_key}: {e}")
            raise FeeCollectionError(_("Could not save the fee collection."), scope_key=scope_key) from e


# Monthly fees

@dataclass(frozen=True)
class MonthState:
    month: str
    status: str
    paid_amount: object = ZERO
    donation_amount: object = ZERO
    collection_date: object = None
    collected_by: str = ""
    voucher_no: Optional[int] = None

    @property
    def is_paid(self):
        return self.status == MonthlyFeePayment.Status.PAID

    @classmethod
    def from_payment(cls, payment):
        return cls(
            month=payment.month,
            status=payment.status,
            paid_amount=payment.paid_amount,
            donation_amount=payment.donation_amount,
            collection_date=payment.collection_date,
            collected_by=payment.collected_by,
            voucher_no=payment.voucher_no,
        )


@dataclass(frozen=True)
class MonthlyTotals:
    total_paid: object = ZERO
    total_donation: object = ZERO


def donation_for(monthly_fee, paid_amount):
    """Shortfall below the monthly fee is recorded as a donation"""
    return max(ZERO, monthly_fee - paid_amount)


def apply_month_collection(totals, old, new):
    """
    Fold a month's new state into the record totals.

    Only the difference against the month's previous state is added, so
    collecting the same month again never double counts.
    """
    old_paid = old.paid_amount if old is not None and old.is_paid else ZERO
    old_donation = old.donation_amount if old is not None else ZERO
    new_paid = new.paid_amount if new.is_paid else ZERO
    return MonthlyTotals(
        total_paid=totals.total_paid + (new_paid - old_paid),
        total_donation=totals.total_donation + (new.donation_amount - old_donation),
    )


class MonthlyFeeLedger(BaseLedger):
    category = Voucher.Category.MONTHLY

    @staticmethod
    def validate_month(month):
        if month not in MONTHS:
            raise ValidationError({'month': _("Unknown month: %(month)s") % {'month': month}})

    def load_month(self, student, year, month):
        """Stored state of one month, or an unpaid month at the configured fee"""
        self.validate_month(month)
        payment = (
            MonthlyFeePayment.objects.using(self.using)
            .filter(record__student=student, record__year=year, month=month)
            .first()
        )
        if payment is not None:
            return MonthState.from_payment(payment)
        schedule = self.schedule_for(student, year)
        return MonthState(month=month, status=MonthlyFeePayment.Status.DUE, paid_amount=schedule.monthly_fee)

    def collect(self, student, year, month, paid_amount, collector, collection_date, idempotency_key=None):
        year = int(year)
        errors = {}
        if month not in MONTHS:
            errors['month'] = _("Unknown month: %(month)s") % {'month': month}
        try:
            paid = non_negative(paid_amount, 'paid_amount')
        except ValidationError as e:
            errors.update(e.message_dict)
        collected_by, date = self.validate_collection(collector, collection_date, errors)

        def lookup():
            return MonthlyFeeRecord.objects.using(self.using).filter(student=student, year=year).first()

        receipt = self.replay(idempotency_key, lookup)
        if receipt is not None:
            return receipt

        schedule = self.schedule_for(student, year)
        scope_key = monthly_scope(year)
        new = MonthState(
            month=month,
            status=MonthlyFeePayment.Status.PAID,
            paid_amount=paid,
            donation_amount=donation_for(schedule.monthly_fee, paid),
            collection_date=date,
            collected_by=collected_by,
        )

        def write():
            record, _created = (
                MonthlyFeeRecord.objects.using(self.using)
                .select_for_update()
                .get_or_create(student=student, year=year)
            )
            payment = record.payments.filter(month=month).first()
            old = MonthState.from_payment(payment) if payment is not None else None
            totals = apply_month_collection(
                MonthlyTotals(record.total_paid, record.total_donation), old, new
            )
            voucher = issue_voucher(
                scope_key,
                self.category,
                student=student,
                amount=paid,
                collected_by=collected_by,
                description=f"{month} {year}",
                idempotency_key=idempotency_key,
                using=self.using,
            )
            stored = replace(new, voucher_no=voucher.number)
            MonthlyFeePayment.objects.using(self.using).update_or_create(
                record=record,
                month=month,
                defaults={
                    'status': stored.status,
                    'paid_amount': stored.paid_amount,
                    'donation_amount': stored.donation_amount,
                    'collection_date': stored.collection_date,
                    'collected_by': stored.collected_by,
                    'voucher_no': stored.voucher_no,
                },
            )
            record.total_paid = totals.total_paid
            record.total_donation = totals.total_donation
            record.save(using=self.using, update_fields=['total_paid', 'total_donation', 'updated_at'])
            logger.info(
                f"💰 {collected_by} collected {paid} for {student.admission_no} {month} {year} "
                f"(voucher {scope_key} #{voucher.number})"
            )
            return Receipt(scope_key, voucher.number, record)

        return self.commit(scope_key, write, idempotency_key, lookup)

    def month_grid(self, student_class, year):
        """Every student of a class with their 12 month statuses and totals"""
        year = int(year)
        students = Student.objects.using(self.using).filter(current_class=student_class).order_by('roll', 'name')
        records = {
            r.student_id: r
            for r in MonthlyFeeRecord.objects.using(self.using)
            .filter(student__in=students, year=year)
            .prefetch_related('payments')
        }
        grid = []
        for student in students:
            record = records.get(student.pk)
            statuses = {month: MonthlyFeePayment.Status.DUE.value for month in MONTHS}
            if record is not None:
                for payment in record.payments.all():
                    statuses[payment.month] = payment.status
            grid.append({
                'student_id': student.pk,
                'admission_no': student.admission_no,
                'roll': student.roll,
                'name': student.name,
                'months': statuses,
                'total_paid': record.total_paid if record else ZERO,
                'total_donation': record.total_donation if record else ZERO,
            })
        return grid


# Admission / session fees

class AdmissionFeeLedger(BaseLedger):
    category = Voucher.Category.ADMISSION

    def fee_type_for(self, student):
        if student.pays_session_fee:
            return AdmissionFeeRecord.FeeType.SESSION
        return AdmissionFeeRecord.FeeType.ADMISSION

    def load_or_init(self, student, year):
        """
        Stored record for the student and year, or an unsaved one
        prefilled from the class fee settings.
        """
        record = (
            AdmissionFeeRecord.objects.using(self.using)
            .filter(student=student, year=year)
            .first()
        )
        if record is not None:
            return record
        schedule = self.schedule_for(student, year)
        fee_type = self.fee_type_for(student)
        return AdmissionFeeRecord(
            student=student,
            year=int(year),
            fee_type=fee_type,
            total_fee=schedule.admission_or_session_fee(fee_type == AdmissionFeeRecord.FeeType.SESSION),
            total_stock=schedule.stock,
            fee_deposited=ZERO,
            stock_deposited=ZERO,
            discount=ZERO,
        )

    def stock_total(self, item_ids):
        """Selling price of the selected catalog items; unknown ids cost nothing"""
        items = StockItem.objects.using(self.using).filter(pk__in=item_ids)
        return sum((item.selling_price for item in items), ZERO), list(items)

    def collect(self, student, year, data, idempotency_key=None):
        year = int(year)
        errors = {}
        amounts = {}
        for field in ('fee_deposited', 'stock_deposited', 'discount'):
            try:
                amounts[field] = non_negative(data.get(field), field)
            except ValidationError as e:
                errors.update(e.message_dict)
        total_fee = None
        if data.get('total_fee') not in (None, ''):
            try:
                total_fee = non_negative(data.get('total_fee'), 'total_fee')
            except ValidationError as e:
                errors.update(e.message_dict)
        collected_by, date = self.validate_collection(data.get('collected_by'), data.get('collection_date'), errors)

        def lookup():
            return AdmissionFeeRecord.objects.using(self.using).filter(student=student, year=year).first()

        receipt = self.replay(idempotency_key, lookup)
        if receipt is not None:
            return receipt

        item_ids = list(data.get('selected_stock_items') or [])
        total_stock, items = self.stock_total(item_ids)
        scope_key = admission_scope(year)

        def write():
            existing = (
                AdmissionFeeRecord.objects.using(self.using)
                .select_for_update()
                .filter(student=student, year=year)
                .first()
            )
            record = existing or self.load_or_init(student, year)
            record.fee_type = self.fee_type_for(student)
            if total_fee is not None:
                record.total_fee = total_fee
            record.total_stock = total_stock
            record.fee_deposited = amounts['fee_deposited']
            record.stock_deposited = amounts['stock_deposited']
            record.discount = amounts['discount']
            record.collected_by = collected_by
            record.collection_date = date

            voucher = issue_voucher(
                scope_key,
                self.category,
                student=student,
                amount=record.total_deposited,
                collected_by=collected_by,
                description=f"{record.fee_type} fee {year}",
                idempotency_key=idempotency_key,
                using=self.using,
            )
            record.voucher_no = voucher.number
            record.save(using=self.using)
            record.selected_stock_items.set(items)
            logger.info(
                f"💰 {collected_by} collected {record.fee_type.lower()} fee for {student.admission_no} "
                f"{year}, due now {record.total_due} (voucher {scope_key} #{voucher.number})"
            )
            return Receipt(scope_key, voucher.number, record)

        return self.commit(scope_key, write, idempotency_key, lookup)


# Exam fees

TERM_KEYWORDS = (
    ('1st-term', ('1st', 'প্রথম')),
    ('2nd-term', ('2nd', 'দ্বিতীয়')),
    ('final-term', ('final', 'বার্ষিক')),
)


def resolve_exam_term(exam):
    """
    Term key of an exam. The explicit term wins; otherwise it is guessed from
    the exam name. Returns None when nothing matches.
    """
    if getattr(exam, 'term', None):
        return exam.term
    name = (getattr(exam, 'name', '') or '').lower()
    for term_key, keywords in TERM_KEYWORDS:
        if any(keyword in name for keyword in keywords):
            return term_key
    return None


def resolve_exam_fee(exam, schedule):
    term_key = resolve_exam_term(exam)
    if term_key is None:
        logger.warning(f"⚠️ Exam '{exam}' has no recognisable term; fee is 0")
        return ZERO
    return schedule.exam_fee(term_key)


class ExamFeeLedger(BaseLedger):
    category = Voucher.Category.EXAM

    def exam_fee(self, exam, student):
        return resolve_exam_fee(exam, self.schedule_for(student, exam.year))

    def load(self, exam, student):
        """Stored record, or an unsaved zero record"""
        record = (
            ExamFeeRecord.objects.using(self.using)
            .filter(exam=exam, student=student)
            .first()
        )
        return record or ExamFeeRecord(exam=exam, student=student, paid_amount=ZERO, discount=ZERO)

    def due(self, exam, student):
        return self.load(exam, student).due_for(self.exam_fee(exam, student))

    def collect(self, exam, student, paid_amount, discount, collector, collection_date, idempotency_key=None):
        errors = {}
        amounts = {}
        for field, value in (('paid_amount', paid_amount), ('discount', discount)):
            try:
                amounts[field] = non_negative(value, field)
            except ValidationError as e:
                errors.update(e.message_dict)
        collected_by, date = self.validate_collection(collector, collection_date, errors)

        def lookup():
            return ExamFeeRecord.objects.using(self.using).filter(exam=exam, student=student).first()

        receipt = self.replay(idempotency_key, lookup)
        if receipt is not None:
            return receipt

        scope_key = exam_scope(exam.pk)

        def write():
            record = (
                ExamFeeRecord.objects.using(self.using)
                .select_for_update()
                .filter(exam=exam, student=student)
                .first()
            ) or ExamFeeRecord(exam=exam, student=student)
            record.paid_amount = amounts['paid_amount']
            record.discount = amounts['discount']
            record.collected_by = collected_by
            record.collection_date = date
            voucher = issue_voucher(
                scope_key,
                self.category,
                student=student,
                amount=record.paid_amount,
                collected_by=collected_by,
                description=str(exam),
                idempotency_key=idempotency_key,
                using=self.using,
            )
            record.voucher_no = voucher.number
            record.save(using=self.using)
            logger.info(
                f"💰 {collected_by} collected exam fee for {student.admission_no} ({exam}) "
                f"(voucher {scope_key} #{voucher.number})"
            )
            return Receipt(scope_key, voucher.number, record)

        return self.commit(scope_key, write, idempotency_key, lookup)
