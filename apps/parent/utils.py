"""
Parent portal figures: a family's children, their fees and their exams.
"""
import logging

from django.db import DEFAULT_DB_ALIAS
from django.utils import timezone

from apps.corecode.utils import ZERO
from apps.finance.aggregation import dashboard_fee_totals
from apps.finance.ledgers import AdmissionFeeLedger, ExamFeeLedger
from apps.finance.models import MONTHS, MonthlyFeePayment, MonthlyFeeRecord
from apps.finance.settings_resolver import resolve_fee_settings
from apps.result.models import Exam
from apps.students.models import Student

logger = logging.getLogger(__name__)


def find_children(email=None, phone=None, using=DEFAULT_DB_ALIAS):
    """Students whose own or parents' email/phone match; each student once"""
    return list(
        Student.for_guardian(email=email, phone=phone)
        .using(using)
        .select_related('current_class')
    )


def parent_dashboard_stats(email=None, phone=None, year=None, using=DEFAULT_DB_ALIAS):
    year = int(year or timezone.localdate().year)
    children = find_children(email, phone, using)
    totals = dashboard_fee_totals(children, year, using)
    exams = Exam.objects.using(using)

    return {
        'year': year,
        'children': [
            {'id': c.pk, 'name': c.name, 'class': c.class_name, 'roll': c.roll, 'avatar': c.avatar}
            for c in children
        ],
        'due_fee': totals.total_due,
        'total_paid': totals.total_paid,
        'upcoming_exams': exams.filter(start_date__gt=timezone.now()).count(),
        'results_published': exams.filter(status=Exam.Status.PUBLISHED).count(),
    }


def child_fee_detail(student, year, using=DEFAULT_DB_ALIAS):
    """Month-by-month, admission and exam fees of one child"""
    year = int(year)
    schedule = resolve_fee_settings(student.current_class, year, using=using)

    record = (
        MonthlyFeeRecord.objects.using(using)
        .filter(student=student, year=year)
        .prefetch_related('payments')
        .first()
    )
    payments = {p.month: p for p in record.payments.all()} if record else {}
    months = []
    for month in MONTHS:
        payment = payments.get(month)
        months.append({
            'month': month,
            'status': payment.status if payment else MonthlyFeePayment.Status.DUE.value,
            'paid_amount': payment.paid_amount if payment else ZERO,
            'donation_amount': payment.donation_amount if payment else ZERO,
            'voucher_no': payment.voucher_no if payment else None,
        })

    admission = AdmissionFeeLedger(using).load_or_init(student, year)
    exam_ledger = ExamFeeLedger(using)
    exams = []
    for exam in Exam.objects.using(using).filter(start_date__year=year).order_by('start_date'):
        fee_record = exam_ledger.load(exam, student)
        fee = exam_ledger.exam_fee(exam, student)
        exams.append({
            'exam': exam.name,
            'fee': fee,
            'paid_amount': fee_record.paid_amount,
            'discount': fee_record.discount,
            'due': fee_record.due_for(fee),
        })

    return {
        'student_id': student.pk,
        'year': year,
        'monthly_fee': schedule.monthly_fee,
        'months': months,
        'total_paid': record.total_paid if record else ZERO,
        'total_donation': record.total_donation if record else ZERO,
        'admission': {
            'fee_type': admission.fee_type,
            'total_fee': admission.total_fee,
            'total_stock': admission.total_stock,
            'fee_deposited': admission.fee_deposited,
            'stock_deposited': admission.stock_deposited,
            'discount': admission.discount,
            'total_due': admission.total_due,
        },
        'exams': exams,
    }
