"""
Collected vs. due figures for dashboards.

Missing ledger rows count as fully due: a student with no monthly record
owes twelve months, a student with no admission record owes the configured
admission (or session) fee plus stock, and an exam with no fee record is
owed in full.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass

from django.db import DEFAULT_DB_ALIAS
from django.db.models import Count, Sum
from django.db.models.functions import ExtractMonth
from django.utils import timezone

from apps.corecode.utils import ZERO
from apps.result.models import Exam
from apps.staffs.models import Teacher
from apps.students.models import Student

from .ledgers import resolve_exam_fee
from .models import (
    AdmissionFeeRecord,
    Donation,
    ExamFeeRecord,
    Expense,
    MonthlyFeePayment,
    MonthlyFeeRecord,
    StudentFeeSummary,
)
from .settings_resolver import ScheduleCache

logger = logging.getLogger(__name__)

CHART_MONTHS = ["জান", "ফেব", "মার্চ", "এপ্রিল", "মে", "জুন", "জুলাই", "আগস্ট", "সেপ্ট", "অক্টো", "নভে", "ডিসে"]


@dataclass(frozen=True)
class FeeTotals:
    total_due: object = ZERO
    total_paid: object = ZERO

    def __add__(self, other):
        return FeeTotals(self.total_due + other.total_due, self.total_paid + other.total_paid)

    def floored(self):
        return FeeTotals(max(ZERO, self.total_due), self.total_paid)


def exams_in_year(year, using=DEFAULT_DB_ALIAS):
    return list(Exam.objects.using(using).filter(start_date__year=year))


class LedgerSnapshot:
    """All ledger rows for a set of students in one year, loaded up front"""

    def __init__(self, student_ids, year, using=DEFAULT_DB_ALIAS, exams=None):
        self.year = int(year)
        self.schedules = ScheduleCache(using)
        self.exams = exams if exams is not None else exams_in_year(self.year, using)
        self.monthly = {
            r.student_id: r
            for r in MonthlyFeeRecord.objects.using(using)
            .filter(student_id__in=student_ids, year=self.year)
            .prefetch_related('payments')
        }
        self.admission = {
            r.student_id: r
            for r in AdmissionFeeRecord.objects.using(using).filter(student_id__in=student_ids, year=self.year)
        }
        self.exam_records = {
            (r.student_id, r.exam_id): r
            for r in ExamFeeRecord.objects.using(using).filter(
                student_id__in=student_ids, exam__in=[e.pk for e in self.exams]
            )
        }

    def monthly_totals(self, student, schedule):
        record = self.monthly.get(student.pk)
        if record is None:
            return FeeTotals(schedule.yearly_monthly_fee, ZERO)
        paid_months = sum(
            (p.paid_amount for p in record.payments.all() if p.status == MonthlyFeePayment.Status.PAID),
            ZERO,
        )
        due = max(ZERO, schedule.yearly_monthly_fee - paid_months - record.total_donation)
        return FeeTotals(due, record.total_paid)

    def admission_totals(self, student, schedule):
        record = self.admission.get(student.pk)
        if record is None:
            return FeeTotals(schedule.admission_or_session_fee(student.pays_session_fee) + schedule.stock, ZERO)
        return FeeTotals(record.total_due, record.total_deposited)

    def exam_totals(self, student, schedule):
        totals = FeeTotals()
        for exam in self.exams:
            fee = resolve_exam_fee(exam, schedule)
            record = self.exam_records.get((student.pk, exam.pk))
            if record is None:
                totals += FeeTotals(fee, ZERO)
            else:
                totals += FeeTotals(record.due_for(fee), record.paid_amount)
        return totals

    def totals_for(self, student):
        """Unfloored totals for one student"""
        schedule = self.schedules.get(student.current_class, self.year)
        return (
            self.monthly_totals(student, schedule)
            + self.admission_totals(student, schedule)
            + self.exam_totals(student, schedule)
        )


def _with_class(students):
    if hasattr(students, 'select_related'):
        return list(students.select_related('current_class'))
    return list(students)


def student_fee_totals(student, year, using=DEFAULT_DB_ALIAS):
    return LedgerSnapshot([student.pk], year, using).totals_for(student)


def aggregate_fees(students, year, using=DEFAULT_DB_ALIAS):
    """
    Total due and total paid across ``students`` for ``year``.

    Per-student dues are summed as they are; only the final total is floored
    at 0, so an overpaid child offsets a sibling's dues.
    """
    students = _with_class(students)
    if not students:
        return FeeTotals()
    snapshot = LedgerSnapshot([s.pk for s in students], year, using)
    totals = FeeTotals()
    for student in students:
        totals += snapshot.totals_for(student)
    return totals.floored()


def monthly_collection_chart(year, using=DEFAULT_DB_ALIAS):
    """Monthly fee collections and expenses per calendar month of ``year``"""
    collected = dict(
        MonthlyFeePayment.objects.using(using)
        .filter(status=MonthlyFeePayment.Status.PAID, collection_date__year=year)
        .order_by()
        .annotate(bucket=ExtractMonth('collection_date'))
        .values('bucket')
        .annotate(total=Sum('paid_amount'))
        .values_list('bucket', 'total')
    )
    spent = dict(
        Expense.objects.using(using)
        .filter(expense_date__year=year)
        .order_by()
        .annotate(bucket=ExtractMonth('expense_date'))
        .values('bucket')
        .annotate(total=Sum('amount'))
        .values_list('bucket', 'total')
    )
    return [
        {
            'month': label,
            'collected': collected.get(index, ZERO) or ZERO,
            'expense': spent.get(index, ZERO) or ZERO,
        }
        for index, label in enumerate(CHART_MONTHS, start=1)
    ]


def _sum(queryset, field):
    return queryset.aggregate(total=Sum(field))['total'] or ZERO


def total_collected(year, using=DEFAULT_DB_ALIAS):
    """Everything collected in ``year``: monthly, admission/session and published exam fees"""
    monthly = _sum(MonthlyFeeRecord.objects.using(using).filter(year=year), 'total_paid')
    admission = AdmissionFeeRecord.objects.using(using).filter(year=year).aggregate(
        fee=Sum('fee_deposited'), stock=Sum('stock_deposited')
    )
    exams = _sum(
        ExamFeeRecord.objects.using(using).filter(
            exam__status=Exam.Status.PUBLISHED, exam__start_date__year=year
        ),
        'paid_amount',
    )
    return monthly + (admission['fee'] or ZERO) + (admission['stock'] or ZERO) + exams


def admin_dashboard_stats(year=None, using=DEFAULT_DB_ALIAS):
    year = int(year or timezone.localdate().year)
    students = Student.objects.using(using)
    genders = dict(students.order_by().values('gender').annotate(n=Count('id')).values_list('gender', 'n'))
    student_count = students.count()
    fees = dashboard_fee_totals(students, year, using)
    stats = {
        'year': year,
        'students': student_count,
        'male_students': genders.get(Student.Gender.MALE, 0),
        'female_students': genders.get(Student.Gender.FEMALE, 0),
        'teachers': Teacher.objects.using(using).count(),
        # Every student is counted as one family account
        'parents': student_count,
        'total_collected': total_collected(year, using),
        'total_due': fees.total_due,
        'total_expense': _sum(Expense.objects.using(using).filter(expense_date__year=year), 'amount'),
        'total_donation': _sum(Donation.objects.using(using).filter(donation_date__year=year), 'amount'),
        'chart': monthly_collection_chart(year, using),
    }
    logger.debug(f"Dashboard stats for {year}: {student_count} students, collected {stats['total_collected']}")
    return stats


def refresh_fee_summary(student, year, using=DEFAULT_DB_ALIAS):
    """Recompute and store the cached totals of one student"""
    totals = student_fee_totals(student, year, using)
    summary, _created = StudentFeeSummary.objects.using(using).update_or_create(
        student=student,
        year=int(year),
        defaults={'total_due': totals.total_due, 'total_paid': totals.total_paid},
    )
    return summary


def refresh_fee_summaries(students, year, using=DEFAULT_DB_ALIAS):
    """Bulk version of refresh_fee_summary, sharing one snapshot"""
    students = _with_class(students)
    if not students:
        return 0
    snapshot = LedgerSnapshot([s.pk for s in students], year, using)
    for student in students:
        totals = snapshot.totals_for(student)
        StudentFeeSummary.objects.using(using).update_or_create(
            student=student,
            year=int(year),
            defaults={'total_due': totals.total_due, 'total_paid': totals.total_paid},
        )
    return len(students)


def summarized_totals(students, year, using=DEFAULT_DB_ALIAS):
    """Totals from the cached summaries; students without one are skipped"""
    rows = StudentFeeSummary.objects.using(using).filter(student__in=students, year=year)
    agg = rows.aggregate(due=Sum('total_due'), paid=Sum('total_paid'))
    return FeeTotals(agg['due'] or ZERO, agg['paid'] or ZERO).floored()


def dashboard_fee_totals(students, year, using=DEFAULT_DB_ALIAS):
    """
    Fee totals read from the stored summaries.

    Summaries are kept current by the ledger signals and the refresh tasks;
    students that have none yet for ``year`` are computed and stored first.
    """
    students = _with_class(students)
    if not students:
        return FeeTotals()
    year = int(year)
    student_ids = [s.pk for s in students]
    summarized = set(
        StudentFeeSummary.objects.using(using)
        .filter(student_id__in=student_ids, year=year)
        .values_list('student_id', flat=True)
    )
    missing = [s for s in students if s.pk not in summarized]
    if missing:
        refresh_fee_summaries(missing, year, using)
        logger.debug(f"Computed {len(missing)} missing fee summaries for {year}")
    return summarized_totals(student_ids, year, using)


def dues_by_class(students, year, using=DEFAULT_DB_ALIAS):
    """(student, FeeTotals) pairs grouped by class name, for reports"""
    students = _with_class(students)
    snapshot = LedgerSnapshot([s.pk for s in students], year, using)
    grouped = defaultdict(list)
    for student in students:
        grouped[student.class_name].append((student, snapshot.totals_for(student)))
    return grouped
