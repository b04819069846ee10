import logging
import threading

from django.db import transaction
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from apps.result.models import Exam
from apps.students.models import Student
from .aggregation import refresh_fee_summary
from .models import (
    AdmissionFeeRecord,
    ExamFeeRecord,
    FeeSettings,
    MonthlyFeePayment,
    MonthlyFeeRecord,
    StudentFeeSummary,
)

logger = logging.getLogger(__name__)

_pending = threading.local()


def _refresh_now(student_id, year, using):
    student = (
        Student.objects.using(using)
        .select_related('current_class')
        .filter(pk=student_id)
        .first()
    )
    if student is None:
        return
    try:
        refresh_fee_summary(student, year, using=using)
    except Exception as e:
        logger.error(f"❌ Fee summary refresh failed for student {student_id} ({year}): {e}")


class SummaryBatch:
    """Students whose summaries are refreshed once the current transaction commits"""

    def __init__(self, using):
        self.using = using
        self.keys = set()
        self.drained = False

    def drain(self):
        self.drained = True
        for student_id, year in sorted(self.keys):
            _refresh_now(student_id, year, self.using)


def _batch_for(using):
    batches = getattr(_pending, 'batches', None)
    if batches is None:
        batches = _pending.batches = {}
    batch = batches.get(using)
    # Django drops the callbacks of a rolled back transaction or savepoint
    registered = batch is not None and any(
        entry[1] == batch.drain for entry in transaction.get_connection(using).run_on_commit
    )
    if batch is None or batch.drained or not registered:
        batch = batches[using] = SummaryBatch(using)
        transaction.on_commit(batch.drain, using=using)
    return batch


def _refresh_after_commit(student_id, year, using):
    """Refresh one student's fee summary once the ledger write is committed"""
    if not transaction.get_connection(using).in_atomic_block:
        _refresh_now(student_id, int(year), using)
        return
    _batch_for(using).keys.add((student_id, int(year)))


@receiver(post_save, sender=MonthlyFeeRecord)
@receiver(post_delete, sender=MonthlyFeeRecord)
@receiver(post_save, sender=AdmissionFeeRecord)
@receiver(post_delete, sender=AdmissionFeeRecord)
def refresh_on_yearly_record_change(sender, instance, using, **kwargs):
    _refresh_after_commit(instance.student_id, instance.year, using)


@receiver(post_save, sender=MonthlyFeePayment)
@receiver(post_delete, sender=MonthlyFeePayment)
def refresh_on_month_change(sender, instance, using, **kwargs):
    record = MonthlyFeeRecord.objects.using(using).filter(pk=instance.record_id).values('student_id', 'year').first()
    if record is not None:
        _refresh_after_commit(record['student_id'], record['year'], using)


@receiver(post_save, sender=ExamFeeRecord)
@receiver(post_delete, sender=ExamFeeRecord)
def refresh_on_exam_fee_change(sender, instance, using, **kwargs):
    exam = Exam.objects.using(using).filter(pk=instance.exam_id).first()
    if exam is not None:
        _refresh_after_commit(instance.student_id, exam.year, using)


@receiver(post_save, sender=Student)
def refresh_on_student_change(sender, instance, created, using, **kwargs):
    """A new class or admission number changes the fees owed"""
    if created:
        return
    years = StudentFeeSummary.objects.using(using).filter(student=instance).values_list('year', flat=True)
    for year in years:
        _refresh_after_commit(instance.pk, year, using)


@receiver(post_save, sender=FeeSettings)
def refresh_class_on_settings_change(sender, instance, created, **kwargs):
    """New fees change every student's dues in the class"""
    from tasks.fee_tasks import queue_summary_refresh, refresh_class_fee_summaries

    transaction.on_commit(
        lambda: queue_summary_refresh(refresh_class_fee_summaries, instance.student_class_id, instance.year)
    )
    logger.info(f"🔄 Fee settings {'created' if created else 'updated'} for {instance}, summaries queued")


@receiver(post_save, sender=Exam)
@receiver(post_delete, sender=Exam)
def refresh_year_on_exam_change(sender, instance, **kwargs):
    from tasks.fee_tasks import queue_summary_refresh, refresh_year_fee_summaries

    year = instance.year
    transaction.on_commit(lambda: queue_summary_refresh(refresh_year_fee_summaries, year))
