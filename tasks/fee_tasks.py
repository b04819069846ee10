"""
Fee summary refreshes that touch many students.

Single ledger writes refresh their own student's summary from a signal;
these tasks handle changes that affect a whole class or year, such as
editing fee settings or adding an exam.
"""
import logging

from celery import shared_task
from django.db import transaction

from tasks.base import ProgressTask
from tasks.config import TASK_CONFIG

logger = logging.getLogger(__name__)


def _refresh_in_batches(task, students, year, label):
    from apps.finance.aggregation import refresh_fee_summaries

    student_list = list(students)
    total = len(student_list)
    batch_size = TASK_CONFIG['SUMMARY_BATCH_SIZE']
    refreshed = 0

    for i in range(0, total, batch_size):
        with transaction.atomic():
            refreshed += refresh_fee_summaries(student_list[i:i + batch_size], year)
        if task is not None:
            task.log_progress(f"{label}: {refreshed}/{total} summaries", refreshed, total)

    logger.info(f"✅ Refreshed {refreshed} fee summaries for {label}")
    return {"year": year, "refreshed": refreshed}


@shared_task(
    bind=True,
    base=ProgressTask,
    name="finance.refresh_class_summaries",
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_kwargs={"max_retries": 2},
)
def refresh_class_fee_summaries(self, class_id: int, year: int) -> dict:
    """Recompute summaries for every student in a class"""
    from apps.students.models import Student

    students = Student.objects.filter(current_class_id=class_id).select_related('current_class')
    return _refresh_in_batches(self, students, year, f"class {class_id} / {year}")


@shared_task(
    bind=True,
    base=ProgressTask,
    name="finance.refresh_year_summaries",
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_kwargs={"max_retries": 2},
)
def refresh_year_fee_summaries(self, year: int) -> dict:
    """Recompute summaries for all students, e.g. after an exam is added"""
    from apps.students.models import Student

    students = Student.objects.select_related('current_class')
    return _refresh_in_batches(self, students, year, f"year {year}")


def queue_summary_refresh(task, *args):
    """
    Send ``task`` to the worker, or run it inline on hosts without one.

    Broker failures are logged, never raised: summaries are a cache and the
    next refresh will correct them.
    """
    try:
        if TASK_CONFIG['USE_CELERY']:
            return task.delay(*args)
        return task.apply(args=args)
    except Exception as e:
        logger.error(f"❌ Could not queue {task.name}{args}: {e}")
        return None
