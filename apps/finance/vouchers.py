"""
Voucher numbering per scope.

Numbers come from a VoucherCounter row that is locked for the duration of
the caller's transaction, so the number is only consumed when the ledger
write that uses it commits. Every issued number is also written to the
Voucher log, whose unique constraint on (scope_key, number) rejects any
duplicate that gets past the lock.
"""
import logging

from django.db import DEFAULT_DB_ALIAS, transaction
from django.db.transaction import TransactionManagementError

from .models import Voucher, VoucherCounter

logger = logging.getLogger(__name__)


def monthly_scope(year):
    return f"monthly_fees_{year}"


def admission_scope(year):
    return f"admission_fees_{year}"


def exam_scope(exam_id):
    return f"exam_fees_{exam_id}"


def peek_next_voucher(scope_key, using=DEFAULT_DB_ALIAS):
    """
    Number the next collection in ``scope_key`` will probably get.

    For display only: it takes no lock and another collector may commit first.
    """
    last = (
        VoucherCounter.objects.using(using)
        .filter(scope_key=scope_key)
        .values_list('last_voucher', flat=True)
        .first()
    )
    return (last or 0) + 1


def find_issued(idempotency_key, using=DEFAULT_DB_ALIAS):
    """Voucher already issued for ``idempotency_key``, if any"""
    if not idempotency_key:
        return None
    return Voucher.objects.using(using).filter(idempotency_key=idempotency_key).first()


def issue_voucher(scope_key, category, student=None, amount=0, collected_by="",
                  description="", idempotency_key=None, using=DEFAULT_DB_ALIAS):
    """
    Consume the next voucher number in ``scope_key`` and log it.

    Must run inside ``transaction.atomic(using=using)``; the counter row stays
    locked until that block commits or rolls back.
    """
    if not transaction.get_connection(using).in_atomic_block:
        raise TransactionManagementError("issue_voucher must be called inside an atomic block")

    counter, created = (
        VoucherCounter.objects.using(using)
        .select_for_update()
        .get_or_create(scope_key=scope_key)
    )
    counter.last_voucher += 1
    counter.save(using=using, update_fields=['last_voucher'])

    voucher = Voucher.objects.using(using).create(
        scope_key=scope_key,
        number=counter.last_voucher,
        category=category,
        student=student,
        amount=amount,
        collected_by=collected_by,
        description=description,
        idempotency_key=idempotency_key or None,
    )
    if created:
        logger.info(f"🧾 Started voucher sequence {scope_key}")
    logger.debug(f"Issued voucher {scope_key} #{voucher.number}")
    return voucher
