"""
Signals for the students app.
"""
import logging

from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver

logger = logging.getLogger(__name__)


@receiver(post_save, sender='students.Student')
def log_student_changes(sender, instance, created, **kwargs):
    """
    Log student creation and edits for auditing.
    Lightweight - runs synchronously.
    """
    action = "created" if created else "updated"
    logger.debug(f"📝 Student {action}: {instance.admission_no}")


@receiver(post_delete, sender='students.Student')
def log_student_deletion(sender, instance, **kwargs):
    """Student deletion is an explicit admin action; keep a trace of it."""
    logger.warning(f"🗑️ Student deleted: {instance.admission_no} ({instance.name})")
