"""
Base task classes - NO DJANGO IMPORTS AT MODULE LEVEL
"""
import logging
from celery import Task

logger = logging.getLogger(__name__)


class ProgressTask(Task):
    """
    Celery task that logs a progress bar while it works through batches.
    Use with ``@shared_task(bind=True, base=ProgressTask)``.
    """

    abstract = True

    def log_progress(self, message, done, total):
        progress = 100 if not total else max(0, min(100, int(done * 100 / total)))

        bar_length = 20
        filled = int(bar_length * progress / 100)
        bar = "█" * filled + "░" * (bar_length - filled)

        logger.info(f"[{bar}] {progress:3d}% - {message}")
        return progress
