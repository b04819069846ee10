"""
Background task settings - NO EARLY DJANGO IMPORTS
"""
import os
import logging

logger = logging.getLogger(__name__)

# Shared hosting without a worker runs fee refreshes inline instead
ENV_TYPE = os.environ.get('ENV_TYPE', 'STANDARD').upper()
RUN_INLINE = ENV_TYPE == 'CPANEL' or os.environ.get('FEE_TASKS_INLINE', '').lower() in ('1', 'true', 'yes')

BROKER_URL = os.environ.get('CELERY_BROKER_URL', 'redis://localhost:6379/0')

TASK_CONFIG = {
    'USE_CELERY': not RUN_INLINE,
    'ENV_TYPE': ENV_TYPE,
    'BROKER_URL': BROKER_URL,
    # Students refreshed per transaction in bulk summary refreshes
    'SUMMARY_BATCH_SIZE': int(os.environ.get('FEE_SUMMARY_BATCH_SIZE', 50)),
}

logger.debug(f"Fee task configuration: env={ENV_TYPE} celery={TASK_CONFIG['USE_CELERY']}")
