"""
Celery configuration for the school portal.
Named celery_app.py to avoid conflict with celery package.
"""
import os
from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'school_portal.settings')

app = Celery('school_portal_tasks')

# Settings are read from CELERY_* keys in school_portal/settings.py
app.config_from_object('django.conf:settings', namespace='CELERY')

# Fee summary tasks live in tasks/fee_tasks.py, outside the Django apps
app.autodiscover_tasks(['tasks'], related_name='fee_tasks')
