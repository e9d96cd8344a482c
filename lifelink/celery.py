# lifelink/celery.py
"""
Celery app for donor notification delivery, seeker callbacks and the
periodic requisition expiry sweep (see CELERY_BEAT_SCHEDULE in settings)
"""
import os

from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'lifelink.settings')

app = Celery('lifelink')

# every CELERY_* setting in lifelink/settings.py configures the app
app.config_from_object('django.conf:settings', namespace='CELERY')

# picks up donors.tasks and requisitions.tasks
app.autodiscover_tasks()
