"""
Celery configuration for the Django application.

Celery runs the email notifications sent when payments and refund
requests change state. Redis is both the message broker and the result
backend. Tasks are auto-discovered from all installed Django apps.

Usage:
    # payments/tasks.py
    @shared_task(bind=True, autoretry_for=(Exception,), retry_backoff=True)
    def send_refund_approved_email(self, refund_request_id):
        ...

    # Enqueue after the surrounding transaction commits:
    transaction.on_commit(lambda: send_refund_approved_email.delay(str(rr.id)))

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Celery will look for a tasks.py module in each installed app
app.autodiscover_tasks()
