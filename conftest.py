"""
Root pytest configuration for the Django project.

Supplies safe environment defaults so the suite runs without the Docker
services (sqlite database, eager Celery, in-memory email), then
configures Django. App-specific fixtures are defined in each app's
tests/conftest.py.
"""

import os

import django

# Environment defaults; real environment variables take precedence
TEST_ENVIRONMENT = {
    "DJANGO_SETTINGS_MODULE": "config.settings",
    "SECRET_KEY": "test-secret-key-not-for-production",
    "DEBUG": "True",
    "ALLOWED_HOSTS": "testserver,localhost",
    "DATABASE_URL": "sqlite://:memory:",
    "CELERY_TASK_ALWAYS_EAGER": "True",
    "EMAIL_BACKEND": "django.core.mail.backends.locmem.EmailBackend",
    "STRIPE_SECRET_KEY": "sk_test_dummy",
    "STRIPE_WEBHOOK_SECRET": "whsec_test_secret",
    "SITE_URL": "https://app.example.com",
    "LOG_LEVEL": "WARNING",
}

for key, value in TEST_ENVIRONMENT.items():
    os.environ.setdefault(key, value)


def pytest_configure():
    """Configure Django settings before tests run."""
    django.setup()
