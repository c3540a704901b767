"""
WSGI config for the Django application.

Provided for traditional WSGI servers (gunicorn); the ASGI entry point
in asgi.py serves the same application under Uvicorn.

For more information on this file, see:
https://docs.djangoproject.com/en/5.2/howto/deployment/wsgi/
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_wsgi_application()
