"""
Leads app configuration.
"""

from django.apps import AppConfig


class LeadsConfig(AppConfig):
    """Configuration for the leads application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "leads"
    verbose_name = "Leads"
