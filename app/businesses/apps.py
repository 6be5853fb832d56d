"""Django app configuration for businesses."""

from django.apps import AppConfig


class BusinessesConfig(AppConfig):
    """Configuration for the businesses app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "businesses"
    verbose_name = "Businesses"
