from django.apps import AppConfig


class CertificatesConfig(AppConfig):
    """App configuration for course completion certificates."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "certificates"
