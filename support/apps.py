from django.apps import AppConfig


class SupportConfig(AppConfig):
    """App configuration for support tickets and the live ticket thread (Channels)."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "support"
