from django.apps import AppConfig


class LearningConfig(AppConfig):
    """App configuration for lesson progress tracking."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "learning"
