from django.apps import AppConfig


class ActivityConfig(AppConfig):
    """Activity log, notifications and the instructor feed."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "activity"

    def ready(self) -> None:  # pragma: no cover
        # Enrolment and new-lesson notifications
        from . import signals  # noqa: F401
        return super().ready()
