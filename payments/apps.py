from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """App configuration for cart, checkout and payment records."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
