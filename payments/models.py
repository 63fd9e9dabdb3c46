"""Payment records and gateway settings.

One `Payment` row is written per purchased course so refunds and
revenue reports work per course. `PaymentGateway` rows hold admin
managed credentials; environment settings are the fallback.
"""
from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import models

from courses.models import Course


class PaymentMethod(models.TextChoices):
    STRIPE = "stripe", "Stripe"
    UPI = "upi", "UPI"
    FREE = "free", "Free"


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"
    REFUNDED = "refunded", "Refunded"


class Payment(models.Model):
    student = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="payments")
    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name="payments")
    amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, default="USD")
    method = models.CharField(max_length=10, choices=PaymentMethod.choices)
    status = models.CharField(max_length=10, choices=PaymentStatus.choices, default=PaymentStatus.PENDING, db_index=True)
    transaction_id = models.CharField(max_length=255, unique=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["student", "course", "status"], name="payment_student_course_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.transaction_id} ({self.status})"


class PaymentGateway(models.Model):
    NAME_STRIPE = "stripe"
    NAME_UPI = "upi"
    NAME_CHOICES = (
        (NAME_STRIPE, "Stripe"),
        (NAME_UPI, "UPI"),
    )

    name = models.CharField(max_length=20, choices=NAME_CHOICES, unique=True)
    display_name = models.CharField(max_length=100)
    enabled = models.BooleanField(default=False)
    test_mode = models.BooleanField(default=True)
    publishable_key = models.CharField(max_length=255, blank=True)
    secret_key = models.CharField(max_length=255, blank=True)
    webhook_secret = models.CharField(max_length=255, blank=True)
    supported_currencies = models.JSONField(default=list, blank=True)
    # Free-form gateway options, e.g. {"vpa": "merchant@bank"} for UPI
    configuration = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:  # pragma: no cover
        return self.display_name or self.name
