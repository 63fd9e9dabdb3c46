"""Completion certificates, one per (user, course)."""
from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from courses.models import Course


class Certificate(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="certificates")
    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name="certificates")
    certificate_id = models.CharField(max_length=40, unique=True)
    pdf = models.FileField(upload_to="certificates/", blank=True)
    issued_at = models.DateTimeField(default=timezone.now)
    # Null means the certificate never expires
    expires_at = models.DateTimeField(null=True, blank=True)
    revoked = models.BooleanField(default=False)
    revoked_at = models.DateTimeField(null=True, blank=True)
    revocation_reason = models.TextField(blank=True)

    class Meta:
        ordering = ["-issued_at"]
        constraints = [
            models.UniqueConstraint(fields=["user", "course"], name="unique_certificate_per_course"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return self.certificate_id

    @property
    def is_expired(self) -> bool:
        return bool(self.expires_at and self.expires_at <= timezone.now())
