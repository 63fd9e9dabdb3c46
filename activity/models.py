"""Activity models: audit-style activity log and user notifications."""
from __future__ import annotations

from django.conf import settings
from django.db import models


class ActivityType(models.TextChoices):
    USER_REGISTERED = "USER_REGISTERED", "User registered"
    PASSWORD_CHANGED = "PASSWORD_CHANGED", "Password changed"
    USER_MANAGEMENT = "USER_MANAGEMENT", "User management"
    COURSE_CREATED = "COURSE_CREATED", "Course created"
    COURSE_PUBLISHED = "COURSE_PUBLISHED", "Course published"
    COURSE_MANAGEMENT = "COURSE_MANAGEMENT", "Course management"
    COURSE_APPROVED = "COURSE_APPROVED", "Course approved"
    ENROLLED = "ENROLLED", "Enrolled"
    COURSE_COMPLETED = "COURSE_COMPLETED", "Course completed"
    CERTIFICATE_ISSUED = "CERTIFICATE_ISSUED", "Certificate issued"
    CERTIFICATE_REVOKED = "CERTIFICATE_REVOKED", "Certificate revoked"
    PAYMENT_COMPLETED = "PAYMENT_COMPLETED", "Payment completed"
    PAYMENT_MANAGEMENT = "PAYMENT_MANAGEMENT", "Payment management"
    SUPPORT_TICKET_CREATED = "SUPPORT_TICKET_CREATED", "Support ticket created"
    TICKET_UPDATED = "TICKET_UPDATED", "Support ticket updated"
    TICKET_VIEWED = "TICKET_VIEWED", "Support ticket viewed"
    COURSE_ANNOUNCEMENT_SENT = "COURSE_ANNOUNCEMENT_SENT", "Course announcement sent"


class ActivityLog(models.Model):
    """Something a user did (or had done on their behalf by an admin)."""

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="activity_logs")
    activity_type = models.CharField(max_length=40, choices=ActivityType.choices, db_index=True)
    description = models.CharField(max_length=500)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.user_id}:{self.activity_type}"


class Notification(models.Model):
    TYPE_ENROLMENT = "enrolment"
    TYPE_LESSON = "lesson"
    TYPE_ANNOUNCEMENT = "announcement"
    TYPE_CERTIFICATE = "certificate"
    TYPE_SUPPORT = "support"
    TYPE_COURSE = "course"
    TYPE_CHOICES = (
        (TYPE_ENROLMENT, "Enrolment"),
        (TYPE_LESSON, "Lesson"),
        (TYPE_ANNOUNCEMENT, "Announcement"),
        (TYPE_CERTIFICATE, "Certificate"),
        (TYPE_SUPPORT, "Support"),
        (TYPE_COURSE, "Course"),
    )

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="notifications")
    actor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="notifications_actor")
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    course = models.ForeignKey("courses.Course", on_delete=models.CASCADE, null=True, blank=True, related_name="notifications")
    message = models.CharField(max_length=300)
    created_at = models.DateTimeField(auto_now_add=True)
    read = models.BooleanField(default=False, db_index=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.user_id}:{self.type}:{self.message[:20]}"
