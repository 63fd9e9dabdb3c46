"""Helpers for writing activity logs, notifications and announcements."""
from __future__ import annotations

import logging
from typing import Any, Iterable

from .models import ActivityLog, ActivityType, Notification

logger = logging.getLogger(__name__)


def log_activity(user, activity_type: str, description: str, metadata: dict[str, Any] | None = None) -> ActivityLog:
    return ActivityLog.objects.create(
        user=user,
        activity_type=activity_type,
        description=description[:500],
        metadata=metadata or {},
    )


def notify(user, type: str, message: str, *, actor=None, course=None) -> Notification:
    return Notification.objects.create(user=user, actor=actor, type=type, course=course, message=message[:300])


def notify_many(user_ids: Iterable[int], type: str, message: str, *, actor=None, course=None) -> int:
    """Bulk create one notification per user id; returns how many were created."""
    to_create = [
        Notification(user_id=uid, actor=actor, type=type, course=course, message=message[:300])
        for uid in user_ids
    ]
    if not to_create:
        return 0
    Notification.objects.bulk_create(to_create)
    return len(to_create)


def send_announcement(course, sender, subject: str, message: str, priority: str = "NORMAL") -> int:
    """Notify every actively enrolled student of `course`; returns the recipient count."""
    student_ids = list(
        course.enrolments.exclude(status="cancelled").values_list("student_id", flat=True)
    )
    sent = notify_many(
        student_ids,
        Notification.TYPE_ANNOUNCEMENT,
        f"{course.title}: {subject}",
        actor=sender,
        course=course,
    )
    log_activity(
        sender,
        ActivityType.COURSE_ANNOUNCEMENT_SENT,
        f"Announcement to {course.title}: {subject}",
        {
            "course_id": course.pk,
            "course_title": course.title,
            "subject": subject,
            "message": message,
            "priority": priority,
            "total_recipients": sent,
        },
    )
    logger.info("announcement for course %s sent to %d students", course.pk, sent)
    return sent
