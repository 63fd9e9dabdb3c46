"""Instructor activity feed.

Merges three sources into one newest-first list:
- the instructor's own activity log entries,
- enrolments into their courses from the last 7 days,
- reviews of their courses from the last 7 days.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from django.utils import timezone

from accounts.models import display_name
from courses.models import Enrolment, Review
from .models import ActivityLog

RECENT_WINDOW = timedelta(days=7)
DEFAULT_LIMIT = 10
MAX_LIMIT = 50


def _plural(n: int, unit: str) -> str:
    return f"{n} {unit}{'' if n == 1 else 's'} ago"


def relative_time(when: datetime, now: datetime | None = None) -> str:
    """Human 'N units ago' string (seconds, minutes, hours, days)."""
    now = now or timezone.now()
    seconds = max(0, int((now - when).total_seconds()))
    if seconds < 60:
        return _plural(seconds, "second")
    if seconds < 3600:
        return _plural(seconds // 60, "minute")
    if seconds < 86400:
        return _plural(seconds // 3600, "hour")
    return _plural(seconds // 86400, "day")


def instructor_feed(instructor, limit: int = DEFAULT_LIMIT, now: datetime | None = None) -> list[dict[str, Any]]:
    now = now or timezone.now()
    limit = max(1, min(int(limit), MAX_LIMIT))
    since = now - RECENT_WINDOW
    items: list[dict[str, Any]] = []

    for log in ActivityLog.objects.filter(user=instructor).order_by("-created_at", "-id")[:limit]:
        items.append(
            {
                "id": f"activity_{log.pk}",
                "type": log.activity_type.lower(),
                "description": log.description,
                "course": (log.metadata or {}).get("course_title"),
                "student": None,
                "rating": None,
                "timestamp": log.created_at,
            }
        )

    enrolments = (
        Enrolment.objects.filter(course__owner=instructor, created_at__gte=since)
        .select_related("course", "student__profile")
        .order_by("-created_at", "-id")[:limit]
    )
    for e in enrolments:
        items.append(
            {
                "id": f"enrolment_{e.pk}",
                "type": "enrolment",
                "description": f"New enrolment in {e.course.title}",
                "course": e.course.title,
                "student": display_name(e.student),
                "rating": None,
                "timestamp": e.created_at,
            }
        )

    reviews = (
        Review.objects.filter(course__owner=instructor, created_at__gte=since)
        .select_related("course", "student__profile")
        .order_by("-created_at", "-id")[:limit]
    )
    for r in reviews:
        items.append(
            {
                "id": f"review_{r.pk}",
                "type": "review",
                "description": f"New review for {r.course.title}",
                "course": r.course.title,
                "student": display_name(r.student),
                "rating": r.rating,
                "timestamp": r.created_at,
            }
        )

    items.sort(key=lambda item: item["timestamp"], reverse=True)
    items = items[:limit]
    for item in items:
        item["relative_time"] = relative_time(item["timestamp"], now)
        item["timestamp"] = item["timestamp"].isoformat()
    return items
