"""Instructor analytics: course performance, engagement and the student roster.

Everything is scoped to the requesting instructor's courses (admins see
every course). Cancelled enrolments are left out of all figures.
Engagement uses lesson progress updates as its activity signal.
"""
from __future__ import annotations

import logging
from collections import Counter, defaultdict
from datetime import timedelta
from decimal import Decimal
from typing import Any

from django.db.models import Avg, Count, Max, Q, QuerySet, Sum
from django.db.models.functions import TruncDate
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from accounts.models import Role, display_name, is_admin_user, role_of
from learning.models import LessonProgress
from payments.models import Payment, PaymentStatus
from .models import Course, Enrolment, EnrolmentStatus, Review

logger = logging.getLogger(__name__)

ANALYTICS_RANGES = {
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "90d": timedelta(days=90),
    "1y": timedelta(days=365),
}
COURSE_RANGES = {
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "90d": timedelta(days=90),
    "all": None,
}
ENGAGEMENT_RANGES = {
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "90d": timedelta(days=90),
}
PROGRESS_BUCKETS = ("0-25", "26-50", "51-75", "76-100")
ROSTER_STATUSES = ("all", "active", "at-risk", "completed", "inactive")
ROSTER_SORTS = ("name", "progress", "last_active", "enrolled_at")
# Days without activity before a student stops counting as active
INACTIVE_AFTER_DAYS = 7
AT_RISK_PROGRESS = 25


def _since(ranges: dict, time_range: str):
    if time_range not in ranges:
        raise ValidationError({"range": [f"Choose one of: {', '.join(ranges)}."]})
    delta = ranges[time_range]
    return None if delta is None else timezone.now() - delta


def _ensure_instructor(user) -> None:
    if role_of(user) not in (Role.INSTRUCTOR, Role.ADMIN) and not is_admin_user(user):
        raise PermissionDenied("Instructor access required.")


def instructor_courses(user, course_id=None) -> QuerySet[Course]:
    """Courses visible to `user`'s analytics, optionally narrowed to one."""
    _ensure_instructor(user)
    qs = Course.objects.all() if is_admin_user(user) else Course.objects.filter(owner=user)
    if course_id is not None:
        qs = qs.filter(pk=course_id)
    return qs.order_by("id")


def owned_course(user, course_id) -> Course:
    _ensure_instructor(user)
    course = Course.objects.filter(pk=course_id).first()
    if course is None:
        raise NotFound("Course not found.")
    if course.owner_id != user.id and not is_admin_user(user):
        raise PermissionDenied("You can only view analytics for your own courses.")
    return course


def _live_enrolments(courses) -> QuerySet[Enrolment]:
    return Enrolment.objects.filter(course__in=courses).exclude(status=EnrolmentStatus.CANCELLED)


def bucket_for(progress: int) -> str:
    if progress <= 25:
        return "0-25"
    if progress <= 50:
        return "26-50"
    if progress <= 75:
        return "51-75"
    return "76-100"


def _distribution(values) -> dict[str, int]:
    counts = Counter(bucket_for(v) for v in values)
    return {key: counts.get(key, 0) for key in PROGRESS_BUCKETS}


def _pct(part, whole, digits: int = 1) -> float:
    return round(part * 100 / whole, digits) if whole else 0.0


def _is_completed(enrolment: Enrolment) -> bool:
    return enrolment.status == EnrolmentStatus.COMPLETED or enrolment.progress >= 100


def _review_row(review: Review, with_course: bool = True) -> dict[str, Any]:
    row = {
        "id": review.pk,
        "rating": review.rating,
        "comment": review.comment,
        "student_name": display_name(review.student),
        "created_at": review.created_at.isoformat(),
    }
    if with_course:
        row["course_title"] = review.course.title
    return row


def instructor_analytics(user, time_range: str = "30d", course_id=None) -> dict[str, Any]:
    """Overview across the instructor's courses for the dashboard charts."""
    since = _since(ANALYTICS_RANGES, time_range)
    courses = list(
        instructor_courses(user, course_id).annotate(lesson_count=Count("lessons", distinct=True))
    )
    enrolments = list(_live_enrolments(courses).select_related("course"))
    by_course = defaultdict(list)
    for enrolment in enrolments:
        by_course[enrolment.course_id].append(enrolment)
    recent = Review.objects.filter(course__in=courses, created_at__gte=since)
    ratings = {
        row["course_id"]: row
        for row in recent.values("course_id").annotate(avg=Avg("rating"), n=Count("id"))
    }

    performance = []
    for course in courses:
        rows = by_course[course.pk]
        completed = sum(1 for e in rows if _is_completed(e))
        rating = ratings.get(course.pk, {})
        performance.append(
            {
                "course_id": course.pk,
                "course_title": course.title,
                "total_students": len(rows),
                "completed_students": completed,
                "completion_rate": _pct(completed, len(rows)),
                "average_progress": round(sum(e.progress for e in rows) / len(rows), 1) if rows else 0.0,
                "average_rating": round(float(rating.get("avg") or 0), 1),
                "total_reviews": rating.get("n", 0),
                "total_lessons": course.lesson_count,
            }
        )

    total = len(enrolments)
    distribution = _distribution(e.progress for e in enrolments)
    if total:
        distribution = {key: round(count * 100 / total) for key, count in distribution.items()}
    trend = [
        {"date": row["day"].isoformat(), "enrolments": row["n"]}
        for row in _live_enrolments(courses)
        .filter(created_at__gte=since)
        .annotate(day=TruncDate("created_at"))
        .values("day")
        .annotate(n=Count("id"))
        .order_by("day")
    ]
    completed_total = sum(p["completed_students"] for p in performance)
    rated = [p["average_rating"] for p in performance]
    recent_reviews = list(recent.select_related("course", "student__profile").order_by("-created_at", "-id")[:10])
    logger.debug("analytics for user %s over %s (%d courses)", user.pk, time_range, len(courses))
    return {
        "range": time_range,
        "course_id": course_id,
        "overview": {
            "total_courses": len(courses),
            "total_students": total,
            "total_completed_students": completed_total,
            "overall_completion_rate": _pct(completed_total, total),
            "overall_average_rating": round(sum(rated) / len(rated), 1) if rated else 0.0,
            "total_reviews": recent.count(),
        },
        "course_performance": performance,
        "progress_distribution": distribution,
        "enrolment_trend": trend,
        "top_courses": sorted(performance, key=lambda p: (-p["completion_rate"], p["course_id"]))[:5],
        "recent_reviews": [_review_row(r) for r in recent_reviews],
    }


def course_analytics(user, course_id, time_range: str = "30d") -> dict[str, Any]:
    """Lesson funnel, ratings, revenue and student standings for one course."""
    since = _since(COURSE_RANGES, time_range)
    course = owned_course(user, course_id)
    now = timezone.now()

    enrolments = _live_enrolments([course]).select_related("student__profile")
    reviews = course.reviews.select_related("student__profile")
    payments = Payment.objects.filter(course=course, status=PaymentStatus.COMPLETED)
    if since is not None:
        enrolments = enrolments.filter(created_at__gte=since)
        reviews = reviews.filter(created_at__gte=since)
        payments = payments.filter(created_at__gte=since)
    enrolments = list(enrolments.annotate(last_progress=Max("lesson_progress__updated_at")))
    enrolment_ids = [e.pk for e in enrolments]
    total = len(enrolments)

    lessons = list(course.lessons.select_related("chapter").order_by("chapter__order", "order", "id"))
    started = Counter()
    finished = Counter()
    for row in LessonProgress.objects.filter(enrolment_id__in=enrolment_ids).values("lesson_id", "completed"):
        started[row["lesson_id"]] += 1
        if row["completed"]:
            finished[row["lesson_id"]] += 1
    lesson_rows = []
    for lesson in lessons:
        n_started = started[lesson.pk]
        n_done = finished[lesson.pk]
        lesson_rows.append(
            {
                "lesson_id": lesson.pk,
                "lesson_title": lesson.title,
                "lesson_order": lesson.order,
                "chapter_id": lesson.chapter_id,
                "chapter_title": lesson.chapter.title,
                "duration": lesson.duration,
                "total_students": total,
                "students_started": n_started,
                "students_completed": n_done,
                "start_rate": round(_pct(n_started, total, 0)),
                "completion_rate": round(_pct(n_done, n_started, 0)),
                "drop_off_rate": round(_pct(n_started - n_done, n_started, 0)),
            }
        )

    rating_counts = Counter(reviews.values_list("rating", flat=True))
    rating_stats = reviews.aggregate(avg=Avg("rating"), n=Count("id"))
    revenue = payments.aggregate(total=Sum("amount"))["total"] or Decimal("0")
    completed = sum(1 for e in enrolments if _is_completed(e))

    standings = []
    for e in enrolments:
        standings.append(
            {
                "student_id": e.student_id,
                "student_name": display_name(e.student),
                "progress": e.progress,
                "enrolled_at": e.created_at.isoformat(),
                "last_active": (e.last_progress or e.created_at).isoformat(),
                "days_since_enrolment": (now - e.created_at).days,
            }
        )
    standings.sort(key=lambda s: (-s["progress"], s["student_id"]))
    struggling = [
        s for s in standings if s["progress"] < AT_RISK_PROGRESS and s["days_since_enrolment"] > INACTIVE_AFTER_DAYS
    ]

    trend = Counter(timezone.localdate(e.created_at).isoformat() for e in enrolments)
    return {
        "course_id": course.pk,
        "course_title": course.title,
        "range": time_range,
        "overview": {
            "total_enrolments": total,
            "completed_enrolments": completed,
            "overall_completion_rate": round(_pct(completed, total, 0)),
            "total_revenue": float(revenue),
            "average_revenue": round(float(revenue) / total, 2) if total else 0.0,
            "average_rating": round(float(rating_stats["avg"] or 0), 1),
            "total_reviews": rating_stats["n"],
            "total_lessons": len(lessons),
        },
        "lesson_analytics": lesson_rows,
        "enrolment_trend": [{"date": day, "enrolments": n} for day, n in sorted(trend.items())],
        "progress_distribution": _distribution(e.progress for e in enrolments),
        "rating_distribution": {str(star): rating_counts.get(star, 0) for star in range(5, 0, -1)},
        "top_performers": standings[:5],
        "struggling_students": struggling[:5],
        "recent_reviews": [_review_row(r, with_course=False) for r in reviews.order_by("-created_at", "-id")[:5]],
    }


def engagement(user, time_range: str = "7d", course_id=None) -> dict[str, Any]:
    """Activity from lesson progress updates, by day, hour and course."""
    since = _since(ENGAGEMENT_RANGES, time_range)
    courses = list(instructor_courses(user, course_id))
    updates = list(
        LessonProgress.objects.filter(
            enrolment__course__in=courses,
            updated_at__gte=since,
        )
        .exclude(enrolment__status=EnrolmentStatus.CANCELLED)
        .values("student_id", "enrolment__course_id", "enrolment__course__title", "watch_time", "updated_at")
        .order_by("updated_at")
    )

    daily = defaultdict(set)
    hours = Counter()
    per_course: dict[int, dict[str, Any]] = {}
    for row in updates:
        stamp = timezone.localtime(row["updated_at"])
        daily[stamp.date().isoformat()].add(row["student_id"])
        hours[stamp.hour] += 1
        entry = per_course.setdefault(
            row["enrolment__course_id"],
            {"title": row["enrolment__course__title"], "students": set(), "updates": 0},
        )
        entry["students"].add(row["student_id"])
        entry["updates"] += 1

    daily_rows = [
        {"date": day, "active_students": len(students)} for day, students in sorted(daily.items())
    ]
    course_rows = sorted(
        (
            {
                "course_id": pk,
                "course_title": entry["title"],
                "active_students": len(entry["students"]),
                "total_updates": entry["updates"],
                "avg_updates_per_student": round(entry["updates"] / len(entry["students"])),
            }
            for pk, entry in per_course.items()
        ),
        key=lambda r: (-r["active_students"], r["course_id"]),
    )
    peak = None
    if hours:
        hour, count = min(hours.items(), key=lambda item: (-item[1], item[0]))
        peak = {"hour": hour, "updates": count, "formatted": f"{hour:02d}:00"}
    watch_seconds = sum(row["watch_time"] for row in updates)
    sessions = sum(len(students) for students in daily.values())
    return {
        "range": time_range,
        "course_id": course_id,
        "summary": {
            "total_active_students": len({row["student_id"] for row in updates}),
            "average_daily_active": round(sessions / len(daily)) if daily else 0,
            "peak_active_time": peak,
            "total_engagement_hours": round(watch_seconds / 3600, 1),
            "average_session_minutes": round(watch_seconds / 60 / sessions) if sessions else 0,
            "total_progress_updates": len(updates),
        },
        "daily_active_students": daily_rows,
        "hourly_engagement": [{"hour": h, "updates": hours[h]} for h in sorted(hours)],
        "course_engagement": course_rows,
    }


def roster_status(progress: int, days_inactive: int) -> str:
    if progress >= 100:
        return "completed"
    if days_inactive > INACTIVE_AFTER_DAYS and progress < AT_RISK_PROGRESS:
        return "at-risk"
    if days_inactive <= INACTIVE_AFTER_DAYS:
        return "active"
    return "inactive"


def student_roster(
    user,
    course_id=None,
    status: str = "all",
    search: str | None = None,
    sort: str = "last_active",
    order: str = "desc",
) -> dict[str, Any]:
    """Every live enrolment in the instructor's courses with a derived status.

    Returns the filtered and sorted `students` list plus whole-roster
    `stats`, the ten most at-risk students and the top performers.
    """
    if status not in ROSTER_STATUSES:
        raise ValidationError({"status": [f"Choose one of: {', '.join(ROSTER_STATUSES)}."]})
    if sort not in ROSTER_SORTS:
        raise ValidationError({"sort": [f"Choose one of: {', '.join(ROSTER_SORTS)}."]})
    if order not in ("asc", "desc"):
        raise ValidationError({"order": ["Choose asc or desc."]})
    now = timezone.now()
    qs = _live_enrolments(instructor_courses(user, course_id)).select_related("course", "student__profile")
    if search:
        qs = qs.filter(
            Q(student__username__icontains=search)
            | Q(student__email__icontains=search)
            | Q(student__profile__full_name__icontains=search)
        )
    rows = []
    for e in qs.annotate(last_progress=Max("lesson_progress__updated_at")):
        last_active = e.last_progress or e.created_at
        days = (now - last_active).days
        rows.append(
            {
                "enrolment_id": e.pk,
                "student": {"id": e.student_id, "name": display_name(e.student), "email": e.student.email},
                "course": {"id": e.course_id, "title": e.course.title},
                "enrolled_at": e.created_at,
                "last_active": last_active,
                "days_since_last_active": days,
                "progress": e.progress,
                "status": roster_status(e.progress, days),
                "completed_at": e.completed_at,
            }
        )

    stats = {
        "total_students": len(rows),
        "active_students": sum(1 for r in rows if r["status"] == "active"),
        "at_risk_students": sum(1 for r in rows if r["status"] == "at-risk"),
        "completed_students": sum(1 for r in rows if r["status"] == "completed"),
        "average_progress": round(sum(r["progress"] for r in rows) / len(rows)) if rows else 0,
    }
    at_risk = sorted((r for r in rows if r["status"] == "at-risk"), key=lambda r: (r["progress"], r["enrolment_id"]))
    top = sorted((r for r in rows if r["progress"] > 50), key=lambda r: (-r["progress"], r["enrolment_id"]))

    students = rows if status == "all" else [r for r in rows if r["status"] == status]
    sort_keys = {
        "name": lambda r: r["student"]["name"].lower(),
        "progress": lambda r: r["progress"],
        "last_active": lambda r: r["last_active"],
        "enrolled_at": lambda r: r["enrolled_at"],
    }
    students.sort(key=sort_keys[sort], reverse=order == "desc")
    return {
        "students": [_serialise_row(r) for r in students],
        "stats": stats,
        "at_risk_students": [_serialise_row(r) for r in at_risk[:10]],
        "top_performers": [_serialise_row(r) for r in top[:10]],
    }


def _serialise_row(row: dict[str, Any]) -> dict[str, Any]:
    out = dict(row)
    for key in ("enrolled_at", "last_active", "completed_at"):
        out[key] = out[key].isoformat() if out[key] else None
    return out
