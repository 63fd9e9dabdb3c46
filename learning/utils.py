from __future__ import annotations

import logging
from typing import Any

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound

from activity.models import ActivityType
from activity.services import log_activity
from certificates.models import Certificate
from certificates.services import issue_certificate
from courses.models import Course, Enrolment, EnrolmentStatus, Lesson
from .models import LessonProgress

logger = logging.getLogger(__name__)


def clamp_percentage(value) -> int:
    try:
        value = round(float(value or 0))
    except (TypeError, ValueError):
        value = 0
    return max(0, min(100, int(value)))


def compute_course_progress(enrolment: Enrolment) -> int:
    """Completed lessons / total lessons * 100, rounded and clamped to 0..100.

    A course without lessons is 0% complete.
    """
    total = Lesson.objects.filter(course_id=enrolment.course_id).count()
    if not total:
        return 0
    completed = LessonProgress.objects.filter(
        student_id=enrolment.student_id,
        lesson__course_id=enrolment.course_id,
        completed=True,
    ).count()
    return clamp_percentage(completed / total * 100)


@transaction.atomic
def update_lesson_progress(
    student,
    lesson: Lesson,
    *,
    watch_time: int | None = None,
    last_position: int | None = None,
    progress_percentage: int | None = None,
    completed: bool | None = None,
) -> dict[str, Any]:
    """Upsert a LessonProgress row and roll the result up to the enrolment.

    Behaviour:
    - The student must be enrolled in the lesson's course (404 otherwise).
    - Fields left as None keep their stored value.
    - Reaching 100% completes the enrolment and issues the certificate;
      issuing is idempotent so repeated updates return the same one.

    Returns: { 'progress': LessonProgress, 'enrolment': Enrolment, 'certificate': Certificate | None }
    """
    enrolment = (
        Enrolment.objects.select_for_update()
        .filter(course_id=lesson.course_id, student=student)
        .exclude(status=EnrolmentStatus.CANCELLED)
        .first()
    )
    if enrolment is None:
        raise NotFound("You are not enrolled in this course.")

    progress, _ = LessonProgress.objects.get_or_create(
        student=student,
        lesson=lesson,
        defaults={"enrolment": enrolment},
    )
    if watch_time is not None:
        progress.watch_time = max(0, int(watch_time))
    if last_position is not None:
        progress.last_position = max(0, int(last_position))
    if progress_percentage is not None:
        progress.progress_percentage = clamp_percentage(progress_percentage)
    if completed is not None:
        if completed and not progress.completed:
            progress.completed_at = timezone.now()
        elif not completed:
            progress.completed_at = None
        progress.completed = bool(completed)
        if progress.completed:
            progress.progress_percentage = 100
    progress.save()

    enrolment.progress = compute_course_progress(enrolment)
    certificate = None
    if enrolment.progress >= 100:
        if enrolment.status != EnrolmentStatus.COMPLETED:
            enrolment.status = EnrolmentStatus.COMPLETED
            enrolment.completed_at = timezone.now()
            log_activity(
                student,
                ActivityType.COURSE_COMPLETED,
                f"Completed {lesson.course.title}",
                {"course_id": lesson.course_id},
            )
        enrolment.save(update_fields=["progress", "status", "completed_at"])
        certificate = issue_certificate(enrolment)
    else:
        if enrolment.status == EnrolmentStatus.COMPLETED:
            # A lesson was added or un-completed after completion
            enrolment.status = EnrolmentStatus.ACTIVE
            enrolment.completed_at = None
        enrolment.save(update_fields=["progress", "status", "completed_at"])
    return {"progress": progress, "enrolment": enrolment, "certificate": certificate}


def course_progress(student, course: Course) -> list[LessonProgress]:
    """Per-lesson progress rows for `student` in `course`, in syllabus order."""
    return list(
        LessonProgress.objects.filter(student=student, lesson__course=course)
        .select_related("lesson", "lesson__chapter")
        .order_by("lesson__chapter__order", "lesson__order", "lesson_id")
    )


def next_lesson(enrolment: Enrolment) -> Lesson | None:
    """First lesson in (chapter order, lesson order) the student has not completed."""
    done = LessonProgress.objects.filter(
        student_id=enrolment.student_id,
        lesson__course_id=enrolment.course_id,
        completed=True,
    ).values_list("lesson_id", flat=True)
    return (
        Lesson.objects.filter(course_id=enrolment.course_id)
        .exclude(pk__in=list(done))
        .select_related("chapter")
        .order_by("chapter__order", "order", "id")
        .first()
    )


def student_dashboard(student) -> dict[str, Any]:
    """Active enrolments with progress plus headline totals."""
    enrolments = list(
        Enrolment.objects.filter(student=student)
        .exclude(status=EnrolmentStatus.CANCELLED)
        .select_related("course", "course__owner__profile")
        .order_by("-created_at")
    )
    course_ids = [e.course_id for e in enrolments]
    totals: dict[int, int] = {}
    for course_id in Lesson.objects.filter(course_id__in=course_ids).values_list("course_id", flat=True):
        totals[course_id] = totals.get(course_id, 0) + 1
    completed_counts: dict[int, int] = {}
    watched_seconds = 0
    rows = LessonProgress.objects.filter(student=student, lesson__course_id__in=course_ids).values_list(
        "lesson__course_id", "completed", "watch_time"
    )
    for course_id, completed, watch_time in rows:
        watched_seconds += watch_time or 0
        if completed:
            completed_counts[course_id] = completed_counts.get(course_id, 0) + 1

    courses = []
    for e in enrolments:
        if e.status != EnrolmentStatus.ACTIVE:
            continue
        upcoming = next_lesson(e)
        owner_profile = getattr(e.course.owner, "profile", None)
        courses.append(
            {
                "id": e.course_id,
                "title": e.course.title,
                "instructor": getattr(owner_profile, "display_name", e.course.owner.username),
                "progress": e.progress,
                "total_lessons": totals.get(e.course_id, 0),
                "completed_lessons": completed_counts.get(e.course_id, 0),
                "next_lesson": {"id": upcoming.pk, "title": upcoming.title} if upcoming else None,
            }
        )

    return {
        "enrolled_courses": courses,
        "stats": {
            "total_enrolled": len(enrolments),
            "total_completed": sum(1 for e in enrolments if e.status == EnrolmentStatus.COMPLETED),
            "hours_watched": round(watched_seconds / 3600, 1),
            "certificates": Certificate.objects.filter(user=student).count(),
        },
    }
