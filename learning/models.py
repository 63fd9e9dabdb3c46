from __future__ import annotations

from django.conf import settings
from django.core.validators import MaxValueValidator
from django.db import models

from courses.models import Enrolment, Lesson


class LessonProgress(models.Model):
    """A student's progress through one lesson.

    Kept in sync by `learning.utils.update_lesson_progress`, which also
    recomputes the owning enrolment's course percentage.
    """

    student = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="lesson_progress")
    lesson = models.ForeignKey(Lesson, on_delete=models.CASCADE, related_name="progress_records")
    enrolment = models.ForeignKey(Enrolment, on_delete=models.CASCADE, related_name="lesson_progress")
    # Seconds
    watch_time = models.PositiveIntegerField(default=0)
    last_position = models.PositiveIntegerField(default=0)
    progress_percentage = models.PositiveSmallIntegerField(default=0, validators=[MaxValueValidator(100)])
    completed = models.BooleanField(default=False, db_index=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["student", "lesson"], name="unique_lesson_progress"),
            models.CheckConstraint(
                condition=models.Q(progress_percentage__gte=0, progress_percentage__lte=100),
                name="lesson_progress_percentage_range",
            ),
        ]
        indexes = [
            models.Index(fields=["enrolment", "completed"], name="lessonprog_enrol_completed_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"Progress {self.student_id}/{self.lesson_id}: {self.progress_percentage}%"
