"""Course catalogue models.

A `Course` is authored by an instructor, grouped into `Chapter`s of
`Lesson`s and sold (or given away) to students through an `Enrolment`.
Students leave one `Review` per course. Range invariants (price,
progress, rating) are enforced by database check constraints as well
as in the services layer.
"""
from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from .validators import validate_thumbnail, validate_video

User = get_user_model()


class Category(models.Model):
    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True)
    icon = models.CharField(max_length=50, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "categories"

    def __str__(self) -> str:  # pragma: no cover
        return self.name


class CourseLevel(models.TextChoices):
    BEGINNER = "beginner", "Beginner"
    INTERMEDIATE = "intermediate", "Intermediate"
    ADVANCED = "advanced", "Advanced"


class CourseStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    PENDING = "pending", "Pending review"
    PUBLISHED = "published", "Published"
    ARCHIVED = "archived", "Archived"


class Course(models.Model):
    """A course authored by an instructor user."""

    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="owned_courses")
    category = models.ForeignKey(Category, on_delete=models.SET_NULL, null=True, blank=True, related_name="courses")
    title = models.CharField(max_length=200)
    subtitle = models.CharField(max_length=300, blank=True)
    description = models.TextField(blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"), validators=[MinValueValidator(Decimal("0"))])
    level = models.CharField(max_length=16, choices=CourseLevel.choices, default=CourseLevel.BEGINNER)
    language = models.CharField(max_length=50, default="English")
    status = models.CharField(max_length=16, choices=CourseStatus.choices, default=CourseStatus.DRAFT, db_index=True)
    flagged = models.BooleanField(default=False)
    learning_objectives = models.JSONField(default=list, blank=True)
    requirements = models.JSONField(default=list, blank=True)
    thumbnail = models.FileField(upload_to="thumbnails/", blank=True, validators=[validate_thumbnail])
    published_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(condition=models.Q(price__gte=0), name="course_price_non_negative"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.title}"

    def is_owner(self, user: User) -> bool:
        return bool(user and user.is_authenticated and self.owner_id == user.id)

    @property
    def is_free(self) -> bool:
        return (self.price or Decimal("0")) <= 0

    @property
    def is_published(self) -> bool:
        return self.status == CourseStatus.PUBLISHED


class Chapter(models.Model):
    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name="chapters")
    title = models.CharField(max_length=200)
    order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["order", "id"]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.course_id}:{self.order} {self.title}"


class Lesson(models.Model):
    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name="lessons")
    chapter = models.ForeignKey(Chapter, on_delete=models.CASCADE, related_name="lessons")
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    order = models.PositiveIntegerField(default=0)
    # Seconds
    duration = models.PositiveIntegerField(default=0)
    video_url = models.URLField(blank=True)
    video_file = models.FileField(upload_to="videos/", blank=True, validators=[validate_video])
    content = models.TextField(blank=True)
    is_preview = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["chapter__order", "order", "id"]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.title}"

    def save(self, *args, **kwargs):
        # Lessons always belong to their chapter's course.
        if self.chapter_id and not self.course_id:
            self.course_id = self.chapter.course_id
        super().save(*args, **kwargs)


class EnrolmentStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


class Enrolment(models.Model):
    """Link a student to a course.

    Instructor removal deletes the record; `status` tracks completion.
    """

    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name="enrolments")
    student = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="enrolments")
    status = models.CharField(max_length=16, choices=EnrolmentStatus.choices, default=EnrolmentStatus.ACTIVE)
    progress = models.PositiveSmallIntegerField(default=0, validators=[MaxValueValidator(100)])
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["course_id", "student_id"]
        constraints = [
            models.UniqueConstraint(fields=["course", "student"], name="unique_enrolment"),
            models.CheckConstraint(condition=models.Q(progress__gte=0, progress__lte=100), name="enrolment_progress_range"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.student_id}->{self.course_id}"


class Review(models.Model):
    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name="reviews")
    student = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="reviews")
    rating = models.PositiveSmallIntegerField(validators=[MinValueValidator(1), MaxValueValidator(5)])
    comment = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(fields=["course", "student"], name="unique_review"),
            models.CheckConstraint(condition=models.Q(rating__gte=1, rating__lte=5), name="review_rating_range"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.course_id}:{self.student_id}={self.rating}"
