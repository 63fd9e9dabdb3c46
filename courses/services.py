"""Course catalogue, authoring, enrolment and moderation operations.

API views stay thin and call into these helpers; every helper raises
DRF exceptions so errors map to HTTP statuses uniformly.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from django.db import IntegrityError, transaction
from django.db.models import Avg, Count, Q, QuerySet
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from accounts.models import Role, is_admin_user, role_of
from activity.models import ActivityType
from activity.services import log_activity
from .models import (
    Category,
    Chapter,
    Course,
    CourseStatus,
    Enrolment,
    EnrolmentStatus,
    Lesson,
    Review,
)

logger = logging.getLogger(__name__)

PRICE_BANDS = {
    "free": Q(price=0),
    "0-50": Q(price__gt=0, price__lte=50),
    "50-100": Q(price__gt=50, price__lte=100),
    "100+": Q(price__gt=100),
}

SORTS = {
    "popular": ("-students", "-id"),
    "rating": ("-rating", "-students", "-id"),
    "newest": ("-created_at", "-id"),
    "price-low": ("price", "id"),
    "price-high": ("-price", "-id"),
}

FEATURED_LIMIT = 6


def with_stats(qs: QuerySet) -> QuerySet:
    """Annotate student count, average rating and review count."""
    return qs.annotate(
        students=Count("enrolments", distinct=True),
        rating=Avg("reviews__rating"),
        total_reviews=Count("reviews", distinct=True),
    )


def list_catalogue(
    *,
    search: str | None = None,
    category: str | None = None,
    level: str | None = None,
    price: str | None = None,
    sort: str | None = None,
) -> QuerySet:
    """Published courses filtered and sorted for the public catalogue.

    Unknown filter values (and the literal "all") are ignored; an unknown
    sort falls back to popularity.
    """
    qs = Course.objects.filter(status=CourseStatus.PUBLISHED).select_related("owner__profile", "category")
    search = (search or "").strip()
    if search:
        qs = qs.filter(
            Q(title__icontains=search)
            | Q(description__icontains=search)
            | Q(owner__username__icontains=search)
            | Q(owner__profile__full_name__icontains=search)
        )
    if category and category != "all":
        if str(category).isdigit():
            qs = qs.filter(category_id=int(category))
        else:
            qs = qs.filter(category__name__iexact=category)
    if level and level != "all":
        qs = qs.filter(level=level.lower())
    if price in PRICE_BANDS:
        qs = qs.filter(PRICE_BANDS[price])
    ordering = SORTS.get(sort or "popular", SORTS["popular"])
    return with_stats(qs).order_by(*ordering)


def featured_courses(limit: int = FEATURED_LIMIT) -> QuerySet:
    qs = Course.objects.filter(status=CourseStatus.PUBLISHED).select_related("owner__profile", "category")
    return with_stats(qs).order_by("-students", "-id")[:limit]


def can_manage(user, course: Course) -> bool:
    return course.is_owner(user) or is_admin_user(user)


def is_enrolled(user, course: Course) -> bool:
    if not getattr(user, "is_authenticated", False):
        return False
    return (
        Enrolment.objects.filter(course=course, student=user)
        .exclude(status=EnrolmentStatus.CANCELLED)
        .exists()
    )


def can_view_lesson_content(user, lesson: Lesson, *, enrolled: bool | None = None) -> bool:
    """Owners, admins, enrolled students and anyone for preview lessons."""
    if lesson.is_preview:
        return True
    course = lesson.course
    if can_manage(user, course):
        return True
    if enrolled is None:
        enrolled = is_enrolled(user, course)
    return enrolled


def ensure_instructor(user) -> None:
    if role_of(user) not in (Role.INSTRUCTOR, Role.ADMIN) and not is_admin_user(user):
        raise PermissionDenied("Only instructors can create courses.")


def _resolve_category(value) -> Category | None:
    if value in (None, ""):
        return None
    if isinstance(value, Category):
        return value
    if isinstance(value, int) or str(value).isdigit():
        try:
            return Category.objects.get(pk=int(value))
        except Category.DoesNotExist as exc:
            raise ValidationError({"category": ["Unknown category."]}) from exc
    name = str(value).strip()
    category = Category.objects.filter(name__iexact=name).first()
    if category is None:
        category = Category.objects.create(name=name)
    return category


COURSE_FIELDS = (
    "title",
    "subtitle",
    "description",
    "price",
    "level",
    "language",
    "learning_objectives",
    "requirements",
)
LESSON_FIELDS = ("title", "description", "duration", "video_url", "content", "is_preview")


@transaction.atomic
def create_course(owner, payload: dict[str, Any]) -> Course:
    """Create a course with nested chapters and lessons in one transaction.

    `payload["chapters"]` is a list of `{"title", "lessons": [...]}`;
    chapter and lesson `order` default to their position in the list.
    """
    ensure_instructor(owner)
    data = {k: payload[k] for k in COURSE_FIELDS if k in payload}
    if not (data.get("title") or "").strip():
        raise ValidationError({"title": ["This field is required."]})
    if Decimal(str(data.get("price", 0) or 0)) < 0:
        raise ValidationError({"price": ["Price cannot be negative."]})
    course = Course.objects.create(owner=owner, category=_resolve_category(payload.get("category")), **data)

    for c_index, chapter_data in enumerate(payload.get("chapters") or [], start=1):
        add_chapter(course, chapter_data, default_order=c_index)

    log_activity(
        owner,
        ActivityType.COURSE_CREATED,
        f"Created course: {course.title}",
        {
            "course_id": course.pk,
            "course_title": course.title,
            "chapters": course.chapters.count(),
            "lessons": course.lessons.count(),
        },
    )
    logger.info("course %s created by %s", course.pk, owner.pk)
    return course


def add_chapter(course: Course, chapter_data: dict[str, Any], *, default_order: int | None = None) -> Chapter:
    title = (chapter_data.get("title") or "").strip()
    if not title:
        raise ValidationError({"chapters": ["Each chapter needs a title."]})
    if default_order is None:
        default_order = course.chapters.count() + 1
    chapter = Chapter.objects.create(course=course, title=title, order=chapter_data.get("order") or default_order)
    for l_index, lesson_data in enumerate(chapter_data.get("lessons") or [], start=1):
        add_lesson(chapter, lesson_data, default_order=l_index)
    return chapter


def add_lesson(chapter: Chapter, lesson_data: dict[str, Any], *, default_order: int | None = None) -> Lesson:
    data = {k: lesson_data[k] for k in LESSON_FIELDS if k in lesson_data}
    if not (data.get("title") or "").strip():
        raise ValidationError({"lessons": ["Each lesson needs a title."]})
    if default_order is None:
        default_order = chapter.lessons.count() + 1
    data["order"] = lesson_data.get("order") or default_order
    return Lesson.objects.create(course_id=chapter.course_id, chapter=chapter, **data)


def publish_course(course: Course, user) -> Course:
    if not course.is_owner(user):
        raise PermissionDenied("Only the course owner can publish it.")
    if not course.lessons.exists():
        raise ValidationError({"detail": "Add at least one lesson before publishing."})
    course.status = CourseStatus.PUBLISHED
    course.published_at = timezone.now()
    course.save(update_fields=["status", "published_at", "updated_at"])
    log_activity(
        user,
        ActivityType.COURSE_PUBLISHED,
        f"Published course: {course.title}",
        {"course_id": course.pk, "course_title": course.title},
    )
    logger.info("course %s published", course.pk)
    return course


def has_completed_payment(student, course: Course) -> bool:
    from payments.models import Payment, PaymentStatus

    return Payment.objects.filter(student=student, course=course, status=PaymentStatus.COMPLETED).exists()


def enrol(student, course: Course, *, paid: bool = False) -> Enrolment:
    """Enrol `student` in a published course.

    Paid courses need a completed payment unless the caller is the
    payment fulfilment path (`paid=True`).
    """
    if role_of(student) != Role.STUDENT:
        raise PermissionDenied("Only students can enrol.")
    if course.status != CourseStatus.PUBLISHED:
        raise ValidationError({"detail": "Course is not available for enrolment."})
    if not course.is_free and not paid and not has_completed_payment(student, course):
        raise ValidationError({"detail": "Payment required to enrol in this course."})
    existing = Enrolment.objects.filter(course=course, student=student).first()
    if existing is not None:
        if existing.status != EnrolmentStatus.CANCELLED:
            raise ValidationError({"detail": "Already enrolled"})
        # Refunded or removed earlier: reopen the same row
        existing.status = EnrolmentStatus.ACTIVE
        existing.save(update_fields=["status"])
        enrolment = existing
    else:
        try:
            with transaction.atomic():
                enrolment = Enrolment.objects.create(course=course, student=student)
        except IntegrityError as exc:
            raise ValidationError({"detail": "Already enrolled"}) from exc
    log_activity(
        student,
        ActivityType.ENROLLED,
        f"Enrolled in {course.title}",
        {"course_id": course.pk, "price": float(course.price)},
    )
    return enrolment


def remove_enrolment(enrolment: Enrolment, user) -> None:
    """Students may unenrol themselves; owners and admins may remove anyone."""
    if enrolment.student_id == getattr(user, "id", None) or can_manage(user, enrolment.course):
        enrolment.delete()
        return
    raise PermissionDenied("Not permitted.")


def upsert_review(student, course: Course, rating: int, comment: str = "") -> tuple[Review, bool]:
    if role_of(student) != Role.STUDENT:
        raise PermissionDenied("Only students can leave reviews.")
    if not is_enrolled(student, course):
        raise PermissionDenied("Enrol before leaving a review.")
    try:
        rating = int(rating)
    except (TypeError, ValueError) as exc:
        raise ValidationError({"rating": ["Rating must be a whole number."]}) from exc
    if not 1 <= rating <= 5:
        raise ValidationError({"rating": ["Rating must be between 1 and 5."]})
    review, created = Review.objects.update_or_create(
        course=course, student=student, defaults={"rating": rating, "comment": comment or ""}
    )
    return review, created


COURSE_ACTIONS = ("approve", "reject", "flag", "unflag", "archive")


@transaction.atomic
def moderate_course(admin, course: Course, action: str, reason: str = "") -> Course:
    """Admin console course moderation."""
    if action not in COURSE_ACTIONS:
        raise ValidationError({"action": [f"Unknown action '{action}'."]})
    previous_status = course.status
    if action == "approve":
        course.status = CourseStatus.PUBLISHED
        course.published_at = course.published_at or timezone.now()
    elif action == "reject":
        course.status = CourseStatus.DRAFT
    elif action == "flag":
        course.flagged = True
    elif action == "unflag":
        course.flagged = False
    else:
        course.status = CourseStatus.ARCHIVED
    course.save()

    log_activity(
        admin,
        ActivityType.COURSE_MANAGEMENT,
        f"{action.capitalize()} course: {course.title}",
        {
            "course_id": course.pk,
            "course_title": course.title,
            "action": action,
            "previous_status": previous_status,
            "new_status": course.status,
            "reason": reason,
        },
    )
    if action == "approve":
        log_activity(
            course.owner,
            ActivityType.COURSE_APPROVED,
            f"Your course \"{course.title}\" has been approved",
            {"course_id": course.pk},
        )
    logger.info("admin %s applied %s to course %s", admin.pk, action, course.pk)
    return course


def get_published_course(pk) -> Course:
    try:
        return Course.objects.get(pk=pk, status=CourseStatus.PUBLISHED)
    except (Course.DoesNotExist, ValueError) as exc:
        raise NotFound("Course not found.") from exc
