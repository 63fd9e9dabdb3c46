import logging
from decimal import Decimal

import pytest


@pytest.fixture(autouse=True)
def silence_django_request_logger():
    """Reduce noise from expected 4xx in passing tests.

    Many tests intentionally exercise 400/403/404 paths. Django logs these
    at WARNING via 'django.request'; lower it to ERROR during tests.
    """
    logger = logging.getLogger("django.request")
    old = logger.level
    logger.setLevel(logging.ERROR)
    try:
        yield
    finally:
        logger.setLevel(old)


@pytest.fixture
def make_user(db):
    """Create a user with a profile role; password is always 'pw'."""
    from django.contrib.auth.models import User

    def _make(username: str, role: str = "student", **extra):
        user = User.objects.create_user(username=username, password="pw", email=f"{username}@example.com", **extra)
        user.profile.role = role
        user.profile.save(update_fields=["role"])
        return user

    return _make


@pytest.fixture
def make_course(db):
    """Create a course with one chapter of `lessons` lessons (published by default)."""
    from django.utils import timezone

    from courses.models import Chapter, Course, CourseStatus, Lesson

    def _make(owner, title: str = "Course", *, price: str = "0", published: bool = True, lessons: int = 2, **extra):
        course = Course.objects.create(
            owner=owner,
            title=title,
            price=Decimal(price),
            status=CourseStatus.PUBLISHED if published else CourseStatus.DRAFT,
            published_at=timezone.now() if published else None,
            **extra,
        )
        chapter = Chapter.objects.create(course=course, title="Getting started", order=1)
        for i in range(1, lessons + 1):
            Lesson.objects.create(course=course, chapter=chapter, title=f"Lesson {i}", order=i, duration=600)
        return course

    return _make
