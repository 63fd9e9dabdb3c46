from __future__ import annotations

from django.db.models.signals import post_save
from django.dispatch import receiver

from accounts.models import display_name
from courses.models import CourseStatus, Enrolment, EnrolmentStatus, Lesson
from .models import Notification
from .services import notify, notify_many


@receiver(post_save, sender=Enrolment)
def notify_enrolment(sender, instance: Enrolment, created: bool, **kwargs):
    if not created:
        return
    # Notify the instructor (course owner) about the new enrolment
    course = instance.course
    student = instance.student
    notify(
        course.owner,
        Notification.TYPE_ENROLMENT,
        f"New enrolment: {display_name(student)} in {course.title}",
        actor=student,
        course=course,
    )


@receiver(post_save, sender=Lesson)
def notify_new_lesson(sender, instance: Lesson, created: bool, **kwargs):
    if not created:
        return
    course = instance.course
    if course.status != CourseStatus.PUBLISHED:
        return
    # Notify enrolled students of new lessons in live courses
    student_ids = list(
        course.enrolments.exclude(status=EnrolmentStatus.CANCELLED).values_list("student_id", flat=True)
    )
    notify_many(
        student_ids,
        Notification.TYPE_LESSON,
        f"New lesson in {course.title}: {instance.title}",
        actor=course.owner,
        course=course,
    )
