"""Certificate issuance, verification and revocation."""
from __future__ import annotations

import logging
import string
import time

from django.core.files.base import ContentFile
from django.db import IntegrityError, transaction
from django.utils import timezone
from django.utils.crypto import get_random_string
from rest_framework.exceptions import ValidationError

from accounts.models import display_name
from activity.models import ActivityType, Notification
from activity.services import log_activity, notify
from courses.models import Enrolment
from .models import Certificate
from .rendering import render_certificate_pdf

logger = logging.getLogger(__name__)

ID_ALPHABET = string.ascii_uppercase + string.digits


def generate_certificate_id() -> str:
    """`CERT-<epoch milliseconds>-<8 uppercase alphanumerics>`."""
    return f"CERT-{int(time.time() * 1000)}-{get_random_string(8, allowed_chars=ID_ALPHABET)}"


def issue_certificate(enrolment: Enrolment) -> Certificate:
    """Issue (or return the existing) certificate for a completed enrolment."""
    if (enrolment.progress or 0) < 100:
        raise ValidationError({"detail": "Course must be completed before a certificate can be issued."})
    existing = Certificate.objects.filter(user_id=enrolment.student_id, course_id=enrolment.course_id).first()
    if existing is not None:
        return existing

    course = enrolment.course
    student = enrolment.student
    issued_at = timezone.now()
    certificate_id = generate_certificate_id()
    content = render_certificate_pdf(
        student_name=display_name(student),
        course_title=course.title,
        instructor_name=display_name(course.owner),
        issued_on=issued_at.strftime("%B %d, %Y"),
        certificate_id=certificate_id,
    )
    certificate = Certificate(user=student, course=course, certificate_id=certificate_id, issued_at=issued_at)
    certificate.pdf.save(f"{certificate_id}.pdf", ContentFile(content), save=False)
    try:
        with transaction.atomic():
            certificate.save()
    except IntegrityError:
        # Issued concurrently by another request
        certificate.pdf.delete(save=False)
        return Certificate.objects.get(user_id=student.pk, course_id=course.pk)

    log_activity(
        student,
        ActivityType.CERTIFICATE_ISSUED,
        f"Certificate issued for {course.title}",
        {"course_id": course.pk, "certificate_id": certificate_id},
    )
    notify(
        student,
        Notification.TYPE_CERTIFICATE,
        f"Your certificate for {course.title} is ready",
        course=course,
    )
    logger.info("certificate %s issued to user %s for course %s", certificate_id, student.pk, course.pk)
    return certificate


def verify_certificate(certificate_id: str | None) -> tuple[int, dict]:
    """Return `(http_status, payload)` for the public verification endpoint.

    400 when the id is missing or the certificate was revoked, 404 when
    it is unknown; otherwise 200 with `valid: true`.
    """
    certificate_id = (certificate_id or "").strip()
    if not certificate_id:
        return 400, {"valid": False, "detail": "Certificate ID is required"}
    certificate = (
        Certificate.objects.select_related("user__profile", "course")
        .filter(certificate_id=certificate_id)
        .first()
    )
    if certificate is None:
        return 404, {"valid": False, "detail": "Certificate not found"}
    if certificate.revoked:
        return 400, {
            "valid": False,
            "detail": "Certificate has been revoked",
            "revoked_at": certificate.revoked_at.isoformat() if certificate.revoked_at else None,
            "revocation_reason": certificate.revocation_reason,
        }
    return 200, {
        "valid": True,
        "certificate": {
            "id": certificate.certificate_id,
            "student_name": display_name(certificate.user),
            "course_title": certificate.course.title,
            "issued_at": certificate.issued_at.isoformat(),
            "expires_at": certificate.expires_at.isoformat() if certificate.expires_at else None,
        },
    }


def revoke_certificate(certificate: Certificate, admin, reason: str = "") -> Certificate:
    if certificate.revoked:
        raise ValidationError({"detail": "Certificate is already revoked."})
    certificate.revoked = True
    certificate.revoked_at = timezone.now()
    certificate.revocation_reason = reason or ""
    certificate.save(update_fields=["revoked", "revoked_at", "revocation_reason"])
    log_activity(
        admin,
        ActivityType.CERTIFICATE_REVOKED,
        f"Revoked certificate {certificate.certificate_id}",
        {"certificate_id": certificate.certificate_id, "user_id": certificate.user_id, "reason": reason},
    )
    logger.info("certificate %s revoked by %s", certificate.certificate_id, admin.pk)
    return certificate
