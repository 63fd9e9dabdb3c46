"""Checkout, fulfilment and revenue reporting."""
from __future__ import annotations

import logging
from datetime import timedelta
from decimal import Decimal
from typing import Any, Iterable

import stripe
from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Count, Sum
from django.db.models.functions import TruncMonth
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from accounts.models import Role, display_name, role_of
from activity.models import ActivityType
from activity.services import log_activity
from courses.models import Course, CourseStatus, Enrolment, EnrolmentStatus
from courses.services import enrol
from .cart import Cart, course_snapshot
from .gateways import stripe_secret_key, stripe_webhook_secret, upi_vpa
from .models import Payment, PaymentMethod, PaymentStatus

User = get_user_model()
logger = logging.getLogger(__name__)


def to_cents(amount: Decimal) -> int:
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1")))


def add_to_cart(cart: Cart, student, course: Course) -> bool:
    """Add a purchasable course; owned or unpublished courses are refused."""
    if course.status != CourseStatus.PUBLISHED:
        raise ValidationError({"detail": "Course is not available for purchase."})
    if (
        Enrolment.objects.filter(course=course, student=student)
        .exclude(status=EnrolmentStatus.CANCELLED)
        .exists()
    ):
        raise ValidationError({"detail": "You already own this course."})
    if course.owner_id == student.id:
        raise ValidationError({"detail": "You cannot buy your own course."})
    return cart.add(course_snapshot(course))


def cart_courses(cart: Cart) -> list[Course]:
    """Resolve cart ids to published courses, in cart order."""
    ids = cart.course_ids
    if not ids:
        raise ValidationError({"detail": "No items in cart"})
    by_id = {
        c.pk: c
        for c in Course.objects.filter(pk__in=ids, status=CourseStatus.PUBLISHED).select_related("owner__profile")
    }
    missing = [i for i in ids if i not in by_id]
    if missing:
        raise ValidationError({"detail": "One or more courses not found or not published", "course_ids": missing})
    return [by_id[i] for i in ids]


def _enrol_paid(student, course: Course) -> Enrolment | None:
    """Enrol after payment, skipping courses the student already has."""
    if (
        Enrolment.objects.filter(course=course, student=student)
        .exclude(status=EnrolmentStatus.CANCELLED)
        .exists()
    ):
        return None
    return enrol(student, course, paid=True)


@transaction.atomic
def checkout_free(student, cart: Cart) -> list[Enrolment]:
    courses = cart_courses(cart)
    # Live prices; the session snapshot may be stale
    if any(course.price > 0 for course in courses):
        raise ValidationError({"detail": "Cart contains paid courses."})
    enrolments = [e for e in (_enrol_paid(student, c) for c in courses) if e is not None]
    cart.clear()
    return enrolments


def create_stripe_session(student, cart: Cart) -> dict[str, str]:
    """Create a Stripe Checkout Session, one line item per course."""
    courses = cart_courses(cart)
    currency = settings.STRIPE_CURRENCY
    line_items = [
        {
            "price_data": {
                "currency": currency,
                "product_data": {
                    "name": course.title,
                    "description": f"Course by {display_name(course.owner)}",
                    "metadata": {"course_id": str(course.pk)},
                },
                "unit_amount": to_cents(course.price),
            },
            "quantity": 1,
        }
        for course in courses
    ]
    try:
        session = stripe.checkout.Session.create(
            api_key=stripe_secret_key(),
            mode="payment",
            payment_method_types=["card"],
            line_items=line_items,
            customer_email=student.email or None,
            success_url=f"{settings.SITE_URL}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{settings.SITE_URL}/cart",
            metadata={
                "user_id": str(student.pk),
                "course_ids": ",".join(str(c.pk) for c in courses),
                "order_type": "course_purchase",
            },
        )
    except stripe.StripeError as exc:
        logger.warning("stripe session create failed for user %s: %s", student.pk, exc)
        raise ValidationError({"detail": getattr(exc, "user_message", None) or str(exc)}) from exc
    logger.info("stripe session %s created for user %s", session["id"], student.pk)
    return {"session_id": session["id"], "url": session.get("url") or ""}


@transaction.atomic
def fulfil_stripe_session(session) -> list[Payment]:
    """Record completed Payments and enrol the buyer; safe to call twice."""
    session_id = session["id"]
    metadata = session.get("metadata") or {}
    if session.get("payment_status") != "paid":
        raise ValidationError({"detail": "Payment has not been completed."})
    try:
        student = User.objects.get(pk=int(metadata.get("user_id")))
    except (TypeError, ValueError, User.DoesNotExist) as exc:
        raise ValidationError({"detail": "Checkout session has no valid user."}) from exc
    course_ids = [int(x) for x in str(metadata.get("course_ids") or "").split(",") if x.strip().isdigit()]
    courses = Course.objects.filter(pk__in=course_ids)
    currency = (session.get("currency") or settings.STRIPE_CURRENCY).upper()

    payments = []
    for course in courses:
        payment, created = Payment.objects.get_or_create(
            transaction_id=f"{session_id}-{course.pk}",
            defaults={
                "student": student,
                "course": course,
                "amount": course.price,
                "currency": currency,
                "method": PaymentMethod.STRIPE,
                "status": PaymentStatus.COMPLETED,
            },
        )
        payments.append(payment)
        if not created:
            continue
        _enrol_paid(student, course)
        log_activity(
            student,
            ActivityType.PAYMENT_COMPLETED,
            f"Paid for {course.title}",
            {"course_id": course.pk, "amount": float(course.price), "method": PaymentMethod.STRIPE, "session_id": session_id},
        )
    logger.info("stripe session %s fulfilled (%d payments)", session_id, len(payments))
    return payments


def confirm_stripe_session(student, session_id: str) -> list[Payment]:
    if not session_id:
        raise ValidationError({"session_id": ["This field is required."]})
    try:
        session = stripe.checkout.Session.retrieve(session_id, api_key=stripe_secret_key())
    except stripe.StripeError as exc:
        logger.warning("stripe session retrieve failed for %s: %s", session_id, exc)
        raise ValidationError({"detail": getattr(exc, "user_message", None) or str(exc)}) from exc
    if str((session.get("metadata") or {}).get("user_id")) != str(student.pk):
        raise PermissionDenied("This checkout session belongs to another user.")
    return fulfil_stripe_session(session)


def handle_stripe_webhook(payload: bytes, signature: str) -> str:
    """Verify the event signature and fulfil completed checkouts.

    Returns the event type; raises ValueError or
    `stripe.SignatureVerificationError` for bad payloads.
    """
    event = stripe.Webhook.construct_event(payload, signature, stripe_webhook_secret())
    if event["type"] == "checkout.session.completed":
        fulfil_stripe_session(event["data"]["object"])
    return event["type"]


@transaction.atomic
def submit_upi_payment(student, cart: Cart, reference: str) -> list[Payment]:
    """Record pending UPI payments for every cart course."""
    reference = (reference or "").strip()
    if not reference:
        raise ValidationError({"reference": ["A UPI transaction reference is required."]})
    if not upi_vpa():
        raise ValidationError({"detail": "UPI payments are not configured."})
    courses = cart_courses(cart)
    if Payment.objects.filter(transaction_id__startswith=f"UPI-{reference}-").exists():
        raise ValidationError({"reference": ["This transaction reference was already submitted."]})
    payments = [
        Payment.objects.create(
            student=student,
            course=course,
            amount=course.price,
            currency=settings.UPI_CURRENCY,
            method=PaymentMethod.UPI,
            status=PaymentStatus.PENDING,
            transaction_id=f"UPI-{reference}-{course.pk}",
        )
        for course in courses
    ]
    cart.clear()
    logger.info("UPI reference %s submitted by user %s for %d courses", reference, student.pk, len(payments))
    return payments


PAYMENT_ACTIONS = ("verify", "reject", "refund")


@transaction.atomic
def moderate_payment(admin, payment: Payment, action: str) -> Payment:
    """Admin console: verify or reject pending UPI payments, refund completed ones."""
    if action not in PAYMENT_ACTIONS:
        raise ValidationError({"action": [f"Unknown action '{action}'."]})
    payment = Payment.objects.select_for_update().get(pk=payment.pk)
    previous = payment.status
    if action in ("verify", "reject"):
        if payment.method != PaymentMethod.UPI or payment.status != PaymentStatus.PENDING:
            raise ValidationError({"detail": "Only pending UPI payments can be verified or rejected."})
        if action == "verify":
            payment.status = PaymentStatus.COMPLETED
            payment.save(update_fields=["status", "updated_at"])
            _enrol_paid(payment.student, payment.course)
            log_activity(
                payment.student,
                ActivityType.PAYMENT_COMPLETED,
                f"Paid for {payment.course.title}",
                {"course_id": payment.course_id, "amount": float(payment.amount), "method": payment.method},
            )
        else:
            payment.status = PaymentStatus.FAILED
            payment.save(update_fields=["status", "updated_at"])
    else:
        if payment.status != PaymentStatus.COMPLETED:
            raise ValidationError({"detail": "Only completed payments can be refunded."})
        payment.status = PaymentStatus.REFUNDED
        payment.save(update_fields=["status", "updated_at"])
        Enrolment.objects.filter(course_id=payment.course_id, student_id=payment.student_id).update(
            status=EnrolmentStatus.CANCELLED
        )

    log_activity(
        admin,
        ActivityType.PAYMENT_MANAGEMENT,
        f"{action.capitalize()} payment {payment.transaction_id}",
        {"payment_id": payment.pk, "action": action, "previous_status": previous, "new_status": payment.status},
    )
    logger.info("admin %s applied %s to payment %s", admin.pk, action, payment.pk)
    return payment


REVENUE_RANGES = {
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "90d": timedelta(days=90),
    "6m": timedelta(days=182),
    "1y": timedelta(days=365),
}


def instructor_revenue(instructor, time_range: str = "6m") -> dict[str, Any]:
    """Revenue from completed payments on the instructor's courses."""
    if role_of(instructor) not in (Role.INSTRUCTOR, Role.ADMIN):
        raise PermissionDenied("Only instructors have revenue reports.")
    if time_range not in REVENUE_RANGES:
        raise ValidationError({"range": [f"Choose one of: {', '.join(REVENUE_RANGES)}."]})
    since = timezone.now() - REVENUE_RANGES[time_range]
    qs = Payment.objects.filter(
        course__owner=instructor,
        status=PaymentStatus.COMPLETED,
        created_at__gte=since,
    )
    totals = qs.aggregate(revenue=Sum("amount"), sales=Count("id"))
    revenue = totals["revenue"] or Decimal("0")
    sales = totals["sales"] or 0
    by_course = [
        {
            "course_id": row["course_id"],
            "title": row["course__title"],
            "revenue": float(row["revenue"] or 0),
            "sales": row["sales"],
        }
        for row in qs.values("course_id", "course__title")
        .annotate(revenue=Sum("amount"), sales=Count("id"))
        .order_by("-revenue", "course_id")
    ]
    by_month = [
        {"month": row["month"].strftime("%Y-%m"), "revenue": float(row["revenue"] or 0), "sales": row["sales"]}
        for row in qs.annotate(month=TruncMonth("created_at"))
        .values("month")
        .annotate(revenue=Sum("amount"), sales=Count("id"))
        .order_by("month")
    ]
    return {
        "range": time_range,
        "total_revenue": float(revenue),
        "total_sales": sales,
        "average_order_value": round(float(revenue) / sales, 2) if sales else 0.0,
        "revenue_by_course": by_course,
        "revenue_by_month": by_month,
    }


def payment_history(student) -> Iterable[Payment]:
    return Payment.objects.filter(student=student).select_related("course").order_by("-created_at", "-id")


def get_payment(pk) -> Payment:
    try:
        return Payment.objects.select_related("student", "course").get(pk=pk)
    except (Payment.DoesNotExist, ValueError) as exc:
        raise NotFound("Payment not found.") from exc
