from __future__ import annotations

from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from activity.models import ActivityLog, ActivityType
from courses.models import Course, CourseStatus, Enrolment, EnrolmentStatus
from payments.models import Payment, PaymentMethod, PaymentStatus
from support.models import SupportTicket


@pytest.fixture
def admin_client(make_user):
    admin = make_user("console_admin", role="admin")
    c = APIClient()
    c.force_authenticate(admin)
    c.admin = admin
    return c


@pytest.mark.django_db
def test_overview_counts(admin_client, make_user, make_course):
    t = make_user("ov_t", role="instructor")
    s = make_user("ov_s")
    live = make_course(t, "Live", price="40")
    make_course(t, "Draft", published=False)
    Course.objects.filter(pk=live.pk).update(flagged=True)
    Enrolment.objects.create(course=live, student=s)
    Payment.objects.create(
        student=s, course=live, amount=Decimal("40"), method=PaymentMethod.STRIPE,
        status=PaymentStatus.COMPLETED, transaction_id="cs_1-1",
    )
    Payment.objects.create(
        student=s, course=live, amount=Decimal("40"), method=PaymentMethod.UPI,
        status=PaymentStatus.PENDING, transaction_id="UPI-x-1",
    )
    SupportTicket.objects.create(user=s, subject="Help", description="Stuck")

    r = admin_client.get("/api/v1/admin/overview/")
    assert r.status_code == 200
    data = r.json()
    assert data["total_users"] == 3
    assert data["published_courses"] == 1
    assert data["pending_courses"] == 1
    assert data["flagged_courses"] == 1
    assert data["total_enrolments"] == 1
    assert data["total_revenue"] == 40.0
    assert data["open_tickets"] == 1
    assert sum(row["revenue"] for row in data["revenue_by_month"]) == 40.0


@pytest.mark.django_db
def test_user_list_filters_and_suspend(admin_client, make_user):
    target = make_user("mod_target", role="instructor")
    make_user("mod_other")
    r = admin_client.get("/api/v1/admin/users/?role=instructor")
    assert [u["username"] for u in r.json()["results"]] == ["mod_target"]

    r2 = admin_client.post(f"/api/v1/admin/users/{target.pk}/action/", {"action": "suspend"}, format="json")
    assert r2.status_code == 200
    assert r2.json()["status"] == "suspended"
    target.refresh_from_db()
    assert target.is_active is False
    assert ActivityLog.objects.filter(user=admin_client.admin, activity_type=ActivityType.USER_MANAGEMENT).exists()

    r3 = admin_client.post(f"/api/v1/admin/users/{admin_client.admin.pk}/action/", {"action": "ban"}, format="json")
    assert r3.status_code == 400


@pytest.mark.django_db
def test_course_moderation_actions(admin_client, make_user, make_course):
    t = make_user("cm_t", role="instructor")
    course = make_course(t, "Pending", published=False)
    r = admin_client.get("/api/v1/admin/courses/?status=draft")
    assert [c["id"] for c in r.json()["results"]] == [course.pk]

    r2 = admin_client.post(f"/api/v1/admin/courses/{course.pk}/action/", {"action": "approve"}, format="json")
    assert r2.status_code == 200
    course.refresh_from_db()
    assert course.status == CourseStatus.PUBLISHED
    assert course.published_at is not None
    assert ActivityLog.objects.filter(user=t, activity_type=ActivityType.COURSE_APPROVED).exists()

    admin_client.post(f"/api/v1/admin/courses/{course.pk}/action/", {"action": "flag", "reason": "spam"}, format="json")
    assert admin_client.get("/api/v1/admin/courses/?flagged=true").json()["count"] == 1

    bad = admin_client.post(f"/api/v1/admin/courses/{course.pk}/action/", {"action": "explode"}, format="json")
    assert bad.status_code == 400


@pytest.mark.django_db
def test_payment_refund_and_filters(admin_client, make_user, make_course):
    t = make_user("pm_t", role="instructor")
    s = make_user("pm_s")
    course = make_course(t, "Paid", price="25")
    Enrolment.objects.create(course=course, student=s)
    payment = Payment.objects.create(
        student=s, course=course, amount=Decimal("25"), method=PaymentMethod.STRIPE,
        status=PaymentStatus.COMPLETED, transaction_id="cs_9-1",
    )
    r = admin_client.get("/api/v1/admin/payments/?status=completed")
    assert r.json()["count"] == 1

    r2 = admin_client.post(f"/api/v1/admin/payments/{payment.pk}/action/", {"action": "refund"}, format="json")
    assert r2.status_code == 200
    assert r2.json()["status"] == PaymentStatus.REFUNDED
    assert Enrolment.objects.get(course=course, student=s).status == EnrolmentStatus.CANCELLED

    again = admin_client.post(f"/api/v1/admin/payments/{payment.pk}/action/", {"action": "refund"}, format="json")
    assert again.status_code == 400


@pytest.mark.django_db
def test_activity_log_listing_filters_by_type(admin_client, make_user):
    from activity.services import log_activity

    u = make_user("act_u")
    log_activity(u, ActivityType.ENROLLED, "Enrolled in X")
    log_activity(u, ActivityType.PASSWORD_CHANGED, "Changed password")
    r = admin_client.get("/api/v1/admin/activity/?activity_type=ENROLLED")
    assert r.status_code == 200
    rows = r.json()["results"]
    assert [row["description"] for row in rows] == ["Enrolled in X"]
    assert rows[0]["user"] == "act_u"
