from __future__ import annotations

from unittest import mock

import pytest
import stripe
from django.test import Client

from activity.models import ActivityType
from courses.models import Enrolment
from payments.models import Payment
from payments.services import fulfil_stripe_session, moderate_payment, to_cents
from rest_framework.exceptions import ValidationError


def _client(username: str) -> Client:
    c = Client()
    assert c.login(username=username, password="pw")
    return c


def _session(session_id, user, courses, payment_status="paid"):
    return {
        "id": session_id,
        "payment_status": payment_status,
        "currency": "usd",
        "url": f"https://checkout.stripe.com/c/pay/{session_id}",
        "metadata": {
            "user_id": str(user.pk),
            "course_ids": ",".join(str(c.pk) for c in courses),
            "order_type": "course_purchase",
        },
    }


def test_to_cents():
    assert to_cents("19.99") == 1999
    assert to_cents("0") == 0
    assert to_cents("100") == 10000


@pytest.mark.django_db
def test_free_checkout_enrols_and_clears_cart(make_user, make_course):
    t = make_user("free_t", role="instructor")
    a = make_course(t, "Free A")
    b = make_course(t, "Free B")
    s = make_user("free_s")
    c = _client("free_s")
    for course in (a, b):
        c.post("/api/v1/cart/", {"course": course.pk}, content_type="application/json")
    r = c.post("/api/v1/checkout/", {"method": "free"}, content_type="application/json")
    assert r.status_code == 201
    assert len(r.json()["enrolments"]) == 2
    assert Enrolment.objects.filter(student=s).count() == 2
    assert c.get("/api/v1/cart/").json()["item_count"] == 0
    # Empty cart is an error
    empty = c.post("/api/v1/checkout/", {"method": "free"}, content_type="application/json")
    assert empty.status_code == 400
    assert empty.json()["detail"] == "No items in cart"


@pytest.mark.django_db
def test_free_checkout_rejects_paid_items(make_user, make_course):
    paid = make_course(make_user("fp_t", role="instructor"), "Paid", price="5")
    make_user("fp_s")
    c = _client("fp_s")
    c.post("/api/v1/cart/", {"course": paid.pk}, content_type="application/json")
    assert c.post("/api/v1/checkout/", {"method": "free"}, content_type="application/json").status_code == 400


@pytest.mark.django_db
def test_stripe_checkout_creates_session_with_cents(make_user, make_course):
    course = make_course(make_user("st_t", role="instructor"), "Stripe Me", price="19.99")
    s = make_user("st_s")
    c = _client("st_s")
    c.post("/api/v1/cart/", {"course": course.pk}, content_type="application/json")
    with mock.patch("payments.services.stripe.checkout.Session.create") as create:
        create.return_value = {"id": "cs_test_1", "url": "https://checkout.stripe.com/c/pay/cs_test_1"}
        r = c.post("/api/v1/checkout/", {"method": "stripe"}, content_type="application/json")
    assert r.status_code == 201
    assert r.json()["session_id"] == "cs_test_1"
    kwargs = create.call_args.kwargs
    assert kwargs["mode"] == "payment"
    assert kwargs["line_items"][0]["price_data"]["unit_amount"] == 1999
    assert kwargs["metadata"] == {"user_id": str(s.pk), "course_ids": str(course.pk), "order_type": "course_purchase"}
    # Nothing is recorded until Stripe confirms payment
    assert Payment.objects.count() == 0


@pytest.mark.django_db
def test_stripe_errors_surface_as_400(make_user, make_course):
    course = make_course(make_user("se_t", role="instructor"), "Broken", price="9")
    make_user("se_s")
    c = _client("se_s")
    c.post("/api/v1/cart/", {"course": course.pk}, content_type="application/json")
    with mock.patch("payments.services.stripe.checkout.Session.create", side_effect=stripe.StripeError("boom")):
        r = c.post("/api/v1/checkout/", {"method": "stripe"}, content_type="application/json")
    assert r.status_code == 400


@pytest.mark.django_db
def test_fulfil_is_idempotent(make_user, make_course):
    t = make_user("ful_t", role="instructor")
    a = make_course(t, "One", price="10")
    b = make_course(t, "Two", price="15")
    s = make_user("ful_s")
    session = _session("cs_paid_1", s, [a, b])
    payments = fulfil_stripe_session(session)
    assert {p.transaction_id for p in payments} == {f"cs_paid_1-{a.pk}", f"cs_paid_1-{b.pk}"}
    assert all(p.status == "completed" and p.currency == "USD" for p in payments)
    fulfil_stripe_session(session)
    assert Payment.objects.count() == 2
    assert Enrolment.objects.filter(student=s).count() == 2
    assert s.activity_logs.filter(activity_type=ActivityType.PAYMENT_COMPLETED).count() == 2


@pytest.mark.django_db
def test_unpaid_session_is_not_fulfilled(make_user, make_course):
    course = make_course(make_user("up_t", role="instructor"), "Unpaid", price="10")
    s = make_user("up_s")
    with pytest.raises(ValidationError):
        fulfil_stripe_session(_session("cs_open", s, [course], payment_status="unpaid"))
    assert not Enrolment.objects.filter(student=s).exists()


@pytest.mark.django_db
@pytest.mark.security
def test_confirm_rejects_other_users_session(make_user, make_course):
    course = make_course(make_user("cf_t", role="instructor"), "Confirm", price="10")
    owner = make_user("cf_owner")
    make_user("cf_thief")
    with mock.patch("payments.services.stripe.checkout.Session.retrieve", return_value=_session("cs_x", owner, [course])):
        r = _client("cf_thief").post("/api/v1/checkout/confirm/", {"session_id": "cs_x"}, content_type="application/json")
        assert r.status_code == 403
        ok = _client("cf_owner").post("/api/v1/checkout/confirm/", {"session_id": "cs_x"}, content_type="application/json")
    assert ok.status_code == 200
    assert ok.json()["payments"][0]["status"] == "completed"
    assert Enrolment.objects.filter(student=owner, course=course).exists()


@pytest.mark.django_db
@pytest.mark.security
def test_webhook_rejects_bad_signature():
    r = Client().post(
        "/payments/stripe/webhook/",
        data=b'{"type": "checkout.session.completed"}',
        content_type="application/json",
        HTTP_STRIPE_SIGNATURE="t=1,v1=bad",
    )
    assert r.status_code == 400


@pytest.mark.django_db
def test_webhook_fulfils_completed_checkout(make_user, make_course):
    course = make_course(make_user("wh_t", role="instructor"), "Hooked", price="12")
    s = make_user("wh_s")
    event = {"type": "checkout.session.completed", "data": {"object": _session("cs_hook", s, [course])}}
    with mock.patch("payments.services.stripe.Webhook.construct_event", return_value=event):
        r = Client().post("/payments/stripe/webhook/", data=b"{}", content_type="application/json", HTTP_STRIPE_SIGNATURE="sig")
    assert r.status_code == 200
    assert r.json()["type"] == "checkout.session.completed"
    assert Payment.objects.get(transaction_id=f"cs_hook-{course.pk}").status == "completed"


@pytest.mark.django_db
def test_upi_submit_verify_and_refund(make_user, make_course):
    course = make_course(make_user("upi_t", role="instructor"), "UPI course", price="499")
    s = make_user("upi_s")
    admin = make_user("upi_admin", role="admin")
    c = _client("upi_s")
    c.post("/api/v1/cart/", {"course": course.pk}, content_type="application/json")
    missing = c.post("/api/v1/checkout/", {"method": "upi"}, content_type="application/json")
    assert missing.status_code == 400
    r = c.post("/api/v1/checkout/", {"method": "upi", "reference": "UTR123"}, content_type="application/json")
    assert r.status_code == 201
    assert r.json()["vpa"] == "coursecompass@upi"
    assert r.json()["amount"] == 499.0
    payment = Payment.objects.get(transaction_id=f"UPI-UTR123-{course.pk}")
    assert payment.status == "pending"
    assert not Enrolment.objects.filter(student=s).exists()

    moderate_payment(admin, payment, "verify")
    payment.refresh_from_db()
    assert payment.status == "completed"
    enrolment = Enrolment.objects.get(student=s, course=course)
    assert enrolment.status == "active"

    with pytest.raises(ValidationError):
        moderate_payment(admin, payment, "verify")
    moderate_payment(admin, payment, "refund")
    payment.refresh_from_db()
    enrolment.refresh_from_db()
    assert payment.status == "refunded"
    assert enrolment.status == "cancelled"


@pytest.mark.django_db
def test_upi_reference_cannot_be_reused(make_user, make_course):
    t = make_user("reuse_t", role="instructor")
    a = make_course(t, "A", price="10")
    b = make_course(t, "B", price="10")
    make_user("reuse_s")
    c = _client("reuse_s")
    c.post("/api/v1/cart/", {"course": a.pk}, content_type="application/json")
    assert c.post("/api/v1/checkout/", {"method": "upi", "reference": "R1"}, content_type="application/json").status_code == 201
    c.post("/api/v1/cart/", {"course": b.pk}, content_type="application/json")
    assert c.post("/api/v1/checkout/", {"method": "upi", "reference": "R1"}, content_type="application/json").status_code == 400


@pytest.mark.django_db
def test_payment_history_is_private(make_user, make_course):
    course = make_course(make_user("hist_t", role="instructor"), "History", price="10")
    s = make_user("hist_s")
    make_user("hist_other")
    fulfil_stripe_session(_session("cs_hist", s, [course]))
    assert _client("hist_s").get("/api/v1/payments/").json()["count"] == 1
    assert _client("hist_other").get("/api/v1/payments/").json()["count"] == 0
    assert _client("hist_s").get("/api/v1/payments/?status=refunded").json()["count"] == 0


@pytest.mark.django_db
def test_free_checkout_uses_live_prices(make_user, make_course):
    course = make_course(make_user("live_t", role="instructor"), "Was free")
    s = make_user("live_s")
    c = _client("live_s")
    c.post("/api/v1/cart/", {"course": course.pk}, content_type="application/json")
    course.price = "99"
    course.save(update_fields=["price"])
    r = c.post("/api/v1/checkout/", {"method": "free"}, content_type="application/json")
    assert r.status_code == 400
    assert not Enrolment.objects.filter(student=s).exists()


@pytest.mark.django_db
def test_upi_amount_uses_live_prices(make_user, make_course):
    course = make_course(make_user("lupi_t", role="instructor"), "Repriced", price="100")
    make_user("lupi_s")
    c = _client("lupi_s")
    c.post("/api/v1/cart/", {"course": course.pk}, content_type="application/json")
    course.price = "250"
    course.save(update_fields=["price"])
    r = c.post("/api/v1/checkout/", {"method": "upi", "reference": "UTR-LIVE"}, content_type="application/json")
    assert r.status_code == 201
    assert r.json()["amount"] == 250.0


@pytest.mark.django_db
def test_refunded_student_can_buy_again(make_user, make_course):
    course = make_course(make_user("rb_t", role="instructor"), "Second chance", price="40")
    s = make_user("rb_s")
    admin = make_user("rb_admin", role="admin")
    c = _client("rb_s")
    c.post("/api/v1/cart/", {"course": course.pk}, content_type="application/json")
    c.post("/api/v1/checkout/", {"method": "upi", "reference": "FIRST"}, content_type="application/json")
    first = Payment.objects.get(transaction_id=f"UPI-FIRST-{course.pk}")
    moderate_payment(admin, first, "verify")
    moderate_payment(admin, first, "refund")
    assert Enrolment.objects.get(student=s, course=course).status == "cancelled"

    assert c.post("/api/v1/cart/", {"course": course.pk}, content_type="application/json").status_code == 201
    c.post("/api/v1/checkout/", {"method": "upi", "reference": "SECOND"}, content_type="application/json")
    moderate_payment(admin, Payment.objects.get(transaction_id=f"UPI-SECOND-{course.pk}"), "verify")
    enrolment = Enrolment.objects.get(student=s, course=course)
    assert enrolment.status == "active"


@pytest.mark.django_db
def test_webhook_for_non_student_returns_400(make_user, make_course):
    course = make_course(make_user("whi_t", role="instructor"), "Not for staff", price="12")
    buyer = make_user("whi_buyer", role="instructor")
    event = {"type": "checkout.session.completed", "data": {"object": _session("cs_staff", buyer, [course])}}
    with mock.patch("payments.services.stripe.Webhook.construct_event", return_value=event):
        r = Client().post("/payments/stripe/webhook/", data=b"{}", content_type="application/json", HTTP_STRIPE_SIGNATURE="sig")
    assert r.status_code == 400
    assert not Payment.objects.filter(student=buyer).exists()
