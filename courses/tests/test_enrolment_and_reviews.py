from __future__ import annotations

import pytest
from django.test import Client

from activity.models import ActivityLog, ActivityType
from courses.models import Enrolment
from payments.models import Payment


def _client(username: str) -> Client:
    c = Client()
    assert c.login(username=username, password="pw")
    return c


@pytest.mark.django_db
def test_duplicate_enrolment_returns_400_not_500(make_user, make_course):
    course = make_course(make_user("dup_t", role="instructor"), "Dup")
    make_user("dup_s")
    cs = _client("dup_s")
    r1 = cs.post("/api/v1/enrolments/", {"course": course.pk}, content_type="application/json")
    assert r1.status_code == 201
    assert r1.json()["status"] == "active"
    r2 = cs.post("/api/v1/enrolments/", {"course": course.pk}, content_type="application/json")
    assert r2.status_code == 400
    assert r2.json()["detail"] == "Already enrolled"
    assert ActivityLog.objects.filter(activity_type=ActivityType.ENROLLED).count() == 1


@pytest.mark.django_db
def test_paid_course_needs_completed_payment(make_user, make_course):
    course = make_course(make_user("paid_t", role="instructor"), "Paid", price="25")
    s = make_user("paid_s")
    cs = _client("paid_s")
    r = cs.post("/api/v1/enrolments/", {"course": course.pk}, content_type="application/json")
    assert r.status_code == 400
    Payment.objects.create(
        student=s, course=course, amount=course.price, method="stripe", status="completed", transaction_id="cs_1-1"
    )
    r = cs.post("/api/v1/enrolments/", {"course": course.pk}, content_type="application/json")
    assert r.status_code == 201


@pytest.mark.django_db
@pytest.mark.security
def test_only_students_enrol_in_published_courses(make_user, make_course):
    t = make_user("only_t", role="instructor")
    draft = make_course(t, "Draft", published=False)
    live = make_course(t, "Live")
    assert _client("only_t").post(
        "/api/v1/enrolments/", {"course": live.pk}, content_type="application/json"
    ).status_code == 403
    make_user("only_s")
    r = _client("only_s").post("/api/v1/enrolments/", {"course": draft.pk}, content_type="application/json")
    assert r.status_code == 400


@pytest.mark.django_db
def test_enrolment_listing_is_role_scoped(make_user, make_course):
    t = make_user("list_t", role="instructor")
    course = make_course(t, "Mine")
    other = make_course(make_user("list_t2", role="instructor"), "Theirs")
    s1, s2 = make_user("list_s1"), make_user("list_s2")
    Enrolment.objects.create(course=course, student=s1)
    Enrolment.objects.create(course=other, student=s1)
    Enrolment.objects.create(course=course, student=s2)
    assert _client("list_s1").get("/api/v1/enrolments/").json()["count"] == 2
    assert _client("list_t").get("/api/v1/enrolments/").json()["count"] == 2
    assert _client("list_t").get(f"/api/v1/enrolments/?course={other.pk}").json()["count"] == 0


@pytest.mark.django_db
def test_student_unenrols_self(make_user, make_course):
    course = make_course(make_user("un_t", role="instructor"), "Leave")
    s = make_user("un_s")
    e = Enrolment.objects.create(course=course, student=s)
    r = _client("un_s").delete(f"/api/v1/enrolments/{e.pk}/")
    assert r.status_code == 204
    assert not Enrolment.objects.filter(pk=e.pk).exists()


@pytest.mark.django_db
def test_review_upsert_one_per_student(make_user, make_course):
    course = make_course(make_user("rev_t", role="instructor"), "Reviewed")
    s = make_user("rev_s")
    cs = _client("rev_s")
    # Must be enrolled first
    r = cs.post("/api/v1/reviews/", {"course": course.pk, "rating": 4}, content_type="application/json")
    assert r.status_code == 403
    Enrolment.objects.create(course=course, student=s)
    r1 = cs.post("/api/v1/reviews/", {"course": course.pk, "rating": 4, "comment": "Good"}, content_type="application/json")
    assert r1.status_code == 201
    r2 = cs.post("/api/v1/reviews/", {"course": course.pk, "rating": 5, "comment": "Great"}, content_type="application/json")
    assert r2.status_code == 200
    assert r2.json()["rating"] == 5
    assert course.reviews.count() == 1
    bad = cs.post("/api/v1/reviews/", {"course": course.pk, "rating": 9}, content_type="application/json")
    assert bad.status_code == 400


@pytest.mark.django_db
@pytest.mark.security
def test_cannot_edit_others_reviews(make_user, make_course):
    course = make_course(make_user("own_t", role="instructor"), "Owned")
    s1, s2 = make_user("own_s1"), make_user("own_s2")
    Enrolment.objects.create(course=course, student=s1)
    review = course.reviews.create(student=s1, rating=3)
    r = _client("own_s2").patch(f"/api/v1/reviews/{review.pk}/", {"rating": 1}, content_type="application/json")
    assert r.status_code == 403
    assert s2.reviews.count() == 0


@pytest.mark.django_db
def test_review_update_keeps_course(make_user, make_course):
    t = make_user("keep_t", role="instructor")
    first, second = make_course(t, "First"), make_course(t, "Second")
    s = make_user("keep_s")
    Enrolment.objects.create(course=first, student=s)
    Enrolment.objects.create(course=second, student=s)
    review = first.reviews.create(student=s, rating=3, comment="ok")
    second.reviews.create(student=s, rating=4)
    cs = _client("keep_s")
    r = cs.patch(f"/api/v1/reviews/{review.pk}/", {"course": second.pk, "rating": 5}, content_type="application/json")
    assert r.status_code == 200
    assert r.json()["course"] == first.pk
    review.refresh_from_db()
    assert (review.course_id, review.rating, review.comment) == (first.pk, 5, "ok")
    assert cs.patch(f"/api/v1/reviews/{review.pk}/", {"rating": 0}, content_type="application/json").status_code == 400


@pytest.mark.django_db
def test_non_numeric_course_filter_is_400(make_user, make_course):
    make_course(make_user("flt_t", role="instructor"), "Filtered")
    make_user("flt_s")
    cs = _client("flt_s")
    assert cs.get("/api/v1/enrolments/?course=abc").status_code == 400
    assert cs.get("/api/v1/reviews/?course=abc").status_code == 400


@pytest.mark.django_db
def test_cancelled_enrolment_is_reactivated(make_user, make_course):
    course = make_course(make_user("re_t", role="instructor"), "Again")
    s = make_user("re_s")
    e = Enrolment.objects.create(course=course, student=s, status="cancelled", progress=40)
    r = _client("re_s").post("/api/v1/enrolments/", {"course": course.pk}, content_type="application/json")
    assert r.status_code == 201
    assert r.json()["id"] == e.pk
    e.refresh_from_db()
    assert (e.status, e.progress) == ("active", 40)
    assert Enrolment.objects.filter(student=s).count() == 1
