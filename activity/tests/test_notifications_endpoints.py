from __future__ import annotations

import pytest
from django.db import connection
from django.test import Client
from django.test.utils import CaptureQueriesContext

from activity.models import Notification
from activity.services import notify
from courses.models import Enrolment


def _client(username: str) -> Client:
    c = Client()
    assert c.login(username=username, password="pw")
    return c


@pytest.mark.django_db
def test_notifications_recent_and_mark_all_read(make_user, make_course):
    t = make_user("tnote", role="instructor")
    s = make_user("snote")
    course = make_course(t, "N")
    # Student enrolment -> notify instructor
    Enrolment.objects.create(course=course, student=s)

    ct = _client("tnote")
    r = ct.get("/activity/notifications/recent/")
    assert r.status_code == 200
    payload = r.json()
    assert payload["unread"] == 1
    assert payload["results"][0]["type"] == "enrolment"
    assert payload["results"][0]["course"] == course.pk

    r2 = ct.post("/activity/notifications/mark-all-read/")
    assert r2.status_code == 200
    assert r2.json() == {"updated": 1, "unread": 0}
    assert ct.get("/activity/notifications/recent/").json()["unread"] == 0


@pytest.mark.django_db
def test_notifications_recent_limit_and_ordering(make_user):
    u = make_user("nlim")
    for i in range(5):
        notify(u, Notification.TYPE_COURSE, f"note {i}")
    c = _client("nlim")
    r = c.get("/activity/notifications/recent/?limit=2")
    results = r.json()["results"]
    assert [n["message"] for n in results] == ["note 4", "note 3"]
    # Junk limits fall back to the default
    assert len(c.get("/activity/notifications/recent/?limit=abc").json()["results"]) == 5


@pytest.mark.django_db
def test_notifications_recent_query_budget(make_user):
    u = make_user("nbud")
    for i in range(10):
        notify(u, Notification.TYPE_COURSE, f"n{i}")
    c = _client("nbud")
    with CaptureQueriesContext(connection) as ctx:
        assert c.get("/activity/notifications/recent/?limit=5").status_code == 200
    assert len(ctx.captured_queries) <= 5


@pytest.mark.django_db
def test_notifications_require_login():
    r = Client().get("/activity/notifications/recent/")
    assert r.status_code == 302
