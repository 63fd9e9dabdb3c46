from __future__ import annotations

import pytest
from django.conf import settings
from django.test import Client, override_settings


def _login(client: Client, username: str):
    return client.post(
        "/api/v1/auth/login/",
        {"login": username, "password": "pw"},
        content_type="application/json",
    )


@pytest.mark.django_db
@pytest.mark.security
@override_settings(SESSION_COOKIE_SAMESITE="Lax", SESSION_COOKIE_SECURE=True)
def test_session_cookie_flags_secure_lax_httponly_on_login_response(make_user):
    make_user("cook")
    c = Client()
    r = _login(c, "cook")
    assert r.status_code == 200
    morsel = c.cookies.get(settings.SESSION_COOKIE_NAME)
    assert morsel is not None
    assert bool(morsel["httponly"]) is True
    assert (morsel["samesite"] or "").lower() == "lax"
    assert bool(morsel["secure"]) is True


@pytest.mark.django_db
@pytest.mark.security
@override_settings(SESSION_COOKIE_SAMESITE="Lax", SESSION_COOKIE_SECURE=False)
def test_session_cookie_flags_lax_without_secure_when_not_forced(make_user):
    make_user("cook2")
    c = Client()
    r = _login(c, "cook2")
    assert r.status_code == 200
    morsel = c.cookies.get(settings.SESSION_COOKIE_NAME)
    assert morsel is not None
    assert bool(morsel["httponly"]) is True
    assert (morsel["samesite"] or "").lower() == "lax"
    assert bool(morsel["secure"]) is False
