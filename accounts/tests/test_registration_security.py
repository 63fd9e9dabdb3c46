from __future__ import annotations

import pytest
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import Client

from accounts.validators import PasswordComplexityValidator


User = get_user_model()
STRONG = "Strong#Passw0rd"


def test_password_complexity_validator():
    v = PasswordComplexityValidator()
    # Too weak
    with pytest.raises(ValidationError):
        v.validate("password")
    with pytest.raises(ValidationError):
        v.validate("Password")
    with pytest.raises(ValidationError):
        v.validate("Password1")
    # Strong enough
    v.validate(STRONG)


@pytest.mark.django_db
def test_register_creates_profile_with_role_and_logs_in():
    c = Client()
    r = c.post(
        "/api/v1/auth/register/",
        {"username": "newbie", "email": "New@Example.com", "password": STRONG, "role": "instructor", "full_name": "New Bie"},
        content_type="application/json",
    )
    assert r.status_code == 201
    body = r.json()
    assert body["role"] == "instructor"
    assert body["email"] == "new@example.com"
    assert body["full_name"] == "New Bie"
    me = c.get("/api/v1/auth/me/")
    assert me.status_code == 200
    assert me.json()["username"] == "newbie"


@pytest.mark.django_db
def test_registration_duplicate_checks_are_case_insensitive():
    User.objects.create_user(username="demo", email="dup@example.com", password=STRONG)
    r = Client().post(
        "/api/v1/auth/register/",
        {"username": "Demo", "email": "DUP@example.com", "password": STRONG},
        content_type="application/json",
    )
    assert r.status_code == 400
    errors = r.json()
    assert "username" in errors and "email" in errors


@pytest.mark.django_db
@pytest.mark.security
def test_registration_cannot_self_assign_admin():
    r = Client().post(
        "/api/v1/auth/register/",
        {"username": "sneaky", "email": "s@example.com", "password": STRONG, "role": "admin"},
        content_type="application/json",
    )
    assert r.status_code == 400
    assert not User.objects.filter(username="sneaky").exists()


@pytest.mark.django_db
def test_registration_rejects_weak_password():
    r = Client().post(
        "/api/v1/auth/register/",
        {"username": "weak", "email": "w@example.com", "password": "short"},
        content_type="application/json",
    )
    assert r.status_code == 400
    assert "password" in r.json()


@pytest.mark.django_db
def test_login_by_email_and_logout(make_user):
    make_user("mail_login")
    c = Client()
    r = c.post("/api/v1/auth/login/", {"login": "MAIL_LOGIN@example.com", "password": "pw"}, content_type="application/json")
    assert r.status_code == 200
    assert r.json()["username"] == "mail_login"
    assert c.post("/api/v1/auth/logout/").status_code == 204
    assert c.get("/api/v1/auth/me/").status_code == 403


@pytest.mark.django_db
@pytest.mark.security
def test_wrong_password_is_rejected(make_user):
    make_user("wrongpw")
    r = Client().post("/api/v1/auth/login/", {"login": "wrongpw", "password": "nope"}, content_type="application/json")
    assert r.status_code in (401, 403)


@pytest.mark.django_db
@pytest.mark.security
def test_suspended_account_cannot_log_in(make_user):
    u = make_user("suspended")
    u.profile.status = "suspended"
    u.profile.save()
    u.refresh_from_db()
    assert u.is_active is False
    r = Client().post("/api/v1/auth/login/", {"login": "suspended", "password": "pw"}, content_type="application/json")
    assert r.status_code == 403
    assert "suspended" in r.json()["detail"]


@pytest.mark.django_db
def test_change_password_keeps_session(make_user):
    make_user("changer")
    c = Client()
    assert c.login(username="changer", password="pw")
    bad = c.post(
        "/api/v1/auth/change-password/",
        {"current_password": "wrong", "new_password": STRONG},
        content_type="application/json",
    )
    assert bad.status_code == 400
    ok = c.post(
        "/api/v1/auth/change-password/",
        {"current_password": "pw", "new_password": STRONG},
        content_type="application/json",
    )
    assert ok.status_code == 200
    assert c.get("/api/v1/auth/me/").status_code == 200
    assert User.objects.get(username="changer").check_password(STRONG)


@pytest.mark.django_db
def test_profile_update_via_me(make_user):
    make_user("profiled")
    c = Client()
    assert c.login(username="profiled", password="pw")
    r = c.patch("/api/v1/auth/me/", {"full_name": "Pro Filed", "bio": "Hi"}, content_type="application/json")
    assert r.status_code == 200
    assert r.json()["full_name"] == "Pro Filed"
    assert r.json()["bio"] == "Hi"
