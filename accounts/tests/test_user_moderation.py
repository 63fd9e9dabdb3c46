from __future__ import annotations

import pytest
from rest_framework.exceptions import ValidationError

from accounts.services import moderate_user
from activity.models import ActivityLog, ActivityType


@pytest.mark.django_db
def test_suspend_ban_and_reactivate(make_user):
    admin = make_user("boss", role="admin")
    target = make_user("target")
    profile = moderate_user(admin, target, "suspend")
    assert profile.status == "suspended"
    target.refresh_from_db()
    assert target.is_active is False
    moderate_user(admin, target, "ban")
    assert target.profile.status == "banned"
    moderate_user(admin, target, "activate")
    target.refresh_from_db()
    assert target.is_active is True
    log = ActivityLog.objects.filter(user=admin, activity_type=ActivityType.USER_MANAGEMENT).first()
    assert log is not None
    assert log.metadata["target_user_id"] == target.pk


@pytest.mark.django_db
def test_change_role_requires_valid_role(make_user):
    admin = make_user("boss2", role="admin")
    target = make_user("target2")
    with pytest.raises(ValidationError):
        moderate_user(admin, target, "change_role", role="wizard")
    profile = moderate_user(admin, target, "change_role", role="instructor")
    assert profile.role == "instructor"


@pytest.mark.django_db
def test_admin_cannot_moderate_self_or_use_unknown_action(make_user):
    admin = make_user("boss3", role="admin")
    with pytest.raises(ValidationError):
        moderate_user(admin, admin, "ban")
    with pytest.raises(ValidationError):
        moderate_user(admin, make_user("other"), "delete")


@pytest.mark.django_db
def test_superuser_gets_admin_role():
    from django.contrib.auth.models import User

    su = User.objects.create_superuser(username="root", email="root@example.com", password="pw")
    assert su.profile.role == "admin"
