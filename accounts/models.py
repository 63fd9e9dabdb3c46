"""Accounts models: user profile, roles and account status.

Defines a `UserProfile` associated one-to-one with Django's `User`,
capturing the platform role (student/instructor/admin), the moderation
status and optional profile fields. The profile is created automatically
on user creation.
"""
from __future__ import annotations

from django.conf import settings
from django.db import models


class Role(models.TextChoices):
    """Platform roles used for role-based guards."""

    STUDENT = "student", "Student"
    INSTRUCTOR = "instructor", "Instructor"
    ADMIN = "admin", "Admin"


class AccountStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    SUSPENDED = "suspended", "Suspended"
    BANNED = "banned", "Banned"


class UserProfile(models.Model):
    """Profile linked to a Django auth user.

    - `role`: authorisation gate for views and API permissions
    - `status`: moderation state; anything other than active also clears
      `User.is_active` (see `signals.sync_account_status`)
    """

    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="profile")
    role = models.CharField(max_length=16, choices=Role.choices, default=Role.STUDENT, db_index=True)
    status = models.CharField(max_length=16, choices=AccountStatus.choices, default=AccountStatus.ACTIVE)

    full_name = models.CharField(max_length=200, blank=True)
    bio = models.TextField(blank=True)
    avatar_url = models.URLField(blank=True)
    email_notifications = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:  # pragma: no cover (string repr convenience)
        return f"Profile<{self.user.username}:{self.role}>"

    @property
    def display_name(self) -> str:
        return self.full_name or self.user.get_full_name() or self.user.username

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN or self.user.is_staff


def role_of(user) -> str | None:
    """Return the profile role for `user`, or None when anonymous/missing."""
    if not getattr(user, "is_authenticated", False):
        return None
    profile = getattr(user, "profile", None)
    return getattr(profile, "role", None)


def is_admin_user(user) -> bool:
    if not getattr(user, "is_authenticated", False):
        return False
    return bool(user.is_staff or role_of(user) == Role.ADMIN)


def display_name(user) -> str:
    profile = getattr(user, "profile", None)
    if profile is not None:
        return profile.display_name
    return user.get_full_name() or user.username
