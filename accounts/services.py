"""Account operations shared by the API and the admin console."""
from __future__ import annotations

import logging

from django.contrib.auth import authenticate, get_user_model
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from rest_framework.exceptions import AuthenticationFailed, PermissionDenied, ValidationError

from activity.models import ActivityType
from activity.services import log_activity
from .models import AccountStatus, Role, UserProfile

User = get_user_model()
logger = logging.getLogger(__name__)

SELF_SERVICE_ROLES = (Role.STUDENT, Role.INSTRUCTOR)


@transaction.atomic
def register_user(*, username: str, email: str, password: str, role: str = Role.STUDENT, full_name: str = ""):
    """Create a user with a profile role; uniqueness is case-insensitive."""
    username = (username or "").strip()
    email = (email or "").strip().lower()
    errors: dict[str, list[str]] = {}
    if User.objects.filter(username__iexact=username).exists():
        errors["username"] = ["This username is already taken."]
    if User.objects.filter(email__iexact=email).exists():
        errors["email"] = ["An account with this e-mail already exists."]
    if role not in SELF_SERVICE_ROLES:
        errors["role"] = ["Role must be student or instructor."]
    if errors:
        raise ValidationError(errors)

    candidate = User(username=username, email=email)
    try:
        validate_password(password, user=candidate)
    except DjangoValidationError as exc:
        raise ValidationError({"password": list(exc.messages)}) from exc

    user = User.objects.create_user(username=username, email=email, password=password)
    profile = user.profile
    profile.role = role
    profile.full_name = full_name
    profile.save(update_fields=["role", "full_name", "updated_at"])
    log_activity(user, ActivityType.USER_REGISTERED, f"Registered as {role}", {"role": role})
    logger.info("registered user %s (%s)", user.pk, role)
    return user


def authenticate_login(request, login: str, password: str):
    """Authenticate by username or e-mail; suspended/banned accounts are refused."""
    login = (login or "").strip()
    username = login
    if "@" in login:
        match = User.objects.filter(email__iexact=login).first()
        if match:
            username = match.get_username()
    candidate = User.objects.select_related("profile").filter(username__iexact=username).first()
    if candidate is not None:
        status = getattr(getattr(candidate, "profile", None), "status", AccountStatus.ACTIVE)
        if status != AccountStatus.ACTIVE and candidate.check_password(password):
            raise PermissionDenied(f"Account is {status}.")
        username = candidate.get_username()
    user = authenticate(request, username=username, password=password)
    if user is None:
        raise AuthenticationFailed("Invalid credentials.")
    return user


def change_password(user, current: str, new: str) -> None:
    if not user.check_password(current or ""):
        raise ValidationError({"current_password": ["Current password is incorrect."]})
    try:
        validate_password(new, user=user)
    except DjangoValidationError as exc:
        raise ValidationError({"new_password": list(exc.messages)}) from exc
    user.set_password(new)
    user.save(update_fields=["password"])
    log_activity(user, ActivityType.PASSWORD_CHANGED, "Changed password")


USER_ACTIONS = ("activate", "suspend", "ban", "change_role")


@transaction.atomic
def moderate_user(admin, target, action: str, role: str | None = None) -> UserProfile:
    """Apply an admin console action to `target` and record it."""
    if action not in USER_ACTIONS:
        raise ValidationError({"action": [f"Unknown action '{action}'."]})
    if target.pk == admin.pk:
        raise ValidationError({"detail": "Cannot modify your own account."})

    profile = target.profile
    previous_role = profile.role
    if action == "activate":
        profile.status = AccountStatus.ACTIVE
        description = f"Activated user: {target.username}"
    elif action == "suspend":
        profile.status = AccountStatus.SUSPENDED
        description = f"Suspended user: {target.username}"
    elif action == "ban":
        profile.status = AccountStatus.BANNED
        description = f"Banned user: {target.username}"
    else:
        if role not in Role.values:
            raise ValidationError({"role": ["A valid role is required for change_role."]})
        profile.role = role
        description = f"Changed user role to {role}: {target.username}"
    profile.save()

    log_activity(
        admin,
        ActivityType.USER_MANAGEMENT,
        description,
        {
            "target_user_id": target.pk,
            "action": action,
            "previous_role": previous_role,
            "new_role": profile.role,
            "status": profile.status,
        },
    )
    logger.info("admin %s applied %s to user %s", admin.pk, action, target.pk)
    return profile
