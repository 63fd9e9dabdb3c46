"""Role checks for the plain Django JSON views (the API uses DRF permissions)."""
from __future__ import annotations

from functools import wraps

from django.core.exceptions import PermissionDenied

from .models import Role, is_admin_user, role_of


def role_required(*roles: str):
    """Allow only users whose profile role is in `roles`.

    Staff accounts count as admins, so `Role.ADMIN` admits them too.
    Anonymous users and everyone else get a 403.
    """

    def decorator(view_func):
        @wraps(view_func)
        def _wrapped(request, *args, **kwargs):
            user = request.user
            allowed = role_of(user) in roles or (Role.ADMIN in roles and is_admin_user(user))
            if not allowed:
                raise PermissionDenied
            return view_func(request, *args, **kwargs)

        return _wrapped

    return decorator
