"""Custom permissions for REST API v1."""
from __future__ import annotations

from rest_framework.permissions import BasePermission, SAFE_METHODS

from accounts.models import Role, is_admin_user, role_of


class IsAuthenticatedOrReadOnly(BasePermission):
    def has_permission(self, request, view):  # noqa: D401
        return bool(request.method in SAFE_METHODS or (request.user and request.user.is_authenticated))


class IsInstructor(BasePermission):
    message = "Instructor access required."

    def has_permission(self, request, view):
        return role_of(request.user) in (Role.INSTRUCTOR, Role.ADMIN) or is_admin_user(request.user)


class IsStudent(BasePermission):
    message = "Only students can do this."

    def has_permission(self, request, view):
        return role_of(request.user) == Role.STUDENT


class IsAdmin(BasePermission):
    message = "Admin access required."

    def has_permission(self, request, view):
        return is_admin_user(request.user)
