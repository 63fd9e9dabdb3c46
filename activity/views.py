from __future__ import annotations

from django.contrib.auth.decorators import login_required
from django.http import HttpRequest, JsonResponse
from django.views.decorators.http import require_GET, require_POST

from accounts.decorators import role_required
from accounts.models import Role
from .feeds import DEFAULT_LIMIT, instructor_feed
from .models import Notification


def _limit(request: HttpRequest, default: int) -> int:
    try:
        return max(1, int(request.GET.get("limit", default)))
    except (TypeError, ValueError):
        return default


@login_required
@require_GET
def notifications_recent(request: HttpRequest) -> JsonResponse:
    """Return recent notifications and unread count for the current user."""
    limit = min(_limit(request, 10), 100)
    qs = Notification.objects.filter(user=request.user).order_by("-created_at", "-id")
    unread = qs.filter(read=False).count()
    data = [
        {
            "id": n.id,
            "type": n.type,
            "message": n.message,
            "course": n.course_id,
            "created_at": n.created_at.isoformat(),
            "read": n.read,
        }
        for n in qs[:limit]
    ]
    return JsonResponse({"unread": unread, "results": data})


@login_required
@require_POST
def notifications_mark_all_read(request: HttpRequest) -> JsonResponse:
    updated = Notification.objects.filter(user=request.user, read=False).update(read=True)
    return JsonResponse({"updated": updated, "unread": 0})


@login_required
@role_required(Role.INSTRUCTOR, Role.ADMIN)
@require_GET
def instructor_activity(request: HttpRequest) -> JsonResponse:
    """Merged activity feed for the signed-in instructor."""
    items = instructor_feed(request.user, limit=_limit(request, DEFAULT_LIMIT))
    return JsonResponse({"results": items})
