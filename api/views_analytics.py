"""Instructor analytics endpoints; thin wrappers over `courses.analytics`."""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from courses import analytics
from .pagination import DefaultPagination
from .permissions import IsInstructor
from .serializers import AnalyticsQuerySerializer, RosterQuerySerializer


def _query(request, serializer_class=AnalyticsQuerySerializer) -> dict:
    serializer = serializer_class(data=request.query_params)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


@api_view(["GET"])
@permission_classes([IsAuthenticated, IsInstructor])
def instructor_analytics(request):
    """Course performance, progress distribution and enrolment trend (`?range=7d|30d|90d|1y`)."""
    params = _query(request)
    return Response(analytics.instructor_analytics(request.user, params.get("range", "30d"), params.get("course")))


@api_view(["GET"])
@permission_classes([IsAuthenticated, IsInstructor])
def course_analytics(request, course_id: int):
    params = _query(request)
    return Response(analytics.course_analytics(request.user, course_id, params.get("range", "30d")))


@api_view(["GET"])
@permission_classes([IsAuthenticated, IsInstructor])
def engagement(request):
    params = _query(request)
    return Response(analytics.engagement(request.user, params.get("range", "7d"), params.get("course")))


@api_view(["GET"])
@permission_classes([IsAuthenticated, IsInstructor])
def student_roster(request):
    """Paginated roster; `stats`, `at_risk_students` and `top_performers` cover every student."""
    params = _query(request, RosterQuerySerializer)
    roster = analytics.student_roster(
        request.user,
        course_id=params.get("course"),
        status=params["status"],
        search=params.get("search") or None,
        sort=params["sort"],
        order=params["order"],
    )
    paginator = DefaultPagination()
    page = paginator.paginate_queryset(roster.pop("students"), request)
    response = paginator.get_paginated_response(page)
    response.data.update(roster)
    return response
