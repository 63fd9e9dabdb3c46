"""Admin console: platform overview plus user, course and payment moderation."""
from __future__ import annotations

from datetime import timedelta

from django.contrib.auth import get_user_model
from django.db.models import Count, Q, Sum
from django.db.models.functions import TruncMonth
from django.utils import timezone
from rest_framework import mixins, viewsets
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.services import moderate_user
from activity.models import ActivityLog
from courses import services as course_services
from courses.models import Course, CourseStatus, Enrolment
from payments.models import Payment, PaymentStatus
from payments.services import moderate_payment
from support.models import CLOSED_STATUSES, SupportTicket
from .permissions import IsAdmin
from .serializers import (
    ActivityLogSerializer,
    AdminActionSerializer,
    AdminUserActionSerializer,
    CourseListSerializer,
    PaymentSerializer,
    UserSerializer,
)

User = get_user_model()

OVERVIEW_MONTHS = 6


@api_view(["GET"])
@permission_classes([IsAuthenticated, IsAdmin])
def overview(request):
    now = timezone.now()
    completed = Payment.objects.filter(status=PaymentStatus.COMPLETED)
    since = (now - timedelta(days=31 * (OVERVIEW_MONTHS - 1))).replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    revenue_by_month = [
        {"month": row["month"].strftime("%Y-%m"), "revenue": float(row["revenue"] or 0)}
        for row in completed.filter(created_at__gte=since)
        .annotate(month=TruncMonth("created_at"))
        .values("month")
        .annotate(revenue=Sum("amount"))
        .order_by("month")
    ]
    return Response(
        {
            "total_users": User.objects.count(),
            "new_users_30d": User.objects.filter(date_joined__gte=now - timedelta(days=30)).count(),
            "monthly_active_users": User.objects.filter(last_login__gte=now - timedelta(days=30)).count(),
            "published_courses": Course.objects.filter(status=CourseStatus.PUBLISHED).count(),
            "pending_courses": Course.objects.filter(status__in=[CourseStatus.DRAFT, CourseStatus.PENDING]).count(),
            "flagged_courses": Course.objects.filter(flagged=True).count(),
            "total_enrolments": Enrolment.objects.count(),
            "total_revenue": float(completed.aggregate(total=Sum("amount"))["total"] or 0),
            "open_tickets": SupportTicket.objects.exclude(status__in=CLOSED_STATUSES).count(),
            "revenue_by_month": revenue_by_month,
        }
    )


class AdminUserViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """Users filtered by `search`, `role` and `status`."""

    serializer_class = UserSerializer
    permission_classes = [IsAuthenticated, IsAdmin]
    filter_backends: list = []

    def get_queryset(self):
        params = self.request.query_params
        qs = User.objects.select_related("profile").order_by("-date_joined", "-id")
        search = (params.get("search") or "").strip()
        if search:
            qs = qs.filter(
                Q(username__icontains=search) | Q(email__icontains=search) | Q(profile__full_name__icontains=search)
            )
        role = params.get("role")
        if role and role != "all":
            qs = qs.filter(profile__role=role)
        account_status = params.get("status")
        if account_status and account_status != "all":
            qs = qs.filter(profile__status=account_status)
        return qs

    @action(detail=True, methods=["post"], url_path="action")
    def moderate(self, request, pk=None):
        target = self.get_object()
        serializer = AdminUserActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        moderate_user(request.user, target, serializer.validated_data["action"], serializer.validated_data.get("role"))
        return Response(UserSerializer(User.objects.select_related("profile").get(pk=target.pk)).data)


class AdminCourseViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """All courses regardless of status, filtered by `status`, `flagged` and `search`."""

    serializer_class = CourseListSerializer
    permission_classes = [IsAuthenticated, IsAdmin]
    filter_backends: list = []

    def get_queryset(self):
        params = self.request.query_params
        qs = Course.objects.select_related("owner__profile", "category")
        course_status = params.get("status")
        if course_status and course_status != "all":
            qs = qs.filter(status=course_status)
        if params.get("flagged") in ("1", "true"):
            qs = qs.filter(flagged=True)
        search = (params.get("search") or "").strip()
        if search:
            qs = qs.filter(Q(title__icontains=search) | Q(owner__username__icontains=search))
        return course_services.with_stats(qs).order_by("-created_at", "-id")

    @action(detail=True, methods=["post"], url_path="action")
    def moderate(self, request, pk=None):
        course = self.get_object()
        serializer = AdminActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        course_services.moderate_course(request.user, course, **serializer.validated_data)
        return Response(self.get_serializer(self.get_queryset().get(pk=course.pk)).data)


class AdminPaymentViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    serializer_class = PaymentSerializer
    permission_classes = [IsAuthenticated, IsAdmin]
    filterset_fields = ["status", "method"]
    search_fields = ["transaction_id", "student__username", "course__title"]
    ordering_fields = ["created_at", "amount"]

    def get_queryset(self):
        return Payment.objects.select_related("student", "course").order_by("-created_at", "-id")

    @action(detail=True, methods=["post"], url_path="action")
    def moderate(self, request, pk=None):
        serializer = AdminActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment = moderate_payment(request.user, self.get_object(), serializer.validated_data["action"])
        return Response(self.get_serializer(payment).data)


class ActivityLogViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    serializer_class = ActivityLogSerializer
    permission_classes = [IsAuthenticated, IsAdmin]
    filterset_fields = ["activity_type", "user"]

    def get_queryset(self):
        return ActivityLog.objects.select_related("user").order_by("-created_at", "-id")
