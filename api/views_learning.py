"""Learning endpoints: lesson progress, student dashboard and certificates."""
from __future__ import annotations

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from accounts.models import is_admin_user
from certificates.models import Certificate
from certificates.services import issue_certificate, revoke_certificate, verify_certificate
from courses.models import Enrolment, EnrolmentStatus
from learning.utils import student_dashboard, update_lesson_progress
from .permissions import IsAdmin, IsStudent
from .serializers import (
    CertificateIssueSerializer,
    CertificateSerializer,
    EnrolmentSerializer,
    LessonProgressSerializer,
    ProgressUpdateSerializer,
    RevokeSerializer,
)


@api_view(["POST", "PUT"])
@permission_classes([IsAuthenticated, IsStudent])
def progress_update(request):
    """Upsert progress for one lesson; completing the course issues a certificate."""
    serializer = ProgressUpdateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = dict(serializer.validated_data)
    lesson = data.pop("lesson")
    result = update_lesson_progress(request.user, lesson, **data)
    certificate = result["certificate"]
    return Response(
        {
            "progress": LessonProgressSerializer(result["progress"]).data,
            "enrolment": EnrolmentSerializer(result["enrolment"]).data,
            "certificate": CertificateSerializer(certificate).data if certificate else None,
        }
    )


@api_view(["GET"])
@permission_classes([IsAuthenticated, IsStudent])
def dashboard(request):
    return Response(student_dashboard(request.user))


class CertificateViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """Own certificates for students; admins see all."""

    serializer_class = CertificateSerializer
    permission_classes = [IsAuthenticated]
    ordering_fields = ["issued_at"]

    def get_queryset(self):
        qs = Certificate.objects.select_related("course", "user").order_by("-issued_at", "-id")
        if is_admin_user(self.request.user):
            return qs
        return qs.filter(user=self.request.user)

    @action(detail=False, methods=["post"])
    def issue(self, request):
        """Explicitly request the certificate for a completed course."""
        serializer = CertificateIssueSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        enrolment = (
            Enrolment.objects.select_related("course__owner__profile", "student__profile")
            .filter(student=request.user, course_id=serializer.validated_data["course"])
            .exclude(status=EnrolmentStatus.CANCELLED)
            .first()
        )
        if enrolment is None:
            return Response({"detail": "You are not enrolled in this course."}, status=status.HTTP_404_NOT_FOUND)
        certificate = issue_certificate(enrolment)
        return Response(CertificateSerializer(certificate).data)

    @action(detail=True, methods=["post"], permission_classes=[IsAuthenticated, IsAdmin])
    def revoke(self, request, pk=None):
        serializer = RevokeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        certificate = revoke_certificate(self.get_object(), request.user, serializer.validated_data["reason"])
        return Response(CertificateSerializer(certificate).data)


@api_view(["GET"])
@permission_classes([AllowAny])
def certificate_verify(request):
    """Public verification by certificate id (`?certificate_id=`)."""
    http_status, payload = verify_certificate(request.query_params.get("certificate_id"))
    return Response(payload, status=http_status)
