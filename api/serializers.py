"""Serializers for REST API v1.

Keep responses modest and role-aware: lesson content and video links
are only serialised for viewers with access (owner, admin, enrolled
student) or for preview lessons; gateway secrets are write-only.
"""
from __future__ import annotations

from django.contrib.auth import get_user_model
from rest_framework import serializers

from accounts.models import Role
from activity.models import ActivityLog, Notification
from certificates.models import Certificate
from courses.models import Category, Chapter, Course, CourseLevel, Enrolment, Lesson, Review
from courses.validators import validate_thumbnail, validate_video
from learning.models import LessonProgress
from payments.models import Payment, PaymentGateway, PaymentMethod
from support.models import SupportTicket, TicketCategory, TicketMessage, TicketPriority, TicketStatus
from support.services import latest_message

User = get_user_model()


def _file_url(request, field) -> str:
    if not field:
        return ""
    url = field.url
    return request.build_absolute_uri(url) if request else url


class UserSerializer(serializers.ModelSerializer):
    role = serializers.CharField(source="profile.role", read_only=True)
    status = serializers.CharField(source="profile.status", read_only=True)
    full_name = serializers.CharField(source="profile.full_name", read_only=True)
    bio = serializers.CharField(source="profile.bio", read_only=True)
    avatar_url = serializers.CharField(source="profile.avatar_url", read_only=True)
    email_notifications = serializers.BooleanField(source="profile.email_notifications", read_only=True)

    class Meta:
        model = User
        fields = (
            "id",
            "username",
            "email",
            "role",
            "status",
            "full_name",
            "bio",
            "avatar_url",
            "email_notifications",
            "date_joined",
        )


class RegisterSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=150)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, trim_whitespace=False)
    role = serializers.ChoiceField(choices=[Role.STUDENT, Role.INSTRUCTOR], default=Role.STUDENT)
    full_name = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")


class LoginSerializer(serializers.Serializer):
    login = serializers.CharField(help_text="Username or e-mail")
    password = serializers.CharField(write_only=True, trim_whitespace=False)


class ProfileUpdateSerializer(serializers.Serializer):
    full_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    bio = serializers.CharField(required=False, allow_blank=True)
    avatar_url = serializers.URLField(required=False, allow_blank=True)
    email_notifications = serializers.BooleanField(required=False)


class ChangePasswordSerializer(serializers.Serializer):
    current_password = serializers.CharField(write_only=True, trim_whitespace=False)
    new_password = serializers.CharField(write_only=True, trim_whitespace=False)


class CategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = Category
        fields = ("id", "name", "description", "icon")


class CourseListSerializer(serializers.ModelSerializer):
    """Catalogue row; expects the stats annotations from `courses.services.with_stats`."""

    instructor = serializers.SerializerMethodField()
    category = serializers.SerializerMethodField()
    students = serializers.IntegerField(read_only=True, default=0)
    rating = serializers.SerializerMethodField()
    total_reviews = serializers.IntegerField(read_only=True, default=0)
    thumbnail = serializers.SerializerMethodField()

    class Meta:
        model = Course
        fields = (
            "id",
            "title",
            "subtitle",
            "description",
            "price",
            "level",
            "language",
            "status",
            "category",
            "instructor",
            "thumbnail",
            "students",
            "rating",
            "total_reviews",
            "created_at",
            "published_at",
        )

    def get_instructor(self, obj) -> str:
        profile = getattr(obj.owner, "profile", None)
        return getattr(profile, "display_name", obj.owner.username)

    def get_category(self, obj) -> str:
        return obj.category.name if obj.category_id else "Uncategorized"

    def get_rating(self, obj) -> float:
        value = getattr(obj, "rating", None)
        return round(float(value), 1) if value is not None else 0.0

    def get_thumbnail(self, obj) -> str:
        return _file_url(self.context.get("request"), obj.thumbnail)


class LessonSerializer(serializers.ModelSerializer):
    video_file = serializers.SerializerMethodField()

    class Meta:
        model = Lesson
        fields = (
            "id",
            "chapter",
            "title",
            "description",
            "order",
            "duration",
            "is_preview",
            "video_url",
            "video_file",
            "content",
        )

    def get_video_file(self, obj) -> str:
        return _file_url(self.context.get("request"), obj.video_file)

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if not (self.context.get("full_access") or instance.is_preview):
            for key in ("video_url", "video_file", "content"):
                data[key] = None
        return data


class ChapterSerializer(serializers.ModelSerializer):
    lessons = LessonSerializer(many=True, read_only=True)

    class Meta:
        model = Chapter
        fields = ("id", "title", "order", "lessons")


class CourseDetailSerializer(CourseListSerializer):
    chapters = ChapterSerializer(many=True, read_only=True)
    is_enrolled = serializers.SerializerMethodField()

    class Meta(CourseListSerializer.Meta):
        fields = CourseListSerializer.Meta.fields + (
            "learning_objectives",
            "requirements",
            "flagged",
            "updated_at",
            "chapters",
            "is_enrolled",
        )

    def get_is_enrolled(self, obj) -> bool:
        return bool(self.context.get("is_enrolled"))


class CourseUpdateSerializer(serializers.ModelSerializer):
    category = serializers.PrimaryKeyRelatedField(queryset=Category.objects.all(), required=False, allow_null=True)

    class Meta:
        model = Course
        fields = (
            "title",
            "subtitle",
            "description",
            "price",
            "level",
            "language",
            "category",
            "learning_objectives",
            "requirements",
        )

    def validate_price(self, value):
        if value < 0:
            raise serializers.ValidationError("Price cannot be negative.")
        return value


class LessonInputSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True)
    order = serializers.IntegerField(required=False, min_value=0)
    duration = serializers.IntegerField(required=False, min_value=0)
    video_url = serializers.URLField(required=False, allow_blank=True)
    content = serializers.CharField(required=False, allow_blank=True)
    is_preview = serializers.BooleanField(required=False)


class ChapterInputSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    order = serializers.IntegerField(required=False, min_value=0)
    lessons = LessonInputSerializer(many=True, required=False)


class CourseCreateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    subtitle = serializers.CharField(max_length=300, required=False, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, required=False)
    level = serializers.ChoiceField(choices=CourseLevel.choices, required=False)
    language = serializers.CharField(max_length=50, required=False)
    category = serializers.CharField(required=False, allow_blank=True, help_text="Category id or name")
    learning_objectives = serializers.ListField(child=serializers.CharField(), required=False)
    requirements = serializers.ListField(child=serializers.CharField(), required=False)
    chapters = ChapterInputSerializer(many=True, required=False)


class LessonCreateSerializer(LessonInputSerializer):
    chapter = serializers.IntegerField()


class ThumbnailUploadSerializer(serializers.Serializer):
    thumbnail = serializers.FileField(validators=[validate_thumbnail])


class VideoUploadSerializer(serializers.Serializer):
    video = serializers.FileField(validators=[validate_video])


class EnrolmentSerializer(serializers.ModelSerializer):
    course = serializers.PrimaryKeyRelatedField(queryset=Course.objects.all())
    course_title = serializers.CharField(source="course.title", read_only=True)
    student = UserSerializer(read_only=True)

    class Meta:
        model = Enrolment
        fields = ("id", "course", "course_title", "student", "status", "progress", "completed_at", "created_at")
        read_only_fields = ("student", "status", "progress", "completed_at", "created_at")


class ReviewSerializer(serializers.ModelSerializer):
    student = serializers.CharField(source="student.username", read_only=True)

    class Meta:
        model = Review
        fields = ("id", "course", "student", "rating", "comment", "created_at", "updated_at")
        read_only_fields = ("student", "created_at", "updated_at")
        # Uniqueness is handled by upsert in the view
        validators = []


class ReviewUpdateSerializer(serializers.Serializer):
    rating = serializers.IntegerField(min_value=1, max_value=5, required=False)
    comment = serializers.CharField(required=False, allow_blank=True)


class LessonProgressSerializer(serializers.ModelSerializer):
    lesson_title = serializers.CharField(source="lesson.title", read_only=True)

    class Meta:
        model = LessonProgress
        fields = (
            "id",
            "lesson",
            "lesson_title",
            "watch_time",
            "last_position",
            "progress_percentage",
            "completed",
            "completed_at",
            "updated_at",
        )


class ProgressUpdateSerializer(serializers.Serializer):
    lesson = serializers.PrimaryKeyRelatedField(queryset=Lesson.objects.select_related("course"))
    watch_time = serializers.IntegerField(required=False, min_value=0)
    last_position = serializers.IntegerField(required=False, min_value=0)
    progress_percentage = serializers.IntegerField(required=False, min_value=0, max_value=100)
    completed = serializers.BooleanField(required=False)


class CertificateSerializer(serializers.ModelSerializer):
    course_title = serializers.CharField(source="course.title", read_only=True)
    pdf_url = serializers.SerializerMethodField()

    class Meta:
        model = Certificate
        fields = (
            "id",
            "certificate_id",
            "course",
            "course_title",
            "issued_at",
            "expires_at",
            "revoked",
            "revoked_at",
            "revocation_reason",
            "pdf_url",
        )

    def get_pdf_url(self, obj) -> str:
        return f"/certificates/{obj.certificate_id}/pdf/"


class PaymentSerializer(serializers.ModelSerializer):
    course_title = serializers.CharField(source="course.title", read_only=True)
    student = serializers.CharField(source="student.username", read_only=True)

    class Meta:
        model = Payment
        fields = (
            "id",
            "student",
            "course",
            "course_title",
            "amount",
            "currency",
            "method",
            "status",
            "transaction_id",
            "created_at",
            "updated_at",
        )


class PaymentGatewaySerializer(serializers.ModelSerializer):
    secret_key = serializers.CharField(write_only=True, required=False, allow_blank=True)
    webhook_secret = serializers.CharField(write_only=True, required=False, allow_blank=True)
    has_secret_key = serializers.SerializerMethodField()

    class Meta:
        model = PaymentGateway
        fields = (
            "id",
            "name",
            "display_name",
            "enabled",
            "test_mode",
            "publishable_key",
            "secret_key",
            "webhook_secret",
            "has_secret_key",
            "supported_currencies",
            "configuration",
            "created_at",
            "updated_at",
        )
        read_only_fields = ("created_at", "updated_at")

    def get_has_secret_key(self, obj) -> bool:
        return bool(obj.secret_key)


class CartAddSerializer(serializers.Serializer):
    course = serializers.IntegerField()


class CartLoadSerializer(serializers.Serializer):
    courses = serializers.ListField(child=serializers.IntegerField(), allow_empty=True)


class CheckoutSerializer(serializers.Serializer):
    method = serializers.ChoiceField(choices=PaymentMethod.choices)
    reference = serializers.CharField(required=False, allow_blank=True, help_text="UPI transaction reference")


class CheckoutConfirmSerializer(serializers.Serializer):
    session_id = serializers.CharField()


class TicketMessageSerializer(serializers.ModelSerializer):
    sender = serializers.CharField(source="sender.username", read_only=True)

    class Meta:
        model = TicketMessage
        fields = ("id", "sender", "message", "is_internal", "created_at")


class SupportTicketSerializer(serializers.ModelSerializer):
    user = serializers.CharField(source="user.username", read_only=True)
    assignee = serializers.SerializerMethodField()
    message_count = serializers.IntegerField(read_only=True, default=0)
    latest_message = serializers.SerializerMethodField()

    class Meta:
        model = SupportTicket
        fields = (
            "id",
            "user",
            "subject",
            "description",
            "category",
            "priority",
            "status",
            "assignee",
            "resolution",
            "resolved_at",
            "created_at",
            "updated_at",
            "message_count",
            "latest_message",
        )

    def get_assignee(self, obj) -> str | None:
        return obj.assignee.username if obj.assignee_id else None

    def get_latest_message(self, obj) -> dict | None:
        msg = latest_message(obj, include_internal=bool(self.context.get("staff")))
        return TicketMessageSerializer(msg).data if msg else None


class TicketCreateSerializer(serializers.Serializer):
    subject = serializers.CharField()
    description = serializers.CharField()
    category = serializers.ChoiceField(choices=TicketCategory.choices, default=TicketCategory.GENERAL)
    priority = serializers.ChoiceField(choices=TicketPriority.choices, default=TicketPriority.MEDIUM)


class TicketReplySerializer(serializers.Serializer):
    message = serializers.CharField()
    is_internal = serializers.BooleanField(default=False)


class TicketUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=TicketStatus.choices, required=False)
    priority = serializers.ChoiceField(choices=TicketPriority.choices, required=False)
    assignee = serializers.IntegerField(required=False, allow_null=True)
    resolution = serializers.CharField(required=False, allow_blank=True)


class ActivityLogSerializer(serializers.ModelSerializer):
    user = serializers.CharField(source="user.username", read_only=True)

    class Meta:
        model = ActivityLog
        fields = ("id", "user", "activity_type", "description", "metadata", "created_at")


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = ("id", "type", "message", "course", "read", "created_at")


class AnnouncementSerializer(serializers.Serializer):
    subject = serializers.CharField(max_length=200)
    message = serializers.CharField()
    priority = serializers.ChoiceField(choices=["LOW", "NORMAL", "HIGH"], default="NORMAL")


class AdminUserActionSerializer(serializers.Serializer):
    action = serializers.CharField()
    role = serializers.ChoiceField(choices=Role.choices, required=False)


class AdminActionSerializer(serializers.Serializer):
    action = serializers.CharField()
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class CertificateIssueSerializer(serializers.Serializer):
    course = serializers.IntegerField(min_value=1)


class RevokeSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class AnalyticsQuerySerializer(serializers.Serializer):
    range = serializers.CharField(required=False)
    course = serializers.IntegerField(required=False, min_value=1)


class RosterQuerySerializer(serializers.Serializer):
    course = serializers.IntegerField(required=False, min_value=1)
    status = serializers.CharField(required=False, default="all")
    search = serializers.CharField(required=False, allow_blank=True)
    sort = serializers.CharField(required=False, default="last_active")
    order = serializers.CharField(required=False, default="desc")
