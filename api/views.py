"""REST API v1: catalogue, authoring, enrolments and reviews."""
from __future__ import annotations

from django.db.models import Prefetch
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound, PermissionDenied
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.models import Role, is_admin_user, role_of
from activity.services import send_announcement
from courses import services as course_services
from courses.models import Category, Chapter, Course, CourseStatus, Enrolment, Lesson, Review
from learning.utils import course_progress
from .permissions import IsAuthenticatedOrReadOnly, IsInstructor, IsStudent
from .serializers import (
    AnnouncementSerializer,
    CategorySerializer,
    ChapterInputSerializer,
    ChapterSerializer,
    CourseCreateSerializer,
    CourseDetailSerializer,
    CourseListSerializer,
    CourseUpdateSerializer,
    EnrolmentSerializer,
    LessonCreateSerializer,
    LessonProgressSerializer,
    LessonSerializer,
    ReviewSerializer,
    ReviewUpdateSerializer,
    ThumbnailUploadSerializer,
    VideoUploadSerializer,
)


def _ordered_chapters():
    return Prefetch(
        "chapters",
        queryset=Chapter.objects.order_by("order", "id").prefetch_related(
            Prefetch("lessons", queryset=Lesson.objects.select_related("course").order_by("order", "id"))
        ),
    )


class CategoryViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    queryset = Category.objects.all().order_by("name")
    serializer_class = CategorySerializer
    pagination_class = None


class CourseViewSet(viewsets.ModelViewSet):
    """Public catalogue plus instructor authoring.

    Listing shows published courses only and accepts `search`,
    `category`, `level`, `price` and `sort` query parameters.
    """

    permission_classes = [IsAuthenticatedOrReadOnly]
    parser_classes = [JSONParser, MultiPartParser, FormParser]
    filter_backends: list = []

    def get_queryset(self):
        if self.action == "list":
            params = self.request.query_params
            return course_services.list_catalogue(
                search=params.get("search"),
                category=params.get("category"),
                level=params.get("level"),
                price=params.get("price"),
                sort=params.get("sort"),
            )
        return course_services.with_stats(
            Course.objects.select_related("owner__profile", "category")
        ).prefetch_related(_ordered_chapters())

    def get_serializer_class(self):
        if self.action == "list" or self.action in ("featured", "mine"):
            return CourseListSerializer
        if self.action == "create":
            return CourseCreateSerializer
        if self.action in ("update", "partial_update"):
            return CourseUpdateSerializer
        return CourseDetailSerializer

    def get_object(self):
        course = super().get_object()
        # Unpublished courses are invisible to everyone but the owner and admins
        if course.status != CourseStatus.PUBLISHED and not course_services.can_manage(self.request.user, course):
            raise NotFound("Course not found.")
        return course

    def _detail(self, course: Course, *, status_code=status.HTTP_200_OK) -> Response:
        user = self.request.user
        enrolled = course_services.is_enrolled(user, course)
        context = {
            **self.get_serializer_context(),
            "is_enrolled": enrolled,
            "full_access": enrolled or course_services.can_manage(user, course),
        }
        return Response(CourseDetailSerializer(course, context=context).data, status=status_code)

    def _manageable(self) -> Course:
        course = self.get_object()
        if not course_services.can_manage(self.request.user, course):
            raise PermissionDenied("Only the course owner can do this.")
        return course

    def retrieve(self, request, *args, **kwargs):
        return self._detail(self.get_object())

    def create(self, request, *args, **kwargs):
        serializer = CourseCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        course = course_services.create_course(request.user, serializer.validated_data)
        return self._detail(self.get_queryset().get(pk=course.pk), status_code=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        course = self._manageable()
        serializer = CourseUpdateSerializer(course, data=request.data, partial=kwargs.pop("partial", False))
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return self._detail(self.get_queryset().get(pk=course.pk))

    def destroy(self, request, *args, **kwargs):
        course = self._manageable()
        course.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=["get"])
    def featured(self, request):
        courses = course_services.featured_courses()
        return Response(CourseListSerializer(courses, many=True, context=self.get_serializer_context()).data)

    @action(detail=False, methods=["get"], permission_classes=[IsInstructor])
    def mine(self, request):
        qs = course_services.with_stats(
            Course.objects.filter(owner=request.user).select_related("owner__profile", "category")
        ).order_by("-created_at", "-id")
        page = self.paginate_queryset(qs)
        data = CourseListSerializer(page, many=True, context=self.get_serializer_context()).data
        return self.get_paginated_response(data)

    @action(detail=True, methods=["post"])
    def publish(self, request, pk=None):
        course = course_services.publish_course(self.get_object(), request.user)
        return self._detail(self.get_queryset().get(pk=course.pk))

    @action(detail=True, methods=["post"], parser_classes=[MultiPartParser, FormParser])
    def thumbnail(self, request, pk=None):
        course = self._manageable()
        serializer = ThumbnailUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        upload = serializer.validated_data["thumbnail"]
        if course.thumbnail:
            course.thumbnail.delete(save=False)
        course.thumbnail.save(upload.name, upload, save=True)
        return Response({"thumbnail": request.build_absolute_uri(course.thumbnail.url)})

    @action(detail=True, methods=["post"])
    def chapters(self, request, pk=None):
        course = self._manageable()
        serializer = ChapterInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        chapter = course_services.add_chapter(course, serializer.validated_data)
        context = {**self.get_serializer_context(), "full_access": True}
        return Response(ChapterSerializer(chapter, context=context).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def lessons(self, request, pk=None):
        course = self._manageable()
        serializer = LessonCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        chapter = course.chapters.filter(pk=data.pop("chapter")).first()
        if chapter is None:
            raise NotFound("Chapter not found in this course.")
        lesson = course_services.add_lesson(chapter, data)
        context = {**self.get_serializer_context(), "full_access": True}
        return Response(LessonSerializer(lesson, context=context).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def announce(self, request, pk=None):
        course = self._manageable()
        serializer = AnnouncementSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        sent = send_announcement(course, request.user, **serializer.validated_data)
        return Response({"sent": True, "total_recipients": sent})

    @action(detail=True, methods=["get"], permission_classes=[IsAuthenticated])
    def progress(self, request, pk=None):
        course = self.get_object()
        if not course_services.is_enrolled(request.user, course):
            raise NotFound("You are not enrolled in this course.")
        enrolment = Enrolment.objects.get(course=course, student=request.user)
        rows = course_progress(request.user, course)
        return Response(
            {
                "course": course.pk,
                "progress": enrolment.progress,
                "status": enrolment.status,
                "lessons": LessonProgressSerializer(rows, many=True).data,
            }
        )


class LessonViewSet(mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    queryset = Lesson.objects.select_related("course", "chapter")
    serializer_class = LessonSerializer
    permission_classes = [IsAuthenticatedOrReadOnly]

    def retrieve(self, request, *args, **kwargs):
        lesson = self.get_object()
        course = lesson.course
        if course.status != CourseStatus.PUBLISHED and not course_services.can_manage(request.user, course):
            raise NotFound("Lesson not found.")
        context = {
            **self.get_serializer_context(),
            "full_access": course_services.can_view_lesson_content(request.user, lesson),
        }
        return Response(LessonSerializer(lesson, context=context).data)

    @action(detail=True, methods=["post"], parser_classes=[MultiPartParser, FormParser])
    def video(self, request, pk=None):
        lesson = self.get_object()
        if not course_services.can_manage(request.user, lesson.course):
            raise PermissionDenied("Only the course owner can upload videos.")
        serializer = VideoUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        upload = serializer.validated_data["video"]
        if lesson.video_file:
            lesson.video_file.delete(save=False)
        lesson.video_file.save(upload.name, upload, save=True)
        return Response({"video_file": request.build_absolute_uri(lesson.video_file.url)})


class EnrolmentViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = EnrolmentSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ["course", "status"]
    ordering_fields = ["created_at", "progress"]

    def get_queryset(self):
        # Students: own enrolments; instructors: enrolments to their courses; admins: all
        user = self.request.user
        base = Enrolment.objects.select_related("course", "student__profile").order_by("-created_at", "-id")
        role = role_of(user)
        if is_admin_user(user):
            qs = base
        elif role == Role.STUDENT:
            qs = base.filter(student=user)
        elif role == Role.INSTRUCTOR:
            qs = base.filter(course__owner=user)
        else:
            qs = Enrolment.objects.none()
        return qs

    def get_permissions(self):
        if self.action == "create":
            return [IsAuthenticated(), IsStudent()]
        return super().get_permissions()

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        enrolment = course_services.enrol(request.user, serializer.validated_data["course"])
        return Response(self.get_serializer(enrolment).data, status=status.HTTP_201_CREATED)

    def destroy(self, request, *args, **kwargs):
        course_services.remove_enrolment(self.get_object(), request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)


class ReviewViewSet(viewsets.ModelViewSet):
    serializer_class = ReviewSerializer
    permission_classes = [IsAuthenticatedOrReadOnly]
    filterset_fields = ["course"]
    ordering_fields = ["created_at", "rating"]

    def get_queryset(self):
        return Review.objects.select_related("course", "student").order_by("-created_at", "-id")

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        review, created = course_services.upsert_review(
            request.user, data["course"], data["rating"], data.get("comment", "")
        )
        return Response(
            self.get_serializer(review).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    def update(self, request, *args, **kwargs):
        # Students may update their own review only; the course never changes
        review = self.get_object()
        if review.student_id != request.user.id:
            raise PermissionDenied("Cannot edit others' reviews.")
        serializer = ReviewUpdateSerializer(data=request.data, partial=kwargs.get("partial", False))
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        review, _ = course_services.upsert_review(
            request.user, review.course, data.get("rating", review.rating), data.get("comment", review.comment)
        )
        return Response(self.get_serializer(review).data)

    def perform_destroy(self, instance):
        if instance.student_id != self.request.user.id and not is_admin_user(self.request.user):
            raise PermissionDenied("Cannot delete others' reviews.")
        instance.delete()
