from django.contrib import admin

from .models import Category, Chapter, Course, Enrolment, Lesson, Review


class ChapterInline(admin.TabularInline):
    model = Chapter
    extra = 0


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ("name", "icon", "created_at")
    search_fields = ("name",)


@admin.register(Course)
class CourseAdmin(admin.ModelAdmin):
    list_display = ("title", "owner", "category", "price", "status", "flagged", "created_at")
    list_filter = ("status", "level", "flagged")
    search_fields = ("title", "description", "owner__username")
    inlines = [ChapterInline]


@admin.register(Lesson)
class LessonAdmin(admin.ModelAdmin):
    list_display = ("title", "course", "chapter", "order", "is_preview")
    list_filter = ("is_preview",)
    search_fields = ("title", "course__title")


@admin.register(Enrolment)
class EnrolmentAdmin(admin.ModelAdmin):
    list_display = ("course", "student", "status", "progress", "created_at")
    list_filter = ("status",)
    search_fields = ("course__title", "student__username")


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ("course", "student", "rating", "created_at")
    list_filter = ("rating",)
