from django.contrib import admin

from .models import LessonProgress


@admin.register(LessonProgress)
class LessonProgressAdmin(admin.ModelAdmin):
    list_display = ("student", "lesson", "progress_percentage", "completed", "updated_at")
    list_filter = ("completed",)
    search_fields = ("student__username", "lesson__title")
