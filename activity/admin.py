from django.contrib import admin

from .models import ActivityLog, Notification


@admin.register(ActivityLog)
class ActivityLogAdmin(admin.ModelAdmin):
    list_display = ("user", "activity_type", "description", "created_at")
    list_filter = ("activity_type",)
    search_fields = ("user__username", "description")


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("user", "type", "message", "read", "created_at")
    list_filter = ("type", "read")
