from django.urls import path
from .views import instructor_activity, notifications_recent, notifications_mark_all_read

app_name = "activity"

urlpatterns = [
    path("notifications/recent/", notifications_recent, name="notifications-recent"),
    path("notifications/mark-all-read/", notifications_mark_all_read, name="notifications-mark-all-read"),
    path("feed/", instructor_activity, name="instructor-feed"),
]
