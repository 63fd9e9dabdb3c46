"""URL routing for CourseCompass.

The JSON API, its schema and docs live under `api.urls`; a handful of
plain Django JSON views (notifications, activity feed, certificate
downloads) are mounted per app.
"""
from django.contrib import admin
from django.urls import include, path
from django.conf import settings
from django.conf.urls.static import static


urlpatterns = [
    path("admin/", admin.site.urls),
    path("activity/", include("activity.urls")),
    path("certificates/", include("certificates.urls")),
    path("payments/", include("payments.urls")),
    # API schema, docs and versioned endpoints
    path("", include("api.urls")),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
