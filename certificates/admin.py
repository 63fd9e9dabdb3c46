from django.contrib import admin

from .models import Certificate


@admin.register(Certificate)
class CertificateAdmin(admin.ModelAdmin):
    list_display = ("certificate_id", "user", "course", "issued_at", "revoked")
    list_filter = ("revoked",)
    search_fields = ("certificate_id", "user__username", "course__title")
    readonly_fields = ("certificate_id", "issued_at")
