from django.contrib import admin

from .models import Payment, PaymentGateway


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("transaction_id", "student", "course", "amount", "currency", "method", "status", "created_at")
    list_filter = ("method", "status")
    search_fields = ("transaction_id", "student__username", "course__title")


@admin.register(PaymentGateway)
class PaymentGatewayAdmin(admin.ModelAdmin):
    list_display = ("name", "display_name", "enabled", "test_mode")
    list_filter = ("enabled", "test_mode")
