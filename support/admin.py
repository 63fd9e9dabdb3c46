from django.contrib import admin

from .models import SupportTicket, TicketMessage


class TicketMessageInline(admin.TabularInline):
    model = TicketMessage
    extra = 0


@admin.register(SupportTicket)
class SupportTicketAdmin(admin.ModelAdmin):
    list_display = ("id", "subject", "user", "category", "priority", "status", "assignee", "updated_at")
    list_filter = ("status", "priority", "category")
    search_fields = ("subject", "description", "user__username")
    inlines = [TicketMessageInline]
