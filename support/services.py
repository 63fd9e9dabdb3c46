"""Support ticket operations for users and staff."""
from __future__ import annotations

import logging
from typing import Any

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Count, Q, QuerySet
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from accounts.models import is_admin_user
from activity.models import ActivityType, Notification
from activity.services import log_activity, notify
from .models import (
    CLOSED_STATUSES,
    SupportTicket,
    TicketCategory,
    TicketMessage,
    TicketPriority,
    TicketStatus,
)

User = get_user_model()
logger = logging.getLogger(__name__)

MAX_SUBJECT = 200


def can_access(user, ticket: SupportTicket) -> bool:
    return bool(getattr(user, "is_authenticated", False) and (ticket.user_id == user.id or is_admin_user(user)))


def with_counts(qs: QuerySet) -> QuerySet:
    return qs.annotate(message_count=Count("messages", filter=Q(messages__is_internal=False), distinct=True))


def get_ticket_for(user, pk) -> SupportTicket:
    try:
        ticket = with_counts(SupportTicket.objects.select_related("user", "assignee")).get(pk=pk)
    except (SupportTicket.DoesNotExist, ValueError) as exc:
        raise NotFound("Ticket not found.") from exc
    if not can_access(user, ticket):
        # Do not reveal other users' tickets
        raise NotFound("Ticket not found.")
    return ticket


def user_tickets(user, status: str | None = None) -> QuerySet:
    qs = SupportTicket.objects.filter(user=user).select_related("assignee")
    if status and status != "all":
        qs = qs.filter(status=status.lower())
    return with_counts(qs).order_by("-updated_at", "-id")


def admin_tickets(
    *,
    status: str | None = None,
    priority: str | None = None,
    category: str | None = None,
    assignee: str | None = None,
    search: str | None = None,
) -> QuerySet:
    qs = SupportTicket.objects.select_related("user", "assignee")
    if status and status != "all":
        qs = qs.filter(status=status.lower())
    if priority and priority != "all":
        qs = qs.filter(priority=priority.lower())
    if category and category != "all":
        qs = qs.filter(category=category.lower())
    if assignee and assignee != "all":
        if assignee == "unassigned":
            qs = qs.filter(assignee__isnull=True)
        else:
            qs = qs.filter(assignee_id=assignee)
    search = (search or "").strip()
    if search:
        qs = qs.filter(
            Q(subject__icontains=search)
            | Q(description__icontains=search)
            | Q(user__username__icontains=search)
            | Q(user__email__icontains=search)
        )
    return with_counts(qs).order_by("-updated_at", "-id")


def latest_message(ticket: SupportTicket, *, include_internal: bool = False) -> TicketMessage | None:
    qs = ticket.messages.select_related("sender")
    if not include_internal:
        qs = qs.filter(is_internal=False)
    return qs.order_by("-created_at", "-id").first()


def visible_messages(ticket: SupportTicket, user) -> QuerySet:
    qs = ticket.messages.select_related("sender").order_by("created_at", "id")
    if not is_admin_user(user):
        qs = qs.filter(is_internal=False)
    return qs


@transaction.atomic
def create_ticket(
    user,
    *,
    subject: str,
    description: str,
    category: str = TicketCategory.GENERAL,
    priority: str = TicketPriority.MEDIUM,
) -> SupportTicket:
    subject = (subject or "").strip()
    description = (description or "").strip()
    errors: dict[str, list[str]] = {}
    if not subject:
        errors["subject"] = ["This field is required."]
    elif len(subject) > MAX_SUBJECT:
        errors["subject"] = [f"Subject must be at most {MAX_SUBJECT} characters."]
    if not description:
        errors["description"] = ["This field is required."]
    if category not in TicketCategory.values:
        errors["category"] = ["Unknown category."]
    if priority not in TicketPriority.values:
        errors["priority"] = ["Unknown priority."]
    if errors:
        raise ValidationError(errors)

    ticket = SupportTicket.objects.create(
        user=user, subject=subject, description=description, category=category, priority=priority
    )
    TicketMessage.objects.create(ticket=ticket, sender=user, message=description)
    log_activity(
        user,
        ActivityType.SUPPORT_TICKET_CREATED,
        f"Created support ticket: {subject}",
        {"ticket_id": ticket.pk, "category": category, "priority": priority},
    )
    logger.info("support ticket %s created by user %s", ticket.pk, user.pk)
    return ticket


@transaction.atomic
def add_message(ticket: SupportTicket, sender, message: str, *, is_internal: bool = False) -> TicketMessage:
    """Append to the thread.

    Owner replies reopen resolved/closed tickets; the first staff reply
    moves an open ticket to in progress. Only staff may post internal notes.
    """
    message = (message or "").strip()
    if not message:
        raise ValidationError({"message": ["This field is required."]})
    staff = is_admin_user(sender)
    if not (ticket.user_id == sender.id or staff):
        raise PermissionDenied("Not permitted.")
    if is_internal and not staff:
        raise PermissionDenied("Only support staff can add internal notes.")

    msg = TicketMessage.objects.create(ticket=ticket, sender=sender, message=message, is_internal=is_internal)
    if ticket.user_id == sender.id and ticket.status in CLOSED_STATUSES:
        ticket.status = TicketStatus.OPEN
        ticket.resolved_at = None
    elif staff and ticket.user_id != sender.id and ticket.status == TicketStatus.OPEN:
        ticket.status = TicketStatus.IN_PROGRESS
    ticket.save(update_fields=["status", "resolved_at", "updated_at"])

    if staff and ticket.user_id != sender.id:
        log_activity(
            sender,
            ActivityType.TICKET_UPDATED,
            f"Added {'internal note' if is_internal else 'response'} to ticket #{ticket.pk}",
            {"ticket_id": ticket.pk, "is_internal": is_internal},
        )
        if not is_internal:
            notify(ticket.user, Notification.TYPE_SUPPORT, f"New reply on ticket: {ticket.subject}", actor=sender)
    return msg


def record_view(ticket: SupportTicket, user) -> None:
    log_activity(user, ActivityType.TICKET_VIEWED, f"Viewed support ticket #{ticket.pk}", {"ticket_id": ticket.pk})


@transaction.atomic
def update_ticket(admin, ticket: SupportTicket, changes: dict[str, Any]) -> SupportTicket:
    """Staff update of status, priority, assignee and resolution."""
    applied: dict[str, Any] = {}
    status = changes.get("status")
    if status:
        if status not in TicketStatus.values:
            raise ValidationError({"status": ["Unknown status."]})
        ticket.status = status
        applied["status"] = status
        if status in CLOSED_STATUSES:
            ticket.resolved_at = timezone.now()
        else:
            ticket.resolved_at = None
    priority = changes.get("priority")
    if priority:
        if priority not in TicketPriority.values:
            raise ValidationError({"priority": ["Unknown priority."]})
        ticket.priority = priority
        applied["priority"] = priority
    if "assignee" in changes:
        assignee_id = changes.get("assignee")
        if assignee_id in (None, "", 0):
            ticket.assignee = None
        else:
            assignee = User.objects.filter(pk=assignee_id).first()
            if assignee is None or not is_admin_user(assignee):
                raise ValidationError({"assignee": ["Tickets can only be assigned to support staff."]})
            ticket.assignee = assignee
        applied["assignee"] = ticket.assignee_id
    resolution = (changes.get("resolution") or "").strip()
    if resolution:
        ticket.resolution = resolution
        applied["resolution"] = resolution
        TicketMessage.objects.create(ticket=ticket, sender=admin, message=resolution, is_internal=True)
    ticket.save()

    log_activity(
        admin,
        ActivityType.TICKET_UPDATED,
        f"Updated support ticket #{ticket.pk}",
        {"ticket_id": ticket.pk, "changes": applied, "user_id": ticket.user_id},
    )
    return ticket


def ticket_stats() -> dict[str, int]:
    counts = {value: 0 for value in TicketStatus.values}
    for row in SupportTicket.objects.values("status").annotate(n=Count("id")):
        counts[row["status"]] = row["n"]
    counts["total"] = sum(counts.values())
    return counts
