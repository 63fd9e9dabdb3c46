"""Support tickets for users and the staff support desk."""
from __future__ import annotations

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.models import is_admin_user
from support import services as support_services
from .permissions import IsAdmin
from .serializers import (
    SupportTicketSerializer,
    TicketCreateSerializer,
    TicketMessageSerializer,
    TicketReplySerializer,
    TicketUpdateSerializer,
)


class SupportTicketViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    """The current user's tickets (`?status=` filter)."""

    serializer_class = SupportTicketSerializer
    permission_classes = [IsAuthenticated]
    filter_backends: list = []

    def get_queryset(self):
        return support_services.user_tickets(self.request.user, self.request.query_params.get("status"))

    def get_object(self):
        return support_services.get_ticket_for(self.request.user, self.kwargs["pk"])

    def get_serializer_context(self):
        return {**super().get_serializer_context(), "staff": is_admin_user(self.request.user)}

    def create(self, request, *args, **kwargs):
        serializer = TicketCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ticket = support_services.create_ticket(request.user, **serializer.validated_data)
        return Response(
            self.get_serializer(support_services.get_ticket_for(request.user, ticket.pk)).data,
            status=status.HTTP_201_CREATED,
        )

    def retrieve(self, request, *args, **kwargs):
        ticket = self.get_object()
        support_services.record_view(ticket, request.user)
        messages = support_services.visible_messages(ticket, request.user)
        data = self.get_serializer(ticket).data
        data["messages"] = TicketMessageSerializer(messages, many=True).data
        return Response(data)

    @action(detail=True, methods=["post"])
    def messages(self, request, pk=None):
        ticket = self.get_object()
        serializer = TicketReplySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        msg = support_services.add_message(ticket, request.user, **serializer.validated_data)
        return Response(TicketMessageSerializer(msg).data, status=status.HTTP_201_CREATED)


class AdminSupportTicketViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """Support desk: all tickets with filters, updates, internal notes and stats."""

    serializer_class = SupportTicketSerializer
    permission_classes = [IsAuthenticated, IsAdmin]
    filter_backends: list = []

    def get_queryset(self):
        params = self.request.query_params
        return support_services.admin_tickets(
            status=params.get("status"),
            priority=params.get("priority"),
            category=params.get("category"),
            assignee=params.get("assignee"),
            search=params.get("search"),
        )

    def get_serializer_context(self):
        return {**super().get_serializer_context(), "staff": True}

    def list(self, request, *args, **kwargs):
        response = super().list(request, *args, **kwargs)
        response.data["stats"] = support_services.ticket_stats()
        return response

    def retrieve(self, request, *args, **kwargs):
        ticket = self.get_object()
        data = self.get_serializer(ticket).data
        data["messages"] = TicketMessageSerializer(
            support_services.visible_messages(ticket, request.user), many=True
        ).data
        return Response(data)

    def partial_update(self, request, *args, **kwargs):
        ticket = self.get_object()
        serializer = TicketUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        support_services.update_ticket(request.user, ticket, serializer.validated_data)
        return Response(self.get_serializer(self.get_object()).data)

    @action(detail=True, methods=["post"])
    def messages(self, request, pk=None):
        ticket = self.get_object()
        serializer = TicketReplySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        msg = support_services.add_message(ticket, request.user, **serializer.validated_data)
        return Response(TicketMessageSerializer(msg).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["get"])
    def stats(self, request):
        return Response(support_services.ticket_stats())
