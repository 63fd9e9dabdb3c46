"""Cart, checkout, payment history, gateway settings and revenue."""
from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action, api_view, permission_classes, throttle_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import UserRateThrottle

from courses.services import get_published_course
from payments import services as payment_services
from payments.cart import Cart
from payments.gateways import check_connection, upi_vpa
from payments.models import PaymentGateway, PaymentMethod
from .permissions import IsAdmin, IsInstructor, IsStudent
from .serializers import (
    CartAddSerializer,
    CartLoadSerializer,
    CheckoutConfirmSerializer,
    CheckoutSerializer,
    EnrolmentSerializer,
    PaymentGatewaySerializer,
    PaymentSerializer,
)


class CheckoutRateThrottle(UserRateThrottle):
    scope = "checkout"


@api_view(["GET", "POST", "DELETE"])
@permission_classes([IsAuthenticated, IsStudent])
def cart_view(request):
    """GET the cart, POST `{"course": id}` to add, DELETE to clear."""
    cart = Cart(request.session)
    if request.method == "POST":
        serializer = CartAddSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        added = payment_services.add_to_cart(cart, request.user, get_published_course(serializer.validated_data["course"]))
        return Response({**cart.as_dict(), "added": added}, status=status.HTTP_201_CREATED if added else status.HTTP_200_OK)
    if request.method == "DELETE":
        cart.clear()
    return Response(cart.as_dict())


@api_view(["DELETE"])
@permission_classes([IsAuthenticated, IsStudent])
def cart_item(request, course_id: int):
    cart = Cart(request.session)
    removed = cart.remove(course_id)
    return Response({**cart.as_dict(), "removed": removed})


@api_view(["POST"])
@permission_classes([IsAuthenticated, IsStudent])
def cart_load(request):
    """Replace the cart with the given published courses (e.g. restoring a saved cart)."""
    serializer = CartLoadSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    cart = Cart(request.session)
    cart.clear()
    for course_id in serializer.validated_data["courses"]:
        payment_services.add_to_cart(cart, request.user, get_published_course(course_id))
    return Response(cart.as_dict())


@api_view(["POST"])
@permission_classes([IsAuthenticated, IsStudent])
@throttle_classes([CheckoutRateThrottle])
def checkout(request):
    serializer = CheckoutSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    method = serializer.validated_data["method"]
    cart = Cart(request.session)
    if method == PaymentMethod.FREE:
        enrolments = payment_services.checkout_free(request.user, cart)
        return Response(
            {"method": method, "enrolments": EnrolmentSerializer(enrolments, many=True).data},
            status=status.HTTP_201_CREATED,
        )
    if method == PaymentMethod.STRIPE:
        session = payment_services.create_stripe_session(request.user, cart)
        return Response(
            {"method": method, "publishable_key": settings.STRIPE_PUBLISHABLE_KEY, **session},
            status=status.HTTP_201_CREATED,
        )
    payments = payment_services.submit_upi_payment(request.user, cart, serializer.validated_data.get("reference", ""))
    total = sum((p.amount for p in payments), Decimal("0"))
    return Response(
        {
            "method": method,
            "vpa": upi_vpa(),
            "amount": float(total),
            "currency": settings.UPI_CURRENCY,
            "payments": PaymentSerializer(payments, many=True).data,
            "detail": "Payment submitted for verification.",
        },
        status=status.HTTP_201_CREATED,
    )


@api_view(["POST"])
@permission_classes([IsAuthenticated, IsStudent])
def checkout_confirm(request):
    """Confirm a Stripe Checkout Session after the redirect back."""
    serializer = CheckoutConfirmSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    payments = payment_services.confirm_stripe_session(request.user, serializer.validated_data["session_id"])
    Cart(request.session).clear()
    return Response({"payments": PaymentSerializer(payments, many=True).data})


class PaymentViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """Payment history for the current user."""

    serializer_class = PaymentSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ["status", "method"]
    ordering_fields = ["created_at", "amount"]

    def get_queryset(self):
        return payment_services.payment_history(self.request.user)


class PaymentGatewayViewSet(viewsets.ModelViewSet):
    queryset = PaymentGateway.objects.all().order_by("name")
    serializer_class = PaymentGatewaySerializer
    permission_classes = [IsAuthenticated, IsAdmin]
    pagination_class = None

    @action(detail=True, methods=["post"])
    def test(self, request, pk=None):
        ok, message = check_connection(self.get_object())
        return Response(
            {"success": ok, "detail": message},
            status=status.HTTP_200_OK if ok else status.HTTP_400_BAD_REQUEST,
        )


@api_view(["GET"])
@permission_classes([IsAuthenticated, IsInstructor])
def instructor_revenue(request):
    return Response(payment_services.instructor_revenue(request.user, request.query_params.get("range", "6m")))
