"""Gateway credentials and connectivity checks.

Enabled `PaymentGateway` rows win over environment settings so admins
can rotate keys without a deploy.
"""
from __future__ import annotations

import logging

import stripe
from django.conf import settings

from .models import PaymentGateway

logger = logging.getLogger(__name__)


def get_gateway(name: str) -> PaymentGateway | None:
    return PaymentGateway.objects.filter(name=name, enabled=True).first()


def stripe_secret_key() -> str:
    gateway = get_gateway(PaymentGateway.NAME_STRIPE)
    if gateway and gateway.secret_key:
        return gateway.secret_key
    return settings.STRIPE_SECRET_KEY


def stripe_webhook_secret() -> str:
    gateway = get_gateway(PaymentGateway.NAME_STRIPE)
    if gateway and gateway.webhook_secret:
        return gateway.webhook_secret
    return settings.STRIPE_WEBHOOK_SECRET


def upi_vpa() -> str:
    gateway = get_gateway(PaymentGateway.NAME_UPI)
    if gateway and (gateway.configuration or {}).get("vpa"):
        return gateway.configuration["vpa"]
    return settings.UPI_VPA


def check_connection(gateway: PaymentGateway) -> tuple[bool, str]:
    """Return `(ok, message)`; Stripe is checked with a balance lookup."""
    if gateway.name == PaymentGateway.NAME_STRIPE:
        if not gateway.secret_key:
            return False, "Missing required Stripe credentials"
        try:
            stripe.Balance.retrieve(api_key=gateway.secret_key)
        except stripe.StripeError as exc:
            logger.warning("stripe connection test failed: %s", exc)
            return False, getattr(exc, "user_message", None) or str(exc)
        return True, "Stripe connection successful"
    if gateway.name == PaymentGateway.NAME_UPI:
        vpa = (gateway.configuration or {}).get("vpa") or settings.UPI_VPA
        if not vpa:
            return False, "UPI VPA is not configured"
        return True, f"UPI configured for {vpa}"
    return False, "Unsupported gateway type"
