from __future__ import annotations

import logging

import stripe
from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST
from rest_framework.exceptions import APIException

from .services import handle_stripe_webhook

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def stripe_webhook(request: HttpRequest) -> JsonResponse:
    """Stripe event endpoint; the signature header is mandatory."""
    signature = request.META.get("HTTP_STRIPE_SIGNATURE", "")
    try:
        event_type = handle_stripe_webhook(request.body, signature)
    except (ValueError, stripe.SignatureVerificationError) as exc:
        logger.warning("rejected stripe webhook: %s", exc)
        return JsonResponse({"detail": "Invalid payload or signature"}, status=400)
    except APIException as exc:
        logger.warning("stripe webhook could not be fulfilled: %s", exc.detail)
        return JsonResponse({"detail": "Checkout session could not be fulfilled"}, status=400)
    return JsonResponse({"received": True, "type": event_type})
