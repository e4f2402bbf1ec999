"""
Webhook endpoint view for Stripe.

The view:
1. Verifies the webhook signature (nothing is stored for a bad one)
2. Creates/retrieves the WebhookEvent record (idempotent)
3. Dispatches the event to its handler inside a transaction
4. Answers 200 on success, 500 on failure so Stripe redelivers

Events are applied synchronously: a failed handler must turn into a
non-2xx response, which is the only retry signal Stripe understands.

Usage:
    # In urls.py
    from payments.webhooks.views import stripe_webhook

    urlpatterns = [
        path("webhooks/stripe/", stripe_webhook, name="stripe-webhook"),
    ]
"""

from __future__ import annotations

import logging

from django.db import transaction
from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from payments.adapters import StripeAdapter
from payments.exceptions import StripeSignatureError
from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus
from payments.webhooks.handlers import dispatch_webhook


logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def stripe_webhook(request: HttpRequest) -> JsonResponse:
    """
    Receive and apply a Stripe webhook event.

    Security:
    - Signature verification with STRIPE_WEBHOOK_SECRET
    - CSRF exemption required for external webhooks
    - Only POST requests accepted

    Idempotency:
    - WebhookEvent.stripe_event_id is unique
    - Already processed events return 200 without dispatching
    - Failed events are dispatched again on redelivery

    Returns:
        JsonResponse with status:
        - 200: Event applied (or already applied, or not handled)
        - 400: Missing or invalid signature, or malformed event
        - 500: Handler failed; Stripe will redeliver
    """
    payload = request.body
    signature = request.headers.get("Stripe-Signature", "")

    if not signature:
        logger.warning("Webhook received without Stripe-Signature header")
        return JsonResponse({"error": "Missing signature"}, status=400)

    adapter = StripeAdapter.from_settings()

    # Step 1: Verify signature
    try:
        event_data = adapter.verify_webhook_signature(payload, signature)
    except StripeSignatureError as e:
        logger.warning(
            "Webhook signature verification failed",
            extra={"error": e.message, "stripe_code": e.stripe_code},
        )
        return JsonResponse({"error": e.message}, status=400)

    stripe_event_id = event_data.get("id")
    event_type = event_data.get("type")

    if not stripe_event_id or not event_type:
        logger.warning("Webhook missing required fields")
        return JsonResponse({"error": "Invalid event"}, status=400)

    logger.info(
        f"Received Stripe webhook: {event_type}",
        extra={"stripe_event_id": stripe_event_id, "event_type": event_type},
    )

    # Step 2: Create/get WebhookEvent (idempotent)
    webhook_event, created = WebhookEvent.objects.get_or_create(
        stripe_event_id=stripe_event_id,
        defaults={
            "event_type": event_type,
            "payload": event_data,
            "status": WebhookEventStatus.PENDING,
        },
    )

    # Step 3: If already processed, acknowledge
    if not created and webhook_event.is_processed:
        logger.info(
            "Webhook already processed, returning success",
            extra={"stripe_event_id": stripe_event_id},
        )
        return JsonResponse({"received": True})

    # Step 4: Apply
    if process_webhook_event(webhook_event, adapter):
        return JsonResponse({"received": True})
    return JsonResponse({"error": "Webhook processing failed"}, status=500)


def process_webhook_event(webhook_event: WebhookEvent, adapter: StripeAdapter) -> bool:
    """
    Dispatch one event and record the outcome on its WebhookEvent row.

    The handler's writes are rolled back if it raises or returns a failed
    result; the WebhookEvent row keeps the error either way.

    Returns:
        True if the event was applied
    """
    webhook_event.mark_processing()
    webhook_event.save(update_fields=["status", "attempt_count", "updated_at"])

    error_message = None
    try:
        with transaction.atomic():
            result = dispatch_webhook(webhook_event, adapter)
            if not result.success:
                transaction.set_rollback(True)
                error_message = result.describe()
    except Exception as e:
        logger.error(
            f"Webhook handler raised {type(e).__name__}",
            extra={
                "stripe_event_id": webhook_event.stripe_event_id,
                "event_type": webhook_event.event_type,
            },
            exc_info=True,
        )
        error_message = f"{type(e).__name__}: {e}"

    if error_message is not None:
        webhook_event.mark_failed(error_message)
        webhook_event.save(update_fields=["status", "error_message", "updated_at"])
        logger.warning(
            "Webhook processing failed",
            extra={
                "stripe_event_id": webhook_event.stripe_event_id,
                "error": error_message,
                "attempt_count": webhook_event.attempt_count,
            },
        )
        return False

    webhook_event.mark_processed()
    webhook_event.save(
        update_fields=["status", "processed_at", "error_message", "updated_at"]
    )
    logger.info(
        "Webhook processed",
        extra={
            "stripe_event_id": webhook_event.stripe_event_id,
            "event_type": webhook_event.event_type,
        },
    )
    return True
