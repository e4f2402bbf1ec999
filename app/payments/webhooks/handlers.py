"""
Webhook event handlers for Stripe events.

This module provides a handler registry and implementations for the
Stripe events that drive payment, subscription and connected account
state. Handlers are the only code that moves a Payment into escrow or
changes a subscription's tier.

Every handler is idempotent and tolerates redelivery: it locks the row
it changes, checks the current state, and does nothing if the event was
already applied.

Usage:
    from payments.webhooks.handlers import dispatch_webhook, register_handler

    @register_handler("custom.event")
    def handle_custom_event(webhook_event, adapter) -> ServiceResult:
        ...

    result = dispatch_webhook(webhook_event, adapter)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from django.db import transaction

from authentication.models import User
from core.services import ServiceResult
from marketplace.models import Job, Proposal
from notifications.models import NotificationCategory
from notifications.services import NotificationService

from payments.adapters import ConnectedAccountResult
from payments.adapters.stripe_adapter import timestamp_to_datetime
from payments.models import (
    ConnectedAccount,
    Payment,
    Subscription,
    TransactionLogEntry,
    WebhookEvent,
)
from payments.services.connect import apply_account_flags
from payments.services.subscription import plan_for_price
from payments.state_machines import (
    PaymentStatus,
    SubscriptionStatus,
    SubscriptionTier,
    TransactionType,
)

if TYPE_CHECKING:
    from payments.adapters import StripeAdapter

    WebhookHandler = Callable[[WebhookEvent, StripeAdapter], ServiceResult]


logger = logging.getLogger(__name__)

JOB_PAYMENT_TYPE = "job_payment"


# =============================================================================
# Handler Registry
# =============================================================================


# Maps event type strings to handler functions
WEBHOOK_HANDLERS: dict[str, WebhookHandler] = {}


def register_handler(event_type: str) -> Callable:
    """
    Decorator to register a webhook event handler.

    Usage:
        @register_handler("payment_intent.succeeded")
        def handle_payment_succeeded(webhook_event, adapter) -> ServiceResult:
            ...
    """

    def decorator(func: WebhookHandler) -> WebhookHandler:
        WEBHOOK_HANDLERS[event_type] = func
        logger.debug(f"Registered webhook handler for {event_type}")
        return func

    return decorator


def dispatch_webhook(webhook_event: WebhookEvent, adapter: StripeAdapter) -> ServiceResult:
    """
    Dispatch a webhook event to the appropriate handler.

    Unknown event types are acknowledged with a successful result so
    Stripe stops redelivering them.
    """
    handler = WEBHOOK_HANDLERS.get(webhook_event.event_type)

    if not handler:
        logger.info(
            f"No handler registered for event type: {webhook_event.event_type}",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.success(None)

    logger.info(
        f"Dispatching {webhook_event.event_type} to handler",
        extra={"stripe_event_id": webhook_event.stripe_event_id},
    )

    return handler(webhook_event, adapter)


def _invalid_payload(webhook_event: WebhookEvent, missing: str) -> ServiceResult:
    logger.error(
        f"{webhook_event.event_type}: Could not extract {missing}",
        extra={"stripe_event_id": webhook_event.stripe_event_id},
    )
    return ServiceResult.failure(
        f"Could not extract {missing} from webhook",
        error_code="INVALID_WEBHOOK_PAYLOAD",
    )


# =============================================================================
# Subscription Handlers
# =============================================================================


@register_handler("checkout.session.completed")
def handle_checkout_session_completed(
    webhook_event: WebhookEvent, adapter: StripeAdapter
) -> ServiceResult:
    """
    Activate a subscription bought through Checkout.

    Reads the billing period and price from Stripe's subscription, records
    the tier from the session metadata, and logs the first payment.
    Sessions in other modes are ignored.
    """
    session = webhook_event.get_object()

    if session.get("mode") != "subscription":
        logger.info(
            "Ignoring non-subscription checkout session",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.success(None)

    session_id = session.get("id")
    subscription_id = session.get("subscription")
    metadata = session.get("metadata") or {}
    user_id = metadata.get("user_id")

    if not session_id or not subscription_id:
        return _invalid_payload(webhook_event, "session or subscription id")
    if not user_id:
        return _invalid_payload(webhook_event, "metadata.user_id")

    user = User.objects.filter(pk=user_id).first()
    if user is None:
        logger.error(
            "checkout.session.completed: user not found",
            extra={"stripe_event_id": webhook_event.stripe_event_id, "user_id": user_id},
        )
        return ServiceResult.failure(
            f"User not found: {user_id}",
            error_code="USER_NOT_FOUND",
        )

    remote = adapter.retrieve_subscription(subscription_id)
    plan = plan_for_price(remote.price_id)
    tier = metadata.get("tier")
    if tier not in (SubscriptionTier.MESSAGES, SubscriptionTier.PRO):
        tier = SubscriptionTier.PRO
    customer_id = session.get("customer") or remote.customer_id

    with transaction.atomic():
        subscription, _ = Subscription.objects.select_for_update().get_or_create(user=user)

        already_ended = (
            subscription.stripe_subscription_id == subscription_id
            and subscription.status == SubscriptionStatus.CANCELLED
        )
        if already_ended or remote.status == "canceled":
            # customer.subscription.deleted was applied first
            logger.info(
                "Subscription already ended, not reactivating",
                extra={"user_id": str(user.pk), "stripe_subscription_id": subscription_id},
            )
        else:
            subscription.activate(
                stripe_subscription_id=subscription_id,
                stripe_customer_id=customer_id or "",
                tier=tier,
                plan=plan,
                start_date=remote.current_period_start,
                end_date=remote.current_period_end,
            )
            subscription.save()

        if customer_id and user.stripe_customer_id != customer_id:
            user.stripe_customer_id = customer_id
            user.save(update_fields=["stripe_customer_id", "updated_at"])

        TransactionLogEntry.record(
            idempotency_key=f"checkout:{session_id}",
            user=user,
            transaction_type=TransactionType.SUBSCRIPTION,
            amount_cents=session.get("amount_total") or 0,
            currency=session.get("currency") or adapter.currency,
            stripe_session_id=session_id,
            description=f"{tier.title()} subscription ({plan})",
        )

    logger.info(
        "Subscription activated from checkout",
        extra={
            "user_id": str(user.pk),
            "stripe_subscription_id": subscription_id,
            "tier": tier,
            "plan": plan,
        },
    )
    return ServiceResult.success(subscription)


@register_handler("invoice.payment_succeeded")
def handle_invoice_payment_succeeded(
    webhook_event: WebhookEvent, adapter: StripeAdapter
) -> ServiceResult:
    """
    Log a renewal payment and move end_date to the newly paid period end.

    The first invoice of a subscription is logged by the checkout handler,
    so only later invoices are recorded here. A subscription the expiry
    sweep marked expired before the invoice was paid is reactivated.
    """
    invoice = webhook_event.get_object()
    invoice_id = invoice.get("id")
    customer_id = invoice.get("customer")

    if not invoice_id:
        return _invalid_payload(webhook_event, "invoice id")

    user = User.objects.filter(stripe_customer_id=customer_id).first() if customer_id else None
    period_end = timestamp_to_datetime(_invoice_period_end(invoice))

    with transaction.atomic():
        if invoice.get("billing_reason") != "subscription_create":
            TransactionLogEntry.record(
                idempotency_key=f"invoice:{invoice_id}",
                user=user,
                transaction_type=TransactionType.RENEWAL,
                amount_cents=invoice.get("amount_paid") or 0,
                currency=invoice.get("currency") or adapter.currency,
                stripe_invoice_id=invoice_id,
                description="Subscription renewal",
            )

        if user is not None and period_end is not None:
            subscription = (
                Subscription.objects.select_for_update().filter(user=user).first()
            )
            invoice_subscription_id = invoice.get("subscription")
            if subscription is not None and (
                not invoice_subscription_id
                or subscription.stripe_subscription_id in (None, invoice_subscription_id)
            ):
                subscription.renew(period_end)
                subscription.save(update_fields=["end_date", "status", "tier", "updated_at"])

    logger.info(
        "Invoice payment recorded",
        extra={
            "stripe_event_id": webhook_event.stripe_event_id,
            "invoice_id": invoice_id,
            "user_id": str(user.pk) if user else None,
        },
    )
    return ServiceResult.success(None)


def _invoice_period_end(invoice: dict) -> int | None:
    lines = (invoice.get("lines") or {}).get("data") or []
    for line in lines:
        end = (line.get("period") or {}).get("end")
        if end:
            return end
    return None


@register_handler("customer.subscription.deleted")
def handle_subscription_deleted(
    webhook_event: WebhookEvent, adapter: StripeAdapter
) -> ServiceResult:
    """
    Drop the user to the free tier when Stripe ends their subscription.

    Deletion of an older subscription than the one on record is ignored.
    """
    stripe_subscription = webhook_event.get_object()
    subscription_id = stripe_subscription.get("id")
    customer_id = stripe_subscription.get("customer")

    if not customer_id:
        return _invalid_payload(webhook_event, "customer id")

    user = User.objects.filter(stripe_customer_id=customer_id).first()
    if user is None:
        logger.info(
            "No user for deleted subscription's customer",
            extra={"stripe_event_id": webhook_event.stripe_event_id, "customer_id": customer_id},
        )
        return ServiceResult.success(None)

    with transaction.atomic():
        subscription = Subscription.objects.select_for_update().filter(user=user).first()
        if subscription is None:
            return ServiceResult.success(None)

        if (
            subscription.stripe_subscription_id
            and subscription_id
            and subscription.stripe_subscription_id != subscription_id
        ):
            logger.info(
                "Ignoring deletion of superseded subscription",
                extra={
                    "stripe_subscription_id": subscription_id,
                    "current_subscription_id": subscription.stripe_subscription_id,
                },
            )
            return ServiceResult.success(subscription)

        if (
            subscription.status == SubscriptionStatus.CANCELLED
            and subscription.tier == SubscriptionTier.FREE
        ):
            return ServiceResult.success(subscription)

        subscription.cancel()
        subscription.save(update_fields=["status", "tier", "updated_at"])

    logger.info(
        "Subscription cancelled",
        extra={"user_id": str(user.pk), "stripe_subscription_id": subscription_id},
    )
    return ServiceResult.success(subscription)


# =============================================================================
# Payment Intent Handlers
# =============================================================================


@register_handler("payment_intent.succeeded")
def handle_payment_intent_succeeded(
    webhook_event: WebhookEvent, adapter: StripeAdapter
) -> ServiceResult:
    """
    Move a job payment into escrow once Stripe confirms the charge.

    Accepts the proposal, starts the job with the paid freelancer and
    notifies them. A payment that is already held or released is left
    alone. A missing payment is reported as a failure so Stripe retries
    once the hold request has committed.
    """
    intent = webhook_event.get_object()
    payment_intent_id = intent.get("id")
    metadata = intent.get("metadata") or {}

    if metadata.get("type") != JOB_PAYMENT_TYPE:
        logger.info(
            "Ignoring non-job payment intent",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.success(None)

    if not payment_intent_id:
        return _invalid_payload(webhook_event, "payment_intent_id")

    with transaction.atomic():
        payment = (
            Payment.objects.select_for_update()
            .filter(stripe_payment_intent_id=payment_intent_id)
            .first()
        )

        if payment is None:
            logger.warning(
                "Payment not found for payment_intent_id",
                extra={
                    "payment_intent_id": payment_intent_id,
                    "stripe_event_id": webhook_event.stripe_event_id,
                },
            )
            return ServiceResult.failure(
                f"Payment not found for intent: {payment_intent_id}",
                error_code="PAYMENT_NOT_FOUND",
            )

        if payment.status != PaymentStatus.PENDING:
            logger.info(
                "Payment already past pending, nothing to do",
                extra={"payment_id": str(payment.id), "status": payment.status},
            )
            return ServiceResult.success(payment)

        payment.mark_held()
        payment.save()

        proposal = Proposal.objects.select_for_update().get(pk=payment.proposal_id)
        proposal.accept()
        proposal.save(update_fields=["status", "accepted_at", "updated_at"])

        job = Job.objects.select_for_update().get(pk=payment.job_id)
        job.assign(proposal)
        job.save(
            update_fields=[
                "status",
                "payment_status",
                "assigned_freelancer",
                "assigned_proposal",
                "updated_at",
            ]
        )

        NotificationService.create_notification(
            recipient=payment.freelancer,
            category=NotificationCategory.PROPOSAL,
            title="Proposal Accepted!",
            body=(
                f'Your proposal for "{job.title}" has been accepted and the '
                f"client has made the payment."
            ),
            data={"job_id": str(job.id), "payment_id": str(payment.id)},
            action_url=f"/jobs/{job.id}",
            idempotency_key=f"proposal_accepted:{payment.id}",
        )

    logger.info(
        "Job payment held in escrow",
        extra={
            "payment_id": str(payment.id),
            "job_id": str(job.id),
            "amount_cents": payment.amount_cents,
        },
    )
    return ServiceResult.success(payment)


@register_handler("payment_intent.canceled")
def handle_payment_intent_canceled(
    webhook_event: WebhookEvent, adapter: StripeAdapter
) -> ServiceResult:
    """
    Fail a pending job payment whose intent was canceled.

    Frees the job for a new payment attempt.
    """
    intent = webhook_event.get_object()
    payment_intent_id = intent.get("id")

    if (intent.get("metadata") or {}).get("type") != JOB_PAYMENT_TYPE:
        return ServiceResult.success(None)
    if not payment_intent_id:
        return _invalid_payload(webhook_event, "payment_intent_id")

    with transaction.atomic():
        payment = (
            Payment.objects.select_for_update()
            .filter(stripe_payment_intent_id=payment_intent_id)
            .first()
        )
        if payment is None or payment.status != PaymentStatus.PENDING:
            return ServiceResult.success(payment)

        reason = intent.get("cancellation_reason") or "canceled"
        payment.fail(reason=f"Payment intent canceled: {reason}")
        payment.save()

    logger.info(
        "Job payment failed after intent cancellation",
        extra={"payment_id": str(payment.id), "reason": reason},
    )
    return ServiceResult.success(payment)


# =============================================================================
# Connected Account Handlers
# =============================================================================


@register_handler("account.updated")
def handle_account_updated(
    webhook_event: WebhookEvent, adapter: StripeAdapter
) -> ServiceResult:
    """
    Mirror a connected account's flags and derived status.

    Looks the account up by id, falling back to metadata.user_id for an
    account whose local row was never written.
    """
    data_object = webhook_event.get_object()
    account_id = data_object.get("id")

    if not account_id:
        return _invalid_payload(webhook_event, "account_id")

    requirements = data_object.get("requirements") or {}
    remote = ConnectedAccountResult(
        id=account_id,
        charges_enabled=bool(data_object.get("charges_enabled")),
        payouts_enabled=bool(data_object.get("payouts_enabled")),
        details_submitted=bool(data_object.get("details_submitted")),
        disabled_reason=requirements.get("disabled_reason"),
    )

    with transaction.atomic():
        connected_account = ConnectedAccount.objects.filter(
            stripe_account_id=account_id
        ).first()

        if connected_account is None:
            connected_account = _account_from_metadata(data_object, account_id)

        if connected_account is None:
            logger.info(
                "ConnectedAccount not found, may be external account",
                extra={
                    "account_id": account_id,
                    "stripe_event_id": webhook_event.stripe_event_id,
                },
            )
            return ServiceResult.success(None)

        apply_account_flags(connected_account, remote)

    logger.info(
        "ConnectedAccount updated",
        extra={
            "connected_account_id": str(connected_account.id),
            "status": connected_account.status,
            "payouts_enabled": connected_account.payouts_enabled,
            "charges_enabled": connected_account.charges_enabled,
        },
    )
    return ServiceResult.success(connected_account)


def _account_from_metadata(data_object: dict, account_id: str) -> ConnectedAccount | None:
    """Create the local row for an account Stripe knows but we never saved."""
    user_id = (data_object.get("metadata") or {}).get("user_id")
    if not user_id:
        return None

    user = User.objects.filter(pk=user_id).first()
    if user is None:
        return None

    existing = ConnectedAccount.objects.filter(user=user).first()
    if existing is not None:
        logger.warning(
            "User already has a different connected account",
            extra={
                "user_id": str(user.pk),
                "account_id": account_id,
                "existing_account_id": existing.stripe_account_id,
            },
        )
        return None

    return ConnectedAccount.objects.create(user=user, stripe_account_id=account_id)
