"""
Tests for webhook event handlers.

Tests cover:
- Handler registration and dispatch
- payment_intent.succeeded / payment_intent.canceled handling
- account.updated handling
- checkout.session.completed handling
- invoice.payment_succeeded handling
- customer.subscription.deleted handling
- Redelivery of an already applied event
"""

from datetime import datetime, timezone

import pytest

from authentication.tests.factories import FreelancerFactory, UserFactory
from core.services import ServiceResult
from marketplace.models import Job, JobPaymentStatus, JobStatus, Proposal, ProposalStatus
from notifications.models import Notification
from payments.adapters import SubscriptionResult
from payments.models import ConnectedAccount, Payment, Subscription, TransactionLogEntry
from payments.services import SubscriptionManager
from payments.state_machines import (
    ConnectStatus,
    PaymentStatus,
    SubscriptionPlan,
    SubscriptionStatus,
    SubscriptionTier,
    TransactionType,
)
from payments.tests.factories import (
    ConnectedAccountFactory,
    HeldPaymentFactory,
    SubscriptionFactory,
)
from payments.webhooks.handlers import (
    WEBHOOK_HANDLERS,
    dispatch_webhook,
    handle_account_updated,
    handle_checkout_session_completed,
    handle_invoice_payment_succeeded,
    handle_payment_intent_canceled,
    handle_payment_intent_succeeded,
    handle_subscription_deleted,
    register_handler,
)


# =============================================================================
# Handler Registration Tests
# =============================================================================


class TestRegisterHandler:
    """Tests for handler registration decorator."""

    @pytest.mark.parametrize(
        "event_type,handler",
        [
            ("payment_intent.succeeded", handle_payment_intent_succeeded),
            ("payment_intent.canceled", handle_payment_intent_canceled),
            ("account.updated", handle_account_updated),
            ("checkout.session.completed", handle_checkout_session_completed),
            ("invoice.payment_succeeded", handle_invoice_payment_succeeded),
            ("customer.subscription.deleted", handle_subscription_deleted),
        ],
    )
    def test_handlers_registered_at_import(self, event_type, handler):
        assert WEBHOOK_HANDLERS[event_type] is handler

    def test_register_new_handler(self):
        """Should register a new handler."""

        @register_handler("test.event.type")
        def test_handler(webhook_event, adapter):
            return ServiceResult.success(None)

        try:
            assert WEBHOOK_HANDLERS["test.event.type"] is test_handler
        finally:
            del WEBHOOK_HANDLERS["test.event.type"]


class TestDispatchWebhook:
    """Tests for webhook dispatch function."""

    def test_unknown_event_type_acknowledged(self, webhook_event_factory, mock_adapter):
        event = webhook_event_factory("customer.created", {"id": "cus_1"})

        result = dispatch_webhook(event, mock_adapter)

        assert result.success is True
        assert result.data is None

    def test_dispatches_to_registered_handler(self, webhook_event_factory, mock_adapter):
        event = webhook_event_factory(
            "payment_intent.succeeded",
            {"id": "pi_unknown", "metadata": {"type": "job_payment"}},
        )

        result = dispatch_webhook(event, mock_adapter)

        assert result.success is False
        assert result.error_code == "PAYMENT_NOT_FOUND"


# =============================================================================
# payment_intent.succeeded
# =============================================================================


class TestHandlePaymentIntentSucceeded:
    """Tests for the escrow hold confirmation."""

    def test_moves_payment_into_escrow(
        self, pending_payment, webhook_event_factory, payment_intent_object, mock_adapter
    ):
        event = webhook_event_factory("payment_intent.succeeded", payment_intent_object())

        result = handle_payment_intent_succeeded(event, mock_adapter)

        assert result.success is True
        payment = Payment.objects.get(pk=pending_payment.pk)
        assert payment.status == PaymentStatus.HELD_IN_ESCROW
        assert payment.paid_at is not None

    def test_accepts_proposal_and_starts_job(
        self, pending_payment, webhook_event_factory, payment_intent_object, mock_adapter
    ):
        event = webhook_event_factory("payment_intent.succeeded", payment_intent_object())

        handle_payment_intent_succeeded(event, mock_adapter)

        proposal = Proposal.objects.get(pk=pending_payment.proposal_id)
        assert proposal.status == ProposalStatus.ACCEPTED
        assert proposal.accepted_at is not None

        job = Job.objects.get(pk=pending_payment.job_id)
        assert job.status == JobStatus.IN_PROGRESS
        assert job.payment_status == JobPaymentStatus.ESCROW
        assert job.assigned_freelancer_id == pending_payment.freelancer_id
        assert job.assigned_proposal_id == pending_payment.proposal_id

    def test_notifies_freelancer(
        self, pending_payment, webhook_event_factory, payment_intent_object, mock_adapter
    ):
        event = webhook_event_factory("payment_intent.succeeded", payment_intent_object())

        handle_payment_intent_succeeded(event, mock_adapter)

        notification = Notification.objects.get(recipient=pending_payment.freelancer)
        assert notification.title == "Proposal Accepted!"
        assert notification.data["payment_id"] == str(pending_payment.id)

    def test_redelivery_changes_nothing(
        self, pending_payment, webhook_event_factory, payment_intent_object, mock_adapter
    ):
        first = webhook_event_factory("payment_intent.succeeded", payment_intent_object())
        second = webhook_event_factory("payment_intent.succeeded", payment_intent_object())

        handle_payment_intent_succeeded(first, mock_adapter)
        paid_at = Payment.objects.get(pk=pending_payment.pk).paid_at
        result = handle_payment_intent_succeeded(second, mock_adapter)

        assert result.success is True
        payment = Payment.objects.get(pk=pending_payment.pk)
        assert payment.status == PaymentStatus.HELD_IN_ESCROW
        assert payment.paid_at == paid_at
        assert Notification.objects.filter(recipient=pending_payment.freelancer).count() == 1

    def test_released_payment_left_alone(
        self, webhook_event_factory, payment_intent_object, mock_adapter
    ):
        payment = HeldPaymentFactory(stripe_payment_intent_id="pi_released")
        payment.release("tr_1", 1000, 9000)
        payment.save()
        event = webhook_event_factory(
            "payment_intent.succeeded", payment_intent_object("pi_released")
        )

        result = handle_payment_intent_succeeded(event, mock_adapter)

        assert result.success is True
        assert Payment.objects.get(pk=payment.pk).status == PaymentStatus.RELEASED

    def test_non_job_intent_ignored(
        self, pending_payment, webhook_event_factory, payment_intent_object, mock_adapter
    ):
        event = webhook_event_factory(
            "payment_intent.succeeded", payment_intent_object(metadata={})
        )

        result = handle_payment_intent_succeeded(event, mock_adapter)

        assert result.success is True
        assert result.data is None
        assert Payment.objects.get(pk=pending_payment.pk).status == PaymentStatus.PENDING

    def test_unknown_intent_fails_for_retry(
        self, webhook_event_factory, payment_intent_object, mock_adapter
    ):
        event = webhook_event_factory(
            "payment_intent.succeeded", payment_intent_object("pi_not_yet_committed")
        )

        result = handle_payment_intent_succeeded(event, mock_adapter)

        assert result.success is False
        assert result.error_code == "PAYMENT_NOT_FOUND"

    def test_missing_intent_id(self, webhook_event_factory, mock_adapter):
        event = webhook_event_factory(
            "payment_intent.succeeded", {"metadata": {"type": "job_payment"}}
        )

        result = handle_payment_intent_succeeded(event, mock_adapter)

        assert result.error_code == "INVALID_WEBHOOK_PAYLOAD"


# =============================================================================
# payment_intent.canceled
# =============================================================================


class TestHandlePaymentIntentCanceled:
    def test_fails_pending_payment(
        self, pending_payment, webhook_event_factory, payment_intent_object, mock_adapter
    ):
        event = webhook_event_factory(
            "payment_intent.canceled",
            payment_intent_object(status="canceled", cancellation_reason="abandoned"),
        )

        result = handle_payment_intent_canceled(event, mock_adapter)

        assert result.success is True
        payment = Payment.objects.get(pk=pending_payment.pk)
        assert payment.status == PaymentStatus.FAILED
        assert payment.failure_reason == "Payment intent canceled: abandoned"

    def test_held_payment_untouched(
        self, webhook_event_factory, payment_intent_object, mock_adapter
    ):
        payment = HeldPaymentFactory(stripe_payment_intent_id="pi_held_cancel")
        event = webhook_event_factory(
            "payment_intent.canceled", payment_intent_object("pi_held_cancel")
        )

        result = handle_payment_intent_canceled(event, mock_adapter)

        assert result.success is True
        assert Payment.objects.get(pk=payment.pk).status == PaymentStatus.HELD_IN_ESCROW


# =============================================================================
# account.updated
# =============================================================================


class TestHandleAccountUpdated:
    """Tests for mirroring connected account flags."""

    def test_mirrors_flags(self, webhook_event_factory, mock_adapter):
        account = ConnectedAccountFactory(
            stripe_account_id="acct_mirror",
            status=ConnectStatus.PENDING,
            details_submitted=False,
            charges_enabled=False,
            payouts_enabled=False,
        )
        event = webhook_event_factory(
            "account.updated",
            {
                "id": "acct_mirror",
                "charges_enabled": True,
                "payouts_enabled": True,
                "details_submitted": True,
                "requirements": {"disabled_reason": None},
            },
        )

        result = handle_account_updated(event, mock_adapter)

        assert result.success is True
        account.refresh_from_db()
        assert account.status == ConnectStatus.ACTIVE
        assert account.payouts_enabled is True
        assert account.charges_enabled is True

    def test_restricted_when_disabled(self, webhook_event_factory, mock_adapter):
        account = ConnectedAccountFactory(
            stripe_account_id="acct_restricted", details_submitted=False
        )
        event = webhook_event_factory(
            "account.updated",
            {
                "id": "acct_restricted",
                "details_submitted": False,
                "requirements": {"disabled_reason": "rejected.fraud"},
            },
        )

        handle_account_updated(event, mock_adapter)

        account.refresh_from_db()
        assert account.status == ConnectStatus.RESTRICTED
        assert account.payouts_enabled is False

    def test_creates_missing_row_from_metadata(self, webhook_event_factory, mock_adapter):
        freelancer = FreelancerFactory()
        event = webhook_event_factory(
            "account.updated",
            {
                "id": "acct_orphan",
                "details_submitted": True,
                "payouts_enabled": True,
                "metadata": {"user_id": str(freelancer.pk)},
            },
        )

        result = handle_account_updated(event, mock_adapter)

        account = ConnectedAccount.objects.get(user=freelancer)
        assert result.data == account
        assert account.stripe_account_id == "acct_orphan"
        assert account.status == ConnectStatus.ACTIVE

    def test_keeps_existing_account_for_user(self, webhook_event_factory, mock_adapter):
        existing = ConnectedAccountFactory(stripe_account_id="acct_existing")
        event = webhook_event_factory(
            "account.updated",
            {"id": "acct_other", "metadata": {"user_id": str(existing.user_id)}},
        )

        result = handle_account_updated(event, mock_adapter)

        assert result.success is True
        assert result.data is None
        assert not ConnectedAccount.objects.filter(stripe_account_id="acct_other").exists()

    def test_unknown_account_acknowledged(self, webhook_event_factory, mock_adapter):
        event = webhook_event_factory("account.updated", {"id": "acct_elsewhere"})

        result = handle_account_updated(event, mock_adapter)

        assert result.success is True
        assert result.data is None

    def test_missing_account_id(self, webhook_event_factory, mock_adapter):
        event = webhook_event_factory("account.updated", {})

        result = handle_account_updated(event, mock_adapter)

        assert result.error_code == "INVALID_WEBHOOK_PAYLOAD"


# =============================================================================
# checkout.session.completed
# =============================================================================


@pytest.fixture
def checkout_session():
    """Factory for a subscription-mode Checkout Session data.object."""

    def _create(user, **overrides) -> dict:
        data = {
            "id": "cs_test_1",
            "object": "checkout.session",
            "mode": "subscription",
            "customer": "cus_checkout",
            "subscription": "sub_checkout",
            "amount_total": 19999,
            "currency": "usd",
            "metadata": {"user_id": str(user.pk), "tier": "pro"},
        }
        data.update(overrides)
        return data

    return _create


class TestHandleCheckoutSessionCompleted:
    """Tests for subscription activation."""

    def test_activates_subscription(
        self, client_user, webhook_event_factory, checkout_session, mock_adapter
    ):
        event = webhook_event_factory(
            "checkout.session.completed", checkout_session(client_user)
        )

        result = handle_checkout_session_completed(event, mock_adapter)

        assert result.success is True
        subscription = Subscription.objects.get(user=client_user)
        assert subscription.status == SubscriptionStatus.ACTIVE
        assert subscription.tier == SubscriptionTier.PRO
        assert subscription.plan == SubscriptionPlan.YEARLY
        assert subscription.stripe_subscription_id == "sub_checkout"
        assert subscription.start_date == datetime(2026, 1, 1, tzinfo=timezone.utc)
        assert subscription.end_date == datetime(2027, 1, 1, tzinfo=timezone.utc)
        mock_adapter.retrieve_subscription.assert_called_once_with("sub_checkout")

    def test_saves_customer_on_user(
        self, client_user, webhook_event_factory, checkout_session, mock_adapter
    ):
        event = webhook_event_factory(
            "checkout.session.completed", checkout_session(client_user)
        )

        handle_checkout_session_completed(event, mock_adapter)

        client_user.refresh_from_db()
        assert client_user.stripe_customer_id == "cus_checkout"

    def test_logs_first_payment_once(
        self, client_user, webhook_event_factory, checkout_session, mock_adapter
    ):
        first = webhook_event_factory(
            "checkout.session.completed", checkout_session(client_user)
        )
        second = webhook_event_factory(
            "checkout.session.completed", checkout_session(client_user)
        )

        handle_checkout_session_completed(first, mock_adapter)
        handle_checkout_session_completed(second, mock_adapter)

        entry = TransactionLogEntry.objects.get(idempotency_key="checkout:cs_test_1")
        assert entry.transaction_type == TransactionType.SUBSCRIPTION
        assert entry.amount_cents == 19999
        assert entry.stripe_session_id == "cs_test_1"
        assert entry.user == client_user
        assert Subscription.objects.filter(user=client_user).count() == 1

    def test_messages_tier_kept(
        self, client_user, webhook_event_factory, checkout_session, mock_adapter
    ):
        event = webhook_event_factory(
            "checkout.session.completed",
            checkout_session(
                client_user, metadata={"user_id": str(client_user.pk), "tier": "messages"}
            ),
        )

        handle_checkout_session_completed(event, mock_adapter)

        assert Subscription.objects.get(user=client_user).tier == SubscriptionTier.MESSAGES

    def test_unrecognized_tier_becomes_pro(
        self, client_user, webhook_event_factory, checkout_session, mock_adapter
    ):
        event = webhook_event_factory(
            "checkout.session.completed",
            checkout_session(client_user, metadata={"user_id": str(client_user.pk)}),
        )

        handle_checkout_session_completed(event, mock_adapter)

        assert Subscription.objects.get(user=client_user).tier == SubscriptionTier.PRO

    def test_does_not_reactivate_ended_subscription(
        self, client_user, webhook_event_factory, checkout_session, mock_adapter
    ):
        SubscriptionFactory(
            user=client_user,
            stripe_subscription_id="sub_checkout",
            status=SubscriptionStatus.CANCELLED,
            tier=SubscriptionTier.FREE,
        )
        event = webhook_event_factory(
            "checkout.session.completed", checkout_session(client_user)
        )

        result = handle_checkout_session_completed(event, mock_adapter)

        assert result.success is True
        subscription = Subscription.objects.get(user=client_user)
        assert subscription.status == SubscriptionStatus.CANCELLED
        assert subscription.tier == SubscriptionTier.FREE

    def test_canceled_remote_subscription_not_activated(
        self, client_user, webhook_event_factory, checkout_session, mock_adapter
    ):
        mock_adapter.retrieve_subscription.return_value = SubscriptionResult(
            id="sub_checkout", customer_id="cus_checkout", status="canceled"
        )
        event = webhook_event_factory(
            "checkout.session.completed", checkout_session(client_user)
        )

        handle_checkout_session_completed(event, mock_adapter)

        assert Subscription.objects.get(user=client_user).tier == SubscriptionTier.FREE

    def test_payment_mode_session_ignored(
        self, client_user, webhook_event_factory, checkout_session, mock_adapter
    ):
        event = webhook_event_factory(
            "checkout.session.completed", checkout_session(client_user, mode="payment")
        )

        result = handle_checkout_session_completed(event, mock_adapter)

        assert result.success is True
        assert not Subscription.objects.filter(user=client_user).exists()
        mock_adapter.retrieve_subscription.assert_not_called()

    def test_missing_user_id(
        self, client_user, webhook_event_factory, checkout_session, mock_adapter
    ):
        event = webhook_event_factory(
            "checkout.session.completed", checkout_session(client_user, metadata={})
        )

        result = handle_checkout_session_completed(event, mock_adapter)

        assert result.error_code == "INVALID_WEBHOOK_PAYLOAD"

    def test_unknown_user(self, webhook_event_factory, mock_adapter):
        event = webhook_event_factory(
            "checkout.session.completed",
            {
                "id": "cs_ghost",
                "mode": "subscription",
                "subscription": "sub_ghost",
                "metadata": {"user_id": "999999"},
            },
        )

        result = handle_checkout_session_completed(event, mock_adapter)

        assert result.error_code == "USER_NOT_FOUND"


# =============================================================================
# invoice.payment_succeeded
# =============================================================================


@pytest.fixture
def subscriber(db):
    """User with a customer id and an active monthly subscription."""
    user = UserFactory(stripe_customer_id="cus_renew")
    SubscriptionFactory(
        user=user,
        stripe_customer_id="cus_renew",
        stripe_subscription_id="sub_renew",
        end_date=datetime(2026, 2, 1, tzinfo=timezone.utc),
    )
    return user


def invoice_object(**overrides) -> dict:
    data = {
        "id": "in_renew_1",
        "object": "invoice",
        "customer": "cus_renew",
        "billing_reason": "subscription_cycle",
        "amount_paid": 1999,
        "currency": "usd",
        "lines": {"data": [{"period": {"start": 1769904000, "end": 1772323200}}]},
    }
    data.update(overrides)
    return data


class TestHandleInvoicePaymentSucceeded:
    """Tests for renewal logging."""

    def test_logs_renewal(self, subscriber, webhook_event_factory, mock_adapter):
        event = webhook_event_factory("invoice.payment_succeeded", invoice_object())

        result = handle_invoice_payment_succeeded(event, mock_adapter)

        assert result.success is True
        entry = TransactionLogEntry.objects.get(idempotency_key="invoice:in_renew_1")
        assert entry.transaction_type == TransactionType.RENEWAL
        assert entry.amount_cents == 1999
        assert entry.user == subscriber

    def test_extends_end_date(self, subscriber, webhook_event_factory, mock_adapter):
        event = webhook_event_factory("invoice.payment_succeeded", invoice_object())

        handle_invoice_payment_succeeded(event, mock_adapter)

        subscription = Subscription.objects.get(user=subscriber)
        assert subscription.end_date == datetime(2026, 3, 1, tzinfo=timezone.utc)
        assert subscription.status == SubscriptionStatus.ACTIVE

    def test_never_moves_end_date_back(self, subscriber, webhook_event_factory, mock_adapter):
        event = webhook_event_factory(
            "invoice.payment_succeeded",
            invoice_object(lines={"data": [{"period": {"end": 1767225600}}]}),
        )

        handle_invoice_payment_succeeded(event, mock_adapter)

        subscription = Subscription.objects.get(user=subscriber)
        assert subscription.end_date == datetime(2026, 2, 1, tzinfo=timezone.utc)

    def test_renewal_after_sweep_reactivates(
        self, subscriber, webhook_event_factory, mock_adapter
    ):
        """An invoice paid after the sweep ran restores the paid subscription."""
        SubscriptionManager(adapter=mock_adapter).expire_lapsed(
            now=datetime(2026, 2, 1, 0, 30, tzinfo=timezone.utc)
        )
        assert Subscription.objects.get(user=subscriber).status == SubscriptionStatus.EXPIRED

        event = webhook_event_factory("invoice.payment_succeeded", invoice_object())
        handle_invoice_payment_succeeded(event, mock_adapter)

        subscription = Subscription.objects.get(user=subscriber)
        assert subscription.status == SubscriptionStatus.ACTIVE
        assert subscription.tier == SubscriptionTier.PRO
        assert subscription.is_pro is True
        assert subscription.end_date == datetime(2026, 3, 1, tzinfo=timezone.utc)

    def test_reactivation_restores_messages_tier(self, webhook_event_factory, mock_adapter):
        user = UserFactory(stripe_customer_id="cus_renew")
        SubscriptionFactory(
            user=user,
            stripe_customer_id="cus_renew",
            stripe_subscription_id="sub_renew",
            status=SubscriptionStatus.EXPIRED,
            tier=SubscriptionTier.FREE,
            paid_tier=SubscriptionTier.MESSAGES,
            end_date=datetime(2026, 2, 1, tzinfo=timezone.utc),
        )
        event = webhook_event_factory("invoice.payment_succeeded", invoice_object())

        handle_invoice_payment_succeeded(event, mock_adapter)

        subscription = Subscription.objects.get(user=user)
        assert subscription.status == SubscriptionStatus.ACTIVE
        assert subscription.tier == SubscriptionTier.MESSAGES

    def test_cancelled_subscription_not_reactivated(
        self, subscriber, webhook_event_factory, mock_adapter
    ):
        Subscription.objects.filter(user=subscriber).update(
            status=SubscriptionStatus.CANCELLED, tier=SubscriptionTier.FREE
        )
        event = webhook_event_factory("invoice.payment_succeeded", invoice_object())

        handle_invoice_payment_succeeded(event, mock_adapter)

        subscription = Subscription.objects.get(user=subscriber)
        assert subscription.status == SubscriptionStatus.CANCELLED
        assert subscription.tier == SubscriptionTier.FREE

    def test_stale_invoice_does_not_reactivate(
        self, subscriber, webhook_event_factory, mock_adapter
    ):
        """An invoice for a period already covered leaves an expired row alone."""
        Subscription.objects.filter(user=subscriber).update(
            status=SubscriptionStatus.EXPIRED, tier=SubscriptionTier.FREE
        )
        event = webhook_event_factory(
            "invoice.payment_succeeded",
            invoice_object(lines={"data": [{"period": {"end": 1769904000}}]}),
        )

        handle_invoice_payment_succeeded(event, mock_adapter)

        assert Subscription.objects.get(user=subscriber).status == SubscriptionStatus.EXPIRED

    def test_invoice_for_other_subscription_ignored(
        self, subscriber, webhook_event_factory, mock_adapter
    ):
        Subscription.objects.filter(user=subscriber).update(
            status=SubscriptionStatus.EXPIRED, tier=SubscriptionTier.FREE
        )
        event = webhook_event_factory(
            "invoice.payment_succeeded", invoice_object(subscription="sub_previous")
        )

        handle_invoice_payment_succeeded(event, mock_adapter)

        subscription = Subscription.objects.get(user=subscriber)
        assert subscription.status == SubscriptionStatus.EXPIRED
        assert subscription.end_date == datetime(2026, 2, 1, tzinfo=timezone.utc)

    def test_first_invoice_not_logged(self, subscriber, webhook_event_factory, mock_adapter):
        event = webhook_event_factory(
            "invoice.payment_succeeded",
            invoice_object(billing_reason="subscription_create"),
        )

        handle_invoice_payment_succeeded(event, mock_adapter)

        assert not TransactionLogEntry.objects.exists()

    def test_redelivery_logs_once(self, subscriber, webhook_event_factory, mock_adapter):
        first = webhook_event_factory("invoice.payment_succeeded", invoice_object())
        second = webhook_event_factory("invoice.payment_succeeded", invoice_object())

        handle_invoice_payment_succeeded(first, mock_adapter)
        handle_invoice_payment_succeeded(second, mock_adapter)

        assert TransactionLogEntry.objects.filter(stripe_invoice_id="in_renew_1").count() == 1

    def test_unknown_customer_still_logged(self, webhook_event_factory, mock_adapter):
        event = webhook_event_factory(
            "invoice.payment_succeeded", invoice_object(customer="cus_unknown")
        )

        result = handle_invoice_payment_succeeded(event, mock_adapter)

        assert result.success is True
        assert TransactionLogEntry.objects.get(stripe_invoice_id="in_renew_1").user is None


# =============================================================================
# customer.subscription.deleted
# =============================================================================


class TestHandleSubscriptionDeleted:
    """Tests for dropping a user to the free tier."""

    def test_cancels_subscription(self, subscriber, webhook_event_factory, mock_adapter):
        event = webhook_event_factory(
            "customer.subscription.deleted", {"id": "sub_renew", "customer": "cus_renew"}
        )

        result = handle_subscription_deleted(event, mock_adapter)

        assert result.success is True
        subscription = Subscription.objects.get(user=subscriber)
        assert subscription.status == SubscriptionStatus.CANCELLED
        assert subscription.tier == SubscriptionTier.FREE
        assert subscription.is_pro is False

    def test_superseded_subscription_ignored(
        self, subscriber, webhook_event_factory, mock_adapter
    ):
        event = webhook_event_factory(
            "customer.subscription.deleted", {"id": "sub_old", "customer": "cus_renew"}
        )

        handle_subscription_deleted(event, mock_adapter)

        subscription = Subscription.objects.get(user=subscriber)
        assert subscription.status == SubscriptionStatus.ACTIVE
        assert subscription.tier == SubscriptionTier.PRO

    def test_unknown_customer_acknowledged(self, webhook_event_factory, mock_adapter):
        event = webhook_event_factory(
            "customer.subscription.deleted", {"id": "sub_x", "customer": "cus_nobody"}
        )

        result = handle_subscription_deleted(event, mock_adapter)

        assert result.success is True
        assert result.data is None

    def test_missing_customer(self, webhook_event_factory, mock_adapter):
        event = webhook_event_factory("customer.subscription.deleted", {"id": "sub_x"})

        result = handle_subscription_deleted(event, mock_adapter)

        assert result.error_code == "INVALID_WEBHOOK_PAYLOAD"
