"""
Pytest fixtures for webhook tests.

Provides marketplace records in the states the handlers expect, a
mock Stripe adapter, and a factory for stored WebhookEvent rows built
around a Stripe data.object.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from authentication.tests.factories import ClientUserFactory, FreelancerFactory
from marketplace.tests.factories import JobFactory, ProposalFactory
from payments.adapters import StripeAdapter, SubscriptionResult
from payments.tests.factories import PaymentFactory, WebhookEventFactory


# =============================================================================
# Marketplace Fixtures
# =============================================================================


@pytest.fixture
def client_user(db):
    """Create a client who pays for jobs."""
    return ClientUserFactory()


@pytest.fixture
def freelancer(db):
    """Create a freelancer."""
    return FreelancerFactory()


@pytest.fixture
def proposal(db, client_user, freelancer):
    """Create a pending proposal on an open job."""
    return ProposalFactory(job=JobFactory(client=client_user), freelancer=freelancer)


@pytest.fixture
def pending_payment(db, proposal):
    """Create a pending payment waiting on payment_intent.succeeded."""
    return PaymentFactory(proposal=proposal, stripe_payment_intent_id="pi_webhook_123")


# =============================================================================
# Webhook Event Fixtures
# =============================================================================


@pytest.fixture
def webhook_event_factory(db):
    """
    Factory for stored WebhookEvent rows.

    Usage:
        event = webhook_event_factory("account.updated", {"id": "acct_1"})
    """

    def _create(event_type: str, data_object: dict, stripe_event_id: str | None = None):
        kwargs = {"event_type": event_type}
        if stripe_event_id:
            kwargs["stripe_event_id"] = stripe_event_id
        event = WebhookEventFactory(**kwargs)
        event.payload = {
            "id": event.stripe_event_id,
            "type": event_type,
            "data": {"object": data_object},
        }
        event.save(update_fields=["payload"])
        return event

    return _create


@pytest.fixture
def payment_intent_object():
    """Factory for a PaymentIntent data.object tagged as a job payment."""

    def _create(intent_id: str = "pi_webhook_123", **overrides) -> dict:
        data = {
            "id": intent_id,
            "object": "payment_intent",
            "amount": 10000,
            "currency": "usd",
            "status": "succeeded",
            "metadata": {"type": "job_payment"},
        }
        data.update(overrides)
        return data

    return _create


# =============================================================================
# Mock Adapter
# =============================================================================


@pytest.fixture
def mock_adapter():
    """
    MagicMock shaped like StripeAdapter.

    retrieve_subscription answers with an active yearly subscription for
    calendar year 2026.
    """
    adapter = MagicMock(spec=StripeAdapter)
    adapter.currency = "usd"
    adapter.retrieve_subscription.return_value = SubscriptionResult(
        id="sub_checkout",
        customer_id="cus_checkout",
        status="active",
        price_id="price_yearly",
        current_period_start=datetime(2026, 1, 1, tzinfo=timezone.utc),
        current_period_end=datetime(2027, 1, 1, tzinfo=timezone.utc),
    )
    return adapter
