"""
Pytest fixtures for payment tests.

Provides users, marketplace records in the states the escrow flow needs,
and a MagicMock standing in for the Stripe adapter.

Usage:
    def test_release(orchestrator, held_payment, connected_account):
        result = orchestrator.release_to_freelancer(
            held_payment.job_id, held_payment.freelancer_id, held_payment.client
        )
"""

from unittest.mock import MagicMock, patch

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from authentication.tests.factories import ClientUserFactory, FreelancerFactory
from marketplace.tests.factories import JobFactory, ProposalFactory
from payments.adapters import (
    BalanceResult,
    CheckoutSessionResult,
    ConnectedAccountResult,
    PaymentIntentResult,
    PayoutResult,
    StripeAdapter,
    SubscriptionResult,
    TransferResult,
)
from payments.tests.factories import (
    ConnectedAccountFactory,
    HeldPaymentFactory,
    PaymentFactory,
)


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def client_user(db):
    """Create a client who posts and pays for jobs."""
    return ClientUserFactory()


@pytest.fixture
def freelancer(db):
    """Create a freelancer."""
    return FreelancerFactory()


# =============================================================================
# Marketplace Fixtures
# =============================================================================


@pytest.fixture
def job(db, client_user):
    """Create an open job posted by client_user."""
    return JobFactory(client=client_user)


@pytest.fixture
def proposal(db, job, freelancer):
    """Create a pending proposal from freelancer on job."""
    return ProposalFactory(job=job, freelancer=freelancer)


# =============================================================================
# Payment Fixtures
# =============================================================================


@pytest.fixture
def pending_payment(db, proposal):
    """Create a pending $100 payment for proposal."""
    return PaymentFactory(proposal=proposal, stripe_payment_intent_id="pi_pending")


@pytest.fixture
def held_payment(db, proposal):
    """Create a $100 payment held in escrow, with the job assigned."""
    payment = HeldPaymentFactory(proposal=proposal, stripe_payment_intent_id="pi_held")
    proposal.accept()
    proposal.save()
    proposal.job.assign(proposal)
    proposal.job.save()
    return payment


@pytest.fixture
def connected_account(db, freelancer):
    """Create a fully onboarded connected account for freelancer."""
    return ConnectedAccountFactory(user=freelancer, stripe_account_id="acct_freelancer")


# =============================================================================
# Stripe Adapter Fixtures
# =============================================================================


@pytest.fixture
def mock_adapter():
    """
    MagicMock shaped like StripeAdapter with successful default results.

    Tests override return_value or side_effect per call as needed.
    """
    adapter = MagicMock(spec=StripeAdapter)
    adapter.currency = "usd"

    adapter.create_payment_intent.return_value = PaymentIntentResult(
        id="pi_new",
        status="requires_payment_method",
        amount_cents=10000,
        currency="usd",
        client_secret="pi_new_secret_abc",
    )
    adapter.retrieve_payment_intent.return_value = PaymentIntentResult(
        id="pi_pending",
        status="requires_payment_method",
        amount_cents=10000,
        currency="usd",
        client_secret="pi_pending_secret_abc",
    )
    adapter.create_transfer.return_value = TransferResult(
        id="tr_release",
        amount_cents=9000,
        currency="usd",
        destination_account="acct_freelancer",
    )
    adapter.create_payout.return_value = PayoutResult(
        id="po_test",
        amount_cents=5000,
        currency="usd",
        status="pending",
    )
    adapter.get_balance.return_value = BalanceResult(
        available_cents=12345,
        pending_cents=500,
    )
    adapter.create_connected_account.return_value = ConnectedAccountResult(
        id="acct_new",
    )
    adapter.create_account_link.return_value = "https://connect.stripe.com/setup/e/acct_new"
    adapter.retrieve_account.return_value = ConnectedAccountResult(
        id="acct_new",
        charges_enabled=True,
        payouts_enabled=True,
        details_submitted=True,
    )
    adapter.create_customer.return_value = "cus_new"
    adapter.create_checkout_session.return_value = CheckoutSessionResult(
        id="cs_test",
        url="https://checkout.stripe.com/c/pay/cs_test",
    )
    adapter.update_subscription.return_value = SubscriptionResult(
        id="sub_test",
        customer_id="cus_test",
        status="active",
        cancel_at_period_end=True,
    )
    return adapter


@pytest.fixture
def patched_adapter(mock_adapter):
    """
    Make StripeAdapter.from_settings() return mock_adapter.

    Views and tasks build their services with default collaborators;
    this routes them to the mock.
    """
    with patch.object(StripeAdapter, "from_settings", return_value=mock_adapter):
        yield mock_adapter


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def api_client():
    """Unauthenticated API client."""
    return APIClient()


@pytest.fixture
def authenticated_client_factory(db):
    """
    Factory to create JWT-authenticated clients for any user.

    Usage:
        def test_something(authenticated_client_factory, client_user):
            client = authenticated_client_factory(client_user)
    """

    def _make_client(user):
        client = APIClient()
        refresh = RefreshToken.for_user(user)
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")
        return client

    return _make_client
