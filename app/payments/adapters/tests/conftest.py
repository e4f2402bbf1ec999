"""
Pytest fixtures for Stripe adapter tests.

stripe.StripeClient is patched so no request leaves the process; the
fixtures configure its v1 services. Responses are real StripeObjects
built from dicts, and errors are real SDK exceptions.

Sections:
    - Adapter Fixtures
    - Mock Stripe Service Fixtures
    - Error Fixtures
"""

from unittest.mock import patch

import pytest
import stripe

from payments.adapters import StripeAdapter


def stripe_object(values: dict) -> stripe.StripeObject:
    """Build a StripeObject the way the SDK does for a response body."""
    return stripe.StripeObject.construct_from(values, "sk_test_adapter")


# =============================================================================
# Adapter Fixtures
# =============================================================================


@pytest.fixture
def mock_http_client():
    """Mock stripe.RequestsClient so adapters never open a session."""
    with patch("stripe.RequestsClient") as mock:
        yield mock


@pytest.fixture
def mock_stripe_client():
    """Mock stripe.StripeClient; services hang off return_value.v1."""
    with patch("stripe.StripeClient") as mock:
        yield mock


@pytest.fixture
def stripe_services(mock_stripe_client):
    """The v1 services of the client every test adapter builds."""
    return mock_stripe_client.return_value.v1


@pytest.fixture
def adapter(mock_http_client, mock_stripe_client):
    """Adapter with explicit test configuration."""
    return StripeAdapter(
        secret_key="sk_test_adapter",
        webhook_secret="whsec_adapter",
        currency="USD",
        timeout=7,
    )


# =============================================================================
# Mock Stripe Service Fixtures
# =============================================================================


@pytest.fixture
def mock_payment_intent():
    """Create a PaymentIntent response."""

    def _create(
        id: str = "pi_test123456",
        status: str = "requires_payment_method",
        amount: int = 5000,
        metadata: dict | None = None,
    ) -> stripe.StripeObject:
        return stripe_object(
            {
                "id": id,
                "object": "payment_intent",
                "status": status,
                "amount": amount,
                "currency": "usd",
                "client_secret": f"{id}_secret_abc123",
                "metadata": metadata or {"type": "job_payment"},
            }
        )

    return _create


@pytest.fixture
def mock_stripe_payment_intent(stripe_services, mock_payment_intent):
    """Mock the payment_intents service."""
    service = stripe_services.payment_intents
    service.create.return_value = mock_payment_intent()
    service.retrieve.return_value = mock_payment_intent(status="succeeded")
    return service


@pytest.fixture
def mock_stripe_transfer(stripe_services):
    """Mock the transfers service."""
    service = stripe_services.transfers
    service.create.return_value = stripe_object(
        {
            "id": "tr_test123",
            "object": "transfer",
            "amount": 9000,
            "currency": "usd",
            "destination": "acct_dest",
            "metadata": {"payment_id": "p1"},
        }
    )
    return service


@pytest.fixture
def mock_stripe_account(stripe_services):
    """Mock the accounts and account_links services."""
    account = stripe_object(
        {
            "id": "acct_test123",
            "object": "account",
            "charges_enabled": True,
            "payouts_enabled": False,
            "details_submitted": True,
            "requirements": {"disabled_reason": None},
        }
    )
    stripe_services.accounts.create.return_value = account
    stripe_services.accounts.retrieve.return_value = account
    stripe_services.account_links.create.return_value = stripe_object(
        {"object": "account_link", "url": "https://connect.stripe.com/setup/e/acct_test123"}
    )
    return stripe_services.accounts, stripe_services.account_links


@pytest.fixture
def mock_subscription():
    """Create a Subscription response with the period on its first item."""

    def _create(
        status: str = "active",
        cancel_at_period_end: bool = False,
        price_id: str = "price_monthly",
    ) -> stripe.StripeObject:
        return stripe_object(
            {
                "id": "sub_test123",
                "object": "subscription",
                "customer": "cus_test123",
                "status": status,
                "cancel_at_period_end": cancel_at_period_end,
                "items": {
                    "object": "list",
                    "data": [
                        {
                            "id": "si_test123",
                            "object": "subscription_item",
                            "current_period_start": 1767225600,
                            "current_period_end": 1769904000,
                            "price": {"id": price_id, "object": "price"},
                        }
                    ],
                },
            }
        )

    return _create


# =============================================================================
# Error Fixtures
# =============================================================================


@pytest.fixture
def card_error():
    """Factory for CardError with a decline code."""

    def _create(decline_code: str = "generic_decline") -> stripe.CardError:
        return stripe.CardError(
            message="Your card was declined.",
            param=None,
            code="card_declined",
            http_status=402,
            json_body={
                "error": {
                    "type": "card_error",
                    "code": "card_declined",
                    "decline_code": decline_code,
                    "message": "Your card was declined.",
                }
            },
        )

    return _create


@pytest.fixture
def invalid_request_error():
    """Factory for InvalidRequestError."""

    def _create(
        message: str = "Invalid amount",
        code: str = "parameter_invalid_integer",
    ) -> stripe.InvalidRequestError:
        return stripe.InvalidRequestError(
            message=message,
            param="amount",
            code=code,
            http_status=400,
        )

    return _create
