"""
DRF views for payments app.

This module provides API views for:
- Freelancer Connect onboarding
- Job escrow holds and releases
- Freelancer payouts and balances
- Subscription checkout and cancellation

Related files:
    - services/: EscrowOrchestrator, ConnectService, SubscriptionManager
    - serializers.py: Request/response serializers
    - urls.py: URL routing
    - webhooks/views.py: Stripe webhook endpoint

Endpoints:
    POST /api/v1/payments/connect/accounts/                      Create connected account
    GET  /api/v1/payments/connect/accounts/{account_id}/status/  Refresh account status
    POST /api/v1/payments/connect/account-links/                 New onboarding link
    POST /api/v1/payments/jobs/{job_id}/hold/                    Pay for a job into escrow
    POST /api/v1/payments/jobs/{job_id}/release/                 Release escrow to freelancer
    POST /api/v1/payments/payouts/                               Pay out connected balance
    GET  /api/v1/payments/balance/                               Connected balance
    POST /api/v1/payments/subscriptions/checkout/                Start subscription checkout
    POST /api/v1/payments/subscriptions/cancel/                  Cancel at period end

Security:
    - All endpoints require authentication
    - Ownership is checked in the service layer

Errors raised by the services are rendered by
core.exception_handler.application_exception_handler.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from payments.serializers import (
    AccountLinkSerializer,
    BalanceSerializer,
    CancelSubscriptionResponseSerializer,
    CheckoutSerializer,
    ConnectStatusSerializer,
    JobHoldResponseSerializer,
    JobHoldSerializer,
    OnboardingResponseSerializer,
    PayoutResponseSerializer,
    PayoutSerializer,
    ReleaseResponseSerializer,
    ReleaseSerializer,
    UrlResponseSerializer,
)
from payments.services import ConnectService, EscrowOrchestrator, SubscriptionManager

logger = logging.getLogger(__name__)


def _cents_to_major(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(Decimal("0.01"))


# =============================================================================
# Connect
# =============================================================================


class ConnectAccountView(APIView):
    """
    Create the caller's Stripe Express account, or reuse the existing one.

    POST /api/v1/payments/connect/accounts/

    Returns:
        account_id and a Stripe-hosted onboarding URL
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="create_connect_account",
        summary="Create connected account",
        request=None,
        responses={201: OnboardingResponseSerializer},
        tags=["Payments - Connect"],
    )
    def post(self, request):
        result = ConnectService().create_connect_account(request.user)
        return Response(
            {"account_id": result.account_id, "onboarding_url": result.onboarding_url},
            status=status.HTTP_201_CREATED,
        )


class ConnectStatusView(APIView):
    """
    Refresh a connected account from Stripe and return its state.

    GET /api/v1/payments/connect/accounts/{account_id}/status/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_connect_status",
        summary="Get connected account status",
        responses={200: ConnectStatusSerializer},
        tags=["Payments - Connect"],
    )
    def get(self, request, account_id: str):
        result = ConnectService().check_connect_status(account_id, caller=request.user)
        return Response(ConnectStatusSerializer(result).data)


class AccountLinkView(APIView):
    """POST /api/v1/payments/connect/account-links/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="create_account_link",
        summary="Create onboarding link",
        request=AccountLinkSerializer,
        responses={200: UrlResponseSerializer},
        tags=["Payments - Connect"],
    )
    def post(self, request):
        serializer = AccountLinkSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        url = ConnectService().create_account_link(
            request.user,
            return_url=serializer.validated_data.get("return_url"),
            refresh_url=serializer.validated_data.get("refresh_url"),
        )
        return Response({"url": url})


# =============================================================================
# Escrow
# =============================================================================


class JobHoldView(APIView):
    """
    Pay for a job into escrow.

    POST /api/v1/payments/jobs/{job_id}/hold/

    Body:
        proposal_id: Proposal being accepted
        amount: Amount in major units

    Returns:
        client_secret for confirming the PaymentIntent on the client,
        payment_hold_id (the PaymentIntent ID) and payment_id
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="create_job_payment_hold",
        summary="Create job payment hold",
        request=JobHoldSerializer,
        responses={201: JobHoldResponseSerializer},
        tags=["Payments - Escrow"],
    )
    def post(self, request, job_id):
        serializer = JobHoldSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = EscrowOrchestrator().create_job_hold(
            job_id=job_id,
            proposal_id=serializer.validated_data["proposal_id"],
            amount=serializer.validated_data["amount"],
            caller=request.user,
        )
        return Response(
            {
                "client_secret": result.client_secret,
                "payment_hold_id": result.payment_intent_id,
                "payment_id": str(result.payment_id),
            },
            status=status.HTTP_201_CREATED,
        )


class JobReleaseView(APIView):
    """
    Release a job's escrow to its freelancer.

    POST /api/v1/payments/jobs/{job_id}/release/

    Releasing twice returns the original transfer.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="release_job_payment",
        summary="Release job payment",
        request=ReleaseSerializer,
        responses={200: ReleaseResponseSerializer},
        tags=["Payments - Escrow"],
    )
    def post(self, request, job_id):
        serializer = ReleaseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = EscrowOrchestrator().release_to_freelancer(
            job_id=job_id,
            freelancer_id=serializer.validated_data["freelancer_id"],
            caller=request.user,
        )
        return Response({"transfer_id": result.transfer_id})


# =============================================================================
# Connected Account Funds
# =============================================================================


class PayoutView(APIView):
    """POST /api/v1/payments/payouts/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="create_payout",
        summary="Pay out connected balance",
        request=PayoutSerializer,
        responses={201: PayoutResponseSerializer},
        tags=["Payments - Funds"],
    )
    def post(self, request):
        serializer = PayoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        payout = EscrowOrchestrator().create_payout(
            freelancer=request.user,
            amount=serializer.validated_data["amount"],
            caller=request.user,
        )
        return Response({"payout_id": payout.id}, status=status.HTTP_201_CREATED)


class BalanceView(APIView):
    """GET /api/v1/payments/balance/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_balance",
        summary="Get connected balance",
        responses={200: BalanceSerializer},
        tags=["Payments - Funds"],
    )
    def get(self, request):
        balance = EscrowOrchestrator().get_balance(request.user)
        serializer = BalanceSerializer(
            {
                "available": _cents_to_major(balance.available_cents),
                "pending": _cents_to_major(balance.pending_cents),
            }
        )
        return Response(serializer.data)


# =============================================================================
# Subscriptions
# =============================================================================


class SubscriptionCheckoutView(APIView):
    """
    Start a subscription Checkout Session.

    POST /api/v1/payments/subscriptions/checkout/

    Returns:
        url of the Stripe-hosted checkout page
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="create_subscription_checkout",
        summary="Create subscription checkout",
        request=CheckoutSerializer,
        responses={200: UrlResponseSerializer},
        tags=["Payments - Subscriptions"],
    )
    def post(self, request):
        serializer = CheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        checkout = SubscriptionManager().create_checkout(
            user=request.user,
            price_id=serializer.validated_data["price_id"],
            success_url=serializer.validated_data["success_url"],
            cancel_url=serializer.validated_data["cancel_url"],
            tier=serializer.validated_data["tier"],
        )
        return Response({"url": checkout.url})


class SubscriptionCancelView(APIView):
    """
    Cancel the caller's subscription at the end of the paid period.

    POST /api/v1/payments/subscriptions/cancel/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="cancel_subscription",
        summary="Cancel subscription",
        request=None,
        responses={200: CancelSubscriptionResponseSerializer},
        tags=["Payments - Subscriptions"],
    )
    def post(self, request):
        end_date = SubscriptionManager().cancel(request.user)
        return Response(CancelSubscriptionResponseSerializer({"end_date": end_date}).data)
