"""
Payments app for Stripe integration.

This app handles:
- Escrow payments for jobs (hold on the client, release to the freelancer)
- Stripe Connect onboarding and payouts for freelancers
- Subscription checkout, cancellation and expiry
- Webhook event handling

Related apps:
    - authentication: User model (customer id, earnings counters)
    - marketplace: Job and Proposal records the escrow flow moves
    - notifications: Proposal accepted / subscription expired notices

Usage:
    from payments.services import EscrowOrchestrator

    # Pay for a job into escrow
    hold = EscrowOrchestrator().create_job_hold(job.id, proposal.id, "150.00", client)

    # Handle webhook
    POST /api/v1/payments/webhooks/stripe/
"""
