"""
Authentication application.

Email-based custom user model for the marketplace. Besides credentials the
user record carries the fields the payment flow maintains: the gateway
customer id used for subscriptions and the freelancer's earnings counters
updated when escrowed funds are released.

Usage:
    from authentication.models import User, UserType
"""
