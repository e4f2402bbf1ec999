"""
Authentication models.

- User: Custom user model with email-based authentication

The user record also holds the marketplace fields the payment flow reads
and writes:
    - user_type: client or freelancer
    - stripe_customer_id: gateway customer used for subscription checkout
    - total_earnings_cents / completed_jobs: incremented atomically when
      escrowed funds are released to the freelancer

Related files:
    - managers.py: Custom user manager for email-based creation
    - payments/models/: ConnectedAccount and Subscription (one-to-one)
"""

from decimal import Decimal

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from authentication.managers import UserManager


class UserType(models.TextChoices):
    """Role a user plays on the marketplace."""

    CLIENT = "client", "Client"
    FREELANCER = "freelancer", "Freelancer"


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        email: Primary identifier, unique, used for login
        display_name: Name shown to other marketplace users
        user_type: Client or freelancer
        stripe_customer_id: Gateway customer id (created on first checkout)
        total_earnings_cents: Lifetime released earnings (freelancers)
        completed_jobs: Number of jobs whose escrow was released
        is_active / is_staff: Standard Django flags
        date_joined / updated_at: Timestamps
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )

    display_name = models.CharField(
        max_length=150,
        blank=True,
        help_text="Name shown to other marketplace users",
    )

    user_type = models.CharField(
        max_length=20,
        choices=UserType.choices,
        default=UserType.CLIENT,
        db_index=True,
        help_text="Whether this user hires (client) or works (freelancer)",
    )

    # ==========================================================================
    # Payment Fields
    # ==========================================================================

    stripe_customer_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Stripe Customer ID (cus_xxx), created on first checkout",
    )

    total_earnings_cents = models.PositiveBigIntegerField(
        default=0,
        help_text="Lifetime earnings released to this freelancer, in cents",
    )

    completed_jobs = models.PositiveIntegerField(
        default=0,
        help_text="Number of jobs whose escrowed payment was released",
    )

    # ==========================================================================
    # Account Status
    # ==========================================================================

    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        return self.email

    def get_full_name(self):
        return self.display_name or self.email

    def get_short_name(self):
        return self.display_name or self.email.split("@")[0]

    @property
    def is_freelancer(self) -> bool:
        return self.user_type == UserType.FREELANCER

    @property
    def total_earnings(self):
        """Lifetime earnings in major currency units."""
        return Decimal(self.total_earnings_cents) / 100
