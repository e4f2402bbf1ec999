"""
User manager for the email-identified User model.

Marketplace users never have a username; the email is the login and the
unique key the payment flow uses when it looks up a Stripe customer's owner.
"""

from django.contrib.auth.models import BaseUserManager


class UserManager(BaseUserManager):
    """
    Usage:
        User.objects.create_user("client@example.com", "pw", user_type=UserType.CLIENT)
        User.objects.create_superuser("ops@example.com", "pw")
    """

    def _create_user(self, email, password, **extra_fields):
        if not email:
            raise ValueError("Email is required to create a user")

        user = self.model(email=self.normalize_email(email), **extra_fields)
        # Accounts created without a password (admin invites, fixtures)
        # cannot log in until one is set.
        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()
        user.save(using=self._db)
        return user

    def create_user(self, email, password=None, **extra_fields):
        extra_fields.setdefault("is_staff", False)
        extra_fields.setdefault("is_superuser", False)
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email, password=None, **extra_fields):
        """Create an operator account; both admin flags must stay True."""
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)

        for flag in ("is_staff", "is_superuser"):
            if extra_fields[flag] is not True:
                raise ValueError(f"Superuser must have {flag}=True")

        return self._create_user(email, password, **extra_fields)
