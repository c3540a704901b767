"""
Authentication models.

This module defines the identity models the marketplace works with:
- User: Email-based login with a single marketplace role
- Profile: Display data shown to admins reviewing refunds (OneToOne with User)

Related files:
    - managers.py: Custom user manager for email-based creation
    - signals.py: Auto-create profile on user creation
    - context.py: AuthContext handed to service calls
"""

from django.conf import settings
from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from authentication.managers import UserManager
from core.models import BaseModel


class UserRole(models.TextChoices):
    """
    Marketplace roles.

    Contractors buy system leads, affiliates buy HES requests, admins
    review refund requests. Homeowners and brokers create demand and
    never touch payments.
    """

    HOMEOWNER = "homeowner", "Homeowner"
    BROKER = "broker", "Broker"
    CONTRACTOR = "contractor", "Contractor"
    AFFILIATE = "affiliate", "Affiliate"
    ADMIN = "admin", "Admin"


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        email: Primary identifier, unique, used for login
        role: Marketplace role deciding which operations are allowed
        is_active: Whether the user account is active
        is_staff: Whether the user can access Django admin
        date_joined: When the user account was created
        updated_at: When the user record was last modified

    Usage:
        contractor = User.objects.create_user(
            email="pro@example.com",
            password="securepassword",
            role=UserRole.CONTRACTOR,
        )
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )

    role = models.CharField(
        max_length=20,
        choices=UserRole.choices,
        default=UserRole.HOMEOWNER,
        db_index=True,
        help_text="Marketplace role",
    )

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
        """Return the profile name, falling back to the email."""
        try:
            return self.profile.full_name or self.email
        except Profile.DoesNotExist:
            return self.email

    def get_short_name(self):
        return self.email.split("@")[0]

    @property
    def is_admin_role(self) -> bool:
        return self.role == UserRole.ADMIN


class Profile(BaseModel):
    """
    Display data for a user.

    Fields:
        user: OneToOne link to User (also serves as primary key)
        full_name: Name shown to admins and used in emails
        company_name: Contractor company, shown on refund review

    Note:
        Profile is automatically created via signals when a User is created.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="profile",
        primary_key=True,
        help_text="User this profile belongs to",
    )

    full_name = models.CharField(
        max_length=255,
        blank=True,
        help_text="User's full name",
    )

    company_name = models.CharField(
        max_length=255,
        blank=True,
        help_text="Company name (contractors and affiliates)",
    )

    class Meta:
        verbose_name = "profile"
        verbose_name_plural = "profiles"

    def __str__(self):
        return f"Profile for {self.user.email}"
