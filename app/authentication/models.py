"""
Authentication models.

- User: Custom user model with email-based authentication and a user type

Related files:
    - managers.py: Custom user manager for email-based creation
    - permissions.py: DRF permissions keyed on user type

Security:
    - User passwords hashed with Django's password hashers
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from authentication.managers import UserManager


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    The name fields are used as the fallback billing name when the
    payment gateway does not report billing details, and as the
    customer name registered with the gateway.

    Fields:
        email: Primary identifier, unique, used for login
        first_name / last_name: Display and billing name
        user_type: customer, business or admin
        is_active: Whether the user account is active
        is_staff: Whether the user can access Django admin
        date_joined: When the user account was created

    Usage:
        owner = User.objects.create_user(
            email="owner@example.com",
            password="securepassword",
            first_name="Ada",
            last_name="Lovelace",
            user_type=User.UserType.BUSINESS,
        )
    """

    class UserType(models.TextChoices):
        CUSTOMER = "customer", "Customer"
        BUSINESS = "business", "Business"
        ADMIN = "admin", "Admin"

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )
    first_name = models.CharField(max_length=150, blank=True)
    last_name = models.CharField(max_length=150, blank=True)
    user_type = models.CharField(
        max_length=20,
        choices=UserType.choices,
        default=UserType.CUSTOMER,
        db_index=True,
    )

    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    date_joined = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

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
        """Return "first last", or the email when no name is set."""
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name or self.email

    def get_short_name(self):
        return self.first_name or self.email.split("@")[0]

    @property
    def is_business(self) -> bool:
        return self.user_type == self.UserType.BUSINESS

    @property
    def is_platform_admin(self) -> bool:
        """Platform admins moderate listings; superusers always qualify."""
        return self.user_type == self.UserType.ADMIN or self.is_superuser
