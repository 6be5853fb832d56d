"""
Authentication application.

Email-based custom User with a user type (customer, business, admin)
that the business and payment endpoints authorize against.

Key components:
    - User model: Email login, ``user_type`` drives permissions
    - IsBusinessUser / IsPlatformAdmin: DRF permission classes

Usage:
    from authentication.models import User
    from authentication.permissions import IsBusinessUser
"""
