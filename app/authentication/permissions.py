"""
Permission classes keyed on User.user_type.

- IsBusinessUser: business owners (create listings, pay listing fees)
- IsPlatformAdmin: moderators (approve/reject listings)

Ownership of a specific business or payment is enforced in the service
layer by filtering on the caller, so that a foreign record reads as
"not found" rather than "forbidden".
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rest_framework import permissions

if TYPE_CHECKING:
    from rest_framework.request import Request
    from rest_framework.views import APIView


class IsBusinessUser(permissions.BasePermission):
    """Allows access only to authenticated users of type ``business``."""

    message = "Only business accounts can perform this action."

    def has_permission(self, request: Request, view: APIView) -> bool:
        user = request.user
        return bool(user and user.is_authenticated and user.is_business)


class IsPlatformAdmin(permissions.BasePermission):
    """Allows access only to platform admins (user_type ``admin`` or superuser)."""

    message = "Only platform administrators can perform this action."

    def has_permission(self, request: Request, view: APIView) -> bool:
        user = request.user
        return bool(user and user.is_authenticated and user.is_platform_admin)
