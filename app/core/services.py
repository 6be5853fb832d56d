"""
Base service layer patterns for business logic encapsulation.

- ServiceResult: Standard result wrapper for consistent success/failure handling
- BaseService: Base class with common service utilities

Services encapsulate business logic separate from views and models.
Views handle HTTP concerns, models handle data, services handle logic.

    - ServiceResult: Use for expected failures (business rules, missing records)
    - Exceptions: Use for unexpected failures (gateway outages, database errors)

Usage:
    from core.services import BaseService, ServiceResult

    class BusinessService(BaseService):
        @classmethod
        def publish(cls, owner, business_id) -> ServiceResult[Business]:
            business = Business.objects.filter(id=business_id, owner=owner).first()
            if business is None:
                return ServiceResult.failure(
                    "Business not found or unauthorized",
                    error_code="BUSINESS_NOT_FOUND",
                )
            ...
            return ServiceResult.success(business)

    # In view
    result = BusinessService.publish(request.user, business_id)
    if result.success:
        return Response(BusinessSerializer(result.data).data)
    return Response(result.to_response(), status=400)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator
    from typing import Any

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code for client handling
        errors: Field-level errors for validation failures

    Usage:
        return ServiceResult.success(payment)
        return ServiceResult.failure("Payment not found", "PAYMENT_NOT_FOUND")

        result = ReconciliationService.get_status(payment_id, user)
        if not result:
            return Response(result.to_response(), status=404)
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    errors: dict[str, list[str]] | None = field(default=None)

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """Create a successful result carrying ``data``."""
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, list[str]] | None = None,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code for client handling
            errors: Field-level errors (for validation failures)
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            errors=errors,
        )

    @classmethod
    def from_exception(cls, exc: Exception, error_code: str | None = None) -> ServiceResult[T]:
        """
        Create a failed result from a domain exception.

        BaseApplicationError subclasses contribute their own message and
        error_code; anything else falls back to the class name.
        """
        message = getattr(exc, "message", None) or str(exc)
        code = error_code or getattr(exc, "error_code", None) or exc.__class__.__name__.upper()
        return cls(success=False, error=message, error_code=code)

    def to_response(self) -> dict[str, Any]:
        """
        Convert to API response format.

        Failures render as ``{"success": false, "error": ..., "error_code": ...}``.
        """
        if self.success:
            return {"success": True, "data": self.data}

        response: dict[str, Any] = {
            "success": False,
            "error": self.error,
        }
        if self.error_code:
            response["error_code"] = self.error_code
        if self.errors:
            response["errors"] = self.errors
        return response

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Provides:
    - Logging setup per service
    - Database transaction management

    Design Notes:
        - Use @classmethod (no instance state) unless the service needs
          collaborators injected, e.g. a payment gateway
        - Use ServiceResult for expected failures
        - Raise exceptions for unexpected failures
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Named after the service class so log output can be filtered per
        service (``payments.services.reconciliation_service.ReconciliationService``).
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        Thin wrapper around ``transaction.atomic()`` that makes transaction
        boundaries explicit in service code. Exceptions propagate and roll
        back every write made inside the block.
        """
        with transaction.atomic():
            yield

    @classmethod
    def validate_required(cls, **kwargs) -> ServiceResult | None:
        """
        Validate that required fields are provided.

        Returns:
            ServiceResult.failure if any value is None or blank, None otherwise

        Example:
            validation = cls.validate_required(business_id=business_id)
            if validation is not None:
                return validation
        """
        errors = {}
        for field_name, value in kwargs.items():
            if value is None or (isinstance(value, str) and not value.strip()):
                errors[field_name] = ["This field is required."]

        if errors:
            return ServiceResult.failure(
                "Required fields missing",
                error_code="VALIDATION_ERROR",
                errors=errors,
            )
        return None
