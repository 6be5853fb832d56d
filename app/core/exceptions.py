"""
Base exception classes for application-wide error handling.

Every domain error raised by a service carries a human-readable message,
a machine-readable error code and optional details. Services turn them
into failures with ServiceResult.from_exception.

Exception Hierarchy:
    BaseApplicationError (base)
    └── ConflictError - State conflicts (lock contention, concurrent writers)

Domain apps extend these (see payments.exceptions).

Usage:
    from core.exceptions import ConflictError

    if not payment.compare_and_swap(version, status=new_status):
        raise ConflictError(
            "Payment changed during reconciliation",
            error_code="STALE_RECORD",
            details={"payment_id": str(payment.id)},
        )

Note:
    These exceptions are for domain/business logic errors.
    DRF handles API-layer exceptions (serialization, authentication, etc.).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (ids, field errors, etc.)
    """

    default_error_code: str = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with current resource state.

    Use for:
    - Concurrent modification conflicts (optimistic locking)
    - Invalid state transitions
    - Lock contention

    HTTP 409 Conflict is the appropriate status for these errors.
    """

    default_error_code: str = "CONFLICT"
