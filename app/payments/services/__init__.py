"""
Payment services.

This module provides:
- ReconciliationService: Intent creation and status reconciliation
- get_reconciliation_service: Factory wiring the Stripe adapter in

Usage:
    from payments.services import get_reconciliation_service

    service = get_reconciliation_service()
    result = service.get_status(payment_id, request.user)
"""

from payments.services.reconciliation_service import (
    IntentRequestResult,
    ObservationOutcome,
    ObservationSource,
    ReconciliationResult,
    ReconciliationService,
    StatusObservation,
    get_reconciliation_service,
)

__all__ = [
    "IntentRequestResult",
    "ObservationOutcome",
    "ObservationSource",
    "ReconciliationResult",
    "ReconciliationService",
    "StatusObservation",
    "get_reconciliation_service",
]
