"""
State machine enums and helpers for payment models.

This module defines the state enums used by payment models with django-fsm
and the mapping from gateway statuses and webhook event types.
"""

from payments.state_machines.states import (
    GATEWAY_STATUS_MAP,
    IN_FLIGHT_STATUSES,
    TERMINAL_STATUSES,
    WEBHOOK_EVENT_STATUS_MAP,
    OrderStatus,
    PaymentStatus,
    WebhookEventStatus,
    map_gateway_status,
    map_webhook_event,
)

__all__ = [
    "GATEWAY_STATUS_MAP",
    "IN_FLIGHT_STATUSES",
    "OrderStatus",
    "PaymentStatus",
    "TERMINAL_STATUSES",
    "WEBHOOK_EVENT_STATUS_MAP",
    "WebhookEventStatus",
    "map_gateway_status",
    "map_webhook_event",
]
