"""Order domain constants.

Defines status / fulfillment choices, the status adjacency table of the
order state machine, audit actions and the error codes returned to the
admin console.
"""

from typing import Dict, FrozenSet, Tuple

from django.db import models


class OrderStatus(models.TextChoices):
    CONFIRMED = "confirmed", "Confirmed"
    PROCESSING = "processing", "Processing"
    READY = "ready", "Ready for pickup"
    SHIPPED = "shipped", "Shipped"
    ON_HOLD = "on_hold", "On hold"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


class FulfillmentMethod(models.TextChoices):
    PICKUP = "pickup", "Pickup at the farm"
    SHIPPING = "shipping", "Shipping"


class AuditAction(models.TextChoices):
    STATUS_CHANGE = "status_change", "Status change"
    BULK_STATUS_CHANGE = "bulk_status_change", "Bulk status change"
    TRACKING_ADDED = "tracking_added", "Tracking added"
    NOTE_ADDED = "note_added", "Note added"


class ErrorCode(models.TextChoices):
    NOT_FOUND = "NOT_FOUND", "Order not found"
    INVALID_TRANSITION = "INVALID_TRANSITION", "Invalid transition"
    FULFILLMENT_MISMATCH = "FULFILLMENT_MISMATCH", "Fulfillment mismatch"
    NOTE_REQUIRED = "NOTE_REQUIRED", "Note required"
    VALIDATION_ERROR = "VALIDATION_ERROR", "Validation error"
    PAYMENT_DECLINED = "PAYMENT_DECLINED", "Payment declined"


# Ordered: the admin console renders actions in this order.
VALID_TRANSITIONS: Dict[str, Tuple[str, ...]] = {
    OrderStatus.CONFIRMED: (
        OrderStatus.PROCESSING,
        OrderStatus.ON_HOLD,
        OrderStatus.CANCELLED,
    ),
    OrderStatus.PROCESSING: (
        OrderStatus.READY,
        OrderStatus.SHIPPED,
        OrderStatus.ON_HOLD,
        OrderStatus.CANCELLED,
    ),
    OrderStatus.READY: (
        OrderStatus.COMPLETED,
        OrderStatus.ON_HOLD,
        OrderStatus.CANCELLED,
    ),
    OrderStatus.SHIPPED: (
        OrderStatus.COMPLETED,
        OrderStatus.ON_HOLD,
        OrderStatus.CANCELLED,
    ),
    OrderStatus.ON_HOLD: (
        OrderStatus.CONFIRMED,
        OrderStatus.PROCESSING,
        OrderStatus.CANCELLED,
    ),
    OrderStatus.COMPLETED: (),
    OrderStatus.CANCELLED: (),
}

TERMINAL_STATES: FrozenSet[str] = frozenset(
    {OrderStatus.COMPLETED, OrderStatus.CANCELLED}
)

ACTIVE_STATES: FrozenSet[str] = frozenset(
    status for status in OrderStatus.values if status not in TERMINAL_STATES
)

NOTE_REQUIRED_STATES: FrozenSet[str] = frozenset(
    {OrderStatus.ON_HOLD, OrderStatus.CANCELLED}
)

# Statuses reachable only by one fulfillment method.
FULFILLMENT_ONLY_STATES: Dict[str, str] = {
    OrderStatus.READY: FulfillmentMethod.PICKUP,
    OrderStatus.SHIPPED: FulfillmentMethod.SHIPPING,
}

# Admin list "tab" shorthands; "completed" is the console's legacy name.
STATUS_TABS: Dict[str, FrozenSet[str]] = {
    "active": ACTIVE_STATES,
    "archived": TERMINAL_STATES,
    "completed": TERMINAL_STATES,
}

ACTOR_SYSTEM = "system"
ACTOR_ADMIN = "admin"

ORDER_ID_PREFIX = "OB"
ORDER_ID_MAX_RETRIES = 5

MAX_BULK_SIZE = 50
AUDIT_DEFAULT_PAGE_SIZE = 50
EXPORT_MAX_ROWS = 10_000

SORT_FIELDS: Dict[str, str] = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "total": "total",
    "status": "status",
}
DEFAULT_SORT_FIELD = "createdAt"
