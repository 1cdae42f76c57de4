"""Order, OrderItem and OrderAuditLog models.

Rules implemented at the model level:
- Order id is human-readable (``OB-<epoch-ms>-<8 hex>``), generated on
  first save and never changed.
- Customer details and the shipping address are snapshots taken at
  checkout; customer fields live in plain columns so the admin search can
  use indexed ``icontains`` lookups.
- ``total = subtotal + shipping_cost + tax`` is a database constraint.
- OrderItem rows snapshot name and unit price (integer cents).
- OrderAuditLog is append-only: updates and deletes raise
  ``AuditLogImmutable``.
- The legacy ``status_history`` view is derived from the audit log.
"""

from __future__ import annotations

import secrets
import time
from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import F, Q

from modules.core.models import BaseModel
from modules.orders.constants import (
    ORDER_ID_MAX_RETRIES,
    ORDER_ID_PREFIX,
    TERMINAL_STATES,
    AuditAction,
    FulfillmentMethod,
    OrderStatus,
)
from modules.orders.exceptions import AuditLogImmutable
from modules.orders.transitions import allowed_transitions
from shared.domain.events import DomainEventMixin

logger = structlog.get_logger(__name__)

STATUS_ACTIONS = (AuditAction.STATUS_CHANGE, AuditAction.BULK_STATUS_CHANGE)


class Order(DomainEventMixin, BaseModel):
    """Order aggregate root.

    ``status`` is only ever changed by ``OrderService.change_status``,
    which validates the transition and writes the matching audit entry in
    the same transaction.
    """

    id = models.CharField(primary_key=True, max_length=40, editable=False)
    status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.CONFIRMED,
    )
    fulfillment_method: models.CharField = models.CharField(
        max_length=20,
        choices=FulfillmentMethod.choices,
    )

    customer_email: models.CharField = models.CharField(max_length=254)
    customer_first_name: models.CharField = models.CharField(max_length=100)
    customer_last_name: models.CharField = models.CharField(max_length=100)
    customer_phone: models.CharField = models.CharField(
        max_length=40, blank=True, default=""
    )
    shipping_address: models.JSONField = models.JSONField(null=True, blank=True)

    subtotal: models.PositiveIntegerField = models.PositiveIntegerField()
    shipping_cost: models.PositiveIntegerField = models.PositiveIntegerField(
        default=0
    )
    tax: models.PositiveIntegerField = models.PositiveIntegerField(default=0)
    total: models.PositiveIntegerField = models.PositiveIntegerField()
    payment_id: models.CharField = models.CharField(max_length=255)

    tracking_number: models.CharField = models.CharField(  # noqa: DJ01
        max_length=100, null=True, blank=True
    )
    admin_notes: models.TextField = models.TextField(null=True, blank=True)  # noqa: DJ01

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
            models.Index(fields=["fulfillment_method"], name="orders_fulfillment_idx"),
            models.Index(fields=["customer_email"], name="orders_email_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(total=F("subtotal") + F("shipping_cost") + F("tax")),
                name="orders_total_is_sum",
            ),
        ]

    # ------------------------------------------------------------------
    # State Machine helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        """Return ``True`` if the order is in a terminal state."""
        return self.status in TERMINAL_STATES

    @property
    def allowed_transitions(self) -> List[str]:
        return list(allowed_transitions(self.status, self.fulfillment_method))

    # ------------------------------------------------------------------
    # Derived fields
    # ------------------------------------------------------------------

    @property
    def customer_name(self) -> str:
        return f"{self.customer_first_name} {self.customer_last_name}".strip()

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items.all())

    @property
    def status_history(self) -> List[Dict[str, Any]]:
        """Legacy ``[{status, timestamp, note}]`` view built from the audit log."""
        return [
            {
                "status": entry.to_status,
                "timestamp": entry.created_at.isoformat(),
                "note": entry.note,
            }
            for entry in self.audit_log.all()
            if entry.action in STATUS_ACTIONS
        ]

    # ------------------------------------------------------------------
    # Order id generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_order_id() -> str:
        """Generate a human-readable id: ``OB-<epoch-ms>-<8 hex>``."""
        millis = time.time_ns() // 1_000_000
        return f"{ORDER_ID_PREFIX}-{millis}-{secrets.token_hex(4)}"

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.id:
            for _ in range(ORDER_ID_MAX_RETRIES):
                candidate = self.generate_order_id()
                if not Order.objects.filter(id=candidate).exists():
                    self.id = candidate
                    break
            else:
                raise RuntimeError(
                    f"Failed to generate unique order id after "
                    f"{ORDER_ID_MAX_RETRIES} attempts"
                )
        super().save(*args, **kwargs)

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        return f"{self.id} ({self.status})"


class OrderItem(BaseModel):
    """Line item snapshot.

    ``product_id`` references the external catalog; ``name`` and
    ``unit_price`` (cents) are copied at checkout and never change.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    position: models.PositiveSmallIntegerField = models.PositiveSmallIntegerField(
        default=0
    )
    product_id: models.CharField = models.CharField(max_length=100)
    name: models.CharField = models.CharField(max_length=255)
    variation: models.CharField = models.CharField(
        max_length=255, blank=True, default=""
    )
    quantity: models.PositiveIntegerField = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
    )
    unit_price: models.PositiveIntegerField = models.PositiveIntegerField()

    class Meta:
        db_table = "order_items"
        ordering = ["position", "created_at"]
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
        ]

    def clean(self) -> None:
        super().clean()
        if self.quantity is not None and self.quantity < 1:
            raise ValidationError({"quantity": "Quantity must be at least 1."})

    @property
    def line_total(self) -> int:
        return self.quantity * self.unit_price

    def __str__(self) -> str:
        return f"{self.name} x{self.quantity}"


class OrderAuditLog(BaseModel):
    """Append-only audit trail for everything that happens to an order.

    ``order`` is a weak reference: no database constraint and no cascade,
    so entries outlive their order.  ``from_status`` / ``to_status`` are
    set only for status changes; ``actor`` is ``"system"`` for automated
    entries and ``"admin"`` for operator actions.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name="audit_log",
    )
    action: models.CharField = models.CharField(
        max_length=30,
        choices=AuditAction.choices,
    )
    actor: models.CharField = models.CharField(max_length=100)
    from_status: models.CharField = models.CharField(  # noqa: DJ01
        max_length=20,
        choices=OrderStatus.choices,
        null=True,
        blank=True,
    )
    to_status: models.CharField = models.CharField(  # noqa: DJ01
        max_length=20,
        choices=OrderStatus.choices,
        null=True,
        blank=True,
    )
    note: models.TextField = models.TextField(null=True, blank=True)  # noqa: DJ01
    metadata: models.JSONField = models.JSONField(null=True, blank=True)

    class Meta:
        db_table = "order_audit_log"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(
                fields=["order", "created_at"],
                name="oal_order_created_idx",
            ),
            models.Index(fields=["action"], name="oal_action_idx"),
        ]

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self._state.adding:
            raise AuditLogImmutable("Audit log entries cannot be modified.")
        super().save(*args, **kwargs)

    def delete(self, *args: Any, **kwargs: Any) -> Any:
        raise AuditLogImmutable("Audit log entries cannot be deleted.")

    @property
    def is_status_change(self) -> bool:
        return self.action in STATUS_ACTIONS

    def __str__(self) -> str:
        transition: Optional[str] = None
        if self.is_status_change:
            transition = f"{self.from_status} -> {self.to_status}"
        return f"{self.order_id} : {self.action} {transition or ''}".rstrip()
