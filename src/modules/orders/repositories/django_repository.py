"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.  The order
and its items are written in one ``transaction.atomic()`` block, and
``save`` writes the aggregate's pending domain events to the outbox in
the caller's transaction.

Concurrency control on status updates uses ``select_for_update()``.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Tuple

import structlog
from django.db import transaction
from django.db.models import Count

from modules.core.models import OutboxEvent
from modules.orders.constants import SORT_FIELDS, OrderStatus
from modules.orders.dtos import CreateOrderDTO, OrderListQueryDTO
from modules.orders.filters import OrderFilter
from modules.orders.models import Order, OrderAuditLog, OrderItem
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

OUTBOX_TOPIC = "orders"


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, dto: CreateOrderDTO) -> Order:
        """Create an order with its items atomically."""
        customer = dto.customer
        order = Order(
            fulfillment_method=dto.fulfillment_method,
            customer_email=customer.email,
            customer_first_name=customer.first_name,
            customer_last_name=customer.last_name,
            customer_phone=customer.phone,
            shipping_address=(
                dto.shipping_address.model_dump() if dto.shipping_address else None
            ),
            subtotal=dto.subtotal,
            shipping_cost=dto.shipping_cost,
            tax=dto.tax,
            total=dto.total,
            payment_id=dto.payment_id,
        )
        order.save()

        OrderItem.objects.bulk_create(
            [
                OrderItem(
                    order=order,
                    position=position,
                    product_id=item.product_id,
                    name=item.name,
                    variation=item.variation,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                )
                for position, item in enumerate(dto.items)
            ]
        )

        logger.info("order.persisted", order_id=order.id, item_count=len(dto.items))
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with items and audit log prefetched."""
        return (
            Order.objects.prefetch_related("items", "audit_log")
            .filter(id=id)
            .first()
        )

    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        Must be called inside ``transaction.atomic()``; the lock is held
        until the surrounding transaction ends.
        """
        return Order.objects.select_for_update().filter(id=id).first()

    def exists(self, id: str) -> bool:
        return Order.objects.filter(id=id).exists()

    def get_many(self, ids: Iterable[str]) -> List[Order]:
        return list(Order.objects.filter(id__in=list(ids)))

    def search(
        self, query: OrderListQueryDTO, offset: int = 0, limit: Optional[int] = None
    ) -> Tuple[List[Order], int]:
        queryset = OrderFilter.apply(query, Order.objects.all())
        total = queryset.count()

        field = SORT_FIELDS[query.sort_by]
        prefix = "" if query.sort_order == "asc" else "-"
        queryset = queryset.order_by(f"{prefix}{field}", f"{prefix}id")
        queryset = queryset.prefetch_related("items")

        end = None if limit is None else offset + limit
        return list(queryset[offset:end]), total

    def status_counts(self, query: OrderListQueryDTO) -> Dict[str, int]:
        counts = {status: 0 for status in OrderStatus.values}
        rows = (
            OrderFilter.apply_without_status(query, Order.objects.all())
            .order_by()
            .values("status")
            .annotate(count=Count("id"))
        )
        for row in rows:
            counts[row["status"]] = row["count"]
        return counts

    # ------------------------------------------------------------------
    # Save (IRepository contract)
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order, update_fields: Optional[List[str]] = None) -> Order:
        """Persist an order and move its pending domain events to the outbox."""
        entity.save(update_fields=update_fields)

        events = entity.domain_events
        for event in events:
            OutboxEvent.objects.create(
                event_type=event.event_name,
                aggregate_id=event.aggregate_id,
                payload=event.to_payload(),
                topic=OUTBOX_TOPIC,
            )
        entity.clear_domain_events()

        logger.debug("order.saved", order_id=entity.id, event_count=len(events))
        return entity

    # ------------------------------------------------------------------
    # Audit log
    # ------------------------------------------------------------------

    def add_audit_entry(
        self,
        order_id: str,
        action: str,
        actor: str,
        from_status: Optional[str] = None,
        to_status: Optional[str] = None,
        note: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> OrderAuditLog:
        entry = OrderAuditLog.objects.create(
            order_id=order_id,
            action=action,
            actor=actor,
            from_status=from_status,
            to_status=to_status,
            note=note,
            metadata=metadata,
        )
        logger.debug(
            "order.audit_entry_added",
            order_id=order_id,
            action=action,
            from_status=from_status,
            to_status=to_status,
        )
        return entry

    def audit_log(
        self,
        order_id: str,
        action: Optional[str] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> Tuple[List[OrderAuditLog], int]:
        queryset = OrderAuditLog.objects.filter(order_id=order_id)
        if action:
            queryset = queryset.filter(action=action)
        total = queryset.count()
        end = None if limit is None else offset + limit
        return list(queryset.order_by("created_at", "id")[offset:end]), total
