"""Event handlers for Orders domain events.

Handlers run in the outbox publisher task, after the order change has
committed.  They translate events into customer notifications.
"""

from __future__ import annotations

from typing import Callable, Dict, Optional

import structlog

from modules.notifications import EmailNotifier, NotificationKind, Notifier
from modules.orders.constants import OrderStatus
from modules.orders.events import OrderCreated, OrderStatusChanged
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)

# Statuses the customer hears about; everything else is internal.
STATUS_NOTIFICATIONS: Dict[str, str] = {
    OrderStatus.PROCESSING: NotificationKind.PROCESSING,
    OrderStatus.READY: NotificationKind.READY,
    OrderStatus.SHIPPED: NotificationKind.SHIPPED,
    OrderStatus.COMPLETED: NotificationKind.COMPLETED,
}

OrderLoader = Callable[[str], Optional[Order]]


class _NotifyingHandler:
    def __init__(
        self,
        notifier: Optional[Notifier] = None,
        load_order: Optional[OrderLoader] = None,
    ) -> None:
        self._notifier = notifier or EmailNotifier()
        self._load_order = load_order or OrderDjangoRepository().get_by_id

    def _notify(self, order_id: str, kind: str) -> None:
        order = self._load_order(order_id)
        if order is None:
            logger.warning("notification.order_missing", order_id=order_id, kind=str(kind))
            return
        self._notifier.notify(order, kind)


class OrderCreatedHandler(_NotifyingHandler, IEventHandler[OrderCreated]):
    def handle(self, event: OrderCreated) -> None:
        self._notify(event.aggregate_id, NotificationKind.CONFIRMED)


class OrderStatusChangedHandler(_NotifyingHandler, IEventHandler[OrderStatusChanged]):
    def handle(self, event: OrderStatusChanged) -> None:
        kind = STATUS_NOTIFICATIONS.get(event.to_status or "")
        if kind is None:
            logger.debug(
                "notification.skipped",
                order_id=event.aggregate_id,
                to_status=event.to_status,
            )
            return
        self._notify(event.aggregate_id, kind)


order_created_handler = OrderCreatedHandler()
order_status_changed_handler = OrderStatusChangedHandler()
