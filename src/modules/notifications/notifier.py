"""Customer and farm e-mail notifications for order events.

``notify(order, kind)`` is the single entry point; it is called from the
outbox event handlers, never from inside a request transaction.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Protocol

import structlog
from django.conf import settings
from django.core.mail import send_mail
from django.db import models

from modules.orders.shipping import format_cents

if TYPE_CHECKING:
    from modules.orders.models import Order

logger = structlog.get_logger(__name__)


class NotificationKind(models.TextChoices):
    CONFIRMED = "confirmed", "Order confirmed"
    PROCESSING = "processing", "Order being prepared"
    READY = "ready", "Ready for pickup"
    SHIPPED = "shipped", "Order shipped"
    COMPLETED = "completed", "Order completed"


SUBJECTS: Dict[str, str] = {
    NotificationKind.CONFIRMED: "Order Confirmation - {order_id}",
    NotificationKind.PROCESSING: "Your Order is Being Prepared - {order_id}",
    NotificationKind.READY: "Your Order is Ready for Pickup! - {order_id}",
    NotificationKind.SHIPPED: "Your Order Has Shipped - {order_id}",
    NotificationKind.COMPLETED: "Thank You for Your Order - {order_id}",
}

MESSAGES: Dict[str, str] = {
    NotificationKind.CONFIRMED: "Thank you for your order!",
    NotificationKind.PROCESSING: "We're preparing your order.",
    NotificationKind.READY: "Your order is ready for pickup at the farm.",
    NotificationKind.SHIPPED: "Your order is on its way.",
    NotificationKind.COMPLETED: "Thank you for supporting Olympic Bluffs!",
}


class Notifier(Protocol):
    def notify(self, order: Order, kind: str) -> None: ...


def order_url(order: Order) -> str:
    return f"{settings.SITE_URL.rstrip('/')}/orders/{order.id}"


def render_customer_message(order: Order, kind: str) -> str:
    lines: List[str] = [
        f"Hi {order.customer_first_name},",
        "",
        MESSAGES[kind],
        "",
        f"Order Number: {order.id}",
    ]
    if kind == NotificationKind.CONFIRMED:
        lines.append("")
        lines.extend(
            f"{item.name} - Qty: {item.quantity} - {format_cents(item.line_total)}"
            for item in order.items.all()
        )
        lines.append(f"Total: {format_cents(order.total)}")
    if kind == NotificationKind.SHIPPED and order.tracking_number:
        lines.append(f"Tracking Number: {order.tracking_number}")
    lines.extend(["", f"Track your order: {order_url(order)}"])
    return "\n".join(lines)


def render_farm_message(order: Order) -> str:
    lines = [
        f"New {order.fulfillment_method} order {order.id}",
        f"Customer: {order.customer_name} <{order.customer_email}>",
        "",
    ]
    lines.extend(
        f"{item.name} x{item.quantity}" for item in order.items.all()
    )
    lines.append(f"Total: {format_cents(order.total)}")
    return "\n".join(lines)


class EmailNotifier:
    """``Notifier`` backed by ``django.core.mail``.

    Delivery errors propagate so the outbox publisher can record them on
    the event.
    """

    def notify(self, order: Order, kind: str) -> None:
        if kind not in SUBJECTS:
            raise ValueError(f"Unknown notification kind: {kind}")

        send_mail(
            SUBJECTS[kind].format(order_id=order.id),
            render_customer_message(order, kind),
            None,
            [order.customer_email],
        )

        if kind == NotificationKind.CONFIRMED and settings.FARM_NOTIFICATION_EMAIL:
            send_mail(
                f"NEW ORDER - {order.id}",
                render_farm_message(order),
                None,
                [settings.FARM_NOTIFICATION_EMAIL],
            )

        logger.info("notification.sent", order_id=order.id, kind=str(kind))
