"""CSV rendering of the admin order list."""

from __future__ import annotations

import csv
import io
from datetime import datetime, timezone
from typing import Iterable

from modules.orders.models import Order
from modules.orders.shipping import format_cents

CSV_COLUMNS = (
    "Order ID",
    "Status",
    "Customer Name",
    "Email",
    "Fulfillment",
    "Items",
    "Total",
    "Tracking",
    "Created Date",
)


def iso_timestamp(value: datetime) -> str:
    """UTC, millisecond precision, ``Z`` suffix (``2026-03-05T23:30:00.000Z``)."""
    utc = value.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def order_row(order: Order) -> list:
    return [
        order.id,
        order.status,
        order.customer_name,
        order.customer_email,
        order.fulfillment_method,
        str(order.item_count),
        format_cents(order.total),
        order.tracking_number or "",
        iso_timestamp(order.created_at),
    ]


def format_orders_as_csv(orders: Iterable[Order]) -> str:
    """Header row plus one row per order, minimal quoting, ``\\n`` line ends."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for order in orders:
        writer.writerow(order_row(order))
    return buffer.getvalue()
