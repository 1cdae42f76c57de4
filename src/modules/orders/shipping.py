"""Weight-based shipping rates and order totals.

All money values are integer cents; weights are ounces.  Pickup orders
never pay shipping.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Protocol

from django.conf import settings

from modules.orders.constants import FulfillmentMethod


@dataclass(frozen=True)
class ShippingTier:
    max_oz: float
    label: str
    cost: int


SHIPPING_TIERS = (
    ShippingTier(8, "Under 8oz", 500),
    ShippingTier(16, "8oz - 1lb", 700),
    ShippingTier(32, "1 - 2 lbs", 1000),
    ShippingTier(48, "2 - 3 lbs", 1300),
    ShippingTier(80, "3 - 5 lbs", 1600),
    ShippingTier(math.inf, "Over 5 lbs", 2000),
)


class CartLine(Protocol):
    name: str
    quantity: int
    unit_price: int
    weight_oz: Optional[float]


@dataclass(frozen=True)
class OrderTotals:
    subtotal: int
    shipping_cost: int
    tax: int
    total: int
    weight_oz: float


def get_product_weight(product_name: str, product_weight: Optional[float] = None) -> float:
    """Weight of one unit of *product_name* in ounces.

    Lookup order: exact name in ``PRODUCT_WEIGHTS_OZ``, then a configured
    key contained in the name (case-insensitive), then the product's own
    weight, then ``DEFAULT_PRODUCT_WEIGHT_OZ``.
    """
    weights = settings.PRODUCT_WEIGHTS_OZ
    if weights.get(product_name):
        return weights[product_name]

    lowered = product_name.lower()
    for key, weight in weights.items():
        if key.lower() in lowered:
            return weight

    if product_weight:
        return product_weight
    return settings.DEFAULT_PRODUCT_WEIGHT_OZ


def calculate_cart_weight(items: Iterable[CartLine]) -> float:
    return sum(
        get_product_weight(item.name, item.weight_oz) * item.quantity
        for item in items
    )


def get_shipping_tier(weight_oz: float) -> ShippingTier:
    for tier in SHIPPING_TIERS:
        if weight_oz <= tier.max_oz:
            return tier
    return SHIPPING_TIERS[-1]


def calculate_shipping_cost(weight_oz: float) -> int:
    return get_shipping_tier(weight_oz).cost


def format_weight(weight_oz: float) -> str:
    """``6 oz``, ``1 lb``, ``2 lbs``, ``1.5 lbs``."""
    if weight_oz < 16:
        return f"{weight_oz:g} oz"
    lbs = weight_oz / 16
    if lbs == int(lbs):
        lbs = int(lbs)
        return f"{lbs} lb{'s' if lbs > 1 else ''}"
    return f"{lbs:.1f} lbs"


def format_cents(cents: int) -> str:
    """``1500`` -> ``$15.00``."""
    return f"${Decimal(cents) / 100:.2f}"


def calculate_tax(subtotal: int) -> int:
    rate = Decimal(str(settings.SALES_TAX_RATE))
    return int((Decimal(subtotal) * rate).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_order_totals(items: Iterable[CartLine], fulfillment_method: str) -> OrderTotals:
    lines = list(items)
    subtotal = sum(item.unit_price * item.quantity for item in lines)
    weight_oz = calculate_cart_weight(lines)
    shipping_cost = 0
    if fulfillment_method == FulfillmentMethod.SHIPPING:
        shipping_cost = calculate_shipping_cost(weight_oz)
    tax = calculate_tax(subtotal)
    return OrderTotals(
        subtotal=subtotal,
        shipping_cost=shipping_cost,
        tax=tax,
        total=subtotal + shipping_cost + tax,
        weight_oz=weight_oz,
    )
