"""Checkout: price the cart, charge the customer, record the order.

The payment provider is consumed through the ``PaymentGateway``
protocol; its integration details live outside this project.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

import structlog
import uuid6
from django.conf import settings
from django.utils.module_loading import import_string

from modules.orders.dtos import CreateOrderDTO
from modules.orders.exceptions import PaymentDeclined
from modules.orders.shipping import calculate_order_totals

if TYPE_CHECKING:
    from modules.orders.dtos import CheckoutDTO
    from modules.orders.models import Order
    from modules.orders.services import OrderService

logger = structlog.get_logger(__name__)

PAYMENT_COMPLETED = "COMPLETED"
PAYMENT_FAILED = "FAILED"


@dataclass(frozen=True)
class PaymentReceipt:
    id: str
    status: str


class PaymentGateway(Protocol):
    def charge(self, source_token: str, amount_cents: int) -> PaymentReceipt: ...


class SandboxPaymentGateway:
    """Offline gateway for development and the test suite.

    Completes every charge except the card processor's sandbox decline
    nonces, so the declined path can be exercised end to end.
    """

    DECLINED_TOKENS = frozenset(
        {
            "cnon:card-nonce-declined",
            "cnon:card-nonce-rejected-cvv",
            "cnon:card-nonce-rejected-expiration",
        }
    )

    def charge(self, source_token: str, amount_cents: int) -> PaymentReceipt:
        declined = source_token in self.DECLINED_TOKENS
        status = PAYMENT_FAILED if declined else PAYMENT_COMPLETED
        return PaymentReceipt(id=f"sandbox-{uuid6.uuid7().hex}", status=status)


def build_payment_gateway() -> PaymentGateway:
    """Instantiate the gateway class named by ``settings.PAYMENT_GATEWAY``."""
    return import_string(settings.PAYMENT_GATEWAY)()


class CheckoutService:
    def __init__(self, order_service: OrderService, payment_gateway: PaymentGateway) -> None:
        self._order_service = order_service
        self._gateway = payment_gateway

    def place_order(self, dto: CheckoutDTO) -> Order:
        """Charge the cart total and create the order.

        Raises:
            PaymentDeclined: the gateway did not complete the charge.
        """
        totals = calculate_order_totals(dto.items, dto.fulfillment_method)
        log = logger.bind(
            fulfillment_method=str(dto.fulfillment_method),
            total=totals.total,
            item_count=len(dto.items),
        )

        receipt = self._gateway.charge(dto.source_token, totals.total)
        if receipt.status != PAYMENT_COMPLETED:
            log.warning("checkout.payment_declined", payment_status=receipt.status)
            raise PaymentDeclined(f"Payment {receipt.id} was not completed ({receipt.status}).")

        order = self._order_service.create_order(
            CreateOrderDTO(
                items=dto.items,
                customer=dto.customer,
                fulfillment_method=dto.fulfillment_method,
                shipping_address=dto.shipping_address,
                subtotal=totals.subtotal,
                shipping_cost=totals.shipping_cost,
                tax=totals.tax,
                total=totals.total,
                payment_id=receipt.id,
            )
        )
        log.info("checkout.completed", order_id=order.id, payment_id=receipt.id)
        return order
