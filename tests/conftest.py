from typing import Callable, List, Optional, Sequence

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from modules.orders.constants import ACTOR_SYSTEM, FulfillmentMethod, OrderStatus
from modules.orders.dtos import (
    CreateOrderDTO,
    CustomerInfoDTO,
    OrderItemDTO,
    ShippingAddressDTO,
)
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.orders.shipping import calculate_order_totals

# Transitions that walk a fresh order to each status, with the note
# required to enter it.
STATUS_PATHS = {
    FulfillmentMethod.PICKUP: {
        OrderStatus.CONFIRMED: (),
        OrderStatus.PROCESSING: (OrderStatus.PROCESSING,),
        OrderStatus.READY: (OrderStatus.PROCESSING, OrderStatus.READY),
        OrderStatus.COMPLETED: (
            OrderStatus.PROCESSING,
            OrderStatus.READY,
            OrderStatus.COMPLETED,
        ),
        OrderStatus.ON_HOLD: (OrderStatus.ON_HOLD,),
        OrderStatus.CANCELLED: (OrderStatus.CANCELLED,),
    },
    FulfillmentMethod.SHIPPING: {
        OrderStatus.CONFIRMED: (),
        OrderStatus.PROCESSING: (OrderStatus.PROCESSING,),
        OrderStatus.SHIPPED: (OrderStatus.PROCESSING, OrderStatus.SHIPPED),
        OrderStatus.COMPLETED: (
            OrderStatus.PROCESSING,
            OrderStatus.SHIPPED,
            OrderStatus.COMPLETED,
        ),
        OrderStatus.ON_HOLD: (OrderStatus.ON_HOLD,),
        OrderStatus.CANCELLED: (OrderStatus.CANCELLED,),
    },
}


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_cache():
    """Throttle counters live in the cache; start every test from zero."""
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


@pytest.fixture()
def admin_user():
    return get_user_model().objects.create_user(
        username="farmadmin", password="lavender-fields-42", is_staff=True
    )


@pytest.fixture()
def admin_client(admin_user):
    """APIClient authenticated as a staff user."""
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client


@pytest.fixture()
def order_service():
    return OrderService(order_repository=OrderDjangoRepository())


def build_order_dto(
    fulfillment: str = FulfillmentMethod.PICKUP,
    first_name: str = "Maya",
    last_name: str = "Okafor",
    email: str = "maya@example.com",
    phone: str = "360-555-0101",
    items: Optional[Sequence[OrderItemDTO]] = None,
) -> CreateOrderDTO:
    lines: List[OrderItemDTO] = list(items or [])
    if not lines:
        lines = [
            OrderItemDTO(
                product_id="lav-sachet",
                name="Lavender Sachet",
                quantity=2,
                unit_price=800,
            )
        ]
    address = None
    if fulfillment == FulfillmentMethod.SHIPPING:
        address = ShippingAddressDTO(
            full_name=f"{first_name} {last_name}",
            address_line1="1025 Finn Hall Rd",
            city="Port Angeles",
            state="WA",
            postal_code="98362",
        )
    totals = calculate_order_totals(lines, fulfillment)
    return CreateOrderDTO(
        items=lines,
        customer=CustomerInfoDTO(
            email=email, first_name=first_name, last_name=last_name, phone=phone
        ),
        fulfillment_method=fulfillment,
        shipping_address=address,
        subtotal=totals.subtotal,
        shipping_cost=totals.shipping_cost,
        tax=totals.tax,
        total=totals.total,
        payment_id="pay-test-0001",
    )


@pytest.fixture()
def order_dto() -> Callable[..., CreateOrderDTO]:
    """Factory for valid ``CreateOrderDTO`` values."""
    return build_order_dto


@pytest.fixture()
def make_order(order_service) -> Callable[..., Order]:
    """Create an order through the service and walk it to ``status``.

    Intermediate steps are recorded as system transitions, so the audit
    log looks like a real order's.
    """

    def _make(
        fulfillment: str = FulfillmentMethod.PICKUP,
        status: str = OrderStatus.CONFIRMED,
        **customer: str,
    ) -> Order:
        order = order_service.create_order(build_order_dto(fulfillment, **customer))
        for target in STATUS_PATHS[FulfillmentMethod(fulfillment)][OrderStatus(status)]:
            note: Optional[str] = None
            if target in (OrderStatus.ON_HOLD, OrderStatus.CANCELLED):
                note = "Set up by test"
            result = order_service.change_status(
                order.id, target, note=note, actor=ACTOR_SYSTEM
            )
            assert result.ok, result.detail
        return Order.objects.get(id=order.id)

    return _make
