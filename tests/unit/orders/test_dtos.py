"""Unit tests for Order DTOs (Pydantic validation)."""

from datetime import date

import pytest
from pydantic import ValidationError

from modules.orders.constants import FulfillmentMethod, OrderStatus
from modules.orders.dtos import (
    BulkStatusChangeDTO,
    CheckoutDTO,
    CreateOrderDTO,
    CustomerInfoDTO,
    OrderItemDTO,
    OrderListQueryDTO,
    ShippingAddressDTO,
)

pytestmark = pytest.mark.unit

CUSTOMER = CustomerInfoDTO(email="maya@example.com", first_name="Maya", last_name="Okafor")
ADDRESS = ShippingAddressDTO(
    full_name="Maya Okafor",
    address_line1="1025 Finn Hall Rd",
    city="Port Angeles",
    state="WA",
    postal_code="98362",
)
ITEM = OrderItemDTO(product_id="lav-candle", name="Lavender Candle", quantity=1, unit_price=2400)


def _create(**overrides):
    data = dict(
        items=[ITEM],
        customer=CUSTOMER,
        fulfillment_method=FulfillmentMethod.PICKUP,
        subtotal=2400,
        shipping_cost=0,
        tax=0,
        total=2400,
        payment_id="pay-1",
    )
    data.update(overrides)
    return CreateOrderDTO(**data)


class TestOrderItemDTO:
    def test_quantity_must_be_positive(self):
        with pytest.raises(ValidationError, match="Quantity must be at least 1"):
            OrderItemDTO(product_id="p", name="Sachet", quantity=0, unit_price=800)

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError):
            OrderItemDTO(product_id="p", name="Sachet", quantity=1, unit_price=-1)

    def test_is_frozen(self):
        with pytest.raises(ValidationError):
            ITEM.quantity = 3


class TestCustomerInfoDTO:
    def test_invalid_email_rejected(self):
        with pytest.raises(ValidationError):
            CustomerInfoDTO(email="not-an-email", first_name="Maya", last_name="Okafor")

    def test_phone_is_optional(self):
        assert CUSTOMER.phone == ""


class TestCreateOrderDTO:
    def test_valid_pickup_order(self):
        dto = _create()
        assert dto.fulfillment_method == FulfillmentMethod.PICKUP
        assert dto.shipping_address is None

    def test_valid_shipping_order(self):
        dto = _create(
            fulfillment_method=FulfillmentMethod.SHIPPING,
            shipping_address=ADDRESS,
            shipping_cost=700,
            total=3100,
        )
        assert dto.shipping_address.country == "US"

    def test_empty_items_rejected(self):
        with pytest.raises(ValidationError, match="at least one item"):
            _create(items=[])

    def test_total_must_be_sum_of_parts(self):
        with pytest.raises(ValidationError, match="Total must equal"):
            _create(total=2500)

    def test_shipping_requires_address(self):
        with pytest.raises(ValidationError, match="shipping address is required"):
            _create(fulfillment_method=FulfillmentMethod.SHIPPING)

    def test_pickup_rejects_address(self):
        with pytest.raises(ValidationError, match="must not carry a shipping address"):
            _create(shipping_address=ADDRESS)

    def test_unknown_fulfillment_rejected(self):
        with pytest.raises(ValidationError):
            _create(fulfillment_method="drone")

    def test_payment_id_required(self):
        with pytest.raises(ValidationError):
            _create(payment_id="")


class TestCheckoutDTO:
    def test_shipping_requires_address(self):
        with pytest.raises(ValidationError):
            CheckoutDTO(
                items=[ITEM],
                customer=CUSTOMER,
                fulfillment_method=FulfillmentMethod.SHIPPING,
                source_token="tok_visa",
            )

    def test_source_token_required(self):
        with pytest.raises(ValidationError):
            CheckoutDTO(
                items=[ITEM],
                customer=CUSTOMER,
                fulfillment_method=FulfillmentMethod.PICKUP,
                source_token="",
            )


class TestBulkStatusChangeDTO:
    def test_valid(self):
        dto = BulkStatusChangeDTO(order_ids=[" OB-1 ", "OB-2"], status="processing")
        assert dto.order_ids == ["OB-1", "OB-2"]
        assert dto.status == OrderStatus.PROCESSING
        assert dto.note is None

    def test_empty_list_rejected(self):
        with pytest.raises(ValidationError):
            BulkStatusChangeDTO(order_ids=[], status="processing")

    def test_more_than_fifty_rejected(self):
        with pytest.raises(ValidationError):
            BulkStatusChangeDTO(
                order_ids=[f"OB-{i}" for i in range(51)], status="processing"
            )

    def test_exactly_fifty_accepted(self):
        dto = BulkStatusChangeDTO(
            order_ids=[f"OB-{i}" for i in range(50)], status="processing"
        )
        assert len(dto.order_ids) == 50

    def test_blank_id_rejected(self):
        with pytest.raises(ValidationError, match="must not be blank"):
            BulkStatusChangeDTO(order_ids=["OB-1", "  "], status="processing")

    def test_unknown_status_rejected(self):
        with pytest.raises(ValidationError):
            BulkStatusChangeDTO(order_ids=["OB-1"], status="lost")


class TestOrderListQueryDTO:
    def test_defaults(self):
        query = OrderListQueryDTO.from_query_params({})
        assert query.page == 1
        assert query.page_size == 20
        assert query.status_filter == ()
        assert query.sort_by == "createdAt"
        assert query.sort_order == "desc"

    def test_parses_admin_query_names(self):
        query = OrderListQueryDTO.from_query_params(
            {
                "page": "3",
                "pageSize": "50",
                "status": "processing, ready",
                "fulfillment": "pickup",
                "search": "  okafor ",
                "dateFrom": "2026-03-01",
                "dateTo": "2026-03-31",
                "sortBy": "total",
                "sortOrder": "ASC",
            }
        )
        assert query.page == 3
        assert query.page_size == 50
        assert query.status_filter == ("processing", "ready")
        assert query.fulfillment == FulfillmentMethod.PICKUP
        assert query.search == "okafor"
        assert query.date_from == date(2026, 3, 1)
        assert query.date_to == date(2026, 3, 31)
        assert query.sort_by == "total"
        assert query.sort_order == "asc"

    def test_page_size_is_clamped(self):
        assert OrderListQueryDTO.from_query_params({"pageSize": "500"}).page_size == 100
        assert OrderListQueryDTO.from_query_params({"pageSize": "0"}).page_size == 1

    def test_malformed_page_falls_back(self):
        query = OrderListQueryDTO.from_query_params({"page": "abc", "pageSize": "-"})
        assert query.page == 1
        assert query.page_size == 20

    def test_negative_page_is_clamped(self):
        assert OrderListQueryDTO.from_query_params({"page": "-4"}).page == 1

    def test_unknown_sort_falls_back_to_created_at(self):
        query = OrderListQueryDTO.from_query_params({"sortBy": "customer_email"})
        assert query.sort_by == "createdAt"

    def test_active_tab(self):
        query = OrderListQueryDTO.from_query_params({"tab": "active"})
        assert set(query.status_filter) == {
            "confirmed",
            "processing",
            "ready",
            "shipped",
            "on_hold",
        }

    @pytest.mark.parametrize("tab", ["archived", "completed"])
    def test_archive_tabs(self, tab):
        query = OrderListQueryDTO.from_query_params({"tab": tab})
        assert set(query.status_filter) == {"completed", "cancelled"}

    def test_explicit_status_wins_over_tab(self):
        query = OrderListQueryDTO.from_query_params({"tab": "archived", "status": "ready"})
        assert query.status_filter == ("ready",)

    @pytest.mark.parametrize(
        "params",
        [
            {"status": "processing,lost"},
            {"tab": "someday"},
            {"fulfillment": "drone"},
            {"dateFrom": "03/01/2026"},
            {"dateFrom": "2026-04-01", "dateTo": "2026-03-01"},
        ],
    )
    def test_invalid_filters_raise(self, params):
        with pytest.raises(ValidationError):
            OrderListQueryDTO.from_query_params(params)
