"""Integration tests for the storefront checkout endpoint."""

from __future__ import annotations

from unittest import mock

import pytest

from modules.core.models import OutboxEvent
from modules.orders.checkout import PAYMENT_FAILED, PaymentReceipt, SandboxPaymentGateway
from modules.orders.models import Order, OrderAuditLog

pytestmark = pytest.mark.integration

CHECKOUT_URL = "/api/v1/checkout/"


def _payload(fulfillment="shipping", **overrides):
    payload = {
        "sourceId": "cnon:card-nonce-ok",
        "customerInfo": {
            "email": "priya@example.com",
            "firstName": "Priya",
            "lastName": "Raman",
            "phone": "360-555-0199",
        },
        "fulfillmentMethod": fulfillment,
        "items": [
            {
                "productId": "cider-dry",
                "name": "Dry Hard Cider 4-pack",
                "quantity": 1,
                "price": 1800,
            },
            {
                "productId": "lav-sachet",
                "name": "Lavender Sachet",
                "quantity": 2,
                "price": 800,
            },
        ],
    }
    if fulfillment == "shipping":
        payload["shippingAddress"] = {
            "fullName": "Priya Raman",
            "addressLine1": "12 Lavender Ln",
            "city": "Sequim",
            "state": "WA",
            "postalCode": "98382",
        }
    payload.update(overrides)
    return payload


class TestCheckout:
    def test_shipping_checkout_creates_order(self, api_client):
        response = api_client.post(CHECKOUT_URL, _payload(), format="json")

        assert response.status_code == 201
        body = response.json()
        order = Order.objects.get(id=body["orderId"])
        assert order.status == "confirmed"
        assert order.payment_id == body["paymentId"]
        assert order.payment_id.startswith("sandbox-")
        # 1800 + 2 * 800; 44 oz of cart ships for 1300.
        assert (order.subtotal, order.shipping_cost, order.total) == (3400, 1300, 4700)
        assert body["total"] == 4700
        assert order.shipping_address["postal_code"] == "98382"

    def test_pickup_checkout_has_no_shipping(self, api_client):
        response = api_client.post(CHECKOUT_URL, _payload("pickup"), format="json")

        assert response.status_code == 201
        order = Order.objects.get(id=response.json()["orderId"])
        assert order.shipping_cost == 0
        assert order.total == 3400

    def test_order_is_audited_and_queued_for_notification(self, api_client):
        response = api_client.post(CHECKOUT_URL, _payload(), format="json")
        order_id = response.json()["orderId"]

        entry = OrderAuditLog.objects.get(order_id=order_id)
        assert entry.to_status == "confirmed"
        assert OutboxEvent.objects.filter(
            aggregate_id=order_id, event_type="OrderCreated"
        ).exists()

    def test_declined_card_returns_402_and_creates_nothing(self, api_client):
        response = api_client.post(
            CHECKOUT_URL,
            _payload(sourceId="cnon:card-nonce-declined"),
            format="json",
        )

        assert response.status_code == 402
        assert response.json()["error"] == "PAYMENT_DECLINED"
        assert Order.objects.count() == 0
        assert OutboxEvent.objects.count() == 0

    def test_gateway_is_charged_the_server_side_total(self, api_client):
        receipt = PaymentReceipt(id="pay-1", status=PAYMENT_FAILED)
        with mock.patch.object(
            SandboxPaymentGateway, "charge", return_value=receipt
        ) as charge:
            api_client.post(CHECKOUT_URL, _payload(total=1), format="json")

        charge.assert_called_once_with("cnon:card-nonce-ok", 4700)

    def test_does_not_require_admin_credentials(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION="Bearer not-a-token")

        response = api_client.post(CHECKOUT_URL, _payload("pickup"), format="json")

        assert response.status_code == 201


class TestCheckoutValidation:
    def test_missing_fields_return_400(self, api_client):
        response = api_client.post(CHECKOUT_URL, {"items": []}, format="json")

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "VALIDATION_ERROR"
        assert {"sourceId", "customerInfo", "fulfillmentMethod", "items"} <= set(
            body["fields"]
        )

    def test_shipping_without_address_returns_400(self, api_client):
        payload = _payload()
        del payload["shippingAddress"]

        response = api_client.post(CHECKOUT_URL, payload, format="json")

        assert response.status_code == 400
        assert Order.objects.count() == 0

    def test_pickup_with_address_returns_400(self, api_client):
        payload = _payload("pickup", shippingAddress=_payload()["shippingAddress"])

        response = api_client.post(CHECKOUT_URL, payload, format="json")

        assert response.status_code == 400

    def test_zero_quantity_returns_400(self, api_client):
        payload = _payload("pickup")
        payload["items"][0]["quantity"] = 0

        response = api_client.post(CHECKOUT_URL, payload, format="json")

        assert response.status_code == 400
