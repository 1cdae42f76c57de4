"""Order DRF serializers for API input/output.

The admin console speaks camelCase; serializers map it onto the
snake_case model and DTO fields.  Business logic lives in the Service
Layer, which receives Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from rest_framework import serializers

from modules.orders.constants import (
    MAX_BULK_SIZE,
    AuditAction,
    FulfillmentMethod,
    OrderStatus,
)
from modules.orders.dtos import (
    CheckoutDTO,
    CustomerInfoDTO,
    OrderItemDTO,
    ShippingAddressDTO,
)
from modules.orders.models import Order, OrderAuditLog, OrderItem


def camelize(value: str) -> str:
    head, *rest = value.split("_")
    return head + "".join(part.capitalize() for part in rest)


# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class StatusChangeSerializer(serializers.Serializer):
    """Validates ``{status, note?}``."""

    status = serializers.ChoiceField(choices=OrderStatus.choices)
    note = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, trim_whitespace=False
    )


class BulkStatusChangeSerializer(serializers.Serializer):
    """Validates ``{orderIds[], status, note?}``; at most 50 ids."""

    orderIds = serializers.ListField(
        child=serializers.CharField(),
        allow_empty=False,
        max_length=MAX_BULK_SIZE,
    )
    status = serializers.ChoiceField(choices=OrderStatus.choices)
    note = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, trim_whitespace=False
    )


class TrackingSerializer(serializers.Serializer):
    trackingNumber = serializers.CharField(max_length=100)


class NoteSerializer(serializers.Serializer):
    note = serializers.CharField()


class AuditQuerySerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=AuditAction.choices, required=False)


class CartItemSerializer(serializers.Serializer):
    """One cart line; ``price`` is the unit price in cents."""

    productId = serializers.CharField(max_length=100)
    name = serializers.CharField(max_length=200)
    variation = serializers.CharField(required=False, allow_blank=True, default="")
    quantity = serializers.IntegerField(min_value=1)
    price = serializers.IntegerField(min_value=0)
    weightOz = serializers.FloatField(required=False, allow_null=True, min_value=0)


class CustomerInfoSerializer(serializers.Serializer):
    email = serializers.EmailField()
    firstName = serializers.CharField(max_length=100)
    lastName = serializers.CharField(max_length=100)
    phone = serializers.CharField(required=False, allow_blank=True, default="")


class ShippingAddressSerializer(serializers.Serializer):
    fullName = serializers.CharField(max_length=200)
    addressLine1 = serializers.CharField(max_length=200)
    addressLine2 = serializers.CharField(required=False, allow_blank=True, default="")
    city = serializers.CharField(max_length=100)
    state = serializers.CharField(max_length=50)
    postalCode = serializers.CharField(max_length=20)
    country = serializers.CharField(required=False, default="US")


class CheckoutSerializer(serializers.Serializer):
    """Validates the storefront checkout payload.

    Totals are never taken from the client; they are recomputed from
    the cart before the card is charged.
    """

    sourceId = serializers.CharField()
    customerInfo = CustomerInfoSerializer()
    fulfillmentMethod = serializers.ChoiceField(choices=FulfillmentMethod.choices)
    shippingAddress = ShippingAddressSerializer(required=False, allow_null=True)
    items = CartItemSerializer(many=True, allow_empty=False)

    def to_dto(self) -> CheckoutDTO:
        data = self.validated_data
        customer = data["customerInfo"]
        address = data.get("shippingAddress")
        return CheckoutDTO(
            source_token=data["sourceId"],
            fulfillment_method=data["fulfillmentMethod"],
            customer=CustomerInfoDTO(
                email=customer["email"],
                first_name=customer["firstName"],
                last_name=customer["lastName"],
                phone=customer["phone"],
            ),
            shipping_address=(
                ShippingAddressDTO(
                    full_name=address["fullName"],
                    address_line1=address["addressLine1"],
                    address_line2=address["addressLine2"],
                    city=address["city"],
                    state=address["state"],
                    postal_code=address["postalCode"],
                    country=address["country"],
                )
                if address
                else None
            ),
            items=[
                OrderItemDTO(
                    product_id=item["productId"],
                    name=item["name"],
                    variation=item["variation"],
                    quantity=item["quantity"],
                    unit_price=item["price"],
                    weight_oz=item.get("weightOz"),
                )
                for item in data["items"]
            ],
        )


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    productId = serializers.CharField(source="product_id")
    unitPrice = serializers.IntegerField(source="unit_price")
    lineTotal = serializers.IntegerField(source="line_total")

    class Meta:
        model = OrderItem
        fields = ["productId", "name", "variation", "quantity", "unitPrice", "lineTotal"]
        read_only_fields = fields


class AuditEntrySerializer(serializers.ModelSerializer):
    orderId = serializers.CharField(source="order_id")
    fromStatus = serializers.CharField(source="from_status", allow_null=True)
    toStatus = serializers.CharField(source="to_status", allow_null=True)
    createdAt = serializers.DateTimeField(source="created_at")

    class Meta:
        model = OrderAuditLog
        fields = [
            "id",
            "orderId",
            "action",
            "actor",
            "fromStatus",
            "toStatus",
            "note",
            "metadata",
            "createdAt",
        ]
        read_only_fields = fields


class OrderSummarySerializer(serializers.ModelSerializer):
    """Row of the admin order list (no nested relations)."""

    fulfillmentMethod = serializers.CharField(source="fulfillment_method")
    customerName = serializers.CharField(source="customer_name")
    customerEmail = serializers.CharField(source="customer_email")
    itemCount = serializers.IntegerField(source="item_count")
    trackingNumber = serializers.CharField(source="tracking_number", allow_null=True)
    createdAt = serializers.DateTimeField(source="created_at")
    updatedAt = serializers.DateTimeField(source="updated_at")

    class Meta:
        model = Order
        fields = [
            "id",
            "status",
            "fulfillmentMethod",
            "customerName",
            "customerEmail",
            "itemCount",
            "total",
            "trackingNumber",
            "createdAt",
            "updatedAt",
        ]
        read_only_fields = fields


class OrderSerializer(OrderSummarySerializer):
    """Full order with items, snapshots and derived lifecycle fields."""

    items = OrderItemSerializer(many=True, read_only=True)
    customerInfo = serializers.SerializerMethodField()
    shippingAddress = serializers.SerializerMethodField()
    shippingCost = serializers.IntegerField(source="shipping_cost")
    paymentId = serializers.CharField(source="payment_id")
    adminNotes = serializers.CharField(source="admin_notes", allow_null=True)
    statusHistory = serializers.JSONField(source="status_history")
    allowedTransitions = serializers.ListField(
        source="allowed_transitions", child=serializers.CharField()
    )

    class Meta(OrderSummarySerializer.Meta):
        fields = OrderSummarySerializer.Meta.fields + [
            "items",
            "customerInfo",
            "shippingAddress",
            "subtotal",
            "shippingCost",
            "tax",
            "paymentId",
            "adminNotes",
            "statusHistory",
            "allowedTransitions",
        ]
        read_only_fields = fields

    def get_customerInfo(self, order: Order) -> Dict[str, str]:
        return {
            "email": order.customer_email,
            "firstName": order.customer_first_name,
            "lastName": order.customer_last_name,
            "phone": order.customer_phone,
        }

    def get_shippingAddress(self, order: Order) -> Optional[Dict[str, Any]]:
        if not order.shipping_address:
            return None
        return {camelize(key): value for key, value in order.shipping_address.items()}
