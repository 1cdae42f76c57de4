from __future__ import annotations

import random
from datetime import timedelta
from typing import List, Optional, Sequence, Tuple

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.utils import timezone

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

CATALOG = [
    ("lav-sachet", "Lavender Sachet", 800),
    ("lav-candle", "Lavender Candle", 2400),
    ("lav-towel", "Lavender Tea Towel", 1600),
    ("lav-herb", "Lavender Herb Blend", 1200),
    ("lav-roller", "Lavender Essential Oil Roller Ball", 1500),
    ("cider-dry", "Dry Hard Cider 4-pack", 1800),
    ("cider-rose", "Rosé Cider 4-pack", 2000),
]

CUSTOMERS = [
    ("Maya", "Okafor", "maya@example.com", "360-555-0101"),
    ("Theo", "Lindqvist", "theo@example.com", "360-555-0102"),
    ("Priya", "Raman", "priya@example.com", "360-555-0103"),
    ("Sam", "O'Neill", "sam@example.com", ""),
    ("Lucía", "Marquez", "lucia@example.com", "206-555-0199"),
    ("Jordan", "Baker, Jr.", "jordan@example.com", "503-555-0142"),
]

Step = Tuple[str, Optional[str]]

PICKUP_PATHS: Sequence[Sequence[Step]] = (
    (),
    ((OrderStatus.PROCESSING, None),),
    ((OrderStatus.PROCESSING, None), (OrderStatus.READY, None)),
    (
        (OrderStatus.PROCESSING, None),
        (OrderStatus.READY, None),
        (OrderStatus.COMPLETED, "Picked up at the farm stand"),
    ),
    ((OrderStatus.ON_HOLD, "Waiting on customer reply"),),
    ((OrderStatus.CANCELLED, "Customer requested cancellation"),),
)

SHIPPING_PATHS: Sequence[Sequence[Step]] = (
    (),
    ((OrderStatus.PROCESSING, None),),
    ((OrderStatus.PROCESSING, None), (OrderStatus.SHIPPED, None)),
    (
        (OrderStatus.PROCESSING, None),
        (OrderStatus.SHIPPED, None),
        (OrderStatus.COMPLETED, None),
    ),
    ((OrderStatus.PROCESSING, None), (OrderStatus.ON_HOLD, "Address issue")),
    ((OrderStatus.CANCELLED, "Out of stock"),),
)


class Command(BaseCommand):
    help = "Seed the database with farm orders in every status."

    def add_arguments(self, parser):
        parser.add_argument("--orders", type=int, default=30)

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users_created = self._seed_users()
        orders = self._seed_orders(options["orders"])

        self.stdout.write(
            self.style.SUCCESS(
                f"Seed completed: users={users_created}, orders={len(orders)}"
            )
        )

    def _seed_users(self) -> int:
        User = get_user_model()
        created = 0
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")
            created += 1
        if not User.objects.filter(username="farmhand").exists():
            User.objects.create_user("farmhand", password="farmhand123", is_staff=True)
            created += 1
        return created

    def _seed_orders(self, count: int) -> List[Order]:
        self.stdout.write("Creating orders...")
        service = OrderService(order_repository=OrderDjangoRepository())
        orders: List[Order] = []

        for i in range(count):
            fulfillment = random.choice(list(FulfillmentMethod))
            order = service.create_order(self._order_dto(fulfillment))

            paths = PICKUP_PATHS if fulfillment == FulfillmentMethod.PICKUP else SHIPPING_PATHS
            for target, note in random.choice(paths):
                if target == OrderStatus.SHIPPED:
                    service.set_tracking(order.id, f"9400 1000 0000 {i:04d}", actor=ACTOR_SYSTEM)
                service.change_status(order.id, target, note=note, actor=ACTOR_SYSTEM)

            created_at = timezone.now() - timedelta(days=random.randint(0, 45))
            Order.objects.filter(id=order.id).update(created_at=created_at)
            orders.append(order)

        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return orders

    def _order_dto(self, fulfillment: str) -> CreateOrderDTO:
        first, last, email, phone = random.choice(CUSTOMERS)
        items = [
            OrderItemDTO(
                product_id=product_id,
                name=name,
                quantity=random.randint(1, 3),
                unit_price=price,
            )
            for product_id, name, price in random.sample(CATALOG, k=random.randint(1, 3))
        ]
        address = None
        if fulfillment == FulfillmentMethod.SHIPPING:
            address = ShippingAddressDTO(
                full_name=f"{first} {last}",
                address_line1="1025 Finn Hall Rd",
                city="Port Angeles",
                state="WA",
                postal_code="98362",
            )
        totals = calculate_order_totals(items, fulfillment)
        return CreateOrderDTO(
            items=items,
            customer=CustomerInfoDTO(
                email=email, first_name=first, last_name=last, phone=phone
            ),
            fulfillment_method=fulfillment,
            shipping_address=address,
            subtotal=totals.subtotal,
            shipping_cost=totals.shipping_cost,
            tax=totals.tax,
            total=totals.total,
            payment_id=f"seed-payment-{random.randrange(16**8):08x}",
        )
