import json

import pytest

from modules.orders.events import OrderCreated, OrderStatusChanged
from modules.orders.models import Order
from shared.infrastructure.bus import InMemoryEventBus

pytestmark = pytest.mark.unit


class TestDomainEvent:
    def test_event_name_is_class_name(self):
        assert OrderCreated(aggregate_id="OB-1").event_name == "OrderCreated"

    def test_payload_is_json_safe(self):
        event = OrderStatusChanged(
            aggregate_id="OB-1", from_status="processing", to_status="on_hold", note="Wait"
        )
        payload = json.loads(json.dumps(event.to_payload()))
        assert payload["aggregate_id"] == "OB-1"
        assert payload["to_status"] == "on_hold"
        assert payload["event_name"] == "OrderStatusChanged"

    def test_from_payload_restores_the_event(self):
        event = OrderStatusChanged(
            aggregate_id="OB-1", from_status="confirmed", to_status="processing"
        )
        restored = OrderStatusChanged.from_payload(event.to_payload())
        assert restored == event

    def test_events_are_immutable(self):
        event = OrderCreated(aggregate_id="OB-1")
        with pytest.raises(AttributeError):
            event.aggregate_id = "OB-2"


class TestDomainEventMixin:
    def test_collects_and_clears_events(self):
        order = Order()
        order.add_domain_event(OrderCreated(aggregate_id="OB-1"))
        assert [e.event_name for e in order.domain_events] == ["OrderCreated"]
        order.clear_domain_events()
        assert order.domain_events == []


class TestInMemoryEventBus:
    def test_publishes_to_subscribed_handlers_in_order(self):
        bus = InMemoryEventBus()
        calls = []

        class Handler:
            def __init__(self, name):
                self.name = name

            def handle(self, event):
                calls.append((self.name, event.aggregate_id))

        first, second = Handler("first"), Handler("second")
        bus.subscribe(OrderCreated, first)
        bus.subscribe(OrderCreated, second)
        bus.subscribe(OrderCreated, first)

        bus.publish(OrderCreated(aggregate_id="OB-9"))

        assert calls == [("first", "OB-9"), ("second", "OB-9")]

    def test_resolve_by_event_name(self):
        bus = InMemoryEventBus()
        bus.subscribe(OrderStatusChanged, object())
        assert bus.resolve("OrderStatusChanged") is OrderStatusChanged
        assert bus.resolve("OrderCreated") is None

    def test_handler_errors_propagate(self):
        bus = InMemoryEventBus()

        class Broken:
            def handle(self, event):
                raise RuntimeError("handler broke")

        bus.subscribe(OrderCreated, Broken())
        with pytest.raises(RuntimeError, match="handler broke"):
            bus.publish(OrderCreated(aggregate_id="OB-1"))
