"""Unit tests for the e-mail notifier."""

import pytest
from django.core import mail
from django.test import override_settings

from modules.notifications import EmailNotifier, NotificationKind
from modules.notifications.notifier import order_url, render_customer_message
from modules.orders.constants import FulfillmentMethod, OrderStatus

pytestmark = pytest.mark.unit


@pytest.fixture()
def notifier():
    return EmailNotifier()


class TestConfirmation:
    def test_sends_customer_and_farm_mail(self, notifier, make_order):
        order = make_order()

        notifier.notify(order, NotificationKind.CONFIRMED)

        assert len(mail.outbox) == 2
        customer_mail, farm_mail = mail.outbox
        assert customer_mail.to == ["maya@example.com"]
        assert customer_mail.subject == f"Order Confirmation - {order.id}"
        assert "Lavender Sachet - Qty: 2 - $16.00" in customer_mail.body
        assert "Total: $16.00" in customer_mail.body
        assert farm_mail.to == ["farm@olympicbluffs.example"]
        assert farm_mail.subject == f"NEW ORDER - {order.id}"
        assert "Maya Okafor <maya@example.com>" in farm_mail.body

    @override_settings(FARM_NOTIFICATION_EMAIL="")
    def test_farm_mail_is_optional(self, notifier, make_order):
        notifier.notify(make_order(), NotificationKind.CONFIRMED)

        assert len(mail.outbox) == 1

    def test_uses_default_sender(self, notifier, make_order, settings):
        notifier.notify(make_order(), NotificationKind.CONFIRMED)

        assert mail.outbox[0].from_email == settings.DEFAULT_FROM_EMAIL


class TestStatusMails:
    @pytest.mark.parametrize(
        "kind, subject",
        [
            (NotificationKind.PROCESSING, "Your Order is Being Prepared"),
            (NotificationKind.READY, "Your Order is Ready for Pickup!"),
            (NotificationKind.SHIPPED, "Your Order Has Shipped"),
            (NotificationKind.COMPLETED, "Thank You for Your Order"),
        ],
    )
    def test_subject_per_kind(self, notifier, make_order, kind, subject):
        order = make_order()

        notifier.notify(order, kind)

        assert len(mail.outbox) == 1
        assert mail.outbox[0].subject == f"{subject} - {order.id}"

    def test_shipped_mail_includes_tracking(self, notifier, make_order, order_service):
        order = make_order(FulfillmentMethod.SHIPPING, OrderStatus.PROCESSING)
        order_service.set_tracking(order.id, "9400 1000 0000 0042")
        order.refresh_from_db()

        notifier.notify(order, NotificationKind.SHIPPED)

        assert "Tracking Number: 9400 1000 0000 0042" in mail.outbox[0].body

    def test_unknown_kind_is_rejected(self, notifier, make_order):
        with pytest.raises(ValueError, match="Unknown notification kind"):
            notifier.notify(make_order(), "refunded")
        assert mail.outbox == []


@override_settings(SITE_URL="https://shop.olympicbluffs.example/")
def test_message_links_to_order_page(make_order):
    order = make_order()

    assert order_url(order) == f"https://shop.olympicbluffs.example/orders/{order.id}"
    body = render_customer_message(order, NotificationKind.READY)
    assert body.startswith("Hi Maya,")
    assert body.endswith(f"Track your order: {order_url(order)}")
