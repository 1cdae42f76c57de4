"""Integration tests for throttling on the admin order API."""

from __future__ import annotations

import pytest
from rest_framework.settings import api_settings
from rest_framework.throttling import ScopedRateThrottle

pytestmark = pytest.mark.integration

ORDERS_URL = "/api/v1/admin/orders/"


@pytest.fixture()
def tight_rates(monkeypatch):
    rates = dict(api_settings.DEFAULT_THROTTLE_RATES, order_export="2/minute")
    monkeypatch.setattr(ScopedRateThrottle, "THROTTLE_RATES", rates)
    return rates


def test_export_is_throttled(admin_client, tight_rates):
    for _ in range(2):
        assert admin_client.get(f"{ORDERS_URL}export/").status_code == 200

    response = admin_client.get(f"{ORDERS_URL}export/")

    assert response.status_code == 429
    assert response.json()["error"] == "THROTTLED"


def test_scopes_are_counted_separately(admin_client, tight_rates):
    for _ in range(2):
        admin_client.get(f"{ORDERS_URL}export/")

    assert admin_client.get(ORDERS_URL).status_code == 200


def test_status_changes_are_not_throttled(admin_client, make_order, tight_rates):
    order = make_order()

    for target in ("processing", "ready", "completed"):
        response = admin_client.post(
            f"{ORDERS_URL}{order.id}/status/", {"status": target}, format="json"
        )
        assert response.status_code == 200
