"""Unit tests for the order CSV export format."""

import csv
import io
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest
from freezegun import freeze_time

from modules.orders.constants import FulfillmentMethod, OrderStatus
from modules.orders.csv_export import CSV_COLUMNS, format_orders_as_csv, iso_timestamp
from modules.orders.dtos import OrderItemDTO

pytestmark = pytest.mark.unit

HEADER = "Order ID,Status,Customer Name,Email,Fulfillment,Items,Total,Tracking,Created Date"


def test_empty_export_is_header_only():
    assert format_orders_as_csv([]) == HEADER + "\n"


def test_header_matches_columns():
    assert ",".join(CSV_COLUMNS) == HEADER


def test_row_quotes_names_with_commas(order_service, order_dto):
    order = order_service.create_order(
        order_dto(
            first_name="Jordan",
            last_name="Baker, Jr.",
            email="jordan@example.com",
            items=[
                OrderItemDTO(
                    product_id="lav-roller",
                    name="Lavender Essential Oil Roller Ball",
                    quantity=1,
                    unit_price=1500,
                )
            ],
        )
    )

    text = format_orders_as_csv([order])
    lines = text.split("\n")

    assert lines[0] == HEADER
    assert lines[1] == (
        f'{order.id},confirmed,"Jordan Baker, Jr.",jordan@example.com,pickup,1,$15.00,,'
        f"{iso_timestamp(order.created_at)}"
    )
    assert text.endswith("\n")


def test_rows_parse_back_with_csv_reader(make_order, order_service):
    order = make_order(FulfillmentMethod.SHIPPING, OrderStatus.PROCESSING)
    order_service.set_tracking(order.id, "9400 1000 0000 0001")
    order.refresh_from_db()

    rows = list(csv.reader(io.StringIO(format_orders_as_csv([order]))))

    assert len(rows) == 2
    row = dict(zip(CSV_COLUMNS, rows[1]))
    assert row["Status"] == "processing"
    assert row["Fulfillment"] == "shipping"
    assert row["Items"] == "2"
    assert row["Tracking"] == "9400 1000 0000 0001"


def test_one_row_per_order_in_given_order(make_order):
    first = make_order(first_name="Priya", last_name="Raman", email="priya@example.com")
    second = make_order(first_name="Sam", last_name="O'Neill", email="sam@example.com")

    lines = format_orders_as_csv([second, first]).strip("\n").split("\n")

    assert [line.split(",")[0] for line in lines[1:]] == [second.id, first.id]


@freeze_time("2026-10-19 16:17:11.359887")
def test_created_date_is_utc_with_milliseconds(make_order):
    order = make_order()

    row = format_orders_as_csv([order]).split("\n")[1]

    assert row.endswith(",2026-10-19T16:17:11.359Z")


def test_iso_timestamp_converts_to_utc():
    pacific = datetime(2026, 3, 5, 15, 30, tzinfo=ZoneInfo("America/Los_Angeles"))

    assert iso_timestamp(pacific) == "2026-03-05T23:30:00.000Z"
