"""
Test Order Loading

Unit tests for record normalization, safe accessors and order frames.
"""

from datetime import datetime

import pytest

from core.coercion import first_present, get_path, parse_timestamp, safe_divide, safe_float, safe_int
from core.order_loader import UNKNOWN_PRODUCT, line_items_frame, orders_frame


class TestCoercion:
    def test_get_path_nested(self):
        record = {"customer": {"email": "a@b.in", "name": None}}
        assert get_path(record, "customer.email") == "a@b.in"
        assert get_path(record, "customer.name", "fallback") == "fallback"
        assert get_path(record, "customer.email.domain") is None

    def test_first_present_skips_blank_strings(self):
        record = {"customerId": "  ", "customer": {"email": "x@y.in"}}
        assert first_present(record, ("customerId", "customer.email")) == "x@y.in"

    @pytest.mark.parametrize("raw, expected", [
        ("42.5", 42.5),
        ("₹1,250", 1250.0),
        (None, 0.0),
        ("abc", 0.0),
        (float("nan"), 0.0),
        (float("inf"), 0.0),
        (True, 0.0),
    ])
    def test_safe_float(self, raw, expected):
        assert safe_float(raw) == expected

    def test_safe_int_truncates(self):
        assert safe_int("7.9") == 7
        assert safe_int(None, 3) == 3
        assert safe_int("n/a") == 0

    def test_safe_divide_zero_denominator(self):
        assert safe_divide(10, 0) == 0.0
        assert safe_divide(10, 4) == 2.5

    def test_parse_timestamp_shapes(self):
        assert parse_timestamp("2024-03-15T08:30:00") == datetime(2024, 3, 15, 8, 30)
        assert parse_timestamp(datetime(2024, 1, 1, 9)) == datetime(2024, 1, 1, 9)
        assert parse_timestamp("not a date") is None
        assert parse_timestamp("") is None

    def test_parse_timestamp_epoch_units_agree(self):
        seconds = parse_timestamp(1_700_000_000)
        millis = parse_timestamp(1_700_000_000_000)
        assert seconds == millis

    def test_parse_timestamp_utc_suffix_is_naive(self):
        parsed = parse_timestamp("2024-03-15T08:30:00Z")
        assert parsed is not None
        assert parsed.tzinfo is None


class TestOrderLoader:
    def test_multi_item_totals(self, loader):
        order = loader.normalize({
            "id": "A1",
            "orderDate": "2024-03-15T10:00:00",
            "items": [
                {"productId": "p1", "productName": "Milk", "quantity": 2, "unitPrice": 30},
                {"productId": "p2", "productName": "Curd", "quantity": 1, "lineTotal": 45},
            ],
        })

        assert [i.line_total for i in order.line_items] == [60, 45]
        assert order.line_items[1].unit_price == 45
        assert order.total_amount == pytest.approx(105)

    def test_line_total_computed_not_assumed_zero(self, loader):
        order = loader.normalize({"items": [{"productName": "Ghee", "quantity": 3, "price": 500}]})
        assert order.line_items[0].line_total == 1500

    def test_unit_price_derived_from_line_total(self, loader):
        order = loader.normalize({"items": [{"productName": "Ghee", "quantity": 4, "totalPrice": 200}]})
        assert order.line_items[0].unit_price == 50

    def test_unpriced_items_share_order_total(self, loader):
        order = loader.normalize({
            "totalAmount": 300,
            "items": [
                {"productName": "Milk", "quantity": 1},
                {"productName": "Curd", "quantity": 2},
            ],
        })

        assert [i.line_total for i in order.line_items] == pytest.approx([100, 200])
        assert order.total_amount == pytest.approx(300)

    def test_unpriced_zero_quantities_split_equally(self, loader):
        order = loader.normalize({
            "totalAmount": 90,
            "items": [{"productName": "A"}, {"productName": "B"}, {"productName": "C"}],
        })
        assert [i.line_total for i in order.line_items] == pytest.approx([30, 30, 30])

    def test_legacy_record_becomes_one_line(self, loader, legacy_record):
        order = loader.normalize(legacy_record)

        assert order.id == "LEG-001"
        assert order.status == "confirmed"
        assert len(order.line_items) == 1
        item = order.line_items[0]
        # Declared order total wins over quantity * unitPrice
        assert item.line_total == 130
        assert item.unit_price == pytest.approx(32.5)
        assert item.product_key == "Toned Milk"
        assert order.customer_key == "Sharma Dairy"
        assert order.customer_name == "Sharma Dairy"

    def test_defaults_for_sparse_record(self, loader, now):
        order = loader.normalize({}, index=7)

        assert order.id == "order_7"
        assert order.status == "pending"
        assert order.timestamp == now
        assert order.customer_key is None
        assert order.line_items[0].product_name == UNKNOWN_PRODUCT
        assert order.total_amount == 0

    def test_unparsable_timestamp_falls_through(self, loader):
        order = loader.normalize({"orderDate": "garbage", "createdAt": "2024-02-01T09:00:00"})
        assert order.timestamp == datetime(2024, 2, 1, 9)

    def test_customer_key_preference(self, loader):
        order = loader.normalize({
            "customerEmail": "shop@example.in",
            "customer": {"name": "Corner Shop"},
        })
        assert order.customer_key == "shop@example.in"
        assert order.customer_name == "Corner Shop"

    def test_status_is_case_sensitive(self, loader):
        order = loader.normalize({"status": "Delivered", "totalAmount": 10})
        assert order.status == "Delivered"
        assert not order.is_completed

    def test_load_skips_non_mappings(self, loader, spike_records):
        orders = loader.load(spike_records + ["junk", None, 42])
        assert len(orders) == len(spike_records)

    def test_load_accepts_none(self, loader):
        assert loader.load(None) == []


class TestFrames:
    def test_revenue_identity(self, spike_orders):
        frame = orders_frame(spike_orders)
        items = line_items_frame(spike_orders)

        assert frame["total_amount"].sum() == pytest.approx(sum(o.total_amount for o in spike_orders))
        assert items["line_total"].sum() == pytest.approx(frame["total_amount"].sum())

    def test_frames_sorted_chronologically(self, loader, spike_records):
        orders = loader.load(list(reversed(spike_records)))
        frame = orders_frame(orders)
        assert frame["day"].to_list() == sorted(frame["day"].to_list())

    def test_empty_frames_keep_schema(self):
        assert orders_frame([]).height == 0
        assert "line_total" in line_items_frame([]).columns
