"""
Order Dataset Loader

Normalizes heterogeneous order records (legacy single-product and
multi-item shapes, local cache or server API) into one canonical
Order representation, and builds Polars frames for aggregation.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable, Optional

import polars as pl

from core.coercion import first_present, get_path, parse_timestamp, safe_float
from core.logging_config import data_logger as logger


# Candidate source fields, first present value wins
ID_FIELDS = ("id", "_id", "orderId", "orderNumber")
TIMESTAMP_FIELDS = ("orderDate", "createdAt", "timestamp")
TOTAL_FIELDS = ("totalAmount", "total")
CUSTOMER_KEY_FIELDS = (
    "customerId", "customer._id", "customer.id",
    "customerEmail", "customer.email",
    "customerName", "customer.name",
)
CUSTOMER_NAME_FIELDS = ("customerName", "customer.name", "shopName")

ITEM_PRODUCT_ID_FIELDS = ("productId", "product._id", "product.id")
ITEM_PRODUCT_NAME_FIELDS = ("productName", "name", "product.name")
ITEM_QUANTITY_FIELDS = ("quantity",)
ITEM_UNIT_PRICE_FIELDS = ("unitPrice", "price")
ITEM_LINE_TOTAL_FIELDS = ("lineTotal", "totalPrice", "total")

LEGACY_PRODUCT_NAME_FIELDS = ("productName", "product")
LEGACY_QUANTITY_FIELDS = ("quantity", "totalItems")

UNKNOWN_PRODUCT = "Unknown Product"

COMPLETED_STATUSES = frozenset({"confirmed", "approved", "delivered"})
CONVERSION_STATUSES = frozenset({"delivered", "completed"})
PENDING_STATUSES = frozenset({"pending", "pending_verification"})


@dataclass(frozen=True)
class LineItem:
    """One product line of an order."""

    product_key: str
    product_name: str
    quantity: float
    unit_price: float
    line_total: float


@dataclass(frozen=True)
class Order:
    """Canonical order consumed by every analysis component."""

    id: str
    timestamp: datetime
    status: str
    customer_key: Optional[str]
    customer_name: Optional[str]
    total_amount: float
    line_items: tuple[LineItem, ...] = field(default_factory=tuple)

    @property
    def day(self) -> str:
        return self.timestamp.date().isoformat()

    @property
    def item_count(self) -> float:
        return sum(item.quantity for item in self.line_items)

    @property
    def is_completed(self) -> bool:
        return self.status in COMPLETED_STATUSES


ORDER_SCHEMA = {
    "id": pl.Utf8,
    "timestamp": pl.Datetime("us"),
    "day": pl.Utf8,
    "status": pl.Utf8,
    "customer_key": pl.Utf8,
    "customer_name": pl.Utf8,
    "total_amount": pl.Float64,
    "item_count": pl.Float64,
}

LINE_ITEM_SCHEMA = {
    "order_id": pl.Utf8,
    "timestamp": pl.Datetime("us"),
    "product_key": pl.Utf8,
    "product_name": pl.Utf8,
    "quantity": pl.Float64,
    "unit_price": pl.Float64,
    "line_total": pl.Float64,
}


class OrderLoader:
    """Turns raw order records into canonical :class:`Order` objects."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self.clock = clock
        self.logger = logger

    def load(self, records: Optional[Iterable[Any]]) -> list[Order]:
        """
        Normalize a heterogeneous list of raw order records.

        Records that already are :class:`Order` pass through unchanged;
        anything that is not a mapping is skipped.
        """
        orders = []
        skipped = 0
        for index, record in enumerate(records or []):
            if isinstance(record, Order):
                orders.append(record)
            elif isinstance(record, dict):
                orders.append(self.normalize(record, index))
            else:
                skipped += 1

        if skipped:
            self.logger.warning(f"Skipped {skipped} records that are not order mappings")
        self.logger.debug(f"Normalized {len(orders)} orders")
        return orders

    def normalize(self, record: dict, index: int = 0) -> Order:
        """Normalize one raw record."""
        order_id = first_present(record, ID_FIELDS)
        status = first_present(record, ("status",), "pending")

        customer_key = first_present(record, CUSTOMER_KEY_FIELDS)
        customer_name = first_present(record, CUSTOMER_NAME_FIELDS, customer_key)

        line_items = self._line_items(record)
        declared_total = first_present(record, TOTAL_FIELDS)

        if line_items:
            total_amount = sum(item.line_total for item in line_items)
        else:
            total_amount = safe_float(declared_total)

        return Order(
            id=str(order_id) if order_id is not None else f"order_{index}",
            timestamp=self._timestamp(record),
            status=str(status),
            customer_key=str(customer_key) if customer_key is not None else None,
            customer_name=str(customer_name) if customer_name is not None else None,
            total_amount=total_amount,
            line_items=tuple(line_items),
        )

    def _timestamp(self, record: dict) -> datetime:
        for path in TIMESTAMP_FIELDS:
            raw = get_path(record, path)
            if raw is None:
                continue
            parsed = parse_timestamp(raw)
            if parsed is not None:
                return parsed
            self.logger.debug(f"Unparsable {path}={raw!r}, trying next field")
        return self.clock()

    def _line_items(self, record: dict) -> list[LineItem]:
        raw_items = record.get("items")
        if isinstance(raw_items, list) and raw_items:
            return self._multi_items(record, raw_items)
        return [self._legacy_item(record)]

    def _multi_items(self, record: dict, raw_items: list) -> list[LineItem]:
        entries = [item for item in raw_items if isinstance(item, dict)]
        if not entries:
            return [self._legacy_item(record)]

        priced = any(
            first_present(item, ITEM_UNIT_PRICE_FIELDS + ITEM_LINE_TOTAL_FIELDS) is not None
            for item in entries
        )
        declared_total = safe_float(first_present(record, TOTAL_FIELDS))

        if not priced and declared_total > 0:
            return self._allocate_total(entries, declared_total)

        items = []
        for entry in entries:
            quantity = safe_float(first_present(entry, ITEM_QUANTITY_FIELDS))
            unit_raw = first_present(entry, ITEM_UNIT_PRICE_FIELDS)
            total_raw = first_present(entry, ITEM_LINE_TOTAL_FIELDS)

            if total_raw is not None:
                line_total = safe_float(total_raw)
                if unit_raw is not None:
                    unit_price = safe_float(unit_raw)
                else:
                    unit_price = line_total / quantity if quantity else 0.0
            else:
                unit_price = safe_float(unit_raw)
                line_total = quantity * unit_price

            items.append(self._item(entry, quantity, unit_price, line_total))
        return items

    def _allocate_total(self, entries: list[dict], total: float) -> list[LineItem]:
        """Spread an order-level total over unpriced items by quantity."""
        quantities = [safe_float(first_present(e, ITEM_QUANTITY_FIELDS)) for e in entries]
        quantity_sum = sum(quantities)

        items = []
        for entry, quantity in zip(entries, quantities):
            if quantity_sum > 0:
                line_total = total * quantity / quantity_sum
            else:
                line_total = total / len(entries)
            unit_price = line_total / quantity if quantity else 0.0
            items.append(self._item(entry, quantity, unit_price, line_total))
        return items

    def _item(self, entry: dict, quantity: float, unit_price: float, line_total: float) -> LineItem:
        product_id = first_present(entry, ITEM_PRODUCT_ID_FIELDS)
        product_name = first_present(entry, ITEM_PRODUCT_NAME_FIELDS)
        return self._make_item(product_id, product_name, quantity, unit_price, line_total)

    def _legacy_item(self, record: dict) -> LineItem:
        """Lift a single-product order into a one-element line item list."""
        quantity = safe_float(first_present(record, LEGACY_QUANTITY_FIELDS), 1.0)
        declared_total = first_present(record, TOTAL_FIELDS)
        unit_raw = first_present(record, ITEM_UNIT_PRICE_FIELDS)

        if declared_total is not None:
            line_total = safe_float(declared_total)
            unit_price = line_total / quantity if quantity else 0.0
        else:
            unit_price = safe_float(unit_raw)
            line_total = quantity * unit_price

        product_name = first_present(record, LEGACY_PRODUCT_NAME_FIELDS)
        if isinstance(product_name, dict):
            product_name = product_name.get("name")
        return self._make_item(
            first_present(record, ("productId",)),
            product_name,
            quantity,
            unit_price,
            line_total,
        )

    @staticmethod
    def _make_item(
        product_id: Any,
        product_name: Any,
        quantity: float,
        unit_price: float,
        line_total: float,
    ) -> LineItem:
        name = str(product_name) if product_name is not None else None
        key = str(product_id) if product_id is not None else (name or UNKNOWN_PRODUCT)
        return LineItem(
            product_key=key,
            product_name=name or UNKNOWN_PRODUCT,
            quantity=quantity,
            unit_price=unit_price,
            line_total=line_total,
        )


def orders_frame(orders: list[Order]) -> pl.DataFrame:
    """One row per order, sorted chronologically."""
    frame = pl.DataFrame(
        {
            "id": [o.id for o in orders],
            "timestamp": [o.timestamp for o in orders],
            "day": [o.day for o in orders],
            "status": [o.status for o in orders],
            "customer_key": [o.customer_key for o in orders],
            "customer_name": [o.customer_name for o in orders],
            "total_amount": [o.total_amount for o in orders],
            "item_count": [o.item_count for o in orders],
        },
        schema=ORDER_SCHEMA,
    )
    return frame.sort("timestamp", maintain_order=True)


def line_items_frame(orders: list[Order]) -> pl.DataFrame:
    """One row per line item, sorted chronologically."""
    rows = [
        (o.id, o.timestamp, item.product_key, item.product_name,
         item.quantity, item.unit_price, item.line_total)
        for o in orders
        for item in o.line_items
    ]
    columns = list(LINE_ITEM_SCHEMA)
    frame = pl.DataFrame(
        {name: [row[i] for row in rows] for i, name in enumerate(columns)},
        schema=LINE_ITEM_SCHEMA,
    )
    return frame.sort("timestamp", maintain_order=True)


# Global instance
order_loader = OrderLoader()
