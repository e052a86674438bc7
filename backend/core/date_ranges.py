"""
Date Range Resolution

Maps report date-range keys (today, week, month, ...) to concrete windows
and filters order snapshots down to them.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Iterable, Optional

from core.coercion import parse_timestamp, safe_float
from core.errors import InvalidDateRangeError
from core.order_loader import Order


DATE_RANGE_KEYS = (
    "today", "yesterday", "week", "lastWeek",
    "month", "lastMonth", "quarter", "year", "custom",
)

PERIOD_LABELS = {
    "today": "today",
    "yesterday": "yesterday",
    "week": "the past 7 days",
    "lastWeek": "last week",
    "month": "this month",
    "lastMonth": "last month",
    "quarter": "this quarter",
    "year": "this year",
}

CUSTOM_DEFAULT_DAYS = 30


@dataclass(frozen=True)
class DateRange:
    """A resolved reporting window, both ends inclusive."""

    key: str
    label: str
    start: datetime
    end: datetime

    @property
    def length(self) -> timedelta:
        return self.end - self.start

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end

    def previous(self) -> "DateRange":
        """The window of equal length immediately before this one."""
        end = self.start - timedelta(microseconds=1)
        return DateRange(
            key=f"previous:{self.key}",
            label=f"the period before {self.label}",
            start=end - self.length,
            end=end,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "label": self.label,
            "startDate": self.start,
            "endDate": self.end,
        }


def _start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def _closed(end_boundary: datetime) -> datetime:
    return end_boundary - timedelta(microseconds=1)


def resolve_date_range(
    key: str,
    filters: Optional[dict[str, Any]] = None,
    now: Optional[datetime] = None,
) -> DateRange:
    """
    Resolve a date-range key into a concrete window.

    Open windows (today, week, month, quarter, year) end at ``now``;
    yesterday, lastWeek and lastMonth are closed windows. ``custom`` reads
    ``startDate``/``endDate`` from filters, defaulting to the last 30 days.

    Raises:
        InvalidDateRangeError: unknown key or unparsable custom dates.
    """
    now = now or datetime.now()
    filters = filters or {}
    today = _start_of_day(now)

    if key == "today":
        start, end = today, now
    elif key == "yesterday":
        start, end = today - timedelta(days=1), _closed(today)
    elif key == "week":
        start, end = now - timedelta(days=7), now
    elif key == "lastWeek":
        start, end = now - timedelta(days=14), now - timedelta(days=7)
    elif key == "month":
        start, end = today.replace(day=1), now
    elif key == "lastMonth":
        this_month = today.replace(day=1)
        start = (this_month - timedelta(days=1)).replace(day=1)
        end = _closed(this_month)
    elif key == "quarter":
        first_month = 3 * ((now.month - 1) // 3) + 1
        start, end = today.replace(month=first_month, day=1), now
    elif key == "year":
        start, end = today.replace(month=1, day=1), now
    elif key == "custom":
        return _custom_range(filters, now)
    else:
        raise InvalidDateRangeError(
            f"Unknown date range '{key}'. Expected one of: {', '.join(DATE_RANGE_KEYS)}"
        )

    return DateRange(key=key, label=PERIOD_LABELS[key], start=start, end=end)


def _custom_range(filters: dict[str, Any], now: datetime) -> DateRange:
    start = _filter_date(filters, "startDate", now - timedelta(days=CUSTOM_DEFAULT_DAYS))
    end = _filter_date(filters, "endDate", now)

    if start > end:
        raise InvalidDateRangeError("startDate must not be after endDate")

    label = f"{start:%d %b %Y} to {end:%d %b %Y}"
    return DateRange(key="custom", label=label, start=start, end=end)


def _filter_date(filters: dict[str, Any], name: str, default: datetime) -> datetime:
    raw = filters.get(name)
    if raw is None or raw == "":
        return default
    parsed = parse_timestamp(raw)
    if parsed is None:
        raise InvalidDateRangeError(f"Could not parse {name}: {raw!r}")
    # A bare calendar date as endDate covers that whole day
    if name == "endDate" and isinstance(raw, (str, date)) and _is_date_only(raw):
        parsed = _closed(parsed + timedelta(days=1))
    return parsed


def _is_date_only(raw: Any) -> bool:
    if isinstance(raw, datetime):
        return False
    if isinstance(raw, date):
        return True
    return len(raw.strip()) == 10


def filter_orders(
    orders: Iterable[Order],
    date_range: Optional[DateRange],
    filters: Optional[dict[str, Any]] = None,
) -> list[Order]:
    """Keep orders inside the window that match every supplied filter."""
    filters = filters or {}
    product_id = filters.get("productId")
    customer_id = filters.get("customerId")
    status = filters.get("status")
    min_amount = filters.get("minAmount")
    min_amount = safe_float(min_amount) if min_amount not in (None, "") else None

    selected = []
    for order in orders:
        if date_range is not None and not date_range.contains(order.timestamp):
            continue
        if status and order.status != status:
            continue
        if customer_id and order.customer_key != str(customer_id):
            continue
        if product_id and not any(i.product_key == str(product_id) for i in order.line_items):
            continue
        if min_amount is not None and order.total_amount < min_amount:
            continue
        selected.append(order)
    return selected
