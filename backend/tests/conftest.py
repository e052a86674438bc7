"""
Shared fixtures: a fixed clock and small, hand-checkable order snapshots.
"""

from datetime import datetime, timedelta

import pytest

from core.order_loader import OrderLoader


NOW = datetime(2024, 3, 20, 12, 0, 0)
SPIKE_START = datetime(2024, 3, 11, 10, 0, 0)
SPIKE_REVENUES = [100, 100, 100, 100, 100, 100, 400]


def make_order(
    index: int,
    when: datetime,
    amount: float,
    status: str = "delivered",
    customer: str = "cust-1",
    product: str = "Full Cream Milk",
    quantity: float = 2,
) -> dict:
    """Multi-item raw order with a single priced line."""
    return {
        "_id": f"ord-{index}",
        "orderDate": when.isoformat(),
        "status": status,
        "customer": {"_id": customer, "name": customer.replace("cust", "Customer")},
        "items": [
            {
                "productId": product.lower().replace(" ", "-"),
                "productName": product,
                "quantity": quantity,
                "unitPrice": amount / quantity,
            }
        ],
        "totalAmount": amount,
    }


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def loader(clock):
    return OrderLoader(clock=clock)


@pytest.fixture
def spike_records():
    """Seven consecutive days, one order each, the last day a 4x spike."""
    return [
        make_order(
            i,
            SPIKE_START + timedelta(days=i),
            amount,
            customer=f"cust-{i % 3}",
            product="Paneer" if i % 2 else "Full Cream Milk",
        )
        for i, amount in enumerate(SPIKE_REVENUES)
    ]


@pytest.fixture
def spike_orders(loader, spike_records):
    return loader.load(spike_records)


@pytest.fixture
def legacy_record():
    """Single-product order shape from the older storefront."""
    return {
        "orderNumber": "LEG-001",
        "createdAt": "2024-03-15T08:30:00",
        "status": "confirmed",
        "customerName": "Sharma Dairy",
        "productName": "Toned Milk",
        "quantity": 4,
        "unitPrice": 30,
        "totalAmount": 130,
    }
