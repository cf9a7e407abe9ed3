# Makes 'checkout' (inside services/) importable before collection
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

BASE_DIR = Path(__file__).resolve().parent  # .../services
p = str(BASE_DIR)
if p not in sys.path:
    sys.path.insert(0, p)

from checkout.repo import OrderRecord, OrderRepository, marshal_to_json  # noqa: E402
from checkout.schemas import Address, Money, OrderItem  # noqa: E402


@pytest.fixture
def db_url(tmp_path):
    """File-backed SQLite database shared by every connection of a test."""
    return f"sqlite:///{tmp_path / 'orders.db'}"


@pytest.fixture
def repo(db_url):
    r = OrderRepository(db_url)
    yield r
    r.close()


@pytest.fixture
def make_record():
    """Factory for order records with sensible defaults."""

    def _make(order_id="order-1", **overrides):
        values = dict(
            order_id=order_id,
            user_id="user-1",
            email="someone@example.com",
            currency_code="USD",
            total_units=10,
            total_nanos=500_000_000,
            payment_transaction="tx-1",
            shipping_tracking_id="track-1",
            shipping_address=marshal_to_json(
                Address(street_address="1600 Amphitheatre Pkwy", city="Mountain View", state="CA", country="US", zip_code=94043)
            ),
            items=marshal_to_json(
                [OrderItem(product_id="OLJCESPC7Z", quantity=1, cost=Money(currency_code="USD", units=10, nanos=500_000_000))]
            ),
            created_at=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
        )
        values.update(overrides)
        return OrderRecord(**values)

    return _make
