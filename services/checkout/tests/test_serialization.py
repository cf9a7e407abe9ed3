"""Tests for document serialization and the document schemas."""

import json
from dataclasses import dataclass

import pytest
from pydantic import ValidationError
from sqlalchemy import select

from checkout.models import orders_table
from checkout.repo import marshal_to_json
from checkout.schemas import Money, OrderItem


@dataclass
class Note:
    text: str


def test_marshal_plain_data_is_compact_utf8():
    assert marshal_to_json({"a": [1, 2]}) == b'{"a":[1,2]}'


def test_marshal_models_and_dataclasses():
    out = json.loads(marshal_to_json({"note": Note("leave at door"), "cost": Money(currency_code="eur", units=3)}))
    assert out == {"note": {"text": "leave at door"}, "cost": {"currency_code": "EUR", "units": 3, "nanos": 0}}


def test_marshal_unsupported_value_raises_type_error():
    with pytest.raises(TypeError):
        marshal_to_json({"when": object()})


@pytest.mark.parametrize("number", [float("nan"), float("inf"), float("-inf")])
def test_marshal_rejects_non_finite_floats(number):
    """NaN and Infinity are not JSON; JSONB would refuse them at save time."""
    with pytest.raises(ValueError):
        marshal_to_json({"x": number})


def test_line_items_round_trip_through_storage(repo, make_record):
    """Two serialized line items read back as an equivalent structure."""
    items = [
        OrderItem(product_id="OLJCESPC7Z", quantity=2, cost=Money(currency_code="USD", units=19, nanos=990_000_000)),
        OrderItem(product_id="66VCHSJNUP", quantity=1, cost=Money(currency_code="USD", units=3, nanos=490_000_000)),
    ]
    repo.save(make_record("order-items", items=marshal_to_json(items)))

    with repo.engine.connect() as conn:
        stored = conn.execute(
            select(orders_table.c["items"]).where(orders_table.c.order_id == "order-items")
        ).scalar_one()
    assert [OrderItem.model_validate(it) for it in stored] == items


def test_money_rejects_bad_currency_and_nanos():
    with pytest.raises(ValidationError):
        Money(currency_code="U$D")
    with pytest.raises(ValidationError):
        Money(currency_code="USD", nanos=1_000_000_000)


def test_order_item_requires_positive_quantity():
    with pytest.raises(ValidationError):
        OrderItem(product_id="X", quantity=0, cost=Money(currency_code="USD"))
