"""Pydantic schemas for the documents stored with an order.

The checkout workflow builds these before calling ``marshal_to_json`` to
produce the ``shipping_address`` and ``items`` blobs of an ``OrderRecord``.
"""

import re

from pydantic import BaseModel, Field, field_validator


CURRENCY_RE = re.compile(r"^[A-Z]{3}$")
NANOS_MIN = -999_999_999
NANOS_MAX = 999_999_999


class Money(BaseModel):
    """Fixed-point amount of money.

    Attributes:
        currency_code: 3-letter ISO 4217 code, normalized to uppercase.
        units: Whole units of the amount.
        nanos: Nano units (10^-9) of the amount.
    """

    currency_code: str = Field(min_length=3, max_length=3)
    units: int = 0
    nanos: int = Field(default=0, ge=NANOS_MIN, le=NANOS_MAX)

    @field_validator("currency_code")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        """Validate and normalize the currency code.

        Raises:
            ValueError: When the code is not three letters.
        """
        v2 = v.upper()
        if not CURRENCY_RE.match(v2):
            raise ValueError("Invalid currency code")
        return v2


class Address(BaseModel):
    """Shipping address of an order."""

    street_address: str
    city: str
    state: str = ""
    country: str
    zip_code: int | str


class OrderItem(BaseModel):
    """A single line item of an order.

    Attributes:
        product_id: Catalog product identifier.
        quantity: Positive number of units bought.
        cost: Unit cost of the product at checkout time.
    """

    product_id: str = Field(min_length=1)
    quantity: int = Field(gt=0)
    cost: Money
