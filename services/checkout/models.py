"""SQLAlchemy model for persisted orders.

The ``orders`` table keeps one row per completed checkout. Money is stored
as whole units plus nanos, and the shipping address and line items are JSON
documents (``JSONB`` on PostgreSQL, generic ``JSON`` elsewhere).
"""

import json
from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Index, Integer, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import JSON, TypeDecorator


class Base(DeclarativeBase):
    pass


class SerializedDocument(TypeDecorator):
    """JSON column that accepts already-serialized documents.

    Bound values may be ``bytes`` or ``str`` holding JSON text (as produced
    by ``marshal_to_json``) or plain Python data. Serialized input is parsed
    once so the driver stores a real document rather than a JSON string.
    Reads return the decoded Python structure.
    """

    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(JSON())

    def process_bind_param(self, value, dialect):
        if isinstance(value, (bytes, bytearray)):
            value = value.decode("utf-8")
        if isinstance(value, str):
            return json.loads(value)
        return value


class OrderRow(Base):
    """A persisted order.

    Attributes:
        order_id: Order identifier, primary key.
        user_id: Customer identifier (indexed).
        email: Customer e-mail address.
        currency_code: ISO 4217 currency code of the total.
        total_units: Whole units of the order total.
        total_nanos: Nano units (10^-9) of the order total.
        payment_transaction: Payment provider transaction reference.
        shipping_tracking_id: Carrier tracking identifier.
        shipping_address: Shipping address document.
        items: Line items document.
        created_at: Creation time, defaults to the database clock.
    """

    __tablename__ = "orders"

    order_id: Mapped[str] = mapped_column(Text, primary_key=True)
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(Text, nullable=False)
    currency_code: Mapped[str] = mapped_column(Text, nullable=False)
    total_units: Mapped[int] = mapped_column(BigInteger, nullable=False)
    total_nanos: Mapped[int] = mapped_column(Integer, nullable=False)
    payment_transaction: Mapped[str] = mapped_column(Text, nullable=False)
    shipping_tracking_id: Mapped[str] = mapped_column(Text, nullable=False)
    shipping_address = mapped_column(SerializedDocument, nullable=False)
    items = mapped_column(SerializedDocument, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (Index("idx_orders_user_id", "user_id"),)


# Newest orders first
Index("idx_orders_created_at", OrderRow.created_at.desc())

orders_table = OrderRow.__table__
