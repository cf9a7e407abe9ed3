"""SQLAlchemy repository for completed checkout orders.

This module persists orders placed by the checkout workflow. On
construction the repository opens a pooled SQLAlchemy engine, checks the
database answers and makes sure the ``orders`` table and its indexes exist.
Writes are insert-or-ignore: the first order stored under an identifier
wins and later saves with the same identifier are silently dropped.

Connection settings are passed explicitly (see ``RepositorySettings``);
``OrderRepository.from_env`` reads them from ``ORDER_DB_DSN``.
"""

import dataclasses
import json
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Union

from pydantic import BaseModel
from sqlalchemy import create_engine, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.schema import CreateIndex, CreateTable
from sqlalchemy.orm import Session

from .config import RepositorySettings
from .errors import ConfigurationError, ConnectivityError, SchemaSetupError
from .logging_config import get_logger
from .models import orders_table

logger = get_logger("repo")

# Dialects with a native ON CONFLICT DO NOTHING
_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


@dataclass(frozen=True)
class OrderRecord:
    """One completed checkout, ready to be stored.

    Attributes:
        order_id: Globally unique order identifier.
        user_id: Customer identifier.
        email: Customer e-mail address.
        currency_code: ISO 4217 code of the order total.
        total_units: Whole units of the order total.
        total_nanos: Nano units (10^-9) of the order total.
        payment_transaction: Payment transaction reference.
        shipping_tracking_id: Shipping tracking identifier.
        shipping_address: Serialized shipping address document.
        items: Serialized line items document.
        created_at: Timezone-aware creation time; ``None`` lets the
            database stamp the current time.
    """

    order_id: str
    user_id: str
    email: str
    currency_code: str
    total_units: int
    total_nanos: int
    payment_transaction: str
    shipping_tracking_id: str
    shipping_address: bytes
    items: bytes
    created_at: Optional[datetime] = None

    def as_row(self) -> dict:
        """Column values for the insert statement."""
        row = dataclasses.asdict(self)
        if row["created_at"] is None:
            del row["created_at"]
        return row


def _plain(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def marshal_to_json(value: Any) -> bytes:
    """Serialize a value to a compact UTF-8 JSON document.

    Pydantic models and dataclasses are converted to plain data, at any
    nesting depth; everything else must be natively JSON-serializable.

    Args:
        value: Document to serialize (e.g. an ``Address`` or a list of
            ``OrderItem``).

    Returns:
        bytes: The JSON encoding of ``value``.

    Raises:
        TypeError: When ``value`` contains an unsupported object.
        ValueError: When ``value`` contains a circular reference or a
            non-finite float (NaN, Infinity).
    """
    return json.dumps(value, default=_plain, separators=(",", ":"), allow_nan=False).encode("utf-8")


def _engine_options(settings: RepositorySettings) -> dict:
    opts: dict = {"pool_pre_ping": settings.pool_pre_ping}
    if settings.backend == "postgresql":
        opts["pool_size"] = settings.pool_size
        opts["max_overflow"] = settings.max_overflow
        connect_args: dict = {"connect_timeout": settings.connect_timeout}
        if settings.statement_timeout_ms:
            connect_args["options"] = f"-c statement_timeout={settings.statement_timeout_ms}"
        opts["connect_args"] = connect_args
    return opts


class OrderRepository:
    """Repository for storing completed orders.

    The instance owns a connection pool and is safe to share between
    threads; every call checks out its own connection.
    """

    def __init__(self, settings: Union[RepositorySettings, str, None]):
        """Open the pool, check the database and ensure the schema.

        Args:
            settings: ``RepositorySettings`` or a bare connection string.

        Raises:
            ConfigurationError: When no connection string is given, a
                setting is invalid or the backend has no insert-or-ignore.
            ConnectivityError: When the pool cannot be created or the
                database does not answer.
            SchemaSetupError: When the table or indexes cannot be created.
        """
        self._engine: Optional[Engine] = None
        if not isinstance(settings, RepositorySettings):
            settings = RepositorySettings.build(dsn=settings)
        if settings.backend not in _INSERTS:
            raise ConfigurationError(
                f"unsupported database backend {settings.backend!r}; expected one of {sorted(_INSERTS)}"
            )
        self.settings = settings

        try:
            self._engine = create_engine(settings.dsn, **_engine_options(settings))
        except (SQLAlchemyError, ImportError) as exc:
            logger.error("failed to create connection pool", extra={"backend": settings.backend, "error": str(exc)})
            raise ConnectivityError(f"failed to create connection pool: {exc}") from exc

        try:
            self._select_one()
        except SQLAlchemyError as exc:
            self.close()
            logger.error("database ping failed", extra={"url": self._safe_url(), "error": str(exc)})
            raise ConnectivityError(f"failed to ping database: {exc}") from exc

        try:
            self._ensure_schema()
        except SQLAlchemyError as exc:
            self.close()
            logger.error("schema setup failed", extra={"url": self._safe_url(), "error": str(exc)})
            raise SchemaSetupError(f"failed to ensure orders schema: {exc}") from exc

        logger.info("order repository opened", extra={"url": self._safe_url()})

    @classmethod
    def from_env(cls, environ=None) -> "OrderRepository":
        """Build a repository from ``ORDER_DB_DSN`` and related variables.

        Raises:
            ConfigurationError: When ``ORDER_DB_DSN`` is unset or empty.
        """
        return cls(RepositorySettings.from_env(environ))

    @property
    def engine(self) -> Engine:
        """Underlying SQLAlchemy engine (read access for callers and tests)."""
        return self._engine

    def __enter__(self) -> "OrderRepository":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @contextmanager
    def get_session(self):
        """Yield a SQLAlchemy session bound to the repository's engine.

        The session is automatically closed on context exit.

        Yields:
            Session: Active SQLAlchemy session.
        """
        with Session(self._engine) as s:
            yield s

    def _safe_url(self) -> str:
        return self._engine.url.render_as_string(hide_password=True)

    def _select_one(self) -> None:
        with self._engine.connect() as conn:
            conn.execute(text("select 1"))

    def _ensure_schema(self) -> None:
        # IF NOT EXISTS in the DDL itself; concurrent starts must not race
        with self._engine.begin() as conn:
            conn.execute(CreateTable(orders_table, if_not_exists=True))
            for ix in sorted(orders_table.indexes, key=lambda ix: ix.name):
                conn.execute(CreateIndex(ix, if_not_exists=True))
        logger.info("orders schema ensured", extra={"table": orders_table.name})

    def ping(self) -> bool:
        """Round-trip liveness check.

        Returns:
            bool: True when the database answered ``select 1``.
        """
        try:
            self._select_one()
        except SQLAlchemyError as exc:
            logger.warning("database ping failed", extra={"error": str(exc)})
            return False
        return True

    def save(self, record: OrderRecord) -> bool:
        """Insert an order, ignoring it when the identifier already exists.

        The write is a single ``INSERT ... ON CONFLICT (order_id) DO
        NOTHING``. Replays and concurrent duplicates are therefore safe:
        exactly one row survives per identifier and it holds the values of
        the first successful insert.

        Args:
            record: Fully populated order to store.

        Returns:
            bool: True if the order was inserted, False if an order with the
            same identifier was already stored.

        Raises:
            sqlalchemy.exc.SQLAlchemyError: Any other database failure,
                unmodified.
        """
        insert = _INSERTS[self._engine.dialect.name]
        stmt = (
            insert(orders_table)
            .values(**record.as_row())
            .on_conflict_do_nothing(index_elements=[orders_table.c.order_id])
        )
        with self.get_session() as s:
            result = s.execute(stmt)
            inserted = result.rowcount == 1
            s.commit()
        if not inserted:
            logger.debug("duplicate order skipped", extra={"order_id": record.order_id})
        return inserted

    def close(self) -> None:
        """Release the pool's connections.

        Safe to call more than once, and when construction never created
        the pool. Every call disposes, so a pool reopened by a later save
        is released too.
        """
        if self._engine is None:
            return
        self._engine.dispose()
        logger.info("order repository closed")
