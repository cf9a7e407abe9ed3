"""Configuration for the order store.

Settings are an explicit value handed to ``OrderRepository``. Reading the
process environment only happens in ``RepositorySettings.from_env`` so the
repository itself stays free of hidden environment coupling.
"""

import os
from typing import Optional

from pydantic import BaseModel, Field, ValidationError, field_validator
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from .errors import ConfigurationError

DSN_ENV = "ORDER_DB_DSN"

# psycopg 3 is the driver; bare postgres URLs default to psycopg2 in SQLAlchemy
_DRIVER_PREFIXES = ("postgres://", "postgresql://")
PSYCOPG_PREFIX = "postgresql+psycopg://"


def normalize_dsn(dsn: str) -> str:
    """Point a PostgreSQL URL at the psycopg driver.

    ``postgres://`` and ``postgresql://`` URLs are rewritten to
    ``postgresql+psycopg://``. Any other URL (already qualified, or another
    backend such as SQLite) is returned untouched.

    Args:
        dsn: Connection string as provided by the operator.

    Returns:
        str: A SQLAlchemy URL string.
    """
    for prefix in _DRIVER_PREFIXES:
        if dsn.startswith(prefix):
            return PSYCOPG_PREFIX + dsn[len(prefix):]
    return dsn


class RepositorySettings(BaseModel):
    """Connection and pool settings for ``OrderRepository``.

    Attributes:
        dsn: Database URL. Required and non-empty.
        pool_size: Connections kept open in the pool.
        max_overflow: Extra connections allowed above ``pool_size``.
        pool_pre_ping: Test connections on checkout and replace dead ones.
        connect_timeout: Seconds to wait for a new connection (PostgreSQL).
        statement_timeout_ms: Server-side limit per statement (PostgreSQL);
            the server cancels statements that exceed it.
    """

    dsn: str = Field(min_length=1)
    pool_size: int = Field(default=5, gt=0)
    max_overflow: int = Field(default=10, ge=0)
    pool_pre_ping: bool = True
    connect_timeout: int = Field(default=10, gt=0)
    statement_timeout_ms: Optional[int] = Field(default=None, gt=0)

    @field_validator("dsn")
    @classmethod
    def validate_dsn(cls, v: str) -> str:
        """Normalize the DSN and check SQLAlchemy can parse it.

        Raises:
            ValueError: When the value is blank or not a database URL.
        """
        v2 = normalize_dsn(v.strip())
        if not v2:
            raise ValueError("dsn must not be blank")
        try:
            make_url(v2)
        except (ArgumentError, ValueError):
            # the parser error echoes the URL, password included
            raise ValueError("dsn is not a valid database URL") from None
        return v2

    @property
    def backend(self) -> str:
        """Backend name of the DSN, e.g. ``postgresql`` or ``sqlite``."""
        return make_url(self.dsn).get_backend_name()

    @classmethod
    def build(cls, **values) -> "RepositorySettings":
        """Validate ``values``, turning any failure into ``ConfigurationError``.

        A missing or empty ``dsn`` is reported with the environment variable
        name operators are expected to set. The message lists field and
        reason only; input values (the DSN and its password) are left out.
        """
        if not values.get("dsn"):
            raise ConfigurationError(f"database connection string not set ({DSN_ENV})")
        try:
            return cls(**values)
        except ValidationError as exc:
            reasons = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in exc.errors(include_input=False, include_url=False)
            )
            raise ConfigurationError(f"invalid order store settings: {reasons}") from None

    @classmethod
    def from_env(cls, environ=None) -> "RepositorySettings":
        """Read settings from environment variables.

        ``ORDER_DB_DSN`` is required. ``ORDER_DB_POOL_SIZE``,
        ``ORDER_DB_MAX_OVERFLOW``, ``ORDER_DB_CONNECT_TIMEOUT`` and
        ``ORDER_DB_STATEMENT_TIMEOUT_MS`` are optional.

        Args:
            environ: Mapping to read from; defaults to ``os.environ``.

        Returns:
            RepositorySettings: Validated settings.

        Raises:
            ConfigurationError: When the DSN is unset or a value is invalid.
        """
        env = os.environ if environ is None else environ
        values = {"dsn": env.get(DSN_ENV, "")}
        optional = {
            "pool_size": "ORDER_DB_POOL_SIZE",
            "max_overflow": "ORDER_DB_MAX_OVERFLOW",
            "connect_timeout": "ORDER_DB_CONNECT_TIMEOUT",
            "statement_timeout_ms": "ORDER_DB_STATEMENT_TIMEOUT_MS",
        }
        for field, var in optional.items():
            raw = env.get(var)
            if raw:
                values[field] = raw
        return cls.build(**values)
