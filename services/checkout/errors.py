"""Exceptions raised while opening the order store.

Write failures are not wrapped: ``OrderRepository.save`` lets the
SQLAlchemy error reach the caller unchanged.
"""


class OrderStoreError(Exception):
    """Base class for order store errors."""


class ConfigurationError(OrderStoreError):
    """The connection string is missing or a setting is invalid."""


class ConnectivityError(OrderStoreError):
    """The pool could not be created or the database did not answer."""


class SchemaSetupError(OrderStoreError):
    """The orders table or one of its indexes could not be created."""
