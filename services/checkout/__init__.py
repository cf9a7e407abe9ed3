"""Order persistence for the checkout service."""

from .config import RepositorySettings
from .errors import ConfigurationError, ConnectivityError, OrderStoreError, SchemaSetupError
from .repo import OrderRecord, OrderRepository, marshal_to_json

__all__ = [
    "ConfigurationError",
    "ConnectivityError",
    "OrderRecord",
    "OrderRepository",
    "OrderStoreError",
    "RepositorySettings",
    "SchemaSetupError",
    "marshal_to_json",
]
