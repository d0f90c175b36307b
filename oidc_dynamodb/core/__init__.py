"""Configuration, logging and error primitives."""

from .cancellation import CancellationSignal, raise_if_cancelled
from .config import AppSettings, DynamoDBSettings, get_settings
from .errors import (
    ConcurrencyConflictError,
    EntityInstantiationError,
    InvalidArgumentError,
    NotSupportedOperationError,
    OperationCancelledError,
    SchemaSetupError,
    StoreError,
)
from .logging import configure_logging

__all__ = [
    "AppSettings",
    "CancellationSignal",
    "ConcurrencyConflictError",
    "DynamoDBSettings",
    "EntityInstantiationError",
    "InvalidArgumentError",
    "NotSupportedOperationError",
    "OperationCancelledError",
    "SchemaSetupError",
    "StoreError",
    "configure_logging",
    "get_settings",
    "raise_if_cancelled",
]
