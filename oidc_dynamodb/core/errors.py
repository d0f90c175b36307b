"""
Error taxonomy shared by the entity stores.

Lookup misses are never errors: finders return ``None`` or yield nothing.
Backend failures (``botocore.exceptions.ClientError``) propagate unwrapped,
except during schema setup where they are wrapped in ``SchemaSetupError``.
"""

from __future__ import annotations


class StoreError(Exception):
    """Base class for errors raised by the persistence layer."""


class InvalidArgumentError(StoreError, ValueError):
    """Raised when a required argument is missing or empty."""

    def __init__(self, name: str, message: str | None = None) -> None:
        self.name = name
        super().__init__(message or f"The '{name}' argument must be provided.")


class ConcurrencyConflictError(StoreError):
    """Raised when an update carries a stale concurrency token.

    The caller should reload the entity and reapply its changes.
    """

    def __init__(self, entity_name: str, identifier: str | None) -> None:
        self.entity_name = entity_name
        self.identifier = identifier
        super().__init__(
            f"The {entity_name} '{identifier}' was modified or removed concurrently; "
            "reload it before updating."
        )


class NotSupportedOperationError(StoreError, NotImplementedError):
    """Raised for operations the key-value backend cannot serve."""


class SchemaSetupError(StoreError):
    """Raised when a table or index could not be brought to a ready state."""

    def __init__(self, table_name: str, message: str) -> None:
        self.table_name = table_name
        super().__init__(f"Table '{table_name}': {message}")


class EntityInstantiationError(StoreError):
    """Raised when a store's entity factory is misconfigured."""


class OperationCancelledError(StoreError):
    """Raised when a cancellation signal is observed before a network call."""


__all__ = [
    "ConcurrencyConflictError",
    "EntityInstantiationError",
    "InvalidArgumentError",
    "NotSupportedOperationError",
    "OperationCancelledError",
    "SchemaSetupError",
    "StoreError",
]
