"""Expose the shared client and store factories."""

from .clients import (
    get_application_store,
    get_authorization_store,
    get_dynamodb_client,
    get_schema_reconciler,
    get_scope_store,
    get_token_store,
    initialize_stores,
)

__all__ = [
    "get_application_store",
    "get_authorization_store",
    "get_dynamodb_client",
    "get_schema_reconciler",
    "get_scope_store",
    "get_token_store",
    "initialize_stores",
]
