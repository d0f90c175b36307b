"""
Factory functions providing shared clients and stores.

Each factory returns a process-wide singleton built from ``get_settings()``;
call ``cache_clear()`` on a factory to rebuild it, e.g. between tests.
"""

from functools import lru_cache
from typing import Optional

from oidc_dynamodb.clients import DynamoDBClient
from oidc_dynamodb.core.cancellation import CancellationSignal
from oidc_dynamodb.core.config import DynamoDBSettings, get_settings
from oidc_dynamodb.schema import SchemaReconciler, all_tables
from oidc_dynamodb.stores import ApplicationStore, AuthorizationStore, ScopeStore, TokenStore


@lru_cache()
def _settings() -> DynamoDBSettings:
    """Internal helper to cache the DynamoDB settings for client factories."""
    return get_settings().dynamodb


@lru_cache()
def get_dynamodb_client() -> DynamoDBClient:
    """Provide the shared DynamoDB client."""
    return DynamoDBClient(_settings())


@lru_cache()
def get_schema_reconciler() -> SchemaReconciler:
    """Provide the reconciler shared by every store."""
    return SchemaReconciler(get_dynamodb_client(), _settings())


@lru_cache()
def get_application_store() -> ApplicationStore:
    return ApplicationStore(
        get_dynamodb_client(), _settings(), reconciler=get_schema_reconciler()
    )


@lru_cache()
def get_authorization_store() -> AuthorizationStore:
    return AuthorizationStore(
        get_dynamodb_client(), _settings(), reconciler=get_schema_reconciler()
    )


@lru_cache()
def get_scope_store() -> ScopeStore:
    return ScopeStore(get_dynamodb_client(), _settings(), reconciler=get_schema_reconciler())


@lru_cache()
def get_token_store() -> TokenStore:
    return TokenStore(get_dynamodb_client(), _settings(), reconciler=get_schema_reconciler())


async def initialize_stores(
    client: Optional[DynamoDBClient] = None,
    *,
    cancellation: Optional[CancellationSignal] = None,
) -> None:
    """Create or extend every table the stores use."""
    client = client or get_dynamodb_client()
    reconciler = SchemaReconciler(client, client.settings)
    for table in all_tables(client.settings):
        await reconciler.ensure_initialized(table, cancellation=cancellation)


__all__ = [
    "get_application_store",
    "get_authorization_store",
    "get_dynamodb_client",
    "get_schema_reconciler",
    "get_scope_store",
    "get_token_store",
    "initialize_stores",
]
