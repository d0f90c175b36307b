"""Tests for the shared client and store factories."""

from __future__ import annotations

from typing import Iterator

import pytest

from oidc_dynamodb import dependencies
from oidc_dynamodb.core.config import get_settings
from oidc_dynamodb.dependencies import clients as factories


def _clear_caches() -> None:
    get_settings.cache_clear()
    for factory in (
        factories._settings,
        factories.get_dynamodb_client,
        factories.get_schema_reconciler,
        factories.get_application_store,
        factories.get_authorization_store,
        factories.get_scope_store,
        factories.get_token_store,
    ):
        factory.cache_clear()


@pytest.fixture(autouse=True)
def fresh_factories(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.setenv("AWS_REGION", "eu-west-1")
    monkeypatch.setenv("DYNAMODB_TOKENS_TABLE", "staging-tokens")
    _clear_caches()
    yield
    _clear_caches()


def test_stores_share_one_client() -> None:
    tokens = dependencies.get_token_store()
    scopes = dependencies.get_scope_store()

    assert dependencies.get_token_store() is tokens
    assert tokens._client is scopes._client is dependencies.get_dynamodb_client()


def test_stores_use_configured_table_names() -> None:
    store = dependencies.get_token_store()

    assert store.table.name == "staging-tokens"
    assert dependencies.get_dynamodb_client().settings.region_name == "eu-west-1"
