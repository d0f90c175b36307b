"""Tests for the application store and its redirect rows."""

from __future__ import annotations

import pytest

from fakes import FakeDynamoDBResource
from oidc_dynamodb.clients import DynamoDBClient
from oidc_dynamodb.core.config import DynamoDBSettings
from oidc_dynamodb.core.errors import ConcurrencyConflictError, InvalidArgumentError
from oidc_dynamodb.models import Application
from oidc_dynamodb.stores import ApplicationStore


def _build(store: ApplicationStore, client_id: str = "portal") -> Application:
    application = store.instantiate()
    store.set_client_id(application, client_id)
    store.set_client_type(application, "confidential")
    store.set_display_name(application, "Portal")
    store.set_display_names(application, {"fr-FR": "Portail"})
    store.set_permissions(application, ["ept:token", "gt:authorization_code"])
    store.set_redirect_uris(application, ["https://portal.example/cb", "https://portal.example/alt"])
    store.set_post_logout_redirect_uris(application, ["https://portal.example/bye"])
    return application


def _redirect_rows(fake: FakeDynamoDBResource, settings: DynamoDBSettings) -> list:
    return list(fake.tables[settings.application_redirects_table_name].items.values())


@pytest.mark.asyncio
async def test_create_then_find_returns_an_equal_application(client: DynamoDBClient) -> None:
    store = ApplicationStore(client)
    application = _build(store)
    store.set_properties(application, {"tier": "gold"})

    await store.create(application)

    assert await store.find_by_id(application.id) == application
    assert await store.find_by_client_id("portal") == application


@pytest.mark.asyncio
async def test_create_writes_one_row_per_redirect_uri(
    client: DynamoDBClient, fake_dynamodb: FakeDynamoDBResource, settings: DynamoDBSettings
) -> None:
    store = ApplicationStore(client)
    application = _build(store)

    await store.create(application)

    rows = _redirect_rows(fake_dynamodb, settings)
    assert len(rows) == 3
    assert {(row["RedirectUri"], int(row["RedirectType"])) for row in rows} == {
        ("https://portal.example/cb", 0),
        ("https://portal.example/alt", 0),
        ("https://portal.example/bye", 1),
    }
    assert all(row["ApplicationId"] == application.id for row in rows)
    primary = fake_dynamodb.tables[settings.applications_table_name].items[(application.id,)]
    assert "RedirectUris" not in primary


@pytest.mark.asyncio
async def test_find_by_redirect_uri_respects_the_redirect_kind(client: DynamoDBClient) -> None:
    store = ApplicationStore(client)
    application = _build(store)
    await store.create(application)

    by_redirect = [app async for app in store.find_by_redirect_uri("https://portal.example/alt")]
    by_logout = [app async for app in store.find_by_post_logout_redirect_uri("https://portal.example/bye")]
    wrong_kind = [app async for app in store.find_by_post_logout_redirect_uri("https://portal.example/cb")]

    assert [app.id for app in by_redirect] == [application.id]
    assert [app.id for app in by_logout] == [application.id]
    assert wrong_kind == []


@pytest.mark.asyncio
async def test_redirect_order_is_preserved(client: DynamoDBClient) -> None:
    store = ApplicationStore(client)
    application = store.instantiate()
    uris = [f"https://portal.example/{name}" for name in ("zeta", "alpha", "mid")]
    store.set_redirect_uris(application, uris)

    await store.create(application)
    loaded = await store.find_by_id(application.id)

    assert store.get_redirect_uris(loaded) == tuple(uris)
    assert store.get_post_logout_redirect_uris(loaded) == ()


@pytest.mark.asyncio
async def test_update_replaces_redirect_rows(
    client: DynamoDBClient, fake_dynamodb: FakeDynamoDBResource, settings: DynamoDBSettings
) -> None:
    store = ApplicationStore(client)
    application = _build(store)
    await store.create(application)
    previous_token = application.concurrency_token

    store.set_redirect_uris(application, ["https://portal.example/new"])
    await store.update(application)

    assert application.concurrency_token != previous_token
    assert len(_redirect_rows(fake_dynamodb, settings)) == 2
    assert [app async for app in store.find_by_redirect_uri("https://portal.example/cb")] == []
    loaded = await store.find_by_id(application.id)
    assert store.get_redirect_uris(loaded) == ("https://portal.example/new",)
    assert loaded.concurrency_token == application.concurrency_token


@pytest.mark.asyncio
async def test_stale_update_is_rejected(client: DynamoDBClient) -> None:
    store = ApplicationStore(client)
    application = _build(store)
    await store.create(application)
    first = await store.find_by_id(application.id)
    second = await store.find_by_id(application.id)

    store.set_display_name(first, "First")
    await store.update(first)
    store.set_display_name(second, "Second")
    stale_token = second.concurrency_token
    with pytest.raises(ConcurrencyConflictError):
        await store.update(second)

    assert second.concurrency_token == stale_token
    assert store.get_display_name(await store.find_by_id(application.id)) == "First"


@pytest.mark.asyncio
async def test_update_loses_the_race_against_a_concurrent_writer(
    client: DynamoDBClient,
    fake_dynamodb: FakeDynamoDBResource,
    settings: DynamoDBSettings,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    store = ApplicationStore(client)
    application = _build(store)
    await store.create(application)
    original_get_item = client.get_item

    async def racing_get_item(table_name, key, **kwargs):
        item = await original_get_item(table_name, key, **kwargs)
        fake_dynamodb.tables[table_name].items[(key["Id"],)]["ConcurrencyToken"] = "other-writer"
        return item

    monkeypatch.setattr(client, "get_item", racing_get_item)

    with pytest.raises(ConcurrencyConflictError):
        await store.update(application)


@pytest.mark.asyncio
async def test_update_of_deleted_application_is_a_conflict(client: DynamoDBClient) -> None:
    store = ApplicationStore(client)
    application = _build(store)
    await store.create(application)

    await store.delete(application)

    assert await store.find_by_id(application.id) is None
    with pytest.raises(ConcurrencyConflictError):
        await store.update(application)


@pytest.mark.asyncio
async def test_lookups_validate_arguments(client: DynamoDBClient) -> None:
    store = ApplicationStore(client)

    with pytest.raises(InvalidArgumentError):
        await store.find_by_client_id("")
    with pytest.raises(InvalidArgumentError):
        store.find_by_redirect_uri("")
    with pytest.raises(InvalidArgumentError):
        await store.create(None)  # type: ignore[arg-type]
    assert await store.find_by_client_id("unknown") is None


def test_collection_accessors_are_read_only_and_empty_when_unset(client: DynamoDBClient) -> None:
    store = ApplicationStore(client)
    application = store.instantiate()

    assert store.get_permissions(application) == ()
    assert dict(store.get_display_names(application)) == {}

    store.set_permissions(application, [])
    store.set_display_names(application, {"de-DE": "Portal"})
    names = store.get_display_names(application)

    assert application.permissions is None
    with pytest.raises(TypeError):
        names["en-US"] = "Portal"  # type: ignore[index]


@pytest.mark.asyncio
async def test_clearing_client_id_with_empty_string_drops_the_attribute(
    client: DynamoDBClient, fake_dynamodb: FakeDynamoDBResource, settings: DynamoDBSettings
) -> None:
    store = ApplicationStore(client)
    application = _build(store)
    await store.create(application)

    store.set_client_id(application, "")
    await store.update(application)

    [stored] = fake_dynamodb.tables[settings.applications_table_name].items.values()
    assert "ClientId" not in stored
    assert await store.find_by_client_id("portal") is None
