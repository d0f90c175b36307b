"""Tests for behaviour shared by every entity store."""

from __future__ import annotations

import asyncio

import pytest

from fakes import CancellationFlag, FakeDynamoDBResource
from oidc_dynamodb.clients import DynamoDBClient
from oidc_dynamodb.core.errors import (
    EntityInstantiationError,
    InvalidArgumentError,
    NotSupportedOperationError,
    OperationCancelledError,
)
from oidc_dynamodb.models import Application, Token
from oidc_dynamodb.stores import ApplicationStore, TokenStore


async def _fill(store: TokenStore, count: int) -> set:
    identifiers = set()
    for number in range(count):
        token = Token(subject=f"user-{number}", application_id="portal", status="valid")
        await store.create(token)
        identifiers.add(token.id)
    return identifiers


@pytest.mark.asyncio
async def test_pages_are_disjoint_and_cover_the_table(client: DynamoDBClient) -> None:
    store = TokenStore(client)
    identifiers = await _fill(store, 10)

    first = [token.id async for token in store.list(5)]
    second = [token.id async for token in store.list(5, 5)]
    beyond = [token.id async for token in store.list(5, 10)]

    assert len(first) == 5
    assert len(second) == 5
    assert set(first).isdisjoint(second)
    assert set(first) | set(second) == identifiers
    assert beyond == []


@pytest.mark.asyncio
async def test_exhausted_table_yields_nothing_for_later_offsets(client: DynamoDBClient) -> None:
    store = TokenStore(client)
    await _fill(store, 3)

    first = [token async for token in store.list(5, 0)]
    after = [token async for token in store.list(5, 5)]

    assert len(first) == 3
    assert after == []


def test_unvisited_offset_is_not_supported(client: DynamoDBClient) -> None:
    store = TokenStore(client)

    with pytest.raises(NotSupportedOperationError):
        store.list(5, 5)


@pytest.mark.asyncio
async def test_partially_consumed_page_records_no_cursor(client: DynamoDBClient) -> None:
    store = TokenStore(client)
    await _fill(store, 10)

    async for _ in store.list(5, 0):
        break

    with pytest.raises(NotSupportedOperationError):
        store.list(5, 5)


@pytest.mark.asyncio
async def test_list_without_bounds_walks_the_whole_table(client: DynamoDBClient) -> None:
    store = TokenStore(client)
    identifiers = await _fill(store, 7)

    assert {token.id async for token in store.list()} == identifiers


def test_negative_bounds_are_rejected(client: DynamoDBClient) -> None:
    store = TokenStore(client)

    with pytest.raises(InvalidArgumentError):
        store.list(-1, 0)
    with pytest.raises(InvalidArgumentError):
        store.list(5, -5)


@pytest.mark.asyncio
async def test_count_reports_the_table_item_count(client: DynamoDBClient) -> None:
    store = TokenStore(client)

    assert await store.count() == 0
    await store.create(Token(subject="alice"))
    assert await store.count() == 1


def test_predicate_operations_are_not_supported(client: DynamoDBClient) -> None:
    store = TokenStore(client)

    with pytest.raises(NotSupportedOperationError):
        store.count_where(lambda tokens: tokens)
    with pytest.raises(NotSupportedOperationError):
        store.get_where(lambda tokens, state: tokens, None)
    with pytest.raises(NotSupportedOperationError):
        store.list_where(lambda tokens, state: tokens, None)


def test_instantiate_uses_the_configured_factory(client: DynamoDBClient) -> None:
    store = ApplicationStore(client, factory=lambda: Application(type="public"))

    application = store.instantiate()

    assert isinstance(application, Application)
    assert store.get_client_type(application) == "public"


def test_factory_returning_the_wrong_type_is_a_configuration_error(client: DynamoDBClient) -> None:
    store = ApplicationStore(client, factory=lambda: Token())  # type: ignore[arg-type,return-value]

    with pytest.raises(EntityInstantiationError):
        store.instantiate()


def test_failing_factory_is_a_configuration_error(client: DynamoDBClient) -> None:
    def broken() -> Application:
        raise TypeError("missing argument")

    store = ApplicationStore(client, factory=broken)

    with pytest.raises(EntityInstantiationError):
        store.instantiate()


def test_invalid_factory_or_type_is_rejected_at_construction(client: DynamoDBClient) -> None:
    with pytest.raises(EntityInstantiationError):
        ApplicationStore(client, factory="not callable")  # type: ignore[arg-type]
    with pytest.raises(EntityInstantiationError):
        ApplicationStore(client, entity_type=dict)  # type: ignore[arg-type]


def test_properties_round_trip_as_compact_json(client: DynamoDBClient) -> None:
    store = TokenStore(client)
    token = store.instantiate()

    store.set_properties(token, {"device": "tv", "attempts": 2})

    assert token.properties == '{"device":"tv","attempts":2}'
    assert dict(store.get_properties(token)) == {"device": "tv", "attempts": 2}
    store.set_properties(token, {})
    assert token.properties is None
    assert dict(store.get_properties(token)) == {}


@pytest.mark.asyncio
async def test_cancelled_operations_do_not_reach_dynamodb(
    client: DynamoDBClient, fake_dynamodb: FakeDynamoDBResource
) -> None:
    store = TokenStore(client)
    cancelled = CancellationFlag(True)

    with pytest.raises(OperationCancelledError):
        await store.create(Token(subject="alice"), cancellation=cancelled)
    with pytest.raises(OperationCancelledError):
        await store.find_by_id("token", cancellation=cancelled)
    with pytest.raises(OperationCancelledError):
        [token async for token in store.find("alice", "portal", cancellation=cancelled)]

    assert fake_dynamodb.calls == []


@pytest.mark.asyncio
async def test_asyncio_event_can_cancel_a_listing(client: DynamoDBClient) -> None:
    store = TokenStore(client)
    await _fill(store, 3)
    event = asyncio.Event()
    event.set()

    with pytest.raises(OperationCancelledError):
        [token async for token in store.list(cancellation=event)]


@pytest.mark.asyncio
async def test_ensure_initialized_creates_entity_and_side_tables(
    bare_client: DynamoDBClient, fake_dynamodb: FakeDynamoDBResource
) -> None:
    store = ApplicationStore(bare_client)

    await store.ensure_initialized()

    assert set(fake_dynamodb.tables) == {table.name for table in store.table_specs}
