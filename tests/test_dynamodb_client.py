"""Tests for the async DynamoDB wrapper."""

from __future__ import annotations

import asyncio

import pytest
from boto3.dynamodb.conditions import Key

from fakes import CancellationFlag, FakeDynamoDBResource
from oidc_dynamodb.clients import DynamoDBClient
from oidc_dynamodb.core.config import DynamoDBSettings
from oidc_dynamodb.core.errors import OperationCancelledError
from oidc_dynamodb.schema.tables import TableSpec, all_tables


@pytest.mark.asyncio
async def test_list_tables_follows_continuation(settings: DynamoDBSettings) -> None:
    fake = FakeDynamoDBResource(list_tables_page_size=2)
    fake.provision(all_tables(settings))
    client = DynamoDBClient(settings, resource=fake)

    names = await client.list_tables()

    assert sorted(names) == sorted(table.name for table in all_tables(settings))
    assert len(fake.calls_to("list_tables")) == 3


@pytest.mark.asyncio
async def test_batch_get_chunks_keys_and_retries_unprocessed(
    client: DynamoDBClient, fake_dynamodb: FakeDynamoDBResource, settings: DynamoDBSettings
) -> None:
    table = settings.tokens_table_name
    await client.batch_write(table, put_items=[{"Id": f"token-{n}"} for n in range(150)])
    fake_dynamodb.unprocessed_keys_once = 3

    items = await client.batch_get(table, [{"Id": f"token-{n}"} for n in range(150)])

    assert sorted(item["Id"] for item in items) == sorted(f"token-{n}" for n in range(150))
    requests = fake_dynamodb.calls_to("batch_get_item")
    assert len(requests) == 3
    assert all(len(call["RequestItems"][table]["Keys"]) <= 100 for call in requests)


@pytest.mark.asyncio
async def test_batch_write_is_split_into_chunks_of_twenty_five(
    client: DynamoDBClient, fake_dynamodb: FakeDynamoDBResource, settings: DynamoDBSettings
) -> None:
    table = settings.tokens_table_name

    await client.batch_write(table, put_items=[{"Id": f"token-{n}"} for n in range(30)])
    await client.batch_write(table, delete_keys=[{"Id": f"token-{n}"} for n in range(10)])

    assert [call["Count"] for call in fake_dynamodb.calls_to("batch_write_item")] == [25, 5, 10]
    assert len(fake_dynamodb.tables[table].items) == 20


@pytest.mark.asyncio
async def test_query_all_reads_every_page(
    client: DynamoDBClient, settings: DynamoDBSettings
) -> None:
    table = settings.scope_resources_table_name
    await client.batch_write(
        table,
        put_items=[{"ScopeId": "scope-1", "ScopeResource": f"api-{n}"} for n in range(7)],
    )

    first = await client.query(table, Key("ScopeId").eq("scope-1"), limit=5)
    everything = [item async for item in client.query_all(table, Key("ScopeId").eq("scope-1"))]

    assert len(first.items) == 5
    assert first.last_evaluated_key is not None
    assert len(everything) == 7


@pytest.mark.asyncio
async def test_get_item_returns_none_for_missing_key(
    client: DynamoDBClient, settings: DynamoDBSettings
) -> None:
    assert await client.get_item(settings.tokens_table_name, {"Id": "missing"}) is None


@pytest.mark.asyncio
async def test_cancelled_signal_stops_before_the_request(
    client: DynamoDBClient, fake_dynamodb: FakeDynamoDBResource, settings: DynamoDBSettings
) -> None:
    with pytest.raises(OperationCancelledError):
        await client.put_item(
            settings.tokens_table_name, {"Id": "token"}, cancellation=CancellationFlag(True)
        )

    assert fake_dynamodb.calls_to("put_item") == []


@pytest.mark.asyncio
async def test_describe_table_reports_item_count(
    client: DynamoDBClient, settings: DynamoDBSettings
) -> None:
    await client.put_item(settings.tokens_table_name, {"Id": "token"})

    description = await client.describe_table(settings.tokens_table_name)

    assert description["ItemCount"] == 1
    assert description["TableStatus"] == "ACTIVE"


def test_table_spec_attribute_definitions_are_deduplicated() -> None:
    spec = TableSpec(
        name="t",
        hash_key="Id",
        attribute_types={"Id": "S", "Subject": "S"},
    )

    assert spec.attribute_definitions(("Subject", "Subject")) == [
        {"AttributeName": "Subject", "AttributeType": "S"}
    ]
    assert spec.key_of({"Id": "a", "Other": 1}) == {"Id": "a"}


@pytest.mark.asyncio
async def test_each_worker_thread_builds_its_own_resource(settings: DynamoDBSettings) -> None:
    client = DynamoDBClient(settings)

    here = client.thread_resource()
    worker = await asyncio.to_thread(client.thread_resource)

    assert client.thread_resource() is here
    assert worker is not here
    assert worker.meta.client.meta.region_name == settings.region_name


@pytest.mark.asyncio
async def test_injected_resource_is_used_from_every_thread(
    settings: DynamoDBSettings, fake_dynamodb: FakeDynamoDBResource
) -> None:
    client = DynamoDBClient(settings, resource=fake_dynamodb)

    assert await asyncio.to_thread(client.thread_resource) is fake_dynamodb
