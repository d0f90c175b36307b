"""Tests for the maintenance command line tool."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from fakes import FakeDynamoDBResource
from oidc_dynamodb.clients import DynamoDBClient
from oidc_dynamodb.core.config import DynamoDBSettings
from oidc_dynamodb.schema.tables import all_tables
from oidc_dynamodb.stores.tokens import TokenStore
from scripts import maintenance


def test_init_creates_every_table(
    bare_client: DynamoDBClient, fake_dynamodb: FakeDynamoDBResource, settings: DynamoDBSettings
) -> None:
    exit_code = maintenance.main(["init"], client=bare_client)

    assert exit_code == maintenance.EXIT_OK
    assert set(fake_dynamodb.tables) == {table.name for table in all_tables(settings)}


def test_prune_by_age_reports_deleted_tokens(
    client: DynamoDBClient,
    fake_dynamodb: FakeDynamoDBResource,
    settings: DynamoDBSettings,
    capsys: pytest.CaptureFixture[str],
) -> None:
    old = datetime.now(timezone.utc) - timedelta(days=30)
    item = TokenStore(client).instantiate()
    item.status = "revoked"
    item.creation_date = old
    fake_dynamodb.Table(settings.tokens_table_name).put_item(Item=item.to_item())

    exit_code = maintenance.main(["prune", "--days", "7"], client=client)

    assert exit_code == maintenance.EXIT_OK
    assert "Pruned 1 token(s)" in capsys.readouterr().out
    assert fake_dynamodb.tables[settings.tokens_table_name].items == {}


def test_prune_before_timestamp(
    client: DynamoDBClient, capsys: pytest.CaptureFixture[str]
) -> None:
    exit_code = maintenance.main(["prune", "--before", "2024-01-01T00:00:00Z"], client=client)

    assert exit_code == maintenance.EXIT_OK
    assert "Pruned 0 token(s) created before 2024-01-01T00:00:00+00:00" in capsys.readouterr().out


def test_prune_requires_exactly_one_threshold() -> None:
    with pytest.raises(SystemExit) as excinfo:
        maintenance.main(["prune"])
    assert excinfo.value.code == 2

    with pytest.raises(SystemExit):
        maintenance.main(["prune", "--days", "1", "--before", "2024-01-01"])


def test_schema_failures_map_to_setup_exit_code(settings: DynamoDBSettings) -> None:
    fake = FakeDynamoDBResource(creating_describes=1_000)
    impatient = settings.model_copy(update={"table_ready_timeout_seconds": 0})
    client = DynamoDBClient(impatient, resource=fake)

    assert maintenance.main(["init"], client=client) == maintenance.EXIT_SETUP_ERROR


def test_missing_tables_map_to_runtime_exit_code(bare_client: DynamoDBClient) -> None:
    assert maintenance.main(["prune", "--days", "1"], client=bare_client) == maintenance.EXIT_RUNTIME_ERROR
