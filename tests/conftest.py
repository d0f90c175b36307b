"""Pytest configuration shared across the suite."""

from __future__ import annotations

import pytest

from fakes import FakeDynamoDBResource
from oidc_dynamodb.clients import DynamoDBClient
from oidc_dynamodb.core.config import DynamoDBSettings
from oidc_dynamodb.schema.tables import all_tables


@pytest.fixture
def settings() -> DynamoDBSettings:
    return DynamoDBSettings(
        table_ready_poll_interval_seconds=0,
        table_ready_max_poll_interval_seconds=0,
    )


@pytest.fixture
def fake_dynamodb() -> FakeDynamoDBResource:
    return FakeDynamoDBResource()


@pytest.fixture
def client(settings: DynamoDBSettings, fake_dynamodb: FakeDynamoDBResource) -> DynamoDBClient:
    """Client whose tables already exist."""
    fake_dynamodb.provision(all_tables(settings))
    return DynamoDBClient(settings, resource=fake_dynamodb)


@pytest.fixture
def bare_client(settings: DynamoDBSettings, fake_dynamodb: FakeDynamoDBResource) -> DynamoDBClient:
    """Client over an account without any table."""
    return DynamoDBClient(settings, resource=fake_dynamodb)
