"""
Create tables and secondary indexes before any entity traffic.

``SchemaReconciler.ensure_initialized`` is idempotent and may run
concurrently from several processes: a table created by someone else is
treated as created, and missing indexes are added one per UpdateTable call
(the only additive change DynamoDB accepts) without touching existing ones.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

from botocore.exceptions import ClientError

from oidc_dynamodb.clients.dynamodb import DynamoDBClient
from oidc_dynamodb.core.cancellation import CancellationSignal
from oidc_dynamodb.core.config import DynamoDBSettings
from oidc_dynamodb.core.errors import SchemaSetupError
from oidc_dynamodb.schema.tables import IndexSpec, TableSpec

logger = logging.getLogger(__name__)

ACTIVE = "ACTIVE"


def _error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "")


class SchemaReconciler:
    """Bring DynamoDB tables in line with their ``TableSpec``."""

    def __init__(self, client: DynamoDBClient, settings: DynamoDBSettings) -> None:
        self._client = client
        self._settings = settings

    async def ensure_initialized(
        self, table: TableSpec, *, cancellation: Optional[CancellationSignal] = None
    ) -> None:
        """Create ``table`` or add its missing indexes, then wait until ready."""
        try:
            existing = await self._client.list_tables(cancellation=cancellation)
            if table.name not in existing:
                await self._create_table(table, cancellation)
            else:
                await self._add_missing_indexes(table, cancellation)
        except ClientError as exc:
            raise SchemaSetupError(
                table.name, f"setup failed with {_error_code(exc) or 'an error'}: {exc}"
            ) from exc

    async def _create_table(
        self, table: TableSpec, cancellation: Optional[CancellationSignal]
    ) -> None:
        request: Dict[str, Any] = {
            "TableName": table.name,
            "KeySchema": table.key_schema(),
            "AttributeDefinitions": table.attribute_definitions(),
            "BillingMode": self._settings.billing_mode,
        }
        throughput = self._settings.provisioned_throughput
        if throughput is not None:
            request["ProvisionedThroughput"] = throughput
        if table.indexes:
            request["GlobalSecondaryIndexes"] = [self._index_definition(index) for index in table.indexes]

        try:
            await self._client.create_table(request, cancellation=cancellation)
            logger.info("Created DynamoDB table", extra={"table": table.name})
        except ClientError as exc:
            if _error_code(exc) != "ResourceInUseException":
                raise
            logger.info(
                "DynamoDB table is being created by another process",
                extra={"table": table.name},
            )
        await self._wait_until_active(table.name, cancellation)
        # Tables created concurrently may lack some of our indexes.
        await self._add_missing_indexes(table, cancellation)

    async def _add_missing_indexes(
        self, table: TableSpec, cancellation: Optional[CancellationSignal]
    ) -> None:
        deadline = time.monotonic() + self._settings.table_ready_timeout_seconds
        for index in table.indexes:
            while not await self._has_index(table.name, index.name, cancellation):
                request = {
                    "TableName": table.name,
                    "AttributeDefinitions": table.attribute_definitions(index.key_attributes),
                    "GlobalSecondaryIndexUpdates": [{"Create": self._index_definition(index)}],
                }
                try:
                    await self._client.update_table(request, cancellation=cancellation)
                    logger.info(
                        "Added secondary index",
                        extra={"table": table.name, "index": index.name},
                    )
                except ClientError as exc:
                    if not _is_busy(exc) and not _already_exists(exc):
                        raise
                    if _is_busy(exc) and time.monotonic() >= deadline:
                        raise SchemaSetupError(
                            table.name, f"index {index.name} could not be added: {exc}"
                        ) from exc
                    logger.info(
                        "Table is being changed by another process; retrying secondary index",
                        extra={"table": table.name, "index": index.name},
                    )
                await self._wait_until_active(table.name, cancellation)

    async def _has_index(
        self, table_name: str, index_name: str, cancellation: Optional[CancellationSignal]
    ) -> bool:
        description = await self._client.describe_table(table_name, cancellation=cancellation)
        indexes = description.get("GlobalSecondaryIndexes") or []
        return any(index["IndexName"] == index_name for index in indexes)

    def _index_definition(self, index: IndexSpec) -> Dict[str, Any]:
        definition: Dict[str, Any] = {
            "IndexName": index.name,
            "KeySchema": index.key_schema(),
            "Projection": {"ProjectionType": "ALL"},
        }
        throughput = self._settings.provisioned_throughput
        if throughput is not None:
            definition["ProvisionedThroughput"] = throughput
        return definition

    async def _wait_until_active(
        self, table_name: str, cancellation: Optional[CancellationSignal]
    ) -> None:
        """Poll with exponential backoff until the table and its indexes are ACTIVE."""
        timeout = self._settings.table_ready_timeout_seconds
        delay = self._settings.table_ready_poll_interval_seconds
        max_delay = self._settings.table_ready_max_poll_interval_seconds
        deadline = time.monotonic() + timeout

        while True:
            try:
                description = await self._client.describe_table(
                    table_name, cancellation=cancellation
                )
            except ClientError as exc:
                # Freshly created tables can briefly be invisible to DescribeTable.
                if _error_code(exc) != "ResourceNotFoundException":
                    raise
                description = {}
            if _is_ready(description):
                return
            if time.monotonic() >= deadline:
                raise SchemaSetupError(
                    table_name, f"not ACTIVE after waiting {timeout:g} seconds"
                )
            await asyncio.sleep(delay)
            delay = min(delay * 2, max_delay)


def _is_ready(description: Dict[str, Any]) -> bool:
    if description.get("TableStatus") != ACTIVE:
        return False
    indexes: List[Dict[str, Any]] = description.get("GlobalSecondaryIndexes") or []
    return all(index.get("IndexStatus") == ACTIVE for index in indexes)


def _is_busy(exc: ClientError) -> bool:
    """Another table update or index build is in progress."""
    return _error_code(exc) in ("ResourceInUseException", "LimitExceededException")


def _already_exists(exc: ClientError) -> bool:
    message = exc.response.get("Error", {}).get("Message", "")
    return _error_code(exc) == "ValidationException" and "already exists" in message


__all__ = ["SchemaReconciler"]
