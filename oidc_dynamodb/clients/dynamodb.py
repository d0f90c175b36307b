"""
Async wrapper around the boto3 DynamoDB resource.

Every entity store talks to DynamoDB exclusively through ``DynamoDBClient``.
boto3 is synchronous, so each call runs in a worker thread; the optional
cancellation signal is checked before every network call.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional, Sequence

import boto3
import boto3.session
from boto3.dynamodb.conditions import ConditionBase

from oidc_dynamodb.core.cancellation import CancellationSignal, raise_if_cancelled
from oidc_dynamodb.core.config import DynamoDBSettings

logger = logging.getLogger(__name__)

Item = Dict[str, Any]

BATCH_GET_LIMIT = 100


@dataclass(frozen=True)
class Page:
    """One page of a query or scan."""

    items: List[Item]
    last_evaluated_key: Optional[Item] = None


class DynamoDBClient:
    """Table management and item operations used by the stores.

    boto3 resources are not thread safe, so every worker thread builds its
    own resource from its own session. Low-level clients are thread safe and
    one is shared for table management.
    """

    def __init__(self, settings: DynamoDBSettings, resource: Any | None = None) -> None:
        self._settings = settings
        self._shared_resource = resource
        self._local = threading.local()
        if resource is None:
            self._client = boto3.session.Session().client(
                "dynamodb",
                region_name=settings.region_name,
                endpoint_url=settings.endpoint_url,
            )
        else:
            self._client = resource.meta.client

    @property
    def settings(self) -> DynamoDBSettings:
        return self._settings

    def thread_resource(self) -> Any:
        """Return the DynamoDB resource owned by the calling thread."""
        if self._shared_resource is not None:
            return self._shared_resource
        resource = getattr(self._local, "resource", None)
        if resource is None:
            resource = boto3.session.Session().resource(
                "dynamodb",
                region_name=self._settings.region_name,
                endpoint_url=self._settings.endpoint_url,
            )
            self._local.resource = resource
        return resource

    def _call_table(self, table_name: str, operation: str, **kwargs: Any) -> Dict[str, Any]:
        # Runs in a worker thread.
        return getattr(self.thread_resource().Table(table_name), operation)(**kwargs)

    def _batch_get_item(self, request_items: Dict[str, Any]) -> Dict[str, Any]:
        return self.thread_resource().batch_get_item(RequestItems=request_items)

    async def list_tables(self, *, cancellation: Optional[CancellationSignal] = None) -> List[str]:
        """Return every table name visible to the configured credentials."""
        names: List[str] = []
        start: Optional[str] = None
        while True:
            raise_if_cancelled(cancellation)
            kwargs: Dict[str, Any] = {}
            if start is not None:
                kwargs["ExclusiveStartTableName"] = start
            response = await asyncio.to_thread(self._client.list_tables, **kwargs)
            names.extend(response.get("TableNames", []))
            start = response.get("LastEvaluatedTableName")
            if not start:
                return names

    async def describe_table(
        self, table_name: str, *, cancellation: Optional[CancellationSignal] = None
    ) -> Dict[str, Any]:
        """Return the ``Table`` block of a DescribeTable response."""
        raise_if_cancelled(cancellation)
        response = await asyncio.to_thread(self._client.describe_table, TableName=table_name)
        return response["Table"]

    async def create_table(
        self, request: Dict[str, Any], *, cancellation: Optional[CancellationSignal] = None
    ) -> Dict[str, Any]:
        """Issue a CreateTable request and return the table description."""
        raise_if_cancelled(cancellation)
        response = await asyncio.to_thread(self._client.create_table, **request)
        return response.get("TableDescription", {})

    async def update_table(
        self, request: Dict[str, Any], *, cancellation: Optional[CancellationSignal] = None
    ) -> Dict[str, Any]:
        """Issue an UpdateTable request and return the table description."""
        raise_if_cancelled(cancellation)
        response = await asyncio.to_thread(self._client.update_table, **request)
        return response.get("TableDescription", {})

    async def put_item(
        self,
        table_name: str,
        item: Item,
        *,
        condition: Optional[ConditionBase] = None,
        cancellation: Optional[CancellationSignal] = None,
    ) -> None:
        """Put an item, optionally guarded by a condition expression."""
        raise_if_cancelled(cancellation)
        kwargs: Dict[str, Any] = {"Item": item}
        if condition is not None:
            kwargs["ConditionExpression"] = condition
        await asyncio.to_thread(self._call_table, table_name, "put_item", **kwargs)

    async def get_item(
        self,
        table_name: str,
        key: Item,
        *,
        consistent_read: bool = False,
        cancellation: Optional[CancellationSignal] = None,
    ) -> Optional[Item]:
        """Retrieve an item using its key."""
        raise_if_cancelled(cancellation)
        response = await asyncio.to_thread(
            self._call_table, table_name, "get_item", Key=key, ConsistentRead=consistent_read
        )
        return response.get("Item")

    async def delete_item(
        self, table_name: str, key: Item, *, cancellation: Optional[CancellationSignal] = None
    ) -> None:
        """Delete an item by key; deleting a missing item is not an error."""
        raise_if_cancelled(cancellation)
        await asyncio.to_thread(self._call_table, table_name, "delete_item", Key=key)

    async def query(
        self,
        table_name: str,
        key_condition: ConditionBase,
        *,
        index_name: Optional[str] = None,
        limit: Optional[int] = None,
        exclusive_start_key: Optional[Item] = None,
        cancellation: Optional[CancellationSignal] = None,
    ) -> Page:
        """Run a single Query request against the table or one of its indexes."""
        raise_if_cancelled(cancellation)
        kwargs: Dict[str, Any] = {"KeyConditionExpression": key_condition}
        if index_name:
            kwargs["IndexName"] = index_name
        if limit is not None:
            kwargs["Limit"] = limit
        if exclusive_start_key:
            kwargs["ExclusiveStartKey"] = exclusive_start_key
        response = await asyncio.to_thread(self._call_table, table_name, "query", **kwargs)
        return Page(response.get("Items", []), response.get("LastEvaluatedKey"))

    async def query_all(
        self,
        table_name: str,
        key_condition: ConditionBase,
        *,
        index_name: Optional[str] = None,
        cancellation: Optional[CancellationSignal] = None,
    ) -> AsyncIterator[Item]:
        """Yield every item matching the key condition, page by page."""
        start_key: Optional[Item] = None
        while True:
            page = await self.query(
                table_name,
                key_condition,
                index_name=index_name,
                exclusive_start_key=start_key,
                cancellation=cancellation,
            )
            for item in page.items:
                yield item
            start_key = page.last_evaluated_key
            if not start_key:
                return

    async def scan(
        self,
        table_name: str,
        *,
        filter_expression: Optional[ConditionBase] = None,
        limit: Optional[int] = None,
        exclusive_start_key: Optional[Item] = None,
        cancellation: Optional[CancellationSignal] = None,
    ) -> Page:
        """Run a single Scan request."""
        raise_if_cancelled(cancellation)
        kwargs: Dict[str, Any] = {}
        if filter_expression is not None:
            kwargs["FilterExpression"] = filter_expression
        if limit is not None:
            kwargs["Limit"] = limit
        if exclusive_start_key:
            kwargs["ExclusiveStartKey"] = exclusive_start_key
        response = await asyncio.to_thread(self._call_table, table_name, "scan", **kwargs)
        return Page(response.get("Items", []), response.get("LastEvaluatedKey"))

    async def scan_all(
        self,
        table_name: str,
        *,
        filter_expression: Optional[ConditionBase] = None,
        exclusive_start_key: Optional[Item] = None,
        cancellation: Optional[CancellationSignal] = None,
    ) -> AsyncIterator[Item]:
        """Yield every item of the table (matching the filter, if any)."""
        start_key = exclusive_start_key
        while True:
            page = await self.scan(
                table_name,
                filter_expression=filter_expression,
                exclusive_start_key=start_key,
                cancellation=cancellation,
            )
            for item in page.items:
                yield item
            start_key = page.last_evaluated_key
            if not start_key:
                return

    async def batch_write(
        self,
        table_name: str,
        *,
        put_items: Iterable[Item] = (),
        delete_keys: Iterable[Item] = (),
        cancellation: Optional[CancellationSignal] = None,
    ) -> None:
        """Write and delete items in bulk.

        boto3's batch writer splits the requests into chunks of 25 and resends
        unprocessed items. The batch is not atomic.
        """
        puts = list(put_items)
        deletes = list(delete_keys)
        if not puts and not deletes:
            return
        raise_if_cancelled(cancellation)

        def _execute_batch() -> None:
            with self.thread_resource().Table(table_name).batch_writer() as writer:
                for key in deletes:
                    writer.delete_item(Key=key)
                for item in puts:
                    writer.put_item(Item=item)

        await asyncio.to_thread(_execute_batch)
        logger.debug(
            "Batch write applied",
            extra={"table": table_name, "puts": len(puts), "deletes": len(deletes)},
        )

    async def batch_get(
        self,
        table_name: str,
        keys: Sequence[Item],
        *,
        cancellation: Optional[CancellationSignal] = None,
    ) -> List[Item]:
        """Fetch many items by key, following ``UnprocessedKeys``."""
        results: List[Item] = []
        for offset in range(0, len(keys), BATCH_GET_LIMIT):
            pending: Dict[str, Any] = {
                table_name: {"Keys": list(keys[offset : offset + BATCH_GET_LIMIT])}
            }
            while pending:
                raise_if_cancelled(cancellation)
                response = await asyncio.to_thread(
                    self._batch_get_item, pending
                )
                results.extend(response.get("Responses", {}).get(table_name, []))
                pending = response.get("UnprocessedKeys") or {}
        return results


__all__ = ["BATCH_GET_LIMIT", "DynamoDBClient", "Item", "Page"]
