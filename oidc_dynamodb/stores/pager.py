"""
Offset pagination emulated on top of DynamoDB continuation keys.

DynamoDB only hands out a forward ``LastEvaluatedKey`` per page, so the
pager remembers, per offset, the key at which the page ending there
stopped. Pages must therefore be read in order: ``0``, ``count``,
``2 * count``... The cursor map is process-local and lost on restart.
"""

from __future__ import annotations

from typing import AsyncIterator, Dict, Optional

from oidc_dynamodb.clients.dynamodb import DynamoDBClient, Item
from oidc_dynamodb.core.cancellation import CancellationSignal
from oidc_dynamodb.core.errors import InvalidArgumentError, NotSupportedOperationError


class CursorPager:
    """Serve ``(count, offset)`` pages of one table."""

    def __init__(self, client: DynamoDBClient, table_name: str) -> None:
        self._client = client
        self._table_name = table_name
        # offset -> continuation key; None marks the end of the table.
        self._cursors: Dict[int, Optional[Item]] = {}

    def page(
        self,
        count: Optional[int],
        offset: Optional[int],
        *,
        cancellation: Optional[CancellationSignal] = None,
    ) -> AsyncIterator[Item]:
        """Return a lazy iterator over at most ``count`` items from ``offset``.

        Raises ``NotSupportedOperationError`` straight away when ``offset``
        was not reached by a previously completed page.
        """
        if count is not None and count < 0:
            raise InvalidArgumentError("count", "The count must not be negative.")
        if offset is not None and offset < 0:
            raise InvalidArgumentError("offset", "The offset must not be negative.")

        start_key: Optional[Item] = None
        if offset:
            if offset not in self._cursors:
                raise NotSupportedOperationError(
                    f"Pagination requires sequential page access; offset {offset} "
                    "was not reached by a previous page."
                )
            start_key = self._cursors[offset]
            if start_key is None:
                return _empty()

        if count is None:
            return self._client.scan_all(
                self._table_name, exclusive_start_key=start_key, cancellation=cancellation
            )
        return self._read_page(count, offset or 0, start_key, cancellation)

    async def _read_page(
        self,
        count: int,
        offset: int,
        start_key: Optional[Item],
        cancellation: Optional[CancellationSignal],
    ) -> AsyncIterator[Item]:
        remaining = count
        key = start_key
        while remaining > 0:
            page = await self._client.scan(
                self._table_name,
                limit=remaining,
                exclusive_start_key=key,
                cancellation=cancellation,
            )
            for item in page.items:
                yield item
            remaining -= len(page.items)
            key = page.last_evaluated_key
            if key is None:
                break
        self._cursors.setdefault(offset + count, key)


async def _empty() -> AsyncIterator[Item]:
    return
    yield  # pragma: no cover


__all__ = ["CursorPager"]
