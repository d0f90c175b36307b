"""
Denormalized rows materializing multi-valued attributes.

An application's redirect URIs and a scope's resources must be searchable by
value, which DynamoDB cannot do inside a list attribute. Each value is
therefore written as its own row in a side table, keyed so that it can be
looked up by value and, through a secondary index or the hash key, by owner.

Rows are only written as a side effect of the owner's create/update. Owner
deletion leaves them in place.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from boto3.dynamodb.conditions import Key

from oidc_dynamodb.clients.dynamodb import DynamoDBClient, Item
from oidc_dynamodb.core.cancellation import CancellationSignal
from oidc_dynamodb.models.constants import RedirectType
from oidc_dynamodb.schema.tables import (
    APPLICATION_ID_INDEX,
    SCOPE_RESOURCE_INDEX,
    TableSpec,
    application_redirect_table,
    scope_resource_table,
)

logger = logging.getLogger(__name__)

POSITION_ATTRIBUTE = "Position"


@dataclass(frozen=True)
class RelationSpec:
    """How owner, value and kind map onto a side table."""

    table: TableSpec
    owner_attribute: str
    value_attribute: str
    kind_attribute: Optional[str] = None
    # Index over the owner attribute; None when the owner is the hash key.
    owner_index: Optional[str] = None
    # Index over the value attribute; None when value (and kind) form the key.
    value_index: Optional[str] = None


@dataclass(frozen=True)
class RelationRow:
    owner_id: str
    value: str
    kind: Optional[int] = None
    position: int = 0


def application_redirects(table_name: str) -> RelationSpec:
    return RelationSpec(
        table=application_redirect_table(table_name),
        owner_attribute="ApplicationId",
        value_attribute="RedirectUri",
        kind_attribute="RedirectType",
        owner_index=APPLICATION_ID_INDEX,
    )


def scope_resources(table_name: str) -> RelationSpec:
    return RelationSpec(
        table=scope_resource_table(table_name),
        owner_attribute="ScopeId",
        value_attribute="ScopeResource",
        value_index=SCOPE_RESOURCE_INDEX,
    )


class RelationStore:
    """Read and rewrite the side-table rows of one relation."""

    def __init__(self, client: DynamoDBClient, spec: RelationSpec) -> None:
        self._client = client
        self._spec = spec

    @property
    def table(self) -> TableSpec:
        return self._spec.table

    async def rows_for(
        self, owner_id: str, *, cancellation: Optional[CancellationSignal] = None
    ) -> List[RelationRow]:
        """All rows of ``owner_id`` ordered by kind then position."""
        spec = self._spec
        rows = [
            self._to_row(item)
            async for item in self._client.query_all(
                spec.table.name,
                Key(spec.owner_attribute).eq(owner_id),
                index_name=spec.owner_index,
                cancellation=cancellation,
            )
        ]
        rows.sort(key=lambda row: (row.kind or 0, row.position))
        return rows

    async def values_for(
        self,
        owner_id: str,
        *,
        cancellation: Optional[CancellationSignal] = None,
    ) -> Dict[Optional[int], List[str]]:
        """Values of ``owner_id`` grouped by kind, in their original order."""
        grouped: Dict[Optional[int], List[str]] = {}
        for row in await self.rows_for(owner_id, cancellation=cancellation):
            grouped.setdefault(row.kind, []).append(row.value)
        return grouped

    async def owners_for(
        self,
        value: str,
        kind: Optional[int] = None,
        *,
        cancellation: Optional[CancellationSignal] = None,
    ) -> List[str]:
        """Identifiers of the owners holding ``value`` (of ``kind``)."""
        spec = self._spec
        if spec.value_index is None:
            key: Item = {spec.value_attribute: value}
            if spec.kind_attribute is not None:
                key[spec.kind_attribute] = int(kind or 0)
            item = await self._client.get_item(spec.table.name, key, cancellation=cancellation)
            return [item[spec.owner_attribute]] if item else []

        owners: Dict[str, None] = {}
        async for item in self._client.query_all(
            spec.table.name,
            Key(spec.value_attribute).eq(value),
            index_name=spec.value_index,
            cancellation=cancellation,
        ):
            row = self._to_row(item)
            if kind is None or row.kind == kind:
                owners.setdefault(row.owner_id, None)
        return list(owners)

    async def write(
        self,
        owner_id: str,
        values: Iterable[Tuple[Optional[int], Sequence[str]]],
        *,
        cancellation: Optional[CancellationSignal] = None,
    ) -> None:
        """Write one row per value; ``values`` pairs a kind with its sequence."""
        items: Dict[Tuple[Any, ...], Item] = {}
        for kind, sequence in values:
            for position, value in enumerate(sequence or ()):
                item = self._to_item(RelationRow(owner_id, value, kind, position))
                # Duplicate values collapse onto one row; the first position wins.
                items.setdefault(tuple(self._spec.table.key_of(item).values()), item)
        await self._client.batch_write(
            self._spec.table.name, put_items=items.values(), cancellation=cancellation
        )

    async def replace(
        self,
        owner_id: str,
        values: Iterable[Tuple[Optional[int], Sequence[str]]],
        *,
        cancellation: Optional[CancellationSignal] = None,
    ) -> None:
        """Delete every row of ``owner_id`` and write ``values`` afresh."""
        existing = await self.rows_for(owner_id, cancellation=cancellation)
        if existing:
            await self._client.batch_write(
                self._spec.table.name,
                delete_keys=[self._spec.table.key_of(self._to_item(row)) for row in existing],
                cancellation=cancellation,
            )
        await self.write(owner_id, values, cancellation=cancellation)
        logger.debug(
            "Replaced relation rows",
            extra={"table": self._spec.table.name, "owner_id": owner_id, "removed": len(existing)},
        )

    def _to_item(self, row: RelationRow) -> Item:
        spec = self._spec
        item: Item = {
            spec.owner_attribute: row.owner_id,
            spec.value_attribute: row.value,
            POSITION_ATTRIBUTE: row.position,
        }
        if spec.kind_attribute is not None:
            item[spec.kind_attribute] = int(row.kind or 0)
        return item

    def _to_row(self, item: Item) -> RelationRow:
        spec = self._spec
        kind = None
        if spec.kind_attribute is not None:
            # Numbers come back from boto3 as Decimal.
            kind = int(item.get(spec.kind_attribute, 0))
        return RelationRow(
            owner_id=item[spec.owner_attribute],
            value=item[spec.value_attribute],
            kind=kind,
            position=int(item.get(POSITION_ATTRIBUTE, 0)),
        )


def redirect_values(
    redirect_uris: Optional[Sequence[str]], post_logout_redirect_uris: Optional[Sequence[str]]
) -> List[Tuple[Optional[int], Sequence[str]]]:
    """Pair an application's URI sequences with their redirect kinds."""
    return [
        (int(RedirectType.REDIRECT_URI), redirect_uris or ()),
        (int(RedirectType.POST_LOGOUT_REDIRECT_URI), post_logout_redirect_uris or ()),
    ]


__all__ = [
    "POSITION_ATTRIBUTE",
    "RelationRow",
    "RelationSpec",
    "RelationStore",
    "application_redirects",
    "redirect_values",
    "scope_resources",
]
