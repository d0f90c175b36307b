"""
Generic DynamoDB-backed entity store.

``EntityStore`` implements the contract shared by every entity kind: create,
optimistic-concurrency update, delete, lookup by identifier, paginated
listing, counting and instantiation. Entity-specific stores inject their
table layout, entity type and factory, and extend it with their own finders,
accessors and side-table maintenance.
"""

from __future__ import annotations

import json
import logging
from types import MappingProxyType
from typing import (
    Any,
    AsyncIterator,
    Callable,
    Dict,
    Generic,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Type,
    TypeVar,
)

from boto3.dynamodb.conditions import Attr, ConditionBase
from botocore.exceptions import ClientError

from oidc_dynamodb.clients.dynamodb import DynamoDBClient, Item
from oidc_dynamodb.core.cancellation import CancellationSignal
from oidc_dynamodb.core.errors import (
    ConcurrencyConflictError,
    EntityInstantiationError,
    InvalidArgumentError,
    NotSupportedOperationError,
)
from oidc_dynamodb.models.base import StoredEntity, new_identifier
from oidc_dynamodb.schema.reconciler import SchemaReconciler
from oidc_dynamodb.schema.tables import ID_ATTRIBUTE, TableSpec
from oidc_dynamodb.stores.pager import CursorPager

logger = logging.getLogger(__name__)

TEntity = TypeVar("TEntity", bound=StoredEntity)

CONCURRENCY_TOKEN_ATTRIBUTE = "ConcurrencyToken"


class EntityStore(Generic[TEntity]):
    """CRUD, listing and counting for one entity kind."""

    entity_name = "entity"

    def __init__(
        self,
        client: DynamoDBClient,
        table: TableSpec,
        *,
        entity_type: Type[TEntity],
        factory: Optional[Callable[[], TEntity]] = None,
        reconciler: Optional[SchemaReconciler] = None,
        related_tables: Sequence[TableSpec] = (),
    ) -> None:
        if not isinstance(entity_type, type) or not issubclass(entity_type, StoredEntity):
            raise EntityInstantiationError(
                f"{entity_type!r} is not a StoredEntity subclass and cannot back the "
                f"{self.entity_name} store."
            )
        factory = factory if factory is not None else entity_type
        if not callable(factory):
            raise EntityInstantiationError(
                f"The {self.entity_name} factory must be callable, got {factory!r}."
            )
        self._client = client
        self._table = table
        self._entity_type = entity_type
        self._factory = factory
        self._reconciler = reconciler or SchemaReconciler(client, client.settings)
        self._related_tables = tuple(related_tables)
        self._pager = CursorPager(client, table.name)

    @property
    def table(self) -> TableSpec:
        return self._table

    @property
    def table_specs(self) -> Tuple[TableSpec, ...]:
        """The entity table followed by its side tables."""
        return (self._table, *self._related_tables)

    async def ensure_initialized(
        self, *, cancellation: Optional[CancellationSignal] = None
    ) -> None:
        """Create or extend every table this store relies on."""
        for table in self.table_specs:
            await self._reconciler.ensure_initialized(table, cancellation=cancellation)

    async def count(self, *, cancellation: Optional[CancellationSignal] = None) -> int:
        """Item count reported by DynamoDB; refreshed roughly every six hours."""
        description = await self._client.describe_table(self._table.name, cancellation=cancellation)
        return int(description.get("ItemCount", 0))

    async def create(
        self, entity: TEntity, *, cancellation: Optional[CancellationSignal] = None
    ) -> None:
        """Write a new entity and, where applicable, its side-table rows."""
        entity = self._require_entity(entity)
        await self._client.put_item(self._table.name, entity.to_item(), cancellation=cancellation)
        await self._write_related(entity, replace=False, cancellation=cancellation)
        logger.debug(
            "Created %s", self.entity_name, extra={"table": self._table.name, "id": entity.id}
        )

    async def update(
        self, entity: TEntity, *, cancellation: Optional[CancellationSignal] = None
    ) -> None:
        """Persist changes when the entity's concurrency token is still current.

        The primary row is written with a fresh token, then the side-table rows
        are replaced. The two steps are not atomic.
        """
        entity = self._require_entity(entity)
        stored = await self._client.get_item(
            self._table.name,
            {ID_ATTRIBUTE: entity.id},
            consistent_read=True,
            cancellation=cancellation,
        )
        if stored is None or stored.get(CONCURRENCY_TOKEN_ATTRIBUTE) != entity.concurrency_token:
            logger.warning(
                "Rejected stale %s update",
                self.entity_name,
                extra={"table": self._table.name, "id": entity.id},
            )
            raise ConcurrencyConflictError(self.entity_name, entity.id)

        new_token = new_identifier()
        item = entity.to_item()
        item[CONCURRENCY_TOKEN_ATTRIBUTE] = new_token
        try:
            await self._client.put_item(
                self._table.name,
                item,
                condition=Attr(CONCURRENCY_TOKEN_ATTRIBUTE).eq(entity.concurrency_token),
                cancellation=cancellation,
            )
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                raise ConcurrencyConflictError(self.entity_name, entity.id) from exc
            raise
        entity.concurrency_token = new_token
        await self._write_related(entity, replace=True, cancellation=cancellation)

    async def delete(
        self, entity: TEntity, *, cancellation: Optional[CancellationSignal] = None
    ) -> None:
        """Remove the primary row; side-table rows and dependants are kept."""
        entity = self._require_entity(entity)
        await self._client.delete_item(
            self._table.name, {ID_ATTRIBUTE: entity.id}, cancellation=cancellation
        )

    async def find_by_id(
        self, identifier: str, *, cancellation: Optional[CancellationSignal] = None
    ) -> Optional[TEntity]:
        require_value(identifier, "identifier")
        item = await self._client.get_item(
            self._table.name, {ID_ATTRIBUTE: identifier}, cancellation=cancellation
        )
        if item is None:
            return None
        return await self._load(item, cancellation)

    def list(
        self,
        count: Optional[int] = None,
        offset: Optional[int] = None,
        *,
        cancellation: Optional[CancellationSignal] = None,
    ) -> AsyncIterator[TEntity]:
        """Lazily yield up to ``count`` entities starting at ``offset``.

        Offsets must be visited in order (``0``, ``count``, ``2 * count``...);
        an offset no earlier page reached raises ``NotSupportedOperationError``.
        ``list()`` with no arguments walks the whole table.
        """
        items = self._pager.page(count, offset, cancellation=cancellation)
        return self._materialize(items, cancellation)

    def instantiate(self) -> TEntity:
        """Build a blank, unsaved entity with the configured factory."""
        try:
            entity = self._factory()
        except (TypeError, ValueError) as exc:
            raise EntityInstantiationError(
                f"The {self.entity_name} factory could not build an entity: {exc}"
            ) from exc
        if not isinstance(entity, self._entity_type):
            raise EntityInstantiationError(
                f"The {self.entity_name} factory returned {type(entity).__name__}, "
                f"expected {self._entity_type.__name__}."
            )
        return entity

    def count_where(self, query: Callable[..., Any]) -> int:
        raise NotSupportedOperationError(
            "DynamoDB stores do not support counting with arbitrary predicates."
        )

    def get_where(self, query: Callable[..., Any], state: Any = None) -> Any:
        raise NotSupportedOperationError(
            "DynamoDB stores do not support querying with arbitrary predicates."
        )

    def list_where(self, query: Callable[..., Any], state: Any = None) -> AsyncIterator[Any]:
        raise NotSupportedOperationError(
            "DynamoDB stores do not support listing with arbitrary predicates."
        )

    def get_id(self, entity: TEntity) -> str:
        return self._require_entity(entity).id

    def get_properties(self, entity: TEntity) -> Mapping[str, Any]:
        """Decode the JSON property bag; empty when unset."""
        raw = self._require_entity(entity).properties
        if not raw:
            return MappingProxyType({})
        return MappingProxyType(json.loads(raw))

    def set_properties(self, entity: TEntity, properties: Optional[Mapping[str, Any]]) -> None:
        entity = self._require_entity(entity)
        if not properties:
            entity.properties = None
            return
        entity.properties = json.dumps(dict(properties), separators=(",", ":"), ensure_ascii=False)

    # Hooks for entity kinds with side tables.

    async def _write_related(
        self,
        entity: TEntity,
        *,
        replace: bool,
        cancellation: Optional[CancellationSignal],
    ) -> None:
        return None

    async def _hydrate(
        self, entity: TEntity, cancellation: Optional[CancellationSignal]
    ) -> None:
        return None

    # Helpers shared by the concrete stores.

    async def _load(self, item: Item, cancellation: Optional[CancellationSignal]) -> TEntity:
        entity = self._entity_type.model_validate(item)
        await self._hydrate(entity, cancellation)
        return entity

    async def _materialize(
        self, items: AsyncIterator[Item], cancellation: Optional[CancellationSignal]
    ) -> AsyncIterator[TEntity]:
        async for item in items:
            yield await self._load(item, cancellation)

    def _query(
        self,
        index_name: str,
        condition: ConditionBase,
        cancellation: Optional[CancellationSignal],
    ) -> AsyncIterator[TEntity]:
        items = self._client.query_all(
            self._table.name, condition, index_name=index_name, cancellation=cancellation
        )
        return self._materialize(items, cancellation)

    async def _find_first(
        self,
        index_name: str,
        condition: ConditionBase,
        cancellation: Optional[CancellationSignal],
    ) -> Optional[TEntity]:
        async for entity in self._query(index_name, condition, cancellation):
            return entity
        return None

    def _require_entity(self, entity: Optional[TEntity]) -> TEntity:
        if entity is None:
            raise InvalidArgumentError(self.entity_name)
        return entity


def require_value(value: Optional[str], name: str) -> str:
    if not value:
        raise InvalidArgumentError(name)
    return value


def as_tuple(values: Optional[Iterable[str]]) -> Tuple[str, ...]:
    """Immutable view of an optional collection."""
    return tuple(values or ())


def as_mapping(values: Optional[Mapping[str, str]]) -> Mapping[str, str]:
    return MappingProxyType(dict(values or {}))


def stored_list(values: Optional[Iterable[str]]) -> Optional[List[str]]:
    """Collections are persisted as ``None`` when empty."""
    values = list(values or ())
    return values or None


def stored_mapping(values: Optional[Mapping[str, str]]) -> Optional[Dict[str, str]]:
    return dict(values) if values else None


__all__ = [
    "EntityStore",
    "TEntity",
    "as_mapping",
    "as_tuple",
    "require_value",
    "stored_list",
    "stored_mapping",
]
