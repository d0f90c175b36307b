"""Scope store; resources are materialized in the scope resources table."""

from __future__ import annotations

from typing import AsyncIterator, Callable, Iterable, Mapping, Optional, Sequence, Tuple, Type

from boto3.dynamodb.conditions import Key

from oidc_dynamodb.clients.dynamodb import DynamoDBClient
from oidc_dynamodb.core.cancellation import CancellationSignal
from oidc_dynamodb.core.config import DynamoDBSettings
from oidc_dynamodb.core.errors import InvalidArgumentError
from oidc_dynamodb.models.scope import Scope
from oidc_dynamodb.schema.reconciler import SchemaReconciler
from oidc_dynamodb.schema.tables import SCOPE_NAME_INDEX, scope_table
from oidc_dynamodb.stores.base import (
    EntityStore,
    as_mapping,
    as_tuple,
    require_value,
    stored_list,
    stored_mapping,
)
from oidc_dynamodb.stores.relations import RelationStore, scope_resources


class ScopeStore(EntityStore[Scope]):
    """Persist scopes and the resources they grant access to."""

    entity_name = "scope"

    def __init__(
        self,
        client: DynamoDBClient,
        settings: Optional[DynamoDBSettings] = None,
        *,
        entity_type: Type[Scope] = Scope,
        factory: Optional[Callable[[], Scope]] = None,
        reconciler: Optional[SchemaReconciler] = None,
    ) -> None:
        settings = settings or client.settings
        self._resources = RelationStore(client, scope_resources(settings.scope_resources_table_name))
        super().__init__(
            client,
            scope_table(settings.scopes_table_name),
            entity_type=entity_type,
            factory=factory,
            reconciler=reconciler,
            related_tables=(self._resources.table,),
        )

    async def find_by_name(
        self, name: str, *, cancellation: Optional[CancellationSignal] = None
    ) -> Optional[Scope]:
        require_value(name, "name")
        return await self._find_first(SCOPE_NAME_INDEX, Key("ScopeName").eq(name), cancellation)

    def find_by_names(
        self, names: Iterable[str], *, cancellation: Optional[CancellationSignal] = None
    ) -> AsyncIterator[Scope]:
        """Yield the scopes matching ``names``; unknown names are skipped."""
        if names is None:
            raise InvalidArgumentError("names")
        if isinstance(names, str):
            raise InvalidArgumentError("names", "Pass a collection of scope names, not a string.")
        unique = list(dict.fromkeys(names))
        if any(not name for name in unique):
            raise InvalidArgumentError("names", "Scope names must not be empty.")
        return self._find_by_names(unique, cancellation)

    async def _find_by_names(
        self, names: Sequence[str], cancellation: Optional[CancellationSignal]
    ) -> AsyncIterator[Scope]:
        for name in names:
            scope = await self.find_by_name(name, cancellation=cancellation)
            if scope is not None:
                yield scope

    def find_by_resource(
        self, resource: str, *, cancellation: Optional[CancellationSignal] = None
    ) -> AsyncIterator[Scope]:
        require_value(resource, "resource")
        return self._find_by_resource(resource, cancellation)

    async def _find_by_resource(
        self, resource: str, cancellation: Optional[CancellationSignal]
    ) -> AsyncIterator[Scope]:
        for scope_id in await self._resources.owners_for(resource, cancellation=cancellation):
            scope = await self.find_by_id(scope_id, cancellation=cancellation)
            if scope is not None:
                yield scope

    async def _write_related(
        self,
        entity: Scope,
        *,
        replace: bool,
        cancellation: Optional[CancellationSignal],
    ) -> None:
        values = [(None, entity.resources or ())]
        if replace:
            await self._resources.replace(entity.id, values, cancellation=cancellation)
        else:
            await self._resources.write(entity.id, values, cancellation=cancellation)

    async def _hydrate(self, entity: Scope, cancellation: Optional[CancellationSignal]) -> None:
        grouped = await self._resources.values_for(entity.id, cancellation=cancellation)
        entity.resources = stored_list(grouped.get(None))

    def get_name(self, scope: Scope) -> Optional[str]:
        return self._require_entity(scope).name

    def set_name(self, scope: Scope, name: Optional[str]) -> None:
        self._require_entity(scope).name = name

    def get_description(self, scope: Scope) -> Optional[str]:
        return self._require_entity(scope).description

    def set_description(self, scope: Scope, description: Optional[str]) -> None:
        self._require_entity(scope).description = description

    def get_descriptions(self, scope: Scope) -> Mapping[str, str]:
        return as_mapping(self._require_entity(scope).descriptions)

    def set_descriptions(self, scope: Scope, descriptions: Optional[Mapping[str, str]]) -> None:
        self._require_entity(scope).descriptions = stored_mapping(descriptions)

    def get_display_name(self, scope: Scope) -> Optional[str]:
        return self._require_entity(scope).display_name

    def set_display_name(self, scope: Scope, name: Optional[str]) -> None:
        self._require_entity(scope).display_name = name

    def get_display_names(self, scope: Scope) -> Mapping[str, str]:
        return as_mapping(self._require_entity(scope).display_names)

    def set_display_names(self, scope: Scope, names: Optional[Mapping[str, str]]) -> None:
        self._require_entity(scope).display_names = stored_mapping(names)

    def get_resources(self, scope: Scope) -> Tuple[str, ...]:
        return as_tuple(self._require_entity(scope).resources)

    def set_resources(self, scope: Scope, resources: Optional[Sequence[str]]) -> None:
        self._require_entity(scope).resources = stored_list(resources)


__all__ = ["ScopeStore"]
