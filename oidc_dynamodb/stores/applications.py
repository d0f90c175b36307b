"""
Application store.

Applications are looked up by client identifier through ``ClientId-index``
and by redirect URI through the application redirects side table, where each
URI is a row keyed by ``(RedirectUri, RedirectType)``.
"""

from __future__ import annotations

from typing import AsyncIterator, Callable, Mapping, Optional, Sequence, Tuple, Type

from boto3.dynamodb.conditions import Key

from oidc_dynamodb.clients.dynamodb import DynamoDBClient
from oidc_dynamodb.core.cancellation import CancellationSignal
from oidc_dynamodb.core.config import DynamoDBSettings
from oidc_dynamodb.models.application import Application
from oidc_dynamodb.models.constants import RedirectType
from oidc_dynamodb.schema.reconciler import SchemaReconciler
from oidc_dynamodb.schema.tables import CLIENT_ID_INDEX, application_table
from oidc_dynamodb.stores.base import (
    EntityStore,
    as_mapping,
    as_tuple,
    require_value,
    stored_list,
    stored_mapping,
)
from oidc_dynamodb.stores.relations import RelationStore, application_redirects, redirect_values


class ApplicationStore(EntityStore[Application]):
    """Persist client applications and their redirect URIs."""

    entity_name = "application"

    def __init__(
        self,
        client: DynamoDBClient,
        settings: Optional[DynamoDBSettings] = None,
        *,
        entity_type: Type[Application] = Application,
        factory: Optional[Callable[[], Application]] = None,
        reconciler: Optional[SchemaReconciler] = None,
    ) -> None:
        settings = settings or client.settings
        self._redirects = RelationStore(
            client, application_redirects(settings.application_redirects_table_name)
        )
        super().__init__(
            client,
            application_table(settings.applications_table_name),
            entity_type=entity_type,
            factory=factory,
            reconciler=reconciler,
            related_tables=(self._redirects.table,),
        )

    async def find_by_client_id(
        self, client_id: str, *, cancellation: Optional[CancellationSignal] = None
    ) -> Optional[Application]:
        require_value(client_id, "client_id")
        return await self._find_first(
            CLIENT_ID_INDEX, Key("ClientId").eq(client_id), cancellation
        )

    def find_by_redirect_uri(
        self, address: str, *, cancellation: Optional[CancellationSignal] = None
    ) -> AsyncIterator[Application]:
        require_value(address, "address")
        return self._find_by_redirect(address, RedirectType.REDIRECT_URI, cancellation)

    def find_by_post_logout_redirect_uri(
        self, address: str, *, cancellation: Optional[CancellationSignal] = None
    ) -> AsyncIterator[Application]:
        require_value(address, "address")
        return self._find_by_redirect(
            address, RedirectType.POST_LOGOUT_REDIRECT_URI, cancellation
        )

    async def _find_by_redirect(
        self,
        address: str,
        kind: RedirectType,
        cancellation: Optional[CancellationSignal],
    ) -> AsyncIterator[Application]:
        owners = await self._redirects.owners_for(address, int(kind), cancellation=cancellation)
        for application_id in owners:
            application = await self.find_by_id(application_id, cancellation=cancellation)
            if application is not None:
                yield application

    async def _write_related(
        self,
        entity: Application,
        *,
        replace: bool,
        cancellation: Optional[CancellationSignal],
    ) -> None:
        values = redirect_values(entity.redirect_uris, entity.post_logout_redirect_uris)
        if replace:
            await self._redirects.replace(entity.id, values, cancellation=cancellation)
        else:
            await self._redirects.write(entity.id, values, cancellation=cancellation)

    async def _hydrate(
        self, entity: Application, cancellation: Optional[CancellationSignal]
    ) -> None:
        grouped = await self._redirects.values_for(entity.id, cancellation=cancellation)
        entity.redirect_uris = stored_list(grouped.get(int(RedirectType.REDIRECT_URI)))
        entity.post_logout_redirect_uris = stored_list(
            grouped.get(int(RedirectType.POST_LOGOUT_REDIRECT_URI))
        )

    def get_client_id(self, application: Application) -> Optional[str]:
        return self._require_entity(application).client_id

    def set_client_id(self, application: Application, client_id: Optional[str]) -> None:
        self._require_entity(application).client_id = client_id

    def get_client_secret(self, application: Application) -> Optional[str]:
        return self._require_entity(application).client_secret

    def set_client_secret(self, application: Application, secret: Optional[str]) -> None:
        self._require_entity(application).client_secret = secret

    def get_client_type(self, application: Application) -> Optional[str]:
        return self._require_entity(application).type

    def set_client_type(self, application: Application, client_type: Optional[str]) -> None:
        self._require_entity(application).type = client_type

    def get_consent_type(self, application: Application) -> Optional[str]:
        return self._require_entity(application).consent_type

    def set_consent_type(self, application: Application, consent_type: Optional[str]) -> None:
        self._require_entity(application).consent_type = consent_type

    def get_display_name(self, application: Application) -> Optional[str]:
        return self._require_entity(application).display_name

    def set_display_name(self, application: Application, name: Optional[str]) -> None:
        self._require_entity(application).display_name = name

    def get_display_names(self, application: Application) -> Mapping[str, str]:
        """Localized display names keyed by culture name, e.g. ``fr-FR``."""
        return as_mapping(self._require_entity(application).display_names)

    def set_display_names(
        self, application: Application, names: Optional[Mapping[str, str]]
    ) -> None:
        self._require_entity(application).display_names = stored_mapping(names)

    def get_permissions(self, application: Application) -> Tuple[str, ...]:
        return as_tuple(self._require_entity(application).permissions)

    def set_permissions(
        self, application: Application, permissions: Optional[Sequence[str]]
    ) -> None:
        self._require_entity(application).permissions = stored_list(permissions)

    def get_requirements(self, application: Application) -> Tuple[str, ...]:
        return as_tuple(self._require_entity(application).requirements)

    def set_requirements(
        self, application: Application, requirements: Optional[Sequence[str]]
    ) -> None:
        self._require_entity(application).requirements = stored_list(requirements)

    def get_redirect_uris(self, application: Application) -> Tuple[str, ...]:
        return as_tuple(self._require_entity(application).redirect_uris)

    def set_redirect_uris(
        self, application: Application, addresses: Optional[Sequence[str]]
    ) -> None:
        self._require_entity(application).redirect_uris = stored_list(addresses)

    def get_post_logout_redirect_uris(self, application: Application) -> Tuple[str, ...]:
        return as_tuple(self._require_entity(application).post_logout_redirect_uris)

    def set_post_logout_redirect_uris(
        self, application: Application, addresses: Optional[Sequence[str]]
    ) -> None:
        self._require_entity(application).post_logout_redirect_uris = stored_list(addresses)


__all__ = ["ApplicationStore"]
