"""
Authorization store.

Lookups by subject and client go through ``Subject-SearchKey-index``; see
``oidc_dynamodb.schema.search_key`` for the key layout.
"""

from __future__ import annotations

from datetime import datetime
from typing import AsyncIterator, Callable, FrozenSet, Iterable, Optional, Sequence, Tuple, Type

from boto3.dynamodb.conditions import Key

from oidc_dynamodb.clients.dynamodb import DynamoDBClient
from oidc_dynamodb.core.cancellation import CancellationSignal
from oidc_dynamodb.core.config import DynamoDBSettings
from oidc_dynamodb.models.authorization import Authorization
from oidc_dynamodb.models.base import optional_utc
from oidc_dynamodb.schema.reconciler import SchemaReconciler
from oidc_dynamodb.schema.search_key import SUBJECT_ATTRIBUTE, search_condition
from oidc_dynamodb.schema.tables import (
    APPLICATION_ID_INDEX,
    SUBJECT_SEARCH_KEY_INDEX,
    authorization_table,
)
from oidc_dynamodb.stores.base import EntityStore, as_tuple, require_value, stored_list


class AuthorizationStore(EntityStore[Authorization]):
    """Persist authorizations granted by subjects to applications."""

    entity_name = "authorization"

    def __init__(
        self,
        client: DynamoDBClient,
        settings: Optional[DynamoDBSettings] = None,
        *,
        entity_type: Type[Authorization] = Authorization,
        factory: Optional[Callable[[], Authorization]] = None,
        reconciler: Optional[SchemaReconciler] = None,
    ) -> None:
        settings = settings or client.settings
        super().__init__(
            client,
            authorization_table(settings.authorizations_table_name),
            entity_type=entity_type,
            factory=factory,
            reconciler=reconciler,
        )

    def find(
        self,
        subject: str,
        client: str,
        status: Optional[str] = None,
        authorization_type: Optional[str] = None,
        scopes: Optional[Iterable[str]] = None,
        *,
        cancellation: Optional[CancellationSignal] = None,
    ) -> AsyncIterator[Authorization]:
        """Yield the authorizations of ``subject`` for ``client``.

        ``status`` and ``authorization_type`` narrow the index query;
        ``scopes`` keeps only authorizations granting every listed scope.
        """
        require_value(subject, "subject")
        condition = search_condition(subject, client, status, authorization_type)
        items = self._query(SUBJECT_SEARCH_KEY_INDEX, condition, cancellation)
        if scopes is None:
            return items
        return _granting(items, frozenset(scopes))

    def find_by_application_id(
        self, application_id: str, *, cancellation: Optional[CancellationSignal] = None
    ) -> AsyncIterator[Authorization]:
        require_value(application_id, "application_id")
        return self._query(
            APPLICATION_ID_INDEX, Key("ApplicationId").eq(application_id), cancellation
        )

    def find_by_subject(
        self, subject: str, *, cancellation: Optional[CancellationSignal] = None
    ) -> AsyncIterator[Authorization]:
        require_value(subject, "subject")
        return self._query(
            SUBJECT_SEARCH_KEY_INDEX, Key(SUBJECT_ATTRIBUTE).eq(subject), cancellation
        )

    def get_application_id(self, authorization: Authorization) -> Optional[str]:
        return self._require_entity(authorization).application_id

    def set_application_id(self, authorization: Authorization, identifier: Optional[str]) -> None:
        self._require_entity(authorization).application_id = identifier

    def get_creation_date(self, authorization: Authorization) -> Optional[datetime]:
        return self._require_entity(authorization).creation_date

    def set_creation_date(self, authorization: Authorization, date: Optional[datetime]) -> None:
        self._require_entity(authorization).creation_date = optional_utc(date)

    def get_scopes(self, authorization: Authorization) -> Tuple[str, ...]:
        return as_tuple(self._require_entity(authorization).scopes)

    def set_scopes(self, authorization: Authorization, scopes: Optional[Sequence[str]]) -> None:
        self._require_entity(authorization).scopes = stored_list(scopes)

    def get_status(self, authorization: Authorization) -> Optional[str]:
        return self._require_entity(authorization).status

    def set_status(self, authorization: Authorization, status: Optional[str]) -> None:
        self._require_entity(authorization).status = status

    def get_subject(self, authorization: Authorization) -> Optional[str]:
        return self._require_entity(authorization).subject

    def set_subject(self, authorization: Authorization, subject: Optional[str]) -> None:
        self._require_entity(authorization).subject = subject

    def get_type(self, authorization: Authorization) -> Optional[str]:
        return self._require_entity(authorization).type

    def set_type(self, authorization: Authorization, authorization_type: Optional[str]) -> None:
        self._require_entity(authorization).type = authorization_type


async def _granting(
    authorizations: AsyncIterator[Authorization], required: FrozenSet[str]
) -> AsyncIterator[Authorization]:
    async for authorization in authorizations:
        if required.issubset(authorization.scopes or ()):
            yield authorization


__all__ = ["AuthorizationStore"]
