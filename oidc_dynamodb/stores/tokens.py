"""Token store."""

from __future__ import annotations

from datetime import datetime
from typing import AsyncIterator, Callable, Optional, Type

from boto3.dynamodb.conditions import Key

from oidc_dynamodb.clients.dynamodb import DynamoDBClient
from oidc_dynamodb.core.cancellation import CancellationSignal
from oidc_dynamodb.core.config import DynamoDBSettings
from oidc_dynamodb.models.base import optional_utc
from oidc_dynamodb.models.token import Token
from oidc_dynamodb.schema.reconciler import SchemaReconciler
from oidc_dynamodb.schema.search_key import SUBJECT_ATTRIBUTE, search_condition
from oidc_dynamodb.schema.tables import (
    APPLICATION_ID_INDEX,
    AUTHORIZATION_ID_INDEX,
    REFERENCE_ID_INDEX,
    SUBJECT_SEARCH_KEY_INDEX,
    token_table,
)
from oidc_dynamodb.stores.base import EntityStore, require_value
from oidc_dynamodb.stores.pruning import TokenPruner


class TokenStore(EntityStore[Token]):
    """Persist tokens and prune the ones that can no longer be used."""

    entity_name = "token"

    def __init__(
        self,
        client: DynamoDBClient,
        settings: Optional[DynamoDBSettings] = None,
        *,
        entity_type: Type[Token] = Token,
        factory: Optional[Callable[[], Token]] = None,
        reconciler: Optional[SchemaReconciler] = None,
    ) -> None:
        settings = settings or client.settings
        super().__init__(
            client,
            token_table(settings.tokens_table_name),
            entity_type=entity_type,
            factory=factory,
            reconciler=reconciler,
        )
        self._pruner = TokenPruner(
            client, settings.tokens_table_name, settings.authorizations_table_name
        )

    def find(
        self,
        subject: str,
        client: str,
        status: Optional[str] = None,
        token_type: Optional[str] = None,
        *,
        cancellation: Optional[CancellationSignal] = None,
    ) -> AsyncIterator[Token]:
        """Yield the tokens of ``subject`` for ``client``, optionally narrowed.

        A ``token_type`` filter is only accepted together with ``status``.
        """
        require_value(subject, "subject")
        condition = search_condition(subject, client, status, token_type)
        return self._query(SUBJECT_SEARCH_KEY_INDEX, condition, cancellation)

    def find_by_application_id(
        self, application_id: str, *, cancellation: Optional[CancellationSignal] = None
    ) -> AsyncIterator[Token]:
        require_value(application_id, "application_id")
        return self._query(
            APPLICATION_ID_INDEX, Key("ApplicationId").eq(application_id), cancellation
        )

    def find_by_authorization_id(
        self, authorization_id: str, *, cancellation: Optional[CancellationSignal] = None
    ) -> AsyncIterator[Token]:
        require_value(authorization_id, "authorization_id")
        return self._query(
            AUTHORIZATION_ID_INDEX, Key("AuthorizationId").eq(authorization_id), cancellation
        )

    def find_by_subject(
        self, subject: str, *, cancellation: Optional[CancellationSignal] = None
    ) -> AsyncIterator[Token]:
        require_value(subject, "subject")
        return self._query(
            SUBJECT_SEARCH_KEY_INDEX, Key(SUBJECT_ATTRIBUTE).eq(subject), cancellation
        )

    async def find_by_reference_id(
        self, reference_id: str, *, cancellation: Optional[CancellationSignal] = None
    ) -> Optional[Token]:
        require_value(reference_id, "reference_id")
        return await self._find_first(
            REFERENCE_ID_INDEX, Key("ReferenceId").eq(reference_id), cancellation
        )

    async def prune(
        self,
        threshold: datetime,
        *,
        now: Optional[datetime] = None,
        cancellation: Optional[CancellationSignal] = None,
    ) -> int:
        """Delete unusable tokens created before ``threshold``."""
        return await self._pruner.prune(threshold, now=now, cancellation=cancellation)

    def get_application_id(self, token: Token) -> Optional[str]:
        return self._require_entity(token).application_id

    def set_application_id(self, token: Token, identifier: Optional[str]) -> None:
        self._require_entity(token).application_id = identifier

    def get_authorization_id(self, token: Token) -> Optional[str]:
        return self._require_entity(token).authorization_id

    def set_authorization_id(self, token: Token, identifier: Optional[str]) -> None:
        self._require_entity(token).authorization_id = identifier

    def get_creation_date(self, token: Token) -> Optional[datetime]:
        return self._require_entity(token).creation_date

    def set_creation_date(self, token: Token, date: Optional[datetime]) -> None:
        self._require_entity(token).creation_date = optional_utc(date)

    def get_expiration_date(self, token: Token) -> Optional[datetime]:
        return self._require_entity(token).expiration_date

    def set_expiration_date(self, token: Token, date: Optional[datetime]) -> None:
        self._require_entity(token).expiration_date = optional_utc(date)

    def get_redemption_date(self, token: Token) -> Optional[datetime]:
        return self._require_entity(token).redemption_date

    def set_redemption_date(self, token: Token, date: Optional[datetime]) -> None:
        self._require_entity(token).redemption_date = optional_utc(date)

    def get_payload(self, token: Token) -> Optional[str]:
        return self._require_entity(token).payload

    def set_payload(self, token: Token, payload: Optional[str]) -> None:
        self._require_entity(token).payload = payload

    def get_reference_id(self, token: Token) -> Optional[str]:
        return self._require_entity(token).reference_id

    def set_reference_id(self, token: Token, identifier: Optional[str]) -> None:
        self._require_entity(token).reference_id = identifier

    def get_status(self, token: Token) -> Optional[str]:
        return self._require_entity(token).status

    def set_status(self, token: Token, status: Optional[str]) -> None:
        self._require_entity(token).status = status

    def get_subject(self, token: Token) -> Optional[str]:
        return self._require_entity(token).subject

    def set_subject(self, token: Token, subject: Optional[str]) -> None:
        self._require_entity(token).subject = subject

    def get_type(self, token: Token) -> Optional[str]:
        return self._require_entity(token).type

    def set_type(self, token: Token, token_type: Optional[str]) -> None:
        self._require_entity(token).type = token_type


__all__ = ["TokenStore"]
