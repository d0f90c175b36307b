"""
Removal of stale tokens.

A token created before the threshold is deleted when it is no longer usable:
its status is neither ``inactive`` nor ``valid``, it has expired, or the
authorization it belongs to is no longer ``valid``. Tokens without an
authorization, or whose authorization has disappeared, are kept.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from boto3.dynamodb.conditions import Attr

from oidc_dynamodb.clients.dynamodb import DynamoDBClient, Item
from oidc_dynamodb.core.cancellation import CancellationSignal
from oidc_dynamodb.models.base import format_timestamp, to_utc
from oidc_dynamodb.models.constants import Statuses
from oidc_dynamodb.models.token import Token
from oidc_dynamodb.schema.tables import ID_ATTRIBUTE

logger = logging.getLogger(__name__)

USABLE_STATUSES = frozenset({Statuses.INACTIVE, Statuses.VALID})


class TokenPruner:
    """Delete tokens that can no longer be used."""

    def __init__(
        self, client: DynamoDBClient, tokens_table: str, authorizations_table: str
    ) -> None:
        self._client = client
        self._tokens_table = tokens_table
        self._authorizations_table = authorizations_table

    async def prune(
        self,
        threshold: datetime,
        *,
        now: Optional[datetime] = None,
        cancellation: Optional[CancellationSignal] = None,
    ) -> int:
        """Delete stale tokens created before ``threshold``; return how many."""
        now = to_utc(now) if now is not None else datetime.now(timezone.utc)
        stale: List[Token] = []
        survivors: List[Token] = []
        async for item in self._client.scan_all(
            self._tokens_table,
            filter_expression=Attr("CreationDate").lt(format_timestamp(threshold)),
            cancellation=cancellation,
        ):
            token = Token.model_validate(item)
            if _is_unusable(token, now):
                stale.append(token)
            else:
                survivors.append(token)

        statuses = await self._authorization_statuses(survivors, cancellation)
        for token in survivors:
            identifier = token.authorization_id
            if identifier in statuses and statuses[identifier] != Statuses.VALID:
                stale.append(token)

        await self._client.batch_write(
            self._tokens_table,
            delete_keys=[{ID_ATTRIBUTE: token.id} for token in stale],
            cancellation=cancellation,
        )
        logger.info(
            "Pruned tokens",
            extra={
                "table": self._tokens_table,
                "threshold": format_timestamp(threshold),
                "deleted": len(stale),
            },
        )
        return len(stale)

    async def _authorization_statuses(
        self, tokens: List[Token], cancellation: Optional[CancellationSignal]
    ) -> Dict[str, Optional[str]]:
        """Map each referenced authorization that still exists to its status."""
        identifiers = list(
            dict.fromkeys(token.authorization_id for token in tokens if token.authorization_id)
        )
        if not identifiers:
            return {}
        items: List[Item] = await self._client.batch_get(
            self._authorizations_table,
            [{ID_ATTRIBUTE: identifier} for identifier in identifiers],
            cancellation=cancellation,
        )
        return {item[ID_ATTRIBUTE]: item.get("Status") for item in items}


def _is_unusable(token: Token, now: datetime) -> bool:
    if token.status not in USABLE_STATUSES:
        return True
    return token.expiration_date is not None and token.expiration_date < now


__all__ = ["TokenPruner", "USABLE_STATUSES"]
