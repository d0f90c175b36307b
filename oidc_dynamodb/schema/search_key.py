"""
Composite search keys for the ``Subject-SearchKey-index``.

A single index keyed on ``(Subject, SearchKey)`` serves lookups by client,
by client and status, and by client, status and type. The dimensions are
joined in that fixed order with ``SEPARATOR``. The separator is not escaped:
client identifiers, statuses and types are framework-controlled values that
must never contain it.
"""

from __future__ import annotations

from typing import Optional

from boto3.dynamodb.conditions import ConditionBase, Key

from oidc_dynamodb.core.errors import InvalidArgumentError

SEPARATOR = "#"
SUBJECT_ATTRIBUTE = "Subject"
SEARCH_KEY_ATTRIBUTE = "SearchKey"


def stored_search_key(client: Optional[str], status: Optional[str], kind: Optional[str]) -> str:
    """Build the value persisted on an item; every slot is always present."""
    return SEPARATOR.join(value or "" for value in (client, status, kind))


def search_prefix(client: str, status: Optional[str] = None, kind: Optional[str] = None) -> str:
    """Join the supplied dimensions, dropping trailing absent ones."""
    if not client:
        raise InvalidArgumentError("client")
    if kind is not None and status is None:
        raise InvalidArgumentError("status", "A type filter requires a status filter.")
    parts = [client]
    if status is not None:
        parts.append(status)
        if kind is not None:
            parts.append(kind)
    return SEPARATOR.join(parts)


def search_condition(
    subject: str,
    client: str,
    status: Optional[str] = None,
    kind: Optional[str] = None,
) -> ConditionBase:
    """Key condition selecting items of ``subject`` that match the prefix.

    Partial keys are matched with a trailing separator so that client ``a``
    never matches items of client ``ab``; a full key is matched exactly.
    """
    prefix = search_prefix(client, status, kind)
    condition = Key(SUBJECT_ATTRIBUTE).eq(subject)
    if kind is not None:
        return condition & Key(SEARCH_KEY_ATTRIBUTE).eq(prefix)
    return condition & Key(SEARCH_KEY_ATTRIBUTE).begins_with(prefix + SEPARATOR)


__all__ = [
    "SEARCH_KEY_ATTRIBUTE",
    "SEPARATOR",
    "SUBJECT_ATTRIBUTE",
    "search_condition",
    "search_prefix",
    "stored_search_key",
]
