"""
Table layouts for every entity kind.

Table names come from configuration; key, attribute and index names are
fixed so that renaming a table never changes the persisted schema.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from oidc_dynamodb.core.config import DynamoDBSettings

HASH = "HASH"
RANGE = "RANGE"

STRING = "S"
NUMBER = "N"

ID_ATTRIBUTE = "Id"

CLIENT_ID_INDEX = "ClientId-index"
APPLICATION_ID_INDEX = "ApplicationId-index"
AUTHORIZATION_ID_INDEX = "AuthorizationId-index"
REFERENCE_ID_INDEX = "ReferenceId-index"
SUBJECT_SEARCH_KEY_INDEX = "Subject-SearchKey-index"
SCOPE_NAME_INDEX = "Name-index"
SCOPE_RESOURCE_INDEX = "Resource-index"


@dataclass(frozen=True)
class IndexSpec:
    """A global secondary index projecting all attributes."""

    name: str
    hash_key: str
    range_key: Optional[str] = None

    @property
    def key_attributes(self) -> Tuple[str, ...]:
        return (self.hash_key,) if self.range_key is None else (self.hash_key, self.range_key)

    def key_schema(self) -> List[Dict[str, str]]:
        schema = [{"AttributeName": self.hash_key, "KeyType": HASH}]
        if self.range_key is not None:
            schema.append({"AttributeName": self.range_key, "KeyType": RANGE})
        return schema


@dataclass(frozen=True)
class TableSpec:
    """Primary key, attribute types and secondary indexes of a table."""

    name: str
    hash_key: str
    attribute_types: Mapping[str, str]
    range_key: Optional[str] = None
    indexes: Tuple[IndexSpec, ...] = field(default_factory=tuple)

    @property
    def key_attributes(self) -> Tuple[str, ...]:
        return (self.hash_key,) if self.range_key is None else (self.hash_key, self.range_key)

    def key_schema(self) -> List[Dict[str, str]]:
        schema = [{"AttributeName": self.hash_key, "KeyType": HASH}]
        if self.range_key is not None:
            schema.append({"AttributeName": self.range_key, "KeyType": RANGE})
        return schema

    def attribute_definitions(self, attributes: Optional[Tuple[str, ...]] = None) -> List[Dict[str, str]]:
        """Definitions for key attributes; DynamoDB rejects unused definitions."""
        if attributes is None:
            names: List[str] = list(self.key_attributes)
            for index in self.indexes:
                names.extend(index.key_attributes)
        else:
            names = list(attributes)
        seen: Dict[str, None] = dict.fromkeys(names)
        return [
            {"AttributeName": name, "AttributeType": self.attribute_types[name]}
            for name in seen
        ]

    def key_of(self, item: Mapping[str, Any]) -> Dict[str, Any]:
        """Extract the primary key of an item."""
        return {name: item[name] for name in self.key_attributes}


def application_table(name: str) -> TableSpec:
    return TableSpec(
        name=name,
        hash_key=ID_ATTRIBUTE,
        attribute_types={ID_ATTRIBUTE: STRING, "ClientId": STRING},
        indexes=(IndexSpec(CLIENT_ID_INDEX, "ClientId"),),
    )


def application_redirect_table(name: str) -> TableSpec:
    return TableSpec(
        name=name,
        hash_key="RedirectUri",
        range_key="RedirectType",
        attribute_types={"RedirectUri": STRING, "RedirectType": NUMBER, "ApplicationId": STRING},
        indexes=(IndexSpec(APPLICATION_ID_INDEX, "ApplicationId"),),
    )


def authorization_table(name: str) -> TableSpec:
    return TableSpec(
        name=name,
        hash_key=ID_ATTRIBUTE,
        attribute_types={
            ID_ATTRIBUTE: STRING,
            "ApplicationId": STRING,
            "Subject": STRING,
            "SearchKey": STRING,
        },
        indexes=(
            IndexSpec(SUBJECT_SEARCH_KEY_INDEX, "Subject", "SearchKey"),
            IndexSpec(APPLICATION_ID_INDEX, "ApplicationId"),
        ),
    )


def scope_table(name: str) -> TableSpec:
    return TableSpec(
        name=name,
        hash_key=ID_ATTRIBUTE,
        attribute_types={ID_ATTRIBUTE: STRING, "ScopeName": STRING},
        indexes=(IndexSpec(SCOPE_NAME_INDEX, "ScopeName"),),
    )


def scope_resource_table(name: str) -> TableSpec:
    return TableSpec(
        name=name,
        hash_key="ScopeId",
        range_key="ScopeResource",
        attribute_types={"ScopeId": STRING, "ScopeResource": STRING},
        indexes=(IndexSpec(SCOPE_RESOURCE_INDEX, "ScopeResource"),),
    )


def token_table(name: str) -> TableSpec:
    return TableSpec(
        name=name,
        hash_key=ID_ATTRIBUTE,
        attribute_types={
            ID_ATTRIBUTE: STRING,
            "ApplicationId": STRING,
            "AuthorizationId": STRING,
            "ReferenceId": STRING,
            "Subject": STRING,
            "SearchKey": STRING,
        },
        indexes=(
            IndexSpec(SUBJECT_SEARCH_KEY_INDEX, "Subject", "SearchKey"),
            IndexSpec(APPLICATION_ID_INDEX, "ApplicationId"),
            IndexSpec(AUTHORIZATION_ID_INDEX, "AuthorizationId"),
            IndexSpec(REFERENCE_ID_INDEX, "ReferenceId"),
        ),
    )


def all_tables(settings: DynamoDBSettings) -> List[TableSpec]:
    """Every table the stores need, named according to ``settings``."""
    return [
        application_table(settings.applications_table_name),
        application_redirect_table(settings.application_redirects_table_name),
        authorization_table(settings.authorizations_table_name),
        scope_table(settings.scopes_table_name),
        scope_resource_table(settings.scope_resources_table_name),
        token_table(settings.tokens_table_name),
    ]


__all__ = [
    "APPLICATION_ID_INDEX",
    "AUTHORIZATION_ID_INDEX",
    "CLIENT_ID_INDEX",
    "ID_ATTRIBUTE",
    "IndexSpec",
    "REFERENCE_ID_INDEX",
    "SCOPE_NAME_INDEX",
    "SCOPE_RESOURCE_INDEX",
    "SUBJECT_SEARCH_KEY_INDEX",
    "TableSpec",
    "all_tables",
    "application_redirect_table",
    "application_table",
    "authorization_table",
    "scope_resource_table",
    "scope_table",
    "token_table",
]
