"""Authorization record."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, field_serializer, field_validator

from oidc_dynamodb.models.base import StoredEntity, format_timestamp, optional_utc
from oidc_dynamodb.schema.search_key import SEARCH_KEY_ATTRIBUTE, stored_search_key


class Authorization(StoredEntity):
    """Represents a subject's grant to a client application."""

    index_key_attributes = ("ApplicationId", "Subject")

    application_id: Optional[str] = Field(None, alias="ApplicationId")
    subject: Optional[str] = Field(None, alias="Subject")
    status: Optional[str] = Field(None, alias="Status")
    type: Optional[str] = Field(None, alias="Type")
    scopes: Optional[List[str]] = Field(None, alias="Scopes")
    creation_date: Optional[datetime] = Field(None, alias="CreationDate")

    @field_validator("creation_date")
    @classmethod
    def _normalize_creation_date(cls, value: Optional[datetime]) -> Optional[datetime]:
        return optional_utc(value)

    @field_serializer("creation_date")
    def _serialize_creation_date(self, value: Optional[datetime]) -> Optional[str]:
        return format_timestamp(value) if value is not None else None

    @property
    def search_key(self) -> str:
        return stored_search_key(self.application_id, self.status, self.type)

    def to_item(self) -> Dict[str, Any]:
        item = super().to_item()
        item[SEARCH_KEY_ATTRIBUTE] = self.search_key
        return item


__all__ = ["Authorization"]
