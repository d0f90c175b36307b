"""Token record."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import Field, field_serializer, field_validator

from oidc_dynamodb.models.base import StoredEntity, format_timestamp, optional_utc
from oidc_dynamodb.schema.search_key import SEARCH_KEY_ATTRIBUTE, stored_search_key


class Token(StoredEntity):
    """Represents an issued token (access, refresh, authorization code, ...)."""

    index_key_attributes = ("ApplicationId", "AuthorizationId", "Subject", "ReferenceId")

    application_id: Optional[str] = Field(None, alias="ApplicationId")
    authorization_id: Optional[str] = Field(None, alias="AuthorizationId")
    subject: Optional[str] = Field(None, alias="Subject")
    type: Optional[str] = Field(None, alias="Type")
    status: Optional[str] = Field(None, alias="Status")
    reference_id: Optional[str] = Field(None, alias="ReferenceId")
    payload: Optional[str] = Field(None, alias="Payload")
    creation_date: Optional[datetime] = Field(None, alias="CreationDate")
    expiration_date: Optional[datetime] = Field(None, alias="ExpirationDate")
    redemption_date: Optional[datetime] = Field(None, alias="RedemptionDate")

    @field_validator("creation_date", "expiration_date", "redemption_date")
    @classmethod
    def _normalize_dates(cls, value: Optional[datetime]) -> Optional[datetime]:
        return optional_utc(value)

    @field_serializer("creation_date", "expiration_date", "redemption_date")
    def _serialize_dates(self, value: Optional[datetime]) -> Optional[str]:
        return format_timestamp(value) if value is not None else None

    @property
    def search_key(self) -> str:
        """Derived ``{applicationId}#{status}#{type}`` used only for indexed lookups."""
        return stored_search_key(self.application_id, self.status, self.type)

    def to_item(self) -> Dict[str, Any]:
        item = super().to_item()
        item[SEARCH_KEY_ATTRIBUTE] = self.search_key
        return item


__all__ = ["Token"]
