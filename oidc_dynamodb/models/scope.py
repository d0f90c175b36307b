"""Scope record."""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import Field

from oidc_dynamodb.models.base import StoredEntity


class Scope(StoredEntity):
    """Represents a scope; resources live in the scope resources table."""

    index_key_attributes = ("ScopeName",)

    name: Optional[str] = Field(None, alias="ScopeName")
    description: Optional[str] = Field(None, alias="Description")
    descriptions: Optional[Dict[str, str]] = Field(None, alias="Descriptions")
    display_name: Optional[str] = Field(None, alias="DisplayName")
    display_names: Optional[Dict[str, str]] = Field(None, alias="DisplayNames")
    resources: Optional[List[str]] = Field(None, alias="Resources", exclude=True)


__all__ = ["Scope"]
