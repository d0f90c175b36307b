"""Client application record."""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import Field

from oidc_dynamodb.models.base import StoredEntity


class Application(StoredEntity):
    """Represents an OAuth client application stored in DynamoDB.

    Redirect and post-logout redirect URIs are not part of the item; they are
    materialized as rows of the application redirects table.
    """

    index_key_attributes = ("ClientId",)

    client_id: Optional[str] = Field(None, alias="ClientId")
    client_secret: Optional[str] = Field(None, alias="ClientSecret")
    consent_type: Optional[str] = Field(None, alias="ConsentType")
    display_name: Optional[str] = Field(None, alias="DisplayName")
    display_names: Optional[Dict[str, str]] = Field(None, alias="DisplayNames")
    permissions: Optional[List[str]] = Field(None, alias="Permissions")
    requirements: Optional[List[str]] = Field(None, alias="Requirements")
    type: Optional[str] = Field(None, alias="Type", description="Client type.")
    redirect_uris: Optional[List[str]] = Field(None, alias="RedirectUris", exclude=True)
    post_logout_redirect_uris: Optional[List[str]] = Field(
        None, alias="PostLogoutRedirectUris", exclude=True
    )


__all__ = ["Application"]
