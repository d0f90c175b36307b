"""
Shared base for persisted entities.

Python fields are snake_case; the persisted DynamoDB attribute names are the
field aliases and never change, whatever table name a deployment uses.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def new_identifier() -> str:
    """Return a fresh opaque identifier."""
    return str(uuid.uuid4())


def format_timestamp(value: datetime) -> str:
    """Render a timestamp as a fixed-width UTC string that sorts lexically."""
    return to_utc(value).strftime(TIMESTAMP_FORMAT)


def to_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def optional_utc(value: Optional[datetime]) -> Optional[datetime]:
    return to_utc(value) if value is not None else None


class StoredEntity(BaseModel):
    """Fields every entity kind carries."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    # Attributes used as secondary-index keys; DynamoDB rejects empty strings there.
    index_key_attributes: ClassVar[Tuple[str, ...]] = ()

    id: str = Field(default_factory=new_identifier, alias="Id")
    concurrency_token: str = Field(default_factory=new_identifier, alias="ConcurrencyToken")
    properties: Optional[str] = Field(
        None,
        alias="Properties",
        description="JSON object serialized as a single string.",
    )

    def to_item(self) -> Dict[str, Any]:
        """Serialize to a DynamoDB item, omitting unset attributes."""
        item = self.model_dump(by_alias=True, exclude_none=True)
        for name in self.index_key_attributes:
            if item.get(name) == "":
                del item[name]
        return item


__all__ = [
    "StoredEntity",
    "TIMESTAMP_FORMAT",
    "format_timestamp",
    "new_identifier",
    "optional_utc",
    "to_utc",
]
