"""Domain models persisted by the entity stores."""

from .application import Application
from .authorization import Authorization
from .base import StoredEntity, format_timestamp, new_identifier
from .constants import RedirectType, Statuses
from .scope import Scope
from .token import Token

__all__ = [
    "Application",
    "Authorization",
    "RedirectType",
    "Scope",
    "Statuses",
    "StoredEntity",
    "Token",
    "format_timestamp",
    "new_identifier",
]
