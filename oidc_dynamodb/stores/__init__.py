"""Entity stores backed by DynamoDB."""

from .applications import ApplicationStore
from .authorizations import AuthorizationStore
from .base import EntityStore
from .pager import CursorPager
from .pruning import TokenPruner
from .relations import RelationSpec, RelationStore
from .scopes import ScopeStore
from .tokens import TokenStore

__all__ = [
    "ApplicationStore",
    "AuthorizationStore",
    "CursorPager",
    "EntityStore",
    "RelationSpec",
    "RelationStore",
    "ScopeStore",
    "TokenPruner",
    "TokenStore",
]
