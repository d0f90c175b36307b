"""Table layouts, search keys and schema reconciliation."""

from .reconciler import SchemaReconciler
from .search_key import search_condition, search_prefix, stored_search_key
from .tables import IndexSpec, TableSpec, all_tables

__all__ = [
    "IndexSpec",
    "SchemaReconciler",
    "TableSpec",
    "all_tables",
    "search_condition",
    "search_prefix",
    "stored_search_key",
]
