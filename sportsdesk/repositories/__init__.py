"""
Persistent store repositories.
"""

from .base import (
    DocumentRepository,
    DuplicateDocumentError,
    Repositories,
    StoreQueryError,
)
from .query import (
    AnyOf,
    DocumentQuery,
    FieldFilter,
    Filter,
    FilterOp,
    SortDirection,
    any_of,
    eq,
    gt,
    icontains,
    ieq,
    lt,
    newest_first,
    oldest_first,
)

__all__ = [
    "AnyOf",
    "DocumentQuery",
    "DocumentRepository",
    "DuplicateDocumentError",
    "FieldFilter",
    "Filter",
    "FilterOp",
    "Repositories",
    "SortDirection",
    "StoreQueryError",
    "any_of",
    "eq",
    "gt",
    "icontains",
    "ieq",
    "lt",
    "newest_first",
    "oldest_first",
]
