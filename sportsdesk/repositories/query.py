"""
Document Query Value Objects

Backend-neutral description of a document query: field filters, OR-groups,
sort order and paging. Repository implementations translate these into
their own query language.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple, Union


class FilterOp(str, Enum):
    """Supported filter operators."""

    EQ = "eq"
    IEQ = "ieq"  # case-insensitive equality
    GT = "gt"
    LT = "lt"
    ICONTAINS = "icontains"  # case-insensitive substring, also matches list items


class SortDirection(int, Enum):
    ASC = 1
    DESC = -1


@dataclass(frozen=True)
class FieldFilter:
    """Single field predicate."""

    field: str
    op: FilterOp
    value: Any


@dataclass(frozen=True)
class AnyOf:
    """OR-group of field predicates."""

    filters: Tuple[FieldFilter, ...]


Filter = Union[FieldFilter, AnyOf]


@dataclass(frozen=True)
class DocumentQuery:
    """
    Immutable document query.

    All filters are combined with AND. `limit=None` means unbounded.
    """

    filters: Tuple[Filter, ...] = ()
    sort: Tuple[Tuple[str, SortDirection], ...] = ()
    skip: int = 0
    limit: Optional[int] = None

    def __post_init__(self) -> None:
        if self.skip < 0:
            raise ValueError("skip must be non-negative")
        if self.limit is not None and self.limit < 0:
            raise ValueError("limit must be non-negative")


def eq(field_name: str, value: Any) -> FieldFilter:
    return FieldFilter(field_name, FilterOp.EQ, value)


def ieq(field_name: str, value: str) -> FieldFilter:
    return FieldFilter(field_name, FilterOp.IEQ, value)


def gt(field_name: str, value: Any) -> FieldFilter:
    return FieldFilter(field_name, FilterOp.GT, value)


def lt(field_name: str, value: Any) -> FieldFilter:
    return FieldFilter(field_name, FilterOp.LT, value)


def icontains(field_name: str, value: str) -> FieldFilter:
    return FieldFilter(field_name, FilterOp.ICONTAINS, value)


def any_of(*filters: FieldFilter) -> AnyOf:
    if not filters:
        raise ValueError("any_of requires at least one filter")
    return AnyOf(tuple(filters))


def newest_first(field_name: str) -> Tuple[Tuple[str, SortDirection], ...]:
    return ((field_name, SortDirection.DESC),)


def oldest_first(field_name: str) -> Tuple[Tuple[str, SortDirection], ...]:
    return ((field_name, SortDirection.ASC),)
