"""
Cache Value Objects

Immutable value objects for the entity cache: query dimensions, cache keys
and TTLs. Keys follow the `<namespace>:<kind>[:<selector>]` convention.
"""

import hashlib
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple
from urllib.parse import quote

MAX_KEY_LENGTH = 250


class DimensionKind(str, Enum):
    """Query axes used across the entity families."""

    ALL = "all"
    ID = "id"
    CATEGORY = "category"
    STATUS = "status"
    EMAIL = "email"
    LOCAL = "local"
    SEARCH = "search"
    FEATURED = "featured"
    LATEST = "latest"
    CATEGORIES = "categories"


_KIND_PATTERN = re.compile(r"^[a-z][a-z_]*$")

# Selectors kept verbatim. Everything else is case-folded.
_CASE_SENSITIVE_KINDS = {DimensionKind.ID.value}

# ":" separates status views from their category, "@" keeps email keys readable.
_KEY_SAFE_CHARS = ":@"


@dataclass(frozen=True)
class Dimension:
    """
    Query dimension within an entity family, e.g. `all`, `id:<x>`,
    `category:<c>` or `status:live`.
    """

    kind: str
    selector: Optional[str] = None

    def __post_init__(self) -> None:
        kind = self.kind.value if isinstance(self.kind, DimensionKind) else self.kind
        if not kind or not _KIND_PATTERN.match(kind):
            raise ValueError(f"Invalid dimension kind: {self.kind!r}")
        object.__setattr__(self, "kind", kind)

        if self.selector is not None:
            selector = str(self.selector).strip()
            if not selector:
                raise ValueError(f"Dimension '{kind}' selector cannot be blank")
            object.__setattr__(self, "selector", selector)

    @classmethod
    def all(cls) -> "Dimension":
        return cls(DimensionKind.ALL)

    @classmethod
    def by_id(cls, entity_id: str) -> "Dimension":
        return cls(DimensionKind.ID, entity_id)

    @classmethod
    def category(cls, category: str) -> "Dimension":
        return cls(DimensionKind.CATEGORY, category)

    @classmethod
    def status(cls, status: str) -> "Dimension":
        return cls(DimensionKind.STATUS, status)

    @classmethod
    def email(cls, email: str) -> "Dimension":
        return cls(DimensionKind.EMAIL, email)

    @classmethod
    def local(cls, country: str) -> "Dimension":
        return cls(DimensionKind.LOCAL, country)

    @classmethod
    def search(cls, query: str) -> "Dimension":
        return cls(DimensionKind.SEARCH, query)

    @property
    def normalized_selector(self) -> Optional[str]:
        if self.selector is None:
            return None
        selector = self.selector
        if self.kind not in _CASE_SENSITIVE_KINDS:
            selector = selector.lower()
        if self.kind == DimensionKind.SEARCH.value:
            return quote(selector, safe="")
        # Percent-encoding keeps whitespace and other separators out of keys.
        return quote(selector, safe=_KEY_SAFE_CHARS)

    @property
    def ttl_lookup(self) -> Tuple[str, ...]:
        """
        TTL table entries from most to least specific.

        `status:live:cricket` is looked up as `status:live:cricket`,
        `status:live`, then `status`.
        """
        if self.selector is None:
            return (self.kind,)
        parts = self.normalized_selector.split(":")
        prefixes = tuple(
            f"{self.kind}:{':'.join(parts[:end])}" for end in range(len(parts), 0, -1)
        )
        return prefixes + (self.kind,)

    def __str__(self) -> str:
        if self.selector is None:
            return self.kind
        return f"{self.kind}:{self.normalized_selector}"


@dataclass(frozen=True)
class CacheKey:
    """
    Immutable cache key value object.

    Enforces key naming conventions and provides validation.
    """

    value: str

    def __post_init__(self) -> None:
        """Validate cache key format."""
        if not self.value:
            raise ValueError("Cache key cannot be empty")

        if len(self.value) > MAX_KEY_LENGTH:
            raise ValueError(f"Cache key too long (max {MAX_KEY_LENGTH} characters)")

        if any(char.isspace() for char in self.value):
            raise ValueError("Cache key cannot contain whitespace")

    @classmethod
    def for_dimension(cls, namespace: str, dimension: Dimension) -> "CacheKey":
        """Create the key of one dimension inside a family namespace."""
        if not namespace or ":" in namespace:
            raise ValueError(f"Invalid cache namespace: {namespace!r}")
        value = f"{namespace}:{dimension}"
        if len(value) > MAX_KEY_LENGTH:
            digest = hashlib.sha256(value.encode("utf-8")).hexdigest()
            value = f"{namespace}:{dimension.kind}:sha256:{digest}"
        return cls(value)

    @classmethod
    def namespace_pattern(cls, namespace: str, kind: Optional[str] = None) -> str:
        """Glob pattern matching every key of a namespace, or of one kind in it."""
        if kind:
            return f"{namespace}:{kind}:*"
        return f"{namespace}:*"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class TTL:
    """
    Time To Live value object for cache expiration.

    Provides type-safe TTL configuration with validation.
    """

    seconds: int

    def __post_init__(self) -> None:
        """Validate TTL value."""
        if self.seconds <= 0:
            raise ValueError("TTL must be positive")
        if self.seconds > 86400 * 365:
            raise ValueError("TTL too large (max 1 year)")

    @classmethod
    def of_seconds(cls, seconds: int) -> "TTL":
        return cls(seconds)

    @classmethod
    def minutes(cls, minutes: int) -> "TTL":
        """Create TTL from minutes."""
        return cls(minutes * 60)

    @classmethod
    def hours(cls, hours: int) -> "TTL":
        """Create TTL from hours."""
        return cls(hours * 3600)

    @classmethod
    def days(cls, days: int) -> "TTL":
        """Create TTL from days."""
        return cls(days * 86400)

    def __str__(self) -> str:
        return f"{self.seconds}s"
