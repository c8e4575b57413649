"""
Cache domain value objects.
"""

from .value_objects import TTL, CacheKey, Dimension, DimensionKind

__all__ = ["CacheKey", "Dimension", "DimensionKind", "TTL"]
