"""Caching primitives for registry responses."""

from .memory import CacheEntry, MemoryCache

__all__ = [
    "CacheEntry",
    "MemoryCache",
]
