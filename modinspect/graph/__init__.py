"""Module dependency graph construction and queries."""

from .builder import (
    Graph,
    Node,
    build,
    build_from_requires,
    build_with_registry,
)

__all__ = [
    "Graph",
    "Node",
    "build",
    "build_from_requires",
    "build_with_registry",
]
