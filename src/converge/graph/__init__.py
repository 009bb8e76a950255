"""Dependency graph construction and ordering."""

from .dependency_graph import DependencyGraph, Direction, order

__all__ = ["DependencyGraph", "Direction", "order"]
