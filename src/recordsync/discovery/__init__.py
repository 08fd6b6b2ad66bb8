"""
Discovery of serialized records and dependency ordering.
"""

from .finder import ExportsCache, RecordFinder
from .graph import DependencyGraph, DependencyNode

__all__ = ["DependencyGraph", "DependencyNode", "ExportsCache", "RecordFinder"]
