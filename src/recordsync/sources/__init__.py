"""
Export sources.
"""

from .manager import SourceManager
from .source import Source

__all__ = ["Source", "SourceManager"]
