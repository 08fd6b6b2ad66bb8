"""
Configuration for recordsync.
"""

from .settings import FileExistsPolicy, SyncSettings

__all__ = ["FileExistsPolicy", "SyncSettings"]
