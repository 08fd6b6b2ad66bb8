"""
Option plugins and asset file handling.
"""

from ..store.base import RecordStore
from .assets import AssetFileManager, copy_file, file_sha256
from .base import MetaOption
from .file_assets import FileAssetsOption
from .registry import MetaOptionRegistry


def create_default_options(settings, store: RecordStore) -> MetaOptionRegistry:
    """Registry with the shipped option plugins."""
    asset_manager = AssetFileManager(settings, store)
    return MetaOptionRegistry([FileAssetsOption(settings, asset_manager)])


__all__ = [
    "AssetFileManager",
    "FileAssetsOption",
    "MetaOption",
    "MetaOptionRegistry",
    "copy_file",
    "create_default_options",
    "file_sha256",
]
