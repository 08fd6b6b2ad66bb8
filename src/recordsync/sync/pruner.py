"""
Safe removal of exports together with dependencies nothing else needs.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

from ..discovery.finder import RecordFinder


logger = logging.getLogger(__name__)


class Pruner:
    """Deletes an export and its orphaned dependencies from a directory."""

    def __init__(self, finder: Optional[RecordFinder] = None):
        self.finder = finder or RecordFinder()

    def remove_with_dependencies(self, directory: Union[str, Path], uuid: str) -> List[Path]:
        """
        Delete the export ``uuid`` and every dependency that nothing outside
        its dependency closure still needs.

        Nothing is deleted when the export is missing or when a record outside
        the closure depends on it. Asset files exported next to file records
        are deleted with them.

        Returns:
            Paths deleted, empty if the operation was a no-op or aborted
        """
        all_exports = self.finder.discover(directory)
        if not all_exports.has(uuid):
            logger.info(f"Nothing to remove, no export {uuid} in {directory}")
            return []

        candidates = all_exports.with_dependencies(uuid)
        remaining = all_exports.diff(candidates)

        removal_safe = candidates.filter(
            lambda export: not any(other.has_dependency(export.uuid) for other in remaining)
        )
        if not removal_safe.has(uuid):
            logger.warning(f"Not removing {uuid}: other exports depend on it")
            return []

        deleted: List[Path] = []
        for export in removal_safe:
            path = Path(export.path)
            path.unlink()
            deleted.append(path)
            logger.info(f"Removed export {export.uuid}: {path}")

            if export.is_file() and export.file_asset_is_exported(path.parent):
                asset = path.parent / export.file_asset_filename()
                asset.unlink()
                deleted.append(asset)
                logger.info(f"Removed asset {asset}")

        return deleted
