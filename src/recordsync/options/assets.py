"""
Copies binary assets of file records between their stored location and
their export directory.
"""

import hashlib
import logging
import shutil
from pathlib import Path
from typing import Optional, Union

from ..config.settings import FileExistsPolicy
from ..core.exportable import Exportable
from ..core.models import FILE_RECORD_TYPE
from ..store.base import RecordStore
from ..store.models import LiveRecord


logger = logging.getLogger(__name__)


def file_sha256(path: Union[str, Path]) -> str:
    """SHA256 of a file's contents, read in chunks."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()


def copy_file(source: Path, destination: Path, policy: FileExistsPolicy) -> Path:
    """
    Copy ``source`` to ``destination`` honouring a file-exists policy.

    Returns:
        The path actually written

    Raises:
        FileExistsError: If the destination exists and the policy is ERROR
    """
    destination.parent.mkdir(parents=True, exist_ok=True)
    if destination.exists():
        if policy == FileExistsPolicy.ERROR:
            raise FileExistsError(f"Destination already exists: {destination}")
        if policy == FileExistsPolicy.RENAME:
            destination = _unique_path(destination)
    shutil.copy2(source, destination)
    return destination


def _unique_path(path: Path) -> Path:
    counter = 0
    while True:
        candidate = path.with_name(f"{path.stem}_{counter}{path.suffix}")
        if not candidate.exists():
            return candidate
        counter += 1


class AssetFileManager:
    """Exports and imports the asset files of file records."""

    def __init__(self, settings, store: RecordStore):
        self.settings = settings
        self.store = store

    def export_asset(self, exportable: Exportable) -> Optional[Path]:
        """
        Copy a file record's asset next to its YAML export.

        Returns:
            Path of the copied asset, or None if there was nothing to copy
        """
        if not exportable.is_file() or not exportable.filepath:
            return None

        uri = exportable.file_uri()
        if not uri or not Path(uri).is_file():
            logger.warning(f"Asset for file {exportable.uuid} not found: {uri}")
            return None

        destination = Path(exportable.filepath).parent / exportable.file_asset_filename()
        written = copy_file(Path(uri), destination, self.settings.asset_export_file_exists())
        logger.debug(f"Exported asset {uri} -> {written}")
        return written

    def import_asset(self, record: LiveRecord, source_directory: Union[str, Path], destination_uri: str) -> Optional[Path]:
        """
        Copy an exported asset back to its stored location.

        The identity-prefixed asset name is tried first, then the bare file
        name. The copy is skipped when the destination already has identical
        contents and no file record manages it.

        Returns:
            Path written, or None when nothing was copied
        """
        if record.record_type != FILE_RECORD_TYPE:
            return None

        source_directory = Path(source_directory)
        source = source_directory / f"{record.uuid}--{Path(destination_uri).name}"
        if not source.is_file():
            source = source_directory / Path(destination_uri).name
            if not source.is_file():
                logger.debug(f"No exported asset for file {record.uuid}")
                return None

        destination = Path(destination_uri)
        if destination.is_file() and file_sha256(source) == file_sha256(destination):
            managed = self.store.load_by_properties(FILE_RECORD_TYPE, {"uri": destination_uri})
            if not managed:
                logger.debug(f"Asset {destination} unchanged, not copying")
                return None

        written = copy_file(source, destination, self.settings.asset_import_file_exists())
        uri_values = record.fields.setdefault("uri", [{}])
        if not uri_values:
            uri_values.append({})
        uri_values[0]["value"] = str(written)
        logger.debug(f"Imported asset {source} -> {written}")
        return written

    def asset_is_exported(self, exportable: Exportable) -> bool:
        if not exportable.filepath:
            return False
        return exportable.export.file_asset_is_exported(Path(exportable.filepath).parent)
