"""
Option plugin controlling whether file assets travel with their records.
"""

import logging
import zipfile
from pathlib import Path

from ..core.exportable import Exportable
from ..core.models import FILE_RECORD_TYPE, SerializedRecord
from ..store.models import LiveRecord
from .base import MetaOption


logger = logging.getLogger(__name__)


class FileAssetsOption(MetaOption):
    """
    ``_meta.options.file_assets`` may hold ``should_export`` and
    ``should_import`` booleans overriding the configured defaults for one
    record.
    """

    option_id = "file_assets"
    label = "File Assets"
    description = "How file assets should be handled during export and import."

    def applies(self, record: LiveRecord) -> bool:
        return record.record_type == FILE_RECORD_TYPE

    def should_export(self, exportable: Exportable) -> bool:
        override = (exportable.get_option(self.option_id) or {}).get("should_export")
        if override is not None:
            return bool(override)
        return self.settings.should_export_assets()

    def should_import(self, export: SerializedRecord) -> bool:
        override = (export.get_option(self.option_id) or {}).get("should_import")
        if override is not None:
            return bool(override)
        return self.settings.should_import_assets()

    def pre_export_write(self, exportable: Exportable) -> None:
        if self.should_export(exportable):
            self.asset_manager.export_asset(exportable)

    def pre_export_download(self, archive: zipfile.ZipFile, exportable: Exportable) -> None:
        if not self.should_export(exportable):
            return
        asset_path = self.asset_manager.export_asset(exportable)
        if asset_path is None:
            return
        record = exportable.record
        archive.write(asset_path, arcname=f"{record.record_type}/{record.bundle}/{asset_path.name}")

    def pre_import_save(self, record: LiveRecord, export: SerializedRecord) -> None:
        if not self.should_import(export):
            return
        uri = export.file_uri()
        if not uri or not export.path:
            return
        self.asset_manager.import_asset(record, Path(export.path).parent, uri)
