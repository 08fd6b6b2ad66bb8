"""
Option plugin base class.

Option plugins own a key under ``_meta.options`` of a serialized record and
get a chance to act at fixed points of export and import.
"""

import zipfile

from ..core.exportable import Exportable
from ..core.models import SerializedRecord
from ..store.models import LiveRecord


class MetaOption:
    """
    Base class for option plugins. Every hook is a no-op by default.
    """

    option_id: str = ""
    label: str = ""
    description: str = ""

    def __init__(self, settings, asset_manager=None):
        self.settings = settings
        self.asset_manager = asset_manager

    def applies(self, record: LiveRecord) -> bool:
        return True

    def pre_export_write(self, exportable: Exportable) -> None:
        """Called right before an exportable's YAML is written to its source."""
        pass

    def pre_export_download(self, archive: zipfile.ZipFile, exportable: Exportable) -> None:
        """Called while an exportable is being added to an archive."""
        pass

    def pre_import_save(self, record: LiveRecord, export: SerializedRecord) -> None:
        """Called right before an imported record is saved."""
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.option_id!r})"
