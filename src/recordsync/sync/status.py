"""
Drift classification of live records against their serialized form.
"""

import difflib
import logging
from typing import Any, Dict, List, Optional

import yaml

from ..core.canonical import canonical_export, strip_keys
from ..core.exportable import Exportable
from ..core.models import SerializedRecord, SyncStatus
from ..sources.manager import SourceManager
from ..sources.source import Source
from .serializer import RecordSerializer


logger = logging.getLogger(__name__)


class StatusResolver:
    """
    Resolves the SyncStatus of an Exportable.

    Resolution attaches the source it finds, and the options of the on-disk
    form, to the exportable it is given. With a serializer, the live side is
    re-serialized on every call so edits made since the exportable was built
    are seen.
    """

    def __init__(self, settings, sources: SourceManager, serializer: Optional[RecordSerializer] = None):
        self.settings = settings
        self.sources = sources
        self.serializer = serializer

    def refresh_export(self, exportable: Exportable) -> None:
        """Re-serialize the live record, keeping the exportable's dependencies, options and path."""
        if self.serializer is None or exportable.record.is_new():
            return
        exportable.export = self.serializer.serialize(
            exportable.record,
            exportable.dependencies,
            exportable.options,
            exportable.filepath,
        )

    def get_exportable_source(self, exportable: Exportable) -> Optional[Source]:
        """The exportable's own source if its file is there, else the first enabled source holding it."""
        record = exportable.record
        if exportable.source is not None and exportable.source.export_exists(
            record.record_type, record.bundle, record.uuid
        ):
            return exportable.source
        return self.sources.resolve_source(record.record_type, record.bundle, record.uuid)

    def resolve_status(
        self,
        exportable: Exportable,
        serialized: Optional[SerializedRecord] = None,
    ) -> SyncStatus:
        """
        Classify the exportable:

        - NotExported: no known source holds its file
        - NotImported: the live record has not been saved yet
        - InSync / OutOfSync: whether the on-disk form equals a fresh
          serialization of the live record, ignoring the configured keys
        """
        source = self.get_exportable_source(exportable)
        if source is None:
            exportable.status = SyncStatus.NOT_EXPORTED
            return exportable.status

        if exportable.source is None:
            exportable.set_source(source)

        if exportable.record.is_new():
            exportable.status = SyncStatus.NOT_IMPORTED
            return exportable.status

        if serialized is None:
            serialized = exportable.source_export
        if serialized is None:
            serialized = SerializedRecord.load(source.destination_filepath(
                exportable.record.record_type,
                exportable.record.bundle,
                exportable.filename,
            ))
            exportable.source_export = serialized

        self.refresh_export(exportable)

        # Options only exist in the serialized form
        if serialized.options:
            exportable.options = serialized.options

        left = self.process_for_comparison(serialized.to_dict())
        right = self.process_for_comparison(exportable.to_dict())
        exportable.status = SyncStatus.IN_SYNC if left == right else SyncStatus.OUT_OF_SYNC
        logger.debug(f"Status of {exportable.uuid}: {exportable.status.value}")
        return exportable.status

    def process_for_comparison(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Canonical form used for comparing: ignored keys stripped at every
        level, empty options and translations dropped, and the file location
        removed.
        """
        processed = canonical_export(strip_keys(data, self.settings.ignored_comparison_keys_list()))
        meta = processed.get("_meta")
        if isinstance(meta, dict):
            meta.pop("path", None)
        return processed

    def exportable_to_diff(self, exportable: Exportable) -> List[str]:
        """
        Unified diff lines from the on-disk form to the live form, both in
        comparison form.
        """
        self.refresh_export(exportable)
        left: Dict[str, Any] = {}
        if exportable.source_export is not None:
            left = self.process_for_comparison(exportable.source_export.to_dict())
        right = self.process_for_comparison(exportable.to_dict())
        return list(difflib.unified_diff(
            _yaml_lines(left),
            _yaml_lines(right),
            fromfile=f"{exportable.uuid} (exported)",
            tofile=f"{exportable.uuid} (live)",
            lineterm="",
        ))


def _yaml_lines(data: Dict[str, Any]) -> List[str]:
    if not data:
        return []
    return yaml.safe_dump(
        data,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    ).splitlines()
