"""
A live record paired with its serialized forms.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..sources.source import Source
from ..store.models import LiveRecord
from .models import SerializedRecord, SyncStatus


logger = logging.getLogger(__name__)


class Exportable:
    """
    Pairs a LiveRecord with:

    - ``export``: the record as it would be serialized right now
    - ``source_export``: the record as currently written in its source, if any
    - ``source`` / ``filepath``: where the record is (or would be) written
    - ``status``: drift classification, set by the status resolver

    The filepath lives on ``export.path`` so it is part of the written YAML.
    """

    def __init__(self, record: LiveRecord, export: SerializedRecord):
        self.record = record
        self.export = export
        self.source_export: Optional[SerializedRecord] = None
        self.source: Optional[Source] = None
        self.status = SyncStatus.NOT_IMPORTED

    def __repr__(self) -> str:
        return (
            f"Exportable({self.record.record_type}:{self.record.bundle}:{self.uuid}, "
            f"status={self.status.value})"
        )

    @property
    def uuid(self) -> str:
        return self.record.uuid

    @property
    def filename(self) -> str:
        return f"{self.record.uuid}.yml"

    # Dependencies and options -------------------------------------------

    @property
    def dependencies(self) -> Dict[str, str]:
        return self.export.dependencies

    @dependencies.setter
    def dependencies(self, dependencies: Dict[str, str]) -> None:
        self.export.dependencies = dict(dependencies)

    @property
    def options(self) -> Dict[str, Any]:
        return self.export.options

    @options.setter
    def options(self, options: Dict[str, Any]) -> None:
        self.export.options = dict(options or {})

    def has_option(self, name: str) -> bool:
        return self.export.has_option(name)

    def get_option(self, name: str, default_value: Any = None) -> Any:
        return self.export.get_option(name, default_value)

    def set_option(self, name: str, value: Any) -> None:
        self.export.set_option(name, value)

    # Location -------------------------------------------------------------

    @property
    def filepath(self) -> str:
        return self.export.path

    def set_filepath(self, filepath: Union[str, Path]) -> None:
        """Set where the export lives and load the on-disk form if it exists."""
        self.export.path = str(filepath) if filepath else ""
        if self.export_exists:
            self.source_export = SerializedRecord.load(self.export.path)

    @property
    def export_exists(self) -> bool:
        return bool(self.filepath) and Path(self.filepath).is_file()

    def set_source(self, source: Optional[Source]) -> None:
        """Attach a source; its layout determines the filepath."""
        self.source = source
        if source is not None:
            self.set_filepath(source.destination_filepath(
                self.record.record_type,
                self.record.bundle,
                self.filename,
            ))

    # Files ----------------------------------------------------------------

    def is_file(self) -> bool:
        return self.export.is_file()

    def file_asset_filename(self) -> str:
        return self.export.file_asset_filename()

    def file_uri(self) -> Optional[str]:
        return self.record.first_value("uri")

    # Serialization --------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return self.export.to_dict()

    def to_yaml(self) -> str:
        return self.export.to_yaml()
