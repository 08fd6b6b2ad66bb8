"""
Creates Exportables from live records and from source exports.
"""

import copy
import logging
from typing import Any, Callable, Dict, Optional

from ..core.exceptions import RecordNotFoundError
from ..core.exportable import Exportable
from ..core.models import SerializedRecord
from ..options.registry import MetaOptionRegistry
from ..sources.manager import SourceManager
from ..sources.source import Source
from ..store.base import RecordStore
from ..store.models import LiveRecord
from .importer import Importer
from .serializer import RecordSerializer
from .status import StatusResolver


logger = logging.getLogger(__name__)

# uuid -> option id -> value
OptionOverrides = Dict[str, Dict[str, Any]]


class ExportableFactory:
    """
    Builds Exportables with source, filepath and status resolved.

    Results of the ``*_with_dependencies`` style calls are cached per root
    identity for the life of the factory; call ``clear_cache()`` to see
    changes.
    """

    def __init__(
        self,
        store: RecordStore,
        serializer: RecordSerializer,
        sources: SourceManager,
        status_resolver: StatusResolver,
        importer: Importer,
        options: MetaOptionRegistry,
        should_export: Optional[Callable[[LiveRecord], bool]] = None,
    ):
        self.store = store
        self.serializer = serializer
        self.sources = sources
        self.status_resolver = status_resolver
        self.importer = importer
        self.options = options
        self.should_export = should_export
        self._cache: Dict[str, Dict[str, Exportable]] = {}

    def clear_cache(self) -> None:
        self._cache.clear()

    def create_from_record(self, record: LiveRecord) -> Exportable:
        exportable = Exportable(
            record,
            self.serializer.serialize(record, self.serializer.dependencies_of(record)),
        )
        exportable.set_source(self.sources.resolve_source(record.record_type, record.bundle, record.uuid))
        self.status_resolver.resolve_status(exportable)
        return exportable

    def create_from_uuid(self, uuid: str) -> Exportable:
        """
        Exportable for an identity, looked up in the live store first and
        then in every enabled source.

        Raises:
            RecordNotFoundError: If the identity is found nowhere
        """
        record = self.store.find_by_uuid(uuid)
        if record is not None:
            return self.create_from_record(record)

        for source in self.sources.enabled():
            exportable = self.create_from_source(source.id, uuid)
            if exportable is not None:
                return exportable

        raise RecordNotFoundError(f"UUID not found in database nor source exports: {uuid}", uuid=uuid)

    def create_from_source(self, source_id: str, uuid: str) -> Optional[Exportable]:
        if not self.importer.discover_source_exports(self.sources.get(source_id)).has(uuid):
            return None
        return self.create_from_source_with_dependencies(source_id, uuid).get(uuid)

    def create_from_source_with_dependencies(self, source_id: str, root_uuid: str) -> Dict[str, Exportable]:
        """
        Exportables for a source export and its dependencies, dependencies
        first. Records not yet in the live store are represented by unsaved
        records seeded from the export.

        Raises:
            RecordNotFoundError: If the source or the export does not exist
        """
        cache_key = f"{source_id}:{root_uuid}"
        if cache_key in self._cache:
            return self._cache[cache_key]

        source = self.sources.get(source_id)
        exports = self.importer.discover_source_export(source, root_uuid)

        exportables: Dict[str, Exportable] = {}
        for export in exports:
            record = self.store.load_by_uuid(export.record_type, export.uuid)
            if record is None:
                record = self._record_from_export(export)

            exportable = Exportable(
                record,
                self.serializer.serialize(record, export.dependencies, export.options),
            )
            exportable.set_source(source)
            exportable.set_filepath(export.path)
            self.status_resolver.resolve_status(exportable, export)
            exportables[export.uuid] = exportable

        self._prepare_exportables(exportables, source)
        self._cache[cache_key] = exportables
        return exportables

    def _record_from_export(self, export: SerializedRecord) -> LiveRecord:
        record = self.store.create(
            record_type=export.record_type,
            bundle=export.bundle,
            uuid=export.uuid,
            langcode=export.default_langcode,
            label=export.label,
        )
        record.fields = copy.deepcopy(export.default)
        record.translations = copy.deepcopy(export.translations)
        return record

    def get_record_exportables(
        self,
        record_type: str,
        record_id: int,
        source: Optional[Source] = None,
        option_overrides: Optional[OptionOverrides] = None,
    ) -> Dict[str, Exportable]:
        """
        Exportables for a live record and every exportable record it
        references, transitively, dependencies first.

        Raises:
            RecordNotFoundError: If the record does not exist
        """
        record = self.store.load(record_type, record_id)
        if record is None:
            raise RecordNotFoundError(
                f"Record of type {record_type} and ID {record_id} not found.",
                record_type=record_type,
            )

        cache_key = f"{source.id if source else ''}:{record.uuid}"
        if not option_overrides and cache_key in self._cache:
            return self._cache[cache_key]

        exportables: Dict[str, Exportable] = {}
        self._collect(record, exportables, set(), source, option_overrides or {})
        self._prepare_exportables(exportables, source, option_overrides or {})

        if not option_overrides:
            self._cache[cache_key] = exportables
        return exportables

    def _collect(
        self,
        record: LiveRecord,
        exportables: Dict[str, Exportable],
        visiting: set,
        source: Optional[Source],
        option_overrides: OptionOverrides,
    ) -> None:
        if self.should_export is not None and self.should_export(record) is False:
            logger.debug(f"Export of {record.uuid} vetoed")
            return
        if record.uuid in exportables or record.uuid in visiting:
            return
        visiting.add(record.uuid)

        dependencies: Dict[str, str] = {}
        for target in self.serializer.referenced_records(record):
            if self.should_export is not None and self.should_export(target) is False:
                continue
            dependencies[target.uuid] = target.record_type
            self._collect(target, exportables, visiting, source, option_overrides)

        exportable = Exportable(record, self.serializer.serialize(record, dependencies))
        exportable.set_source(source or self.sources.resolve_source(
            record.record_type, record.bundle, record.uuid
        ))
        self.status_resolver.resolve_status(exportable)
        if exportable.source_export is not None and exportable.source_export.options:
            exportable.options = exportable.source_export.options
        self._override_options(exportable, option_overrides)

        visiting.discard(record.uuid)
        exportables[record.uuid] = exportable

    def _prepare_exportables(
        self,
        exportables: Dict[str, Exportable],
        source: Optional[Source] = None,
        option_overrides: Optional[OptionOverrides] = None,
    ) -> None:
        """Point every exportable at its destination file."""
        for exportable in exportables.values():
            target = source or exportable.source or self.sources.default_source()
            record = exportable.record
            exportable.source = target
            exportable.set_filepath(target.destination_filepath(
                record.record_type, record.bundle, exportable.filename
            ))
            self._override_options(exportable, option_overrides or {})

    def _override_options(self, exportable: Exportable, option_overrides: OptionOverrides) -> None:
        """Apply caller supplied option values, per identity, for applicable options."""
        overrides = option_overrides.get(exportable.uuid) or {}
        for option in self.options.applicable(exportable.record):
            value = overrides.get(option.option_id)
            if value:
                exportable.set_option(option.option_id, value)

