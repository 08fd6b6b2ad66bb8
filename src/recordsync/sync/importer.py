"""
Import engine: materializes serialized records into the live store.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from ..core.collection import RecordCollection
from ..core.exceptions import ExportValidationError
from ..core.logging import CorrelationContext, log_with_context
from ..core.models import SerializedRecord
from ..discovery.finder import ExportsCache, RecordFinder
from ..handlers.registry import HandlerRegistry
from ..options.registry import MetaOptionRegistry
from ..sources.manager import SourceManager
from ..sources.source import Source
from ..store.base import RecordStore
from ..store.languages import LanguageManager
from ..store.models import LiveRecord
from .reports import ImportReport, ImportResult
from .updater import RecordUpdater


logger = logging.getLogger(__name__)

REQUIRED_META = (
    ("uuid", "uuid", "The uuid metadata must be specified as [_meta][uuid]."),
    ("record_type", "entity_type", "The entity type metadata must be specified as [_meta][entity_type]."),
    ("bundle", "bundle", "The bundle metadata must be specified as [_meta][bundle]."),
    ("path", "path", "The export file yaml path must be specified as [_meta][path]."),
    ("default_langcode", "default_langcode", "The default_langcode metadata must be specified as [_meta][default_langcode]."),
)


class Importer:
    """
    Creates or updates live records from serialized records.

    ``upsert`` processes a collection in iteration order, which discovery
    guarantees is dependency-first. The ``import_*`` entry points discover,
    upsert and verify, and report failures instead of raising them.
    """

    def __init__(
        self,
        store: RecordStore,
        languages: LanguageManager,
        handlers: HandlerRegistry,
        options: MetaOptionRegistry,
        sources: SourceManager,
        finder: Optional[RecordFinder] = None,
        exports_cache: Optional[ExportsCache] = None,
    ):
        self.store = store
        self.languages = languages
        self.handlers = handlers
        self.options = options
        self.sources = sources
        self.finder = finder or RecordFinder()
        self.exports_cache = exports_cache or ExportsCache()
        self.updater = RecordUpdater(store, languages)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def import_from_all_sources(self) -> ImportReport:
        """Import every enabled source, one batch per source."""
        report = ImportReport(source_id="*")
        for source in self.sources.enabled():
            report.merge(self.import_from_source(source.id))
        report.completed_at = datetime.now(timezone.utc)
        return report

    def import_from_source(self, source_id: str) -> ImportReport:
        """Import every export of one source."""
        report = ImportReport(source_id=source_id)
        with CorrelationContext(operation="import", source_id=source_id):
            try:
                source = self.sources.get(source_id)
                exports = self.discover_source_exports(source)
                report.discovered = len(exports)
                self._run_batch(exports, report)
            except Exception as e:
                report.errors.append(str(e))
                log_with_context(logger, logging.ERROR, f"Import of source {source_id} failed: {e}")

        report.completed_at = datetime.now(timezone.utc)
        return report

    def import_record_from_source(self, source_id: str, uuid: str) -> ImportReport:
        """Import one export of a source along with its dependencies."""
        report = ImportReport(source_id=source_id)
        with CorrelationContext(operation="import", source_id=source_id, uuid=uuid):
            try:
                source = self.sources.get(source_id)
                if not self.discover_source_exports(source).has(uuid):
                    message = f"No export found with UUID {uuid} in source {source_id}."
                    report.errors.append(message)
                    log_with_context(logger, logging.ERROR, message)
                else:
                    exports = self.discover_source_export(source, uuid)
                    report.discovered = len(exports)
                    self._run_batch(exports, report)
            except Exception as e:
                report.errors.append(str(e))
                log_with_context(logger, logging.ERROR, f"Import of {uuid} failed: {e}")

        report.completed_at = datetime.now(timezone.utc)
        return report

    def _run_batch(self, exports: RecordCollection, report: ImportReport) -> None:
        # Results are checked even when the batch stops part way
        try:
            created, updated = self._upsert(exports)
            report.created += created
            report.updated += updated
        finally:
            report.results.extend(self.validate_import_results(exports))

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def discover_source_exports(self, source: Source) -> RecordCollection:
        """All exports of a source in dependency order, cached per source id."""
        cached = self.exports_cache.get(source.id)
        if cached is None:
            cached = self.finder.discover(source.directory_processed())
            self.exports_cache.set(source.id, cached)
        return cached

    def discover_source_export(self, source: Source, uuid: str) -> RecordCollection:
        """
        One export and its dependencies.

        Raises:
            RecordNotFoundError: If the source has no export with that identity
        """
        return self.discover_source_exports(source).with_dependencies(uuid)

    # ------------------------------------------------------------------
    # Upsert
    # ------------------------------------------------------------------

    def upsert(self, exports: RecordCollection) -> List[LiveRecord]:
        """
        Create or update a live record for every export, in order.

        The first failure stops the batch and is raised; records saved before
        it stay saved.

        Raises:
            ExportValidationError: If an export lacks required metadata
            RecordNotFoundError: If a reference cannot be resolved
        """
        saved: List[LiveRecord] = []
        self._upsert(exports, saved)
        return saved

    def _upsert(self, exports: RecordCollection, saved: Optional[List[LiveRecord]] = None):
        created = updated = 0
        for export in exports:
            with CorrelationContext(uuid=export.uuid, record_type=export.record_type):
                record, is_new = self._upsert_one(export)
            if saved is not None:
                saved.append(record)
            if is_new:
                created += 1
            else:
                updated += 1
        return created, updated

    def _upsert_one(self, export: SerializedRecord):
        self.validate_export(export)
        export = self.normalize_default_language(export.copy())

        record = self.updater.get_or_create(
            export.uuid,
            export.record_type,
            export.bundle,
            export.default_langcode,
            export.label or None,
        )
        is_new = record.is_new()

        self.process_values_for_import(record, export)
        self.updater.set_values(record, export)

        for option in self.options.applicable(record):
            option.pre_import_save(record, export)

        self.store.save(record)
        for langcode in record.translation_langcodes():
            self.store.save_translation(record, langcode)

        log_with_context(
            logger,
            logging.DEBUG,
            f"{'Created' if is_new else 'Updated'} {record.record_type} {record.uuid} as {record.id}",
        )
        return record, is_new

    def validate_export(self, export: SerializedRecord) -> None:
        """
        Check the metadata an import needs.

        Raises:
            ExportValidationError: On the first missing field, or when the
                record type is unknown to the live store
        """
        for attribute, meta_key, message in REQUIRED_META:
            if not getattr(export, attribute):
                raise ExportValidationError(
                    message,
                    uuid=export.uuid or None,
                    path=export.path or None,
                    missing=[meta_key],
                )

        if not self.store.has_definition(export.record_type):
            raise ExportValidationError(
                f"Only known record types can be imported. Export {export.uuid} is a "
                f"'{export.record_type}'.",
                uuid=export.uuid,
                path=export.path,
            )

    def normalize_default_language(self, export: SerializedRecord) -> SerializedRecord:
        """
        Make the export's default locale one the live system knows.

        If the declared default is unknown (or, while installing, differs from
        the system default), the first translation in a known locale becomes
        the default: its values are merged over ``default`` and it leaves the
        translation set. Without such a translation the system default is used.
        """
        default_langcode = self.languages.get_default_langcode()
        declared = export.default_langcode

        needs_normalizing = not self.languages.is_known(declared) or (
            self.languages.installing and declared != default_langcode
        )
        if not needs_normalizing:
            return export

        for langcode in list(export.translations):
            if self.languages.is_known(langcode):
                translation = export.translations.pop(langcode)
                export.default = {**export.default, **translation}
                export.default_langcode = langcode
                logger.info(f"Importing {export.uuid} with default language {langcode} instead of {declared}")
                return export

        export.default_langcode = default_langcode
        logger.info(f"Importing {export.uuid} with default language {default_langcode} instead of {declared}")
        return export

    def process_values_for_import(self, record: LiveRecord, export: SerializedRecord) -> None:
        """Run the import handlers over every known attribute, in place."""
        definition = self.store.get_definition(record.record_type)

        for field_name, values in list(export.default.items()):
            if isinstance(values, list) and definition.has_field(field_name):
                export.default[field_name] = self.handlers.alter_import_values(
                    values, record, definition.get_field(field_name)
                )

        for langcode, translation in export.translations.items():
            for field_name, values in list(translation.items()):
                if isinstance(values, list) and definition.has_field(field_name):
                    translation[field_name] = self.handlers.alter_import_values(
                        values, record, definition.get_field(field_name)
                    )

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def validate_import_results(self, exports: RecordCollection) -> List[ImportResult]:
        """One result per identity: whether it can now be loaded from the store."""
        results: List[ImportResult] = []
        for export in exports:
            record = None
            if export.record_type and self.store.has_definition(export.record_type):
                record = self.store.load_by_uuid(export.record_type, export.uuid)

            if record is not None:
                message = f'Imported {export.record_type} "{record.label}" as "{record.id}".'
                logger.info(message)
                results.append(ImportResult(
                    uuid=export.uuid,
                    record_type=export.record_type,
                    success=True,
                    message=message,
                    record_id=record.id,
                    label=record.label,
                ))
            else:
                message = f"Failed to import {export.record_type} with UUID {export.uuid}."
                logger.error(message)
                results.append(ImportResult(
                    uuid=export.uuid,
                    record_type=export.record_type,
                    success=False,
                    message=message,
                ))
        return results
