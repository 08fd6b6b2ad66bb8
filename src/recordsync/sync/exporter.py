"""
Writes live records, with their dependencies, to a source directory.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from ..core.logging import CorrelationContext, log_with_context
from ..discovery.finder import ExportsCache
from ..options.registry import MetaOptionRegistry
from ..sources.manager import SourceManager
from .factory import ExportableFactory, OptionOverrides
from .reports import ExportReport


logger = logging.getLogger(__name__)


class Exporter:
    """Exports a record and everything it references as YAML files."""

    def __init__(
        self,
        factory: ExportableFactory,
        options: MetaOptionRegistry,
        sources: SourceManager,
        exports_cache: Optional[ExportsCache] = None,
    ):
        self.factory = factory
        self.options = options
        self.sources = sources
        self.exports_cache = exports_cache

    def export_record(
        self,
        source_id: str,
        record_type: str,
        record_id: int,
        option_overrides: Optional[OptionOverrides] = None,
    ) -> ExportReport:
        """
        Write the record and its dependencies to the source, dependencies
        first. Write failures are collected in the report; the remaining
        files are still written.
        """
        report = ExportReport(source_id=source_id)
        with CorrelationContext(operation="export", source_id=source_id, record_type=record_type):
            try:
                source = self.sources.get(source_id)
                exportables = self.factory.get_record_exportables(
                    record_type, record_id, source, option_overrides
                )
            except Exception as e:
                report.errors.append(str(e))
                log_with_context(logger, logging.ERROR, f"Export of {record_type} {record_id} failed: {e}")
                report.completed_at = datetime.now(timezone.utc)
                return report

            for exportable in exportables.values():
                try:
                    for option in self.options.applicable(exportable.record):
                        option.pre_export_write(exportable)

                    path = Path(exportable.filepath)
                    path.parent.mkdir(parents=True, exist_ok=True)
                    with open(path, "w", encoding="utf-8") as f:
                        f.write(exportable.to_yaml())
                    report.written.append(str(path))
                    logger.info(f"Exported {exportable.record.record_type} {exportable.uuid} to {path}")
                except OSError as e:
                    report.errors.append(f"Failed to write {exportable.uuid}: {e}")
                    log_with_context(logger, logging.ERROR, f"Failed to write {exportable.uuid}: {e}")

        # Written files change what discovery and status resolution see
        if self.exports_cache is not None:
            self.exports_cache.clear(source_id)
        self.factory.clear_cache()

        report.completed_at = datetime.now(timezone.utc)
        return report
