"""
Builds the serialized form of live records.
"""

import copy
import logging
from typing import Any, Dict, List, Optional

from ..core.models import SerializedRecord
from ..handlers.registry import HandlerRegistry
from ..store.base import RecordStore
from ..store.models import LiveRecord, RecordTypeDefinition


logger = logging.getLogger(__name__)


class RecordSerializer:
    """Turns LiveRecords into SerializedRecords through the export handlers."""

    def __init__(self, store: RecordStore, handlers: HandlerRegistry):
        self.store = store
        self.handlers = handlers

    def serialize(
        self,
        record: LiveRecord,
        dependencies: Optional[Dict[str, str]] = None,
        options: Optional[Dict[str, Any]] = None,
        path: str = "",
    ) -> SerializedRecord:
        definition = self.store.get_definition(record.record_type)
        translations = {
            langcode: self._serialize_values(record, values, definition)
            for langcode, values in record.translations.items()
            if langcode != record.langcode
        }
        return SerializedRecord(
            record_type=record.record_type,
            bundle=record.bundle,
            uuid=record.uuid,
            label=record.label,
            path=path,
            default_langcode=record.langcode,
            entity_id=record.id,
            dependencies=dict(dependencies or {}),
            options=copy.deepcopy(options or {}),
            default=self._serialize_values(record, record.fields, definition),
            translations=translations,
        )

    def _serialize_values(
        self,
        record: LiveRecord,
        values: Dict[str, List[Dict[str, Any]]],
        definition: RecordTypeDefinition,
    ) -> Dict[str, List[Any]]:
        serialized: Dict[str, List[Any]] = {}
        for field_name, items in values.items():
            if definition.has_field(field_name) and isinstance(items, list):
                serialized[field_name] = self.handlers.alter_export_values(
                    items, record, definition.get_field(field_name)
                )
            else:
                serialized[field_name] = copy.deepcopy(items)
        return serialized

    def referenced_records(self, record: LiveRecord) -> List[LiveRecord]:
        """
        Live records referenced from any locale of ``record`` whose type is
        exportable, in attribute order, without duplicates.
        """
        definition = self.store.get_definition(record.record_type)
        referenced: Dict[str, LiveRecord] = {}

        payloads = [record.fields] + [
            values for langcode, values in record.translations.items() if langcode != record.langcode
        ]
        for field in definition.reference_fields():
            for payload in payloads:
                for item in payload.get(field.name) or []:
                    if not isinstance(item, dict) or item.get(field.main_property) is None:
                        continue
                    target = self.store.load(field.target_type, item[field.main_property])
                    if target is None or target.uuid in referenced or target.uuid == record.uuid:
                        continue
                    if not self.store.get_definition(target.record_type).exportable:
                        continue
                    referenced[target.uuid] = target
        return list(referenced.values())

    def dependencies_of(self, record: LiveRecord) -> Dict[str, str]:
        return {target.uuid: target.record_type for target in self.referenced_records(record)}
