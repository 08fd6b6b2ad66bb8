"""
In-memory record store.

Used by tests and dry runs. Records are copied on the way in and out so that
unsaved mutations never leak into the store.
"""

import copy
import logging
from typing import Any, Dict, List, Optional, Tuple

from ..core.exceptions import RecordStoreError
from .base import RecordStore
from .models import LiveRecord, SchemaRegistry


logger = logging.getLogger(__name__)


class MemoryRecordStore(RecordStore):
    """Dictionary-backed implementation of the record store."""

    def __init__(self, schema: SchemaRegistry, administrator_id: int = 1):
        super().__init__(schema, administrator_id)
        self._records: Dict[Tuple[str, int], LiveRecord] = {}
        self._next_id: Dict[str, int] = {}

    def load(self, record_type: str, record_id: int) -> Optional[LiveRecord]:
        record = self._records.get((record_type, record_id))
        return copy.deepcopy(record) if record is not None else None

    def load_by_uuid(self, record_type: str, uuid: str) -> Optional[LiveRecord]:
        for (stored_type, _), record in self._records.items():
            if stored_type == record_type and record.uuid == uuid:
                return copy.deepcopy(record)
        return None

    def load_by_properties(self, record_type: str, properties: Dict[str, Any]) -> List[LiveRecord]:
        return [
            copy.deepcopy(record)
            for (stored_type, _), record in sorted(self._records.items())
            if stored_type == record_type and self.matches_properties(record, properties)
        ]

    def save(self, record: LiveRecord) -> LiveRecord:
        self.get_definition(record.record_type)
        if record.id is None:
            record.id = self._next_id.get(record.record_type, 0) + 1
            logger.debug(f"Assigned id {record.id} to {record.record_type} {record.uuid}")
        self._next_id[record.record_type] = max(
            self._next_id.get(record.record_type, 0), record.id
        )

        existing = self._records.get((record.record_type, record.id))
        stored = copy.deepcopy(record)
        stored.translations = copy.deepcopy(existing.translations) if existing else {}
        self._records[(record.record_type, record.id)] = stored
        return record

    def save_translation(self, record: LiveRecord, langcode: str) -> None:
        stored = self._records.get((record.record_type, record.id))
        if stored is None:
            raise RecordStoreError(f"Record {record.uuid} must be saved before its translations")
        stored.translations[langcode] = copy.deepcopy(record.translations.get(langcode, {}))

    def delete(self, record: LiveRecord) -> None:
        self._records.pop((record.record_type, record.id), None)

    def count(self, record_type: Optional[str] = None) -> int:
        if record_type is None:
            return len(self._records)
        return sum(1 for (stored_type, _) in self._records if stored_type == record_type)
