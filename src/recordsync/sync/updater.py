"""
Writes serialized values onto live records.

The updater knows the record store and its schema, not the file format.
"""

import logging
from typing import Any, Dict, List, Optional

from ..core.models import SerializedRecord
from ..store.base import RecordStore
from ..store.languages import LanguageManager
from ..store.models import LiveRecord


logger = logging.getLogger(__name__)


class RecordUpdater:
    """Get-or-create and value assignment for live records."""

    def __init__(self, store: RecordStore, languages: LanguageManager):
        self.store = store
        self.languages = languages

    def get_or_create(
        self,
        uuid: str,
        record_type: str,
        bundle: str,
        default_langcode: str,
        label: Optional[str] = None,
    ) -> LiveRecord:
        """
        Load the live record with this identity, or create (unsaved) a new
        one seeded with identity, bundle, locale and label.
        """
        record = self.store.load_by_uuid(record_type, uuid)
        if record is None:
            record = self.store.create(
                record_type=record_type,
                bundle=bundle,
                uuid=uuid,
                langcode=default_langcode,
                label=label or "",
            )
            logger.debug(f"Created new {record_type} {uuid}")
        self.ensure_owner(record)
        return record

    def ensure_owner(self, record: LiveRecord) -> None:
        """Give ownerless records of owner-aware types to the administrator."""
        definition = self.store.get_definition(record.record_type)
        if definition.has_owner and not record.owner_id:
            record.owner_id = self.store.administrator_id()

    def set_values(self, record: LiveRecord, export: SerializedRecord) -> None:
        """
        Assign the default payload, then every translation whose locale the
        live system knows. Unknown attributes and locales are skipped with a
        warning.
        """
        definition = self.store.get_definition(record.record_type)

        for field_name, values in export.default.items():
            if not definition.has_field(field_name):
                logger.warning(
                    f"Field {field_name} does not exist on {record.record_type}, {record.uuid}."
                )
                continue
            self.set_field_values(record, field_name, values)

        for langcode, translation_data in export.translations.items():
            if not self.languages.is_known(langcode):
                logger.warning(
                    f"Skipping unknown language {langcode} for {record.record_type}, {record.uuid}."
                )
                continue
            if not record.has_translation(langcode):
                record.add_translation(langcode)
            for field_name, values in translation_data.items():
                if not definition.has_field(field_name):
                    logger.warning(
                        f"Field {field_name} does not exist on translation {record.record_type}, "
                        f"{record.uuid}, langcode - {langcode}."
                    )
                    continue
                self.set_field_values(record, field_name, values, langcode)

        if definition.label_field:
            label = record.first_value(definition.label_field)
            if label is not None:
                record.label = str(label)

    def set_field_values(
        self,
        record: LiveRecord,
        field_name: str,
        values: List[Dict[str, Any]],
        langcode: Optional[str] = None,
    ) -> None:
        """
        Assign one attribute's positional values. Only declared properties
        are written; items beyond the serialized list are removed.
        """
        field = self.store.get_definition(record.record_type).get_field(field_name)
        target = record.values_for(langcode)
        items = target.setdefault(field_name, [])

        values = values or []
        for delta, item_value in enumerate(values):
            if delta >= len(items):
                items.append({})
            if not isinstance(item_value, dict):
                continue
            for property_name, value in item_value.items():
                if property_name not in field.property_names:
                    continue
                items[delta][property_name] = value

        del items[len(values):]
