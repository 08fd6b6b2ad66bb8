"""
Handlers that turn store-native reference ids into identities and back.
"""

import logging
from typing import Any, Dict

from ..core.exceptions import RecordNotFoundError
from ..store.models import FieldDefinition, LiveRecord
from .base import FieldTypeHandler, ItemValues


logger = logging.getLogger(__name__)


class ReferenceUuidHandler(FieldTypeHandler):
    """
    Exports references by uuid instead of store id.

    An exported item looks like::

        target_uuid: 6f0e...
        target_entity_type: taxonomy_term
        target_bundle: tags
        original_values: {target_id: 12}

    ``original_values`` keeps the live properties for diagnostics and for
    restoring non-main properties on import; it is never compared.
    """

    handler_id = "reference_uuid_handler"
    label = "Reference UUID Handler"
    field_types = ["reference", "reference_revisions"]

    def alter_export_value(self, values: ItemValues, record: LiveRecord, field: FieldDefinition) -> ItemValues:
        if not field.target_type:
            return values

        processed = list(values)
        for delta, item in enumerate(values):
            if not isinstance(item, dict) or item.get(field.main_property) is None:
                continue

            target = self.store.load(field.target_type, item[field.main_property])
            if target is None:
                continue
            if not self.store.get_definition(target.record_type).exportable:
                continue

            original_values: Dict[str, Any] = {
                name: item.get(name) for name in field.property_names
            }
            processed[delta] = {
                "target_uuid": target.uuid,
                "target_entity_type": target.record_type,
                "target_bundle": target.bundle,
                "original_values": original_values,
            }
        return processed

    def alter_import_value(self, values: ItemValues, record: LiveRecord, field: FieldDefinition) -> ItemValues:
        processed = list(values)
        for delta, item in enumerate(values):
            if not isinstance(item, dict):
                continue
            if "target_uuid" not in item or "target_entity_type" not in item:
                continue

            target = self.store.load_by_uuid(item["target_entity_type"], item["target_uuid"])
            if target is None:
                raise RecordNotFoundError(
                    f"Could not load record with UUID {item['target_uuid']} for field "
                    f"{field.name} in {record.record_type} : {record.uuid}.",
                    uuid=item["target_uuid"],
                    record_type=item["target_entity_type"],
                )

            new_item: Dict[str, Any] = {}
            original_values = item.get("original_values") or {}
            for name in field.property_names:
                if name != field.main_property and name in original_values:
                    new_item[name] = original_values[name]

            # Main property last so it always reflects the resolved target
            new_item[field.main_property] = target.id
            processed[delta] = new_item
        return processed


class FileUuidHandler(ReferenceUuidHandler):
    """Same as the reference handler, for file and image attributes."""

    handler_id = "file_uuid_handler"
    label = "File & Image Field Type Handler"
    field_types = ["file", "image"]
