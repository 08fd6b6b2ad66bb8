"""
Link attribute handler.
"""

from ..store.models import FieldDefinition, LiveRecord
from .base import FieldTypeHandler, ItemValues


class LinkHandler(FieldTypeHandler):
    """Points a link at its target's identity when the item carries a ``target_uuid``."""

    handler_id = "link_handler"
    label = "Link Handler"
    field_types = ["link"]

    def alter_import_value(self, values: ItemValues, record: LiveRecord, field: FieldDefinition) -> ItemValues:
        processed = []
        for item in values:
            if isinstance(item, dict) and item.get("target_uuid"):
                item = dict(item)
                item["uri"] = f"entity:{record.record_type}/{item['target_uuid']}"
            processed.append(item)
        return processed
