"""
Handler applied to every attribute.
"""

import copy
import json

from ..core.exceptions import InvalidInputError
from ..store.models import FieldDefinition, LiveRecord
from .base import FieldTypeHandler, ItemValues


class DefaultHandler(FieldTypeHandler):
    """
    Copies values so exports never alias live data, and converts serialized
    properties.

    Properties listed in a field's ``serialized_properties`` are stored as
    JSON strings in the live record and exported as structured values.
    """

    handler_id = "default_field_type_handler"
    label = "Default Field Type Handler"
    field_types = ["*"]

    def alter_export_value(self, values: ItemValues, record: LiveRecord, field: FieldDefinition) -> ItemValues:
        values = copy.deepcopy(values)
        for item in values:
            if not isinstance(item, dict):
                continue
            for property_name in field.serialized_properties:
                value = item.get(property_name)
                if isinstance(value, str):
                    try:
                        item[property_name] = json.loads(value)
                    except ValueError:
                        # Leave undecodable values as they are
                        pass
        return values

    def alter_import_value(self, values: ItemValues, record: LiveRecord, field: FieldDefinition) -> ItemValues:
        values = copy.deepcopy(values)
        for delta, item in enumerate(values):
            if not isinstance(item, dict):
                raise InvalidInputError(
                    f"Values of {field.name} for {record.record_type} {record.uuid} must be "
                    f"mappings, got {type(item).__name__} at [{delta}]."
                )
            for property_name in field.serialized_properties:
                if property_name not in item:
                    continue
                value = item[property_name]
                if isinstance(value, str):
                    try:
                        value = json.loads(value)
                    except ValueError:
                        raise InvalidInputError(
                            f"Received string for serialized property for {record.record_type} "
                            f"with uuid {record.uuid}: [{field.name}][{delta}][{property_name}] '{value}'."
                        )
                item[property_name] = json.dumps(value, sort_keys=True)
        return values
