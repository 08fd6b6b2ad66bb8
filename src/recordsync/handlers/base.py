"""
Attribute transform handler base class.
"""

from typing import Any, Dict, List

from ..store.base import RecordStore
from ..store.models import FieldDefinition, LiveRecord

WILDCARD = "*"

ItemValues = List[Dict[str, Any]]


class FieldTypeHandler:
    """
    Rewrites an attribute's positional values between their live and
    serialized forms.

    Subclasses declare the attribute type tags they handle (``*`` for all)
    and a weight; lower weights run first. Both hooks return the new values
    and may return the input unchanged.
    """

    handler_id: str = ""
    label: str = ""
    field_types: List[str] = []
    weight: int = 0

    def __init__(self, store: RecordStore):
        self.store = store

    def handles(self, field_type: str) -> bool:
        return WILDCARD in self.field_types or field_type in self.field_types

    def alter_export_value(self, values: ItemValues, record: LiveRecord, field: FieldDefinition) -> ItemValues:
        """Live values -> serialized values."""
        return values

    def alter_import_value(self, values: ItemValues, record: LiveRecord, field: FieldDefinition) -> ItemValues:
        """Serialized values -> live values. ``record`` is the record being written."""
        return values

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.handler_id!r}, weight={self.weight})"
