"""
Explicit registry of attribute transform handlers.
"""

import logging
from typing import List, Optional, Tuple

from ..store.models import FieldDefinition, LiveRecord
from .base import WILDCARD, FieldTypeHandler, ItemValues


logger = logging.getLogger(__name__)


class HandlerRegistry:
    """
    Holds ``(type tag, handler, weight)`` registrations and chains every
    matching handler, in weight order, over an attribute's values.

    Registrations with equal weight keep their registration order.
    """

    def __init__(self):
        self._registrations: List[Tuple[str, FieldTypeHandler, int]] = []
        self._sorted: Optional[List[Tuple[str, FieldTypeHandler, int]]] = None

    def register(self, handler: FieldTypeHandler, field_types: Optional[List[str]] = None, weight: Optional[int] = None) -> None:
        """Register a handler for its declared type tags (or the given ones)."""
        for field_type in field_types or handler.field_types:
            self._registrations.append(
                (field_type, handler, handler.weight if weight is None else weight)
            )
        self._sorted = None
        logger.debug(f"Registered {handler!r}")

    def _sorted_registrations(self) -> List[Tuple[str, FieldTypeHandler, int]]:
        if self._sorted is None:
            self._sorted = sorted(self._registrations, key=lambda r: r[2])
        return self._sorted

    def handlers_for(self, field_type: str) -> List[FieldTypeHandler]:
        """Handlers matching a type tag, wildcard included, lowest weight first."""
        handlers: List[FieldTypeHandler] = []
        for tag, handler, _ in self._sorted_registrations():
            if (tag == WILDCARD or tag == field_type) and handler not in handlers:
                handlers.append(handler)
        return handlers

    def alter_export_values(self, values: ItemValues, record: LiveRecord, field: FieldDefinition) -> ItemValues:
        processed = values
        for handler in self.handlers_for(field.field_type):
            processed = handler.alter_export_value(processed, record, field)
        return processed

    def alter_import_values(self, values: ItemValues, record: LiveRecord, field: FieldDefinition) -> ItemValues:
        processed = values
        for handler in self.handlers_for(field.field_type):
            processed = handler.alter_import_value(processed, record, field)
        return processed

    def __len__(self) -> int:
        return len(self._registrations)
