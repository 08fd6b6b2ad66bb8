"""
Attribute transform handlers.
"""

from ..store.base import RecordStore
from .base import WILDCARD, FieldTypeHandler
from .default import DefaultHandler
from .link import LinkHandler
from .reference import FileUuidHandler, ReferenceUuidHandler
from .registry import HandlerRegistry


def create_default_registry(store: RecordStore) -> HandlerRegistry:
    """Registry with the shipped handlers."""
    registry = HandlerRegistry()
    for handler_class in (DefaultHandler, ReferenceUuidHandler, FileUuidHandler, LinkHandler):
        registry.register(handler_class(store))
    return registry


__all__ = [
    "DefaultHandler",
    "FieldTypeHandler",
    "FileUuidHandler",
    "HandlerRegistry",
    "LinkHandler",
    "ReferenceUuidHandler",
    "WILDCARD",
    "create_default_registry",
]
