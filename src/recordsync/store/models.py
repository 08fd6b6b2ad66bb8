"""
Live record models.

A LiveRecord is the record as it currently exists in the mutable target store.
Record type definitions describe its schema: which attributes exist, their
type tag (used to dispatch transform handlers) and their property names.
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from ..core.exceptions import RecordNotFoundError


@dataclass
class FieldDefinition:
    """
    Schema of a single attribute.

    Attributes:
        name: Attribute name
        field_type: Type tag used to select transform handlers
        property_names: Properties an item of this attribute may carry
        main_property: Property holding the item's primary value
        target_type: Record type referenced by items (reference attributes only)
        serialized_properties: Properties stored as JSON strings in the live record
    """
    name: str
    field_type: str = "string"
    property_names: List[str] = field(default_factory=lambda: ["value"])
    main_property: str = "value"
    target_type: Optional[str] = None
    serialized_properties: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, name: str, data: Optional[Dict[str, Any]]) -> "FieldDefinition":
        data = data or {}
        field_type = data.get("type", "string")
        is_reference = data.get("target_type") is not None
        default_properties = ["target_id"] if is_reference else ["value"]
        property_names = list(data.get("properties") or default_properties)
        return cls(
            name=name,
            field_type=field_type,
            property_names=property_names,
            main_property=data.get("main_property", property_names[0]),
            target_type=data.get("target_type"),
            serialized_properties=list(data.get("serialized") or []),
        )

    def is_reference(self) -> bool:
        return self.target_type is not None


@dataclass
class RecordTypeDefinition:
    """
    Schema of a record type.

    Attributes:
        record_type: Record type id (e.g. 'node')
        fields: Attribute definitions keyed by name
        label_field: Attribute whose first value is the record label
        has_owner: Whether records of this type carry an owner
        exportable: Whether references to this type become export dependencies
    """
    record_type: str
    fields: Dict[str, FieldDefinition] = field(default_factory=dict)
    label_field: Optional[str] = None
    has_owner: bool = False
    exportable: bool = True

    def has_field(self, name: str) -> bool:
        return name in self.fields

    def get_field(self, name: str) -> FieldDefinition:
        return self.fields[name]

    def reference_fields(self) -> List[FieldDefinition]:
        return [f for f in self.fields.values() if f.is_reference()]

    @classmethod
    def from_dict(cls, record_type: str, data: Optional[Dict[str, Any]]) -> "RecordTypeDefinition":
        data = data or {}
        fields = {
            name: FieldDefinition.from_dict(name, field_data)
            for name, field_data in (data.get("fields") or {}).items()
        }
        return cls(
            record_type=record_type,
            fields=fields,
            label_field=data.get("label_field"),
            has_owner=bool(data.get("has_owner", False)),
            exportable=bool(data.get("exportable", True)),
        )


class SchemaRegistry:
    """Record type definitions known to a store."""

    def __init__(self, definitions: Optional[Iterable[RecordTypeDefinition]] = None):
        self._definitions: Dict[str, RecordTypeDefinition] = {}
        for definition in definitions or []:
            self.register(definition)

    def register(self, definition: RecordTypeDefinition) -> None:
        self._definitions[definition.record_type] = definition

    def has(self, record_type: str) -> bool:
        return record_type in self._definitions

    def get(self, record_type: str) -> RecordTypeDefinition:
        if record_type not in self._definitions:
            raise RecordNotFoundError(
                f"Unknown record type: {record_type}", record_type=record_type
            )
        return self._definitions[record_type]

    def all(self) -> List[RecordTypeDefinition]:
        return list(self._definitions.values())

    @classmethod
    def from_config(cls, record_types: Dict[str, Any]) -> "SchemaRegistry":
        return cls(
            RecordTypeDefinition.from_dict(record_type, data)
            for record_type, data in (record_types or {}).items()
        )


@dataclass
class LiveRecord:
    """
    A record in the live store.

    Attribute values are positional lists of property mappings, e.g.
    ``{"title": [{"value": "Hello"}], "tags": [{"target_id": 3}, {"target_id": 7}]}``.
    Translations hold the same shape per non-default langcode.
    """
    record_type: str
    bundle: str
    uuid: str
    langcode: str
    label: str = ""
    id: Optional[int] = None
    owner_id: Optional[int] = None
    fields: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)
    translations: Dict[str, Dict[str, List[Dict[str, Any]]]] = field(default_factory=dict)

    def is_new(self) -> bool:
        return self.id is None

    def get_values(self, field_name: str, langcode: Optional[str] = None) -> List[Dict[str, Any]]:
        if langcode is None or langcode == self.langcode:
            return self.fields.get(field_name, [])
        return self.translations.get(langcode, {}).get(field_name, [])

    def values_for(self, langcode: Optional[str] = None) -> Dict[str, List[Dict[str, Any]]]:
        """The full attribute mapping for a langcode (created if missing)."""
        if langcode is None or langcode == self.langcode:
            return self.fields
        return self.translations.setdefault(langcode, {})

    def has_translation(self, langcode: str) -> bool:
        return langcode in self.translations

    def add_translation(self, langcode: str) -> Dict[str, List[Dict[str, Any]]]:
        return self.translations.setdefault(langcode, {})

    def translation_langcodes(self) -> List[str]:
        return [lc for lc in self.translations if lc != self.langcode]

    def first_value(self, field_name: str, property_name: str = "value") -> Any:
        values = self.fields.get(field_name) or []
        if values and isinstance(values[0], dict):
            return values[0].get(property_name)
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record_type": self.record_type,
            "bundle": self.bundle,
            "uuid": self.uuid,
            "langcode": self.langcode,
            "label": self.label,
            "id": self.id,
            "owner_id": self.owner_id,
            "fields": copy.deepcopy(self.fields),
            "translations": copy.deepcopy(self.translations),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LiveRecord":
        return cls(
            record_type=data["record_type"],
            bundle=data["bundle"],
            uuid=data["uuid"],
            langcode=data["langcode"],
            label=data.get("label", ""),
            id=data.get("id"),
            owner_id=data.get("owner_id"),
            fields=copy.deepcopy(data.get("fields") or {}),
            translations=copy.deepcopy(data.get("translations") or {}),
        )
