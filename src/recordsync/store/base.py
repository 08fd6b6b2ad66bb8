"""
Record store interface for the live, mutable system.

The core never talks to a database directly: it loads, creates and saves
LiveRecords through a RecordStore, and reads schema through its
RecordTypeDefinitions.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from .models import LiveRecord, RecordTypeDefinition, SchemaRegistry


class RecordStore(ABC):
    """
    Abstract base class for live record stores.

    Concrete stores share schema handling through a SchemaRegistry and
    implement persistence.
    """

    def __init__(self, schema: SchemaRegistry, administrator_id: int = 1):
        self.schema = schema
        self._administrator_id = administrator_id

    # Schema ---------------------------------------------------------------

    def get_definition(self, record_type: str) -> RecordTypeDefinition:
        """
        Get the definition of a record type.

        Raises:
            RecordNotFoundError: If the record type is unknown
        """
        return self.schema.get(record_type)

    def has_definition(self, record_type: str) -> bool:
        return self.schema.has(record_type)

    def definitions(self) -> List[RecordTypeDefinition]:
        return self.schema.all()

    def administrator_id(self) -> int:
        """Owner assigned to imported records whose type supports owners."""
        return self._administrator_id

    # Persistence ----------------------------------------------------------

    @abstractmethod
    def load(self, record_type: str, record_id: int) -> Optional[LiveRecord]:
        """
        Load a record by its store-native id.

        Returns:
            The record, or None if it does not exist
        """
        pass

    @abstractmethod
    def load_by_uuid(self, record_type: str, uuid: str) -> Optional[LiveRecord]:
        """
        Load a record by identity.

        Returns:
            The record, or None if it does not exist
        """
        pass

    @abstractmethod
    def load_by_properties(self, record_type: str, properties: Dict[str, Any]) -> List[LiveRecord]:
        """
        Load records whose properties match all given values.

        Property names are either record metadata (uuid, bundle, langcode,
        label, id, owner_id) or attribute names, which match against the
        main property of the attribute's first item.
        """
        pass

    @abstractmethod
    def save(self, record: LiveRecord) -> LiveRecord:
        """
        Persist a record's default-locale data, assigning an id if new.

        Returns:
            The saved record (id populated)
        """
        pass

    @abstractmethod
    def save_translation(self, record: LiveRecord, langcode: str) -> None:
        """Persist one translation of an already saved record."""
        pass

    @abstractmethod
    def delete(self, record: LiveRecord) -> None:
        """Delete a record and all its translations."""
        pass

    def create(
        self,
        record_type: str,
        bundle: str,
        uuid: str,
        langcode: str,
        label: str = "",
    ) -> LiveRecord:
        """Create a new, unsaved record."""
        self.get_definition(record_type)
        return LiveRecord(
            record_type=record_type,
            bundle=bundle,
            uuid=uuid,
            langcode=langcode,
            label=label,
        )

    def find_by_uuid(self, uuid: str) -> Optional[LiveRecord]:
        """Look an identity up across every known record type."""
        for definition in self.definitions():
            record = self.load_by_uuid(definition.record_type, uuid)
            if record is not None:
                return record
        return None

    def close(self) -> None:
        """Release any resources held by the store."""
        pass

    def __enter__(self) -> "RecordStore":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    @staticmethod
    def matches_properties(record: LiveRecord, properties: Dict[str, Any]) -> bool:
        """Whether a record matches every property in ``properties``."""
        definition_meta = {
            "uuid": record.uuid,
            "bundle": record.bundle,
            "langcode": record.langcode,
            "label": record.label,
            "id": record.id,
            "owner_id": record.owner_id,
        }
        for name, expected in properties.items():
            if name in definition_meta:
                if definition_meta[name] != expected:
                    return False
                continue
            values = record.fields.get(name) or []
            if not values or not isinstance(values[0], dict):
                return False
            if expected not in values[0].values():
                return False
        return True
