"""
Core data models for serialized records.

Defines the SerializedRecord, the portable unit written to one YAML file per
record, and the SyncStatus classification used by the status resolver.
"""

import copy
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .canonical import canonical_export
from .exceptions import InvalidInputError


FILE_RECORD_TYPE = "file"

# Positional value list for a single attribute, e.g. [{"value": "Title"}]
FieldValues = List[Any]


class SyncStatus(str, Enum):
    """Drift classification of a live record against its serialized form."""
    IN_SYNC = "InSync"
    OUT_OF_SYNC = "OutOfSync"
    NOT_IMPORTED = "NotImported"
    NOT_EXPORTED = "NotExported"


@dataclass
class SerializedRecord:
    """
    In-memory representation of one exported record.

    Attributes:
        record_type: Schema category of the record (e.g. 'node', 'file')
        bundle: Sub-category of the record type (e.g. 'article')
        uuid: Globally unique, stable identity; the dependency-graph key
        label: Diagnostic label
        path: Filesystem location of the YAML file, empty until persisted
        default_langcode: Locale of the ``default`` attribute payload
        entity_id: Store-native id at export time (diagnostic only)
        dependencies: uuid -> record_type for every directly referenced record
        options: Option plugin id -> free-form value, never part of the payload
        default: Attribute name -> positional value list
        translations: Langcode -> attribute name -> positional value list
    """
    record_type: str
    bundle: str
    uuid: str
    label: str = ""
    path: str = ""
    default_langcode: str = ""
    entity_id: Optional[Union[int, str]] = None
    dependencies: Dict[str, str] = field(default_factory=dict)
    options: Dict[str, Any] = field(default_factory=dict)
    default: Dict[str, FieldValues] = field(default_factory=dict)
    translations: Dict[str, Dict[str, FieldValues]] = field(default_factory=dict)

    def __post_init__(self):
        if self.uuid and self.uuid in self.dependencies:
            raise InvalidInputError(f"Record {self.uuid} cannot depend on itself.")
        if self.default_langcode and self.default_langcode in self.translations:
            raise InvalidInputError(
                f"Record {self.uuid} has a translation keyed by its default "
                f"langcode '{self.default_langcode}'."
            )

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "uuid":
            current = self.__dict__.get("uuid")
            if current and value != current:
                raise InvalidInputError(
                    f"The identity of a record cannot change ({current} -> {value})."
                )
        super().__setattr__(name, value)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the canonical export mapping written to YAML."""
        meta: Dict[str, Any] = {
            "entity_type": self.record_type,
            "bundle": self.bundle,
            "entity_id": self.entity_id,
            "label": self.label,
            "path": self.path,
            "uuid": self.uuid,
            "default_langcode": self.default_langcode,
            "depends": dict(self.dependencies),
            "options": copy.deepcopy(self.options),
        }
        data = {
            "_meta": meta,
            "default": copy.deepcopy(self.default),
            "translations": copy.deepcopy(self.translations),
        }
        return canonical_export(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SerializedRecord":
        """Create from an export mapping (as decoded from YAML)."""
        if not isinstance(data, dict):
            raise InvalidInputError(
                f"Export data must be a mapping, {type(data).__name__} given."
            )
        meta = _mapping(data, "_meta")
        return cls(
            record_type=meta.get("entity_type") or "",
            bundle=meta.get("bundle") or "",
            uuid=meta.get("uuid") or "",
            label=meta.get("label") or "",
            path=meta.get("path") or "",
            default_langcode=meta.get("default_langcode") or "",
            entity_id=meta.get("entity_id"),
            dependencies=_mapping(meta, "depends"),
            options=_mapping(meta, "options"),
            default=_mapping(data, "default"),
            translations=_mapping(data, "translations"),
        )

    def to_yaml(self) -> str:
        """Serialize to YAML text."""
        return yaml.safe_dump(
            self.to_dict(),
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=False,
        )

    @classmethod
    def from_yaml(cls, text: str) -> "SerializedRecord":
        """Parse YAML text."""
        return cls.from_dict(yaml.safe_load(text))

    @classmethod
    def load(cls, path: Union[str, Path]) -> "SerializedRecord":
        """
        Load a record from a YAML file.

        The record's ``path`` is set to the file's actual location, which wins
        over whatever path was stored in the file.
        """
        path = Path(path)
        with open(path, "r", encoding="utf-8") as f:
            record = cls.from_yaml(f.read())
        record.path = str(path)
        return record

    def copy(self) -> "SerializedRecord":
        """Deep copy, so callers can mutate without touching cached records."""
        return copy.deepcopy(self)

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def filename(self) -> str:
        return f"{self.uuid}.yml"

    def content(self, langcode: Optional[str] = None) -> Dict[str, FieldValues]:
        """Attribute payload for a langcode; the default payload when omitted."""
        if langcode is None or langcode == self.default_langcode:
            return self.default
        return self.translation(langcode)

    def translation(self, langcode: str) -> Dict[str, FieldValues]:
        return self.translations.get(langcode, {})

    # ------------------------------------------------------------------
    # Dependencies
    # ------------------------------------------------------------------

    def has_dependency(self, uuid: str) -> bool:
        return uuid in self.dependencies

    def add_dependency(self, uuid: str, record_type: str) -> None:
        if uuid == self.uuid:
            raise InvalidInputError(f"Record {self.uuid} cannot depend on itself.")
        self.dependencies[uuid] = record_type

    # ------------------------------------------------------------------
    # Options
    # ------------------------------------------------------------------

    def has_option(self, name: str) -> bool:
        return name in self.options

    def get_option(self, name: str, default_value: Any = None) -> Any:
        return self.options.get(name, default_value)

    def set_option(self, name: str, value: Any) -> None:
        self.options[name] = value

    # ------------------------------------------------------------------
    # File records
    # ------------------------------------------------------------------

    def is_file(self) -> bool:
        return self.record_type == FILE_RECORD_TYPE

    def file_uri(self) -> Optional[str]:
        """The stored asset location of a file record, if any."""
        values = self.default.get("uri") or []
        if values and isinstance(values[0], dict):
            return values[0].get("value")
        return None

    def file_asset_filename(self) -> str:
        """Name of the binary asset written next to a file record's YAML."""
        uri = self.file_uri() or ""
        return f"{self.uuid}--{os.path.basename(uri)}"

    def file_asset_is_exported(self, directory: Union[str, Path]) -> bool:
        if not self.is_file() or not self.file_uri():
            return False
        return (Path(directory) / self.file_asset_filename()).is_file()


def _mapping(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    """``data[key]`` as a dict, empty when absent or empty; other non-mappings are invalid."""
    value = data.get(key)
    if not value:
        return {}
    if not isinstance(value, dict):
        raise InvalidInputError(f"'{key}' must be a mapping, {type(value).__name__} given.")
    return dict(value)
