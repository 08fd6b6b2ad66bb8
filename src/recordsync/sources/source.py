"""
Export sources: named directories holding serialized records.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union


@dataclass
class Source:
    """
    A named directory of exports laid out as ``<type>/<bundle>/<uuid>.yml``.

    Attributes:
        id: Machine name
        label: Human readable name
        directory: Directory as configured; may contain ``~`` and ``$VARS`` and
            may be relative to ``base_dir``
        enabled: Disabled sources are skipped when importing everything or
            resolving where a record lives
        base_dir: Directory relative paths resolve against (default: cwd)
    """
    id: str
    label: str
    directory: str
    enabled: bool = True
    base_dir: Optional[Path] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base_dir: Optional[Path] = None) -> "Source":
        return cls(
            id=data["id"],
            label=data.get("label") or data["id"],
            directory=str(data.get("directory") or ""),
            enabled=bool(data.get("enabled", True)),
            base_dir=base_dir,
        )

    def directory_processed(self, absolute: bool = True) -> Path:
        """The configured directory with variables expanded, resolved when absolute."""
        directory = Path(os.path.expandvars(os.path.expanduser(self.directory)))
        if absolute and not directory.is_absolute():
            directory = (self.base_dir or Path.cwd()) / directory
        if absolute and directory.exists():
            return directory.resolve()
        return directory

    def destination_directory(self, record_type: str, bundle: str, absolute: bool = True) -> Path:
        return self.directory_processed(absolute) / record_type / bundle

    def destination_filepath(
        self,
        record_type: str,
        bundle: str,
        filename: Union[str, Path],
        absolute: bool = True,
    ) -> Path:
        return self.destination_directory(record_type, bundle, absolute) / filename

    def export_exists(self, record_type: str, bundle: str, uuid: str) -> bool:
        return self.destination_filepath(record_type, bundle, f"{uuid}.yml").is_file()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "directory": self.directory,
            "enabled": self.enabled,
        }
