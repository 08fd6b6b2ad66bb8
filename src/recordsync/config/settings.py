"""
Configuration loader for recordsync.
"""

import copy
import logging
import os
import re
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml


logger = logging.getLogger(__name__)

# Always ignored when comparing: added by the reference handler for diagnostics
ORIGINAL_VALUES_KEY = "original_values"


class FileExistsPolicy(str, Enum):
    """What to do when an asset's destination file already exists."""
    REPLACE = "replace"
    RENAME = "rename"
    ERROR = "error"

    @classmethod
    def from_name(cls, name: Optional[str]) -> "FileExistsPolicy":
        """Resolve a configured name; unknown names fall back to ERROR."""
        if name is None:
            return cls.REPLACE
        for policy in cls:
            if policy.value == str(name).lower() or policy.name == str(name).upper():
                return policy
        logger.warning(f"Unknown file-exists policy '{name}', using 'error'")
        return cls.ERROR


class SyncSettings:
    """
    Configuration for recordsync.

    Loads a YAML configuration file (or defaults), then applies environment
    variable overrides.
    """

    def __init__(self, config_path: Optional[Path] = None, config: Optional[Dict[str, Any]] = None):
        """
        Initialize configuration.

        Args:
            config_path: Path to YAML config file (optional)
            config: Already loaded configuration mapping, merged over defaults (optional)
        """
        self.config_path = Path(config_path) if config_path else None
        self.config = self._default_config()
        if self.config_path:
            self._merge(self.config, self._load_config())
        if config:
            self._merge(self.config, copy.deepcopy(config))
        self._apply_env_overrides()

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "SyncSettings":
        return cls(config=config)

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file."""
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        logger.info(f"Loading config from: {self.config_path}")

        with open(self.config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)

        return config or {}

    @staticmethod
    def _merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> None:
        for key, value in overrides.items():
            if isinstance(value, dict) and isinstance(base.get(key), dict) and key != "record_types":
                SyncSettings._merge(base[key], value)
            else:
                base[key] = value

    def _default_config(self) -> Dict[str, Any]:
        """Return default configuration."""
        return {
            "default_source": "default",
            "ignored_comparison_keys": ["entity_id"],
            "should_export_assets": False,
            "should_import_assets": False,
            "asset_export_file_exists": "replace",
            "asset_import_file_exists": "replace",
            "administrator_id": 1,
            "languages": {
                "default": "en",
                "known": ["en"],
                "installing": False,
            },
            "sources": [
                {
                    "id": "default",
                    "label": "Default",
                    "directory": "content",
                    "enabled": True,
                },
            ],
            "record_types": {},
            "store": {
                "backend": "memory",
                "sqlite": {
                    "path": "local/recordsync.db",
                },
                "sqlserver": {
                    "host": "localhost",
                    "port": 1433,
                    "database": "RecordSync",
                    "user": "sa",
                    "schema": "recordsync",
                },
            },
        }

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides to loaded config."""
        default_source = os.environ.get("RECORDSYNC_DEFAULT_SOURCE")
        if default_source:
            self.config["default_source"] = default_source

        sources_dir = os.environ.get("RECORDSYNC_SOURCES_DIR")
        if sources_dir:
            for source in self.config.get("sources") or []:
                if source.get("id") == self.config.get("default_source"):
                    source["directory"] = sources_dir

        store = self.config.setdefault("store", {})
        backend = os.environ.get("RECORDSYNC_STORE_BACKEND")
        if backend:
            store["backend"] = backend.lower()

        sqlite_path = os.environ.get("RECORDSYNC_SQLITE_PATH")
        if sqlite_path:
            store.setdefault("sqlite", {})["path"] = sqlite_path

        conn_str = os.environ.get("RECORDSYNC_SQLSERVER_CONN_STR")
        if conn_str:
            store.setdefault("sqlserver", {})["connection_string"] = conn_str

    @property
    def base_dir(self) -> Path:
        """Directory relative source directories are resolved against."""
        if self.config_path:
            return self.config_path.resolve().parent
        return Path.cwd()

    def default_source(self) -> str:
        return self.config.get("default_source") or ""

    def ignored_comparison_keys(self) -> List[str]:
        """Configured ignored keys (list, or newline separated string)."""
        raw = self.config.get("ignored_comparison_keys") or []
        if isinstance(raw, str):
            raw = re.split(r"[\r\n]+", raw)
        return [str(key).strip() for key in raw if str(key).strip()]

    def ignored_comparison_keys_list(self) -> List[str]:
        """Keys stripped before comparing, always including ``original_values``."""
        keys = self.ignored_comparison_keys()
        if ORIGINAL_VALUES_KEY not in keys:
            keys.append(ORIGINAL_VALUES_KEY)
        return keys

    def should_export_assets(self) -> bool:
        return bool(self.config.get("should_export_assets", False))

    def should_import_assets(self) -> bool:
        return bool(self.config.get("should_import_assets", False))

    def asset_export_file_exists(self) -> FileExistsPolicy:
        return FileExistsPolicy.from_name(self.config.get("asset_export_file_exists"))

    def asset_import_file_exists(self) -> FileExistsPolicy:
        return FileExistsPolicy.from_name(self.config.get("asset_import_file_exists"))

    def administrator_id(self) -> int:
        return int(self.config.get("administrator_id", 1))

    def get_languages_config(self) -> Dict[str, Any]:
        return self.config.get("languages", {})

    def get_sources(self) -> List[Dict[str, Any]]:
        """Get list of source configurations."""
        return self.config.get("sources", [])

    def get_record_types(self) -> Dict[str, Any]:
        """Get the live store schema configuration."""
        return self.config.get("record_types", {})

    def get_store_config(self) -> Dict[str, Any]:
        """Get record store configuration."""
        return self.config.get("store", {})

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by dotted key."""
        keys = key.split(".")
        value = self.config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default

        return value if value is not None else default
