"""
Shared test fixtures and configuration for pytest.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import pytest

# Add src directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from recordsync.config.settings import SyncSettings
from recordsync.core.models import SerializedRecord
from recordsync.store.languages import LanguageManager
from recordsync.store.memory_store import MemoryRecordStore
from recordsync.store.models import SchemaRegistry


logger = logging.getLogger(__name__)


RECORD_TYPES: Dict[str, Any] = {
    "node": {
        "label_field": "title",
        "has_owner": True,
        "fields": {
            "title": {"type": "string"},
            "body": {"type": "text", "properties": ["value", "format"]},
            "tags": {"type": "reference", "target_type": "taxonomy_term"},
            "related": {"type": "reference", "target_type": "node"},
            "image": {"type": "image", "target_type": "file", "properties": ["target_id", "alt"]},
            "author": {"type": "reference", "target_type": "user"},
            "link": {"type": "link", "properties": ["uri", "title"]},
            "settings": {"type": "map", "serialized": ["value"]},
        },
    },
    "taxonomy_term": {
        "label_field": "name",
        "fields": {
            "name": {"type": "string"},
            "parent": {"type": "reference", "target_type": "taxonomy_term"},
        },
    },
    "file": {
        "label_field": "filename",
        "has_owner": True,
        "fields": {
            "filename": {"type": "string"},
            "uri": {"type": "string"},
        },
    },
    "user": {
        "label_field": "name",
        "exportable": False,
        "fields": {
            "name": {"type": "string"},
        },
    },
}


# ============================================================================
# Environment detection
# ============================================================================

def is_sqlserver_available() -> bool:
    """Check if SQL Server is available for testing."""
    password = os.environ.get("RECORDSYNC_SQLSERVER_PASSWORD") or os.environ.get("MSSQL_SA_PASSWORD")
    if not password:
        return False

    try:
        import pyodbc

        host = os.environ.get("RECORDSYNC_SQLSERVER_HOST", "localhost")
        port = int(os.environ.get("RECORDSYNC_SQLSERVER_PORT", "1433"))
        database = os.environ.get("RECORDSYNC_SQLSERVER_DATABASE",
                                  os.environ.get("MSSQL_DATABASE", "RecordSync"))
        username = os.environ.get("RECORDSYNC_SQLSERVER_USER", "sa")
        driver = os.environ.get("RECORDSYNC_SQLSERVER_DRIVER", "ODBC Driver 18 for SQL Server")

        conn_str = (
            f"Driver={{{driver}}};"
            f"Server={host},{port};"
            f"Database={database};"
            f"UID={username};"
            f"PWD={password};"
            f"TrustServerCertificate=yes"
        )

        conn = pyodbc.connect(conn_str, timeout=5)
        conn.close()
        return True

    except Exception as e:
        logger.debug(f"SQL Server not available: {e}")
        return False


# ============================================================================
# Pytest hooks
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (requires SQL Server)")


def pytest_collection_modifyitems(config, items):
    """Automatically skip integration tests if SQL Server is not available."""
    if not any("integration" in item.keywords for item in items):
        return
    if is_sqlserver_available():
        return

    skip_sqlserver = pytest.mark.skip(
        reason="SQL Server not available (set MSSQL_SA_PASSWORD and ensure SQL Server is running)"
    )

    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_sqlserver)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture(scope="session")
def sqlserver_config() -> dict:
    """Session-scoped fixture providing SQL Server connection configuration."""
    return {
        "host": os.environ.get("RECORDSYNC_SQLSERVER_HOST", "localhost"),
        "port": int(os.environ.get("RECORDSYNC_SQLSERVER_PORT", "1433")),
        "database": os.environ.get("RECORDSYNC_SQLSERVER_DATABASE",
                                   os.environ.get("MSSQL_DATABASE", "RecordSync")),
        "username": os.environ.get("RECORDSYNC_SQLSERVER_USER", "sa"),
        "password": os.environ.get("RECORDSYNC_SQLSERVER_PASSWORD",
                                   os.environ.get("MSSQL_SA_PASSWORD")),
        "driver": os.environ.get("RECORDSYNC_SQLSERVER_DRIVER", "ODBC Driver 18 for SQL Server"),
    }


@pytest.fixture
def record_types() -> Dict[str, Any]:
    """Record type configuration used by the test schema."""
    return RECORD_TYPES


@pytest.fixture
def schema() -> SchemaRegistry:
    return SchemaRegistry.from_config(RECORD_TYPES)


@pytest.fixture
def store(schema) -> MemoryRecordStore:
    """Empty in-memory record store with the test schema."""
    return MemoryRecordStore(schema)


@pytest.fixture
def languages() -> LanguageManager:
    return LanguageManager("en", ["en", "fr"])


@pytest.fixture
def content_dir(tmp_path) -> Path:
    """Directory of the default source (not created)."""
    return tmp_path / "content"


@pytest.fixture
def settings_factory(content_dir) -> Callable[..., SyncSettings]:
    """Build SyncSettings for the test source with extra configuration merged in."""
    def _build(**overrides: Any) -> SyncSettings:
        config: Dict[str, Any] = {
            "default_source": "default",
            "languages": {"default": "en", "known": ["en", "fr"]},
            "sources": [
                {"id": "default", "label": "Default", "directory": str(content_dir)},
            ],
            "record_types": RECORD_TYPES,
        }
        config.update(overrides)
        return SyncSettings.from_dict(config)
    return _build


@pytest.fixture
def settings(settings_factory) -> SyncSettings:
    return settings_factory()


@pytest.fixture
def services(settings, store):
    """Fully wired services over the in-memory store."""
    from recordsync.cli import build_services

    return build_services(settings, store)


@pytest.fixture
def make_export() -> Callable[..., SerializedRecord]:
    """Factory for serialized records with sensible defaults."""
    def _make(
        uuid: str,
        record_type: str = "node",
        bundle: str = "article",
        default: Optional[Dict[str, Any]] = None,
        dependencies: Optional[Dict[str, str]] = None,
        translations: Optional[Dict[str, Any]] = None,
        default_langcode: str = "en",
        label: str = "",
        options: Optional[Dict[str, Any]] = None,
    ) -> SerializedRecord:
        if default is None:
            default = {"title": [{"value": label or uuid}]} if record_type == "node" else {}
        return SerializedRecord(
            record_type=record_type,
            bundle=bundle,
            uuid=uuid,
            label=label or uuid,
            default_langcode=default_langcode,
            dependencies=dict(dependencies or {}),
            options=dict(options or {}),
            default=default,
            translations=dict(translations or {}),
        )
    return _make


@pytest.fixture
def write_export() -> Callable[[Path, SerializedRecord], Path]:
    """Write a serialized record to ``<dir>/<type>/<bundle>/<uuid>.yml``."""
    def _write(directory: Path, record: SerializedRecord) -> Path:
        path = Path(directory) / record.record_type / record.bundle / record.filename()
        path.parent.mkdir(parents=True, exist_ok=True)
        record.path = str(path)
        path.write_text(record.to_yaml(), encoding="utf-8")
        return path
    return _write
