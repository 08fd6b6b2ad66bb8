"""
Live record store implementations.

Backends:
    - memory: in-process dictionaries (tests, dry runs)
    - sqlite: local SQLite database
    - sqlserver: SQL Server via pyodbc

Select the backend with the ``store.backend`` setting or the
RECORDSYNC_STORE_BACKEND environment variable.
"""

import logging
import os
from pathlib import Path
from typing import Optional, Union

from .base import RecordStore
from .languages import LanguageManager
from .memory_store import MemoryRecordStore
from .models import FieldDefinition, LiveRecord, RecordTypeDefinition, SchemaRegistry
from .sqlite_store import SqliteRecordStore


logger = logging.getLogger(__name__)


# Lazy import so pyodbc is only needed when the backend is used
def _get_sqlserver_store():
    from .sqlserver_store import SqlServerRecordStore
    return SqlServerRecordStore


def create_record_store(
    schema: SchemaRegistry,
    backend: Optional[str] = None,
    administrator_id: int = 1,
    # SQLite options
    db_path: Optional[Union[str, Path]] = None,
    # SQL Server options
    connection_string: Optional[str] = None,
    host: str = "localhost",
    port: int = 1433,
    database: str = "RecordSync",
    username: str = "sa",
    password: Optional[str] = None,
    driver: str = "ODBC Driver 18 for SQL Server",
    db_schema: str = "recordsync",
    trust_server_certificate: bool = True,
    auto_init: bool = True,
) -> RecordStore:
    """
    Factory function to create the appropriate record store.

    Args:
        schema: Record type definitions of the live system
        backend: 'memory', 'sqlite' or 'sqlserver'. Defaults to the
            RECORDSYNC_STORE_BACKEND env var or 'memory'.
        administrator_id: Owner assigned to imported records

        SQLite options:
            db_path: Path to SQLite database file

        SQL Server options:
            connection_string: Full ODBC connection string
            host, port, database, username, password, driver: Connection parts
            db_schema: Schema name for tables
            trust_server_certificate: Trust self-signed certs
            auto_init: Auto-create schema/tables

    Returns:
        RecordStore instance

    Raises:
        ValueError: If backend is not recognized
        ImportError: If required dependencies are missing
    """
    if backend is None:
        backend = os.environ.get("RECORDSYNC_STORE_BACKEND", "memory")
    backend = backend.lower()

    if backend == "memory":
        return MemoryRecordStore(schema, administrator_id=administrator_id)

    elif backend == "sqlite":
        if db_path is None:
            db_path = Path("local/recordsync.db")
        return SqliteRecordStore(
            schema,
            db_path=db_path,
            administrator_id=administrator_id,
            auto_init=auto_init,
        )

    elif backend == "sqlserver":
        SqlServerRecordStore = _get_sqlserver_store()

        if password is None:
            password = os.environ.get("RECORDSYNC_SQLSERVER_PASSWORD") or os.environ.get("MSSQL_SA_PASSWORD")

        if connection_string is None:
            connection_string = os.environ.get("RECORDSYNC_SQLSERVER_CONN_STR")

        return SqlServerRecordStore(
            schema,
            connection_string=connection_string,
            host=host,
            port=port,
            database=database,
            username=username,
            password=password,
            driver=driver,
            db_schema=db_schema,
            administrator_id=administrator_id,
            auto_init=auto_init,
            trust_server_certificate=trust_server_certificate,
        )

    else:
        raise ValueError(
            f"Unknown backend: {backend}. "
            "Supported backends: 'memory', 'sqlite', 'sqlserver'"
        )


def create_record_store_from_settings(settings) -> RecordStore:
    """Build the record store described by a SyncSettings instance."""
    store_config = settings.get_store_config()
    backend = store_config.get("backend", "memory")
    sqlite_config = store_config.get("sqlite") or {}
    sqlserver_config = store_config.get("sqlserver") or {}
    schema = SchemaRegistry.from_config(settings.get_record_types())

    logger.debug(f"Creating {backend} record store")
    return create_record_store(
        schema,
        backend=backend,
        administrator_id=settings.administrator_id(),
        db_path=sqlite_config.get("path"),
        connection_string=sqlserver_config.get("connection_string"),
        host=sqlserver_config.get("host", "localhost"),
        port=int(sqlserver_config.get("port", 1433)),
        database=sqlserver_config.get("database", "RecordSync"),
        username=sqlserver_config.get("user", "sa"),
        password=sqlserver_config.get("password"),
        db_schema=sqlserver_config.get("schema", "recordsync"),
    )


def create_language_manager(settings) -> LanguageManager:
    """Build the LanguageManager described by a SyncSettings instance."""
    languages = settings.get_languages_config()
    return LanguageManager(
        default_langcode=languages.get("default", "en"),
        known_langcodes=languages.get("known") or [],
        installing=bool(languages.get("installing", False)),
    )


__all__ = [
    "FieldDefinition",
    "LanguageManager",
    "LiveRecord",
    "MemoryRecordStore",
    "RecordStore",
    "RecordTypeDefinition",
    "SchemaRegistry",
    "SqliteRecordStore",
    "create_language_manager",
    "create_record_store",
    "create_record_store_from_settings",
]
