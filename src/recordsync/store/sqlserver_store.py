"""
SQL Server-based live record store.

Same table layout as the SQLite store, in a configurable schema, with MERGE
statements for upserts.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

try:
    import pyodbc
except ImportError:
    pyodbc = None

from ..core.exceptions import RecordStoreError
from .base import RecordStore
from .models import LiveRecord, SchemaRegistry


logger = logging.getLogger(__name__)

_META_COLUMNS = ("uuid", "bundle", "langcode", "label", "id", "owner_id")


class SqlServerRecordStore(RecordStore):
    """
    SQL Server-based implementation of the record store.

    Tables:
    - [schema].[records]: one row per record, attribute values as JSON
    - [schema].[record_translations]: one row per (record, langcode)
    """

    def __init__(
        self,
        schema: SchemaRegistry,
        connection_string: Optional[str] = None,
        host: str = "localhost",
        port: int = 1433,
        database: str = "RecordSync",
        username: str = "sa",
        password: Optional[str] = None,
        driver: str = "ODBC Driver 18 for SQL Server",
        db_schema: str = "recordsync",
        administrator_id: int = 1,
        auto_init: bool = True,
        trust_server_certificate: bool = True,
    ):
        """
        Initialize the SQL Server record store.

        Args:
            schema: Record type definitions
            connection_string: Full ODBC connection string (if provided, other params ignored)
            host: SQL Server host
            port: SQL Server port
            database: Database name
            username: Database username
            password: Database password
            driver: ODBC driver name
            db_schema: Database schema holding the tables (default: 'recordsync')
            administrator_id: Owner assigned to imported records
            auto_init: Whether to create schema and tables automatically
            trust_server_certificate: Whether to trust self-signed certificates
        """
        if pyodbc is None:
            raise ImportError(
                "pyodbc is required for SqlServerRecordStore. "
                "Install with: pip install pyodbc"
            )

        if not self._is_valid_identifier(db_schema):
            raise ValueError(f"Invalid schema name: {db_schema}")

        super().__init__(schema, administrator_id)
        self.db_schema = db_schema

        if connection_string:
            self.connection_string = connection_string
        else:
            trust_cert = "yes" if trust_server_certificate else "no"
            self.connection_string = (
                f"Driver={{{driver}}};"
                f"Server={host},{port};"
                f"Database={database};"
                f"UID={username};"
                f"PWD={password};"
                f"TrustServerCertificate={trust_cert}"
            )

        self.conn = None
        self._connect()

        if auto_init:
            self._init_schema()

    @staticmethod
    def _is_valid_identifier(name: str) -> bool:
        """Whether a name is a safe SQL identifier (letters, digits, underscores)."""
        if not name or len(name) > 128:
            return False
        return re.match(r'^[a-zA-Z_][a-zA-Z0-9_]*$', name) is not None

    def _connect(self) -> None:
        """Establish database connection."""
        try:
            self.conn = pyodbc.connect(self.connection_string)
            logger.debug(f"Connected to SQL Server record store (schema: {self.db_schema})")
        except pyodbc.Error as e:
            logger.error(f"Failed to connect to SQL Server: {e}")
            raise RecordStoreError(f"Failed to connect to SQL Server: {e}") from e

    def _init_schema(self) -> None:
        """Initialize database schema and tables."""
        cursor = self.conn.cursor()
        try:
            # CREATE SCHEMA cannot take parameters; the name is validated in __init__
            cursor.execute(f"""
                IF NOT EXISTS (SELECT * FROM sys.schemas WHERE name = ?)
                BEGIN
                    EXEC('CREATE SCHEMA [{self.db_schema}]')
                END
            """, (self.db_schema,))

            cursor.execute(f"""
                IF NOT EXISTS (SELECT * FROM sys.tables t
                               JOIN sys.schemas s ON t.schema_id = s.schema_id
                               WHERE t.name = 'records' AND s.name = ?)
                BEGIN
                    CREATE TABLE [{self.db_schema}].[records] (
                        id INT IDENTITY(1,1) PRIMARY KEY,
                        record_type NVARCHAR(100) NOT NULL,
                        bundle NVARCHAR(100) NOT NULL,
                        uuid NVARCHAR(36) NOT NULL,
                        langcode NVARCHAR(12) NOT NULL,
                        label NVARCHAR(500),
                        owner_id INT,
                        fields_json NVARCHAR(MAX) NOT NULL,
                        CONSTRAINT UQ_records_identity UNIQUE (record_type, uuid)
                    )
                END
            """, (self.db_schema,))

            cursor.execute(f"""
                IF NOT EXISTS (SELECT * FROM sys.tables t
                               JOIN sys.schemas s ON t.schema_id = s.schema_id
                               WHERE t.name = 'record_translations' AND s.name = ?)
                BEGIN
                    CREATE TABLE [{self.db_schema}].[record_translations] (
                        record_id INT NOT NULL,
                        langcode NVARCHAR(12) NOT NULL,
                        fields_json NVARCHAR(MAX) NOT NULL,
                        CONSTRAINT PK_record_translations PRIMARY KEY (record_id, langcode)
                    )
                END
            """, (self.db_schema,))

            self.conn.commit()
            logger.debug("Initialized record store schema")
        except pyodbc.Error as e:
            self.conn.rollback()
            logger.error(f"Failed to initialize schema: {e}")
            raise RecordStoreError(f"Failed to initialize schema: {e}") from e

    def _row_to_record(self, row) -> LiveRecord:
        cursor = self.conn.cursor()
        cursor.execute(f"""
            SELECT langcode, fields_json FROM [{self.db_schema}].[record_translations]
            WHERE record_id = ? ORDER BY langcode
        """, (row.id,))
        translations = {t.langcode: json.loads(t.fields_json) for t in cursor.fetchall()}
        return LiveRecord(
            record_type=row.record_type,
            bundle=row.bundle,
            uuid=row.uuid,
            langcode=row.langcode,
            label=row.label or "",
            id=row.id,
            owner_id=row.owner_id,
            fields=json.loads(row.fields_json),
            translations=translations,
        )

    def load(self, record_type: str, record_id: int) -> Optional[LiveRecord]:
        cursor = self.conn.cursor()
        cursor.execute(f"""
            SELECT * FROM [{self.db_schema}].[records]
            WHERE record_type = ? AND id = ?
        """, (record_type, record_id))
        row = cursor.fetchone()
        return self._row_to_record(row) if row else None

    def load_by_uuid(self, record_type: str, uuid: str) -> Optional[LiveRecord]:
        cursor = self.conn.cursor()
        cursor.execute(f"""
            SELECT * FROM [{self.db_schema}].[records]
            WHERE record_type = ? AND uuid = ?
        """, (record_type, uuid))
        row = cursor.fetchone()
        return self._row_to_record(row) if row else None

    def load_by_properties(self, record_type: str, properties: Dict[str, Any]) -> List[LiveRecord]:
        clauses = ["record_type = ?"]
        params: List[Any] = [record_type]
        remaining: Dict[str, Any] = {}
        for name, value in properties.items():
            if name in _META_COLUMNS:
                clauses.append(f"{name} = ?")
                params.append(value)
            else:
                remaining[name] = value

        cursor = self.conn.cursor()
        cursor.execute(
            f"SELECT * FROM [{self.db_schema}].[records] WHERE {' AND '.join(clauses)} ORDER BY id",
            params,
        )
        records = [self._row_to_record(row) for row in cursor.fetchall()]
        return [r for r in records if self.matches_properties(r, remaining)]

    def save(self, record: LiveRecord) -> LiveRecord:
        self.get_definition(record.record_type)
        fields_json = json.dumps(record.fields, sort_keys=True)
        cursor = self.conn.cursor()
        try:
            if record.id is None:
                cursor.execute(f"""
                    INSERT INTO [{self.db_schema}].[records]
                        (record_type, bundle, uuid, langcode, label, owner_id, fields_json)
                    OUTPUT INSERTED.id
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                """, (
                    record.record_type,
                    record.bundle,
                    record.uuid,
                    record.langcode,
                    record.label,
                    record.owner_id,
                    fields_json,
                ))
                record.id = int(cursor.fetchone()[0])
            else:
                cursor.execute(f"""
                    UPDATE [{self.db_schema}].[records]
                    SET bundle = ?, langcode = ?, label = ?, owner_id = ?, fields_json = ?
                    WHERE id = ?
                """, (
                    record.bundle,
                    record.langcode,
                    record.label,
                    record.owner_id,
                    fields_json,
                    record.id,
                ))
            self.conn.commit()
        except pyodbc.Error as e:
            self.conn.rollback()
            logger.error(f"Failed to save {record.record_type} {record.uuid}: {e}")
            raise RecordStoreError(f"Failed to save {record.record_type} {record.uuid}: {e}") from e

        logger.debug(f"Saved {record.record_type} {record.uuid} as id {record.id}")
        return record

    def save_translation(self, record: LiveRecord, langcode: str) -> None:
        if record.id is None:
            raise RecordStoreError(f"Record {record.uuid} must be saved before its translations")
        fields_json = json.dumps(record.translations.get(langcode, {}), sort_keys=True)
        cursor = self.conn.cursor()
        try:
            cursor.execute(f"""
                MERGE [{self.db_schema}].[record_translations] AS target
                USING (SELECT ? AS record_id, ? AS langcode, ? AS fields_json) AS source
                ON target.record_id = source.record_id AND target.langcode = source.langcode
                WHEN MATCHED THEN
                    UPDATE SET fields_json = source.fields_json
                WHEN NOT MATCHED THEN
                    INSERT (record_id, langcode, fields_json)
                    VALUES (source.record_id, source.langcode, source.fields_json);
            """, (record.id, langcode, fields_json))
            self.conn.commit()
        except pyodbc.Error as e:
            self.conn.rollback()
            raise RecordStoreError(
                f"Failed to save {langcode} translation of {record.uuid}: {e}"
            ) from e

    def delete(self, record: LiveRecord) -> None:
        if record.id is None:
            return
        cursor = self.conn.cursor()
        try:
            cursor.execute(
                f"DELETE FROM [{self.db_schema}].[record_translations] WHERE record_id = ?",
                (record.id,),
            )
            cursor.execute(
                f"DELETE FROM [{self.db_schema}].[records] WHERE record_type = ? AND id = ?",
                (record.record_type, record.id),
            )
            self.conn.commit()
        except pyodbc.Error as e:
            self.conn.rollback()
            raise RecordStoreError(f"Failed to delete {record.uuid}: {e}") from e

    def close(self) -> None:
        """Close database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None
            logger.debug("Closed SQL Server record store")
