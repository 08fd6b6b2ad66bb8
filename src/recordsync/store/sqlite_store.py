"""
SQLite-based live record store.

Attribute values are stored as JSON payloads; record metadata gets its own
columns so identity lookups stay indexed.
"""

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..core.exceptions import RecordStoreError
from .base import RecordStore
from .models import LiveRecord, SchemaRegistry


logger = logging.getLogger(__name__)

_META_COLUMNS = ("uuid", "bundle", "langcode", "label", "id", "owner_id")


class SqliteRecordStore(RecordStore):
    """
    SQLite-based implementation of the record store.

    Use ``":memory:"`` as the path for a throwaway database.
    """

    def __init__(
        self,
        schema: SchemaRegistry,
        db_path: Union[str, Path] = ":memory:",
        administrator_id: int = 1,
        auto_init: bool = True,
    ):
        """
        Initialize the SQLite record store.

        Args:
            schema: Record type definitions
            db_path: Path to the SQLite database file
            administrator_id: Owner assigned to imported records
            auto_init: Whether to create tables automatically
        """
        super().__init__(schema, administrator_id)
        self.db_path = str(db_path)
        self.conn: Optional[sqlite3.Connection] = None
        self._connect()

        if auto_init:
            self._init_schema()

    def _connect(self) -> None:
        """Establish database connection."""
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        try:
            self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        except sqlite3.Error as e:
            raise RecordStoreError(f"Failed to open SQLite store {self.db_path}: {e}") from e
        self.conn.row_factory = sqlite3.Row
        logger.debug(f"Connected to SQLite record store: {self.db_path}")

    def _init_schema(self) -> None:
        """Initialize database schema."""
        cursor = self.conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS records (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                record_type TEXT NOT NULL,
                bundle TEXT NOT NULL,
                uuid TEXT NOT NULL,
                langcode TEXT NOT NULL,
                label TEXT,
                owner_id INTEGER,
                fields_json TEXT NOT NULL
            )
        """)

        cursor.execute("""
            CREATE UNIQUE INDEX IF NOT EXISTS ix_records_identity
            ON records (record_type, uuid)
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS record_translations (
                record_id INTEGER NOT NULL,
                langcode TEXT NOT NULL,
                fields_json TEXT NOT NULL,
                PRIMARY KEY (record_id, langcode)
            )
        """)

        self.conn.commit()
        logger.debug("Initialized record store schema")

    def _row_to_record(self, row: sqlite3.Row) -> LiveRecord:
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT langcode, fields_json FROM record_translations WHERE record_id = ? ORDER BY langcode",
            (row["id"],),
        )
        translations = {t["langcode"]: json.loads(t["fields_json"]) for t in cursor.fetchall()}
        return LiveRecord(
            record_type=row["record_type"],
            bundle=row["bundle"],
            uuid=row["uuid"],
            langcode=row["langcode"],
            label=row["label"] or "",
            id=row["id"],
            owner_id=row["owner_id"],
            fields=json.loads(row["fields_json"]),
            translations=translations,
        )

    def load(self, record_type: str, record_id: int) -> Optional[LiveRecord]:
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT * FROM records WHERE record_type = ? AND id = ?",
            (record_type, record_id),
        )
        row = cursor.fetchone()
        return self._row_to_record(row) if row else None

    def load_by_uuid(self, record_type: str, uuid: str) -> Optional[LiveRecord]:
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT * FROM records WHERE record_type = ? AND uuid = ?",
            (record_type, uuid),
        )
        row = cursor.fetchone()
        return self._row_to_record(row) if row else None

    def load_by_properties(self, record_type: str, properties: Dict[str, Any]) -> List[LiveRecord]:
        # Metadata columns filter in SQL, attribute values in Python
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
            f"SELECT * FROM records WHERE {' AND '.join(clauses)} ORDER BY id",
            params,
        )
        records = [self._row_to_record(row) for row in cursor.fetchall()]
        return [r for r in records if self.matches_properties(r, remaining)]

    def save(self, record: LiveRecord) -> LiveRecord:
        self.get_definition(record.record_type)
        fields_json = json.dumps(record.fields, sort_keys=True)
        try:
            cursor = self.conn.cursor()
            if record.id is None:
                cursor.execute("""
                    INSERT INTO records (record_type, bundle, uuid, langcode, label, owner_id, fields_json)
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
                record.id = cursor.lastrowid
            else:
                cursor.execute("""
                    INSERT INTO records (id, record_type, bundle, uuid, langcode, label, owner_id, fields_json)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        bundle = excluded.bundle,
                        langcode = excluded.langcode,
                        label = excluded.label,
                        owner_id = excluded.owner_id,
                        fields_json = excluded.fields_json
                """, (
                    record.id,
                    record.record_type,
                    record.bundle,
                    record.uuid,
                    record.langcode,
                    record.label,
                    record.owner_id,
                    fields_json,
                ))
            self.conn.commit()
        except sqlite3.Error as e:
            self.conn.rollback()
            logger.error(f"Failed to save {record.record_type} {record.uuid}: {e}")
            raise RecordStoreError(f"Failed to save {record.record_type} {record.uuid}: {e}") from e

        logger.debug(f"Saved {record.record_type} {record.uuid} as id {record.id}")
        return record

    def save_translation(self, record: LiveRecord, langcode: str) -> None:
        if record.id is None:
            raise RecordStoreError(f"Record {record.uuid} must be saved before its translations")
        fields_json = json.dumps(record.translations.get(langcode, {}), sort_keys=True)
        try:
            cursor = self.conn.cursor()
            cursor.execute("""
                INSERT INTO record_translations (record_id, langcode, fields_json)
                VALUES (?, ?, ?)
                ON CONFLICT(record_id, langcode) DO UPDATE SET fields_json = excluded.fields_json
            """, (record.id, langcode, fields_json))
            self.conn.commit()
        except sqlite3.Error as e:
            self.conn.rollback()
            raise RecordStoreError(
                f"Failed to save {langcode} translation of {record.uuid}: {e}"
            ) from e

    def delete(self, record: LiveRecord) -> None:
        if record.id is None:
            return
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM record_translations WHERE record_id = ?", (record.id,))
        cursor.execute(
            "DELETE FROM records WHERE record_type = ? AND id = ?",
            (record.record_type, record.id),
        )
        self.conn.commit()

    def close(self) -> None:
        """Close database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None
            logger.debug("Closed SQLite record store")
