"""
Integration tests for the SQL Server record store.

These tests verify that:
1. The schema and tables are created
2. Records and translations round trip through the store
3. Importing a source into SQL Server reaches InSync
"""

import pytest


TEST_SCHEMA = "recordsync_test"


@pytest.fixture
def sqlserver_store(sqlserver_config, schema):
    """SQL Server record store in a dedicated schema, emptied around each test."""
    if not sqlserver_config["password"]:
        pytest.skip("SQL Server password not configured")

    from recordsync.store.sqlserver_store import SqlServerRecordStore

    store = SqlServerRecordStore(
        schema,
        host=sqlserver_config["host"],
        port=sqlserver_config["port"],
        database=sqlserver_config["database"],
        username=sqlserver_config["username"],
        password=sqlserver_config["password"],
        driver=sqlserver_config["driver"],
        db_schema=TEST_SCHEMA,
        auto_init=True,
    )
    _clean(store)
    yield store
    _clean(store)
    store.close()


def _clean(store):
    cursor = store.conn.cursor()
    cursor.execute(f"DELETE FROM [{store.db_schema}].[record_translations]")
    cursor.execute(f"DELETE FROM [{store.db_schema}].[records]")
    store.conn.commit()


@pytest.mark.integration
class TestSchemaExists:
    """Tests to verify the record store schema exists."""

    def test_tables_exist(self, sqlserver_store):
        """Test that both tables exist in the schema."""
        cursor = sqlserver_store.conn.cursor()

        for table in ("records", "record_translations"):
            cursor.execute("""
                SELECT 1 FROM sys.tables t
                JOIN sys.schemas s ON t.schema_id = s.schema_id
                WHERE t.name = ? AND s.name = ?
            """, (table, sqlserver_store.db_schema))
            assert cursor.fetchone() is not None, f"Table '{sqlserver_store.db_schema}.{table}' does not exist"


@pytest.mark.integration
class TestSqlServerRecordStore:
    """Round trips through SQL Server."""

    def test_save_load_translate(self, sqlserver_store):
        """Test records and translations are stored and loaded."""
        record = sqlserver_store.create("node", "article", "it-n1", "en", "Hello")
        record.fields["title"] = [{"value": "Hello"}]
        sqlserver_store.save(record)
        record.add_translation("fr")["title"] = [{"value": "Bonjour"}]
        sqlserver_store.save_translation(record, "fr")

        loaded = sqlserver_store.load_by_uuid("node", "it-n1")

        assert loaded.id == record.id
        assert loaded.fields["title"] == [{"value": "Hello"}]
        assert loaded.translations["fr"]["title"] == [{"value": "Bonjour"}]
        assert [r.uuid for r in sqlserver_store.load_by_properties("node", {"title": "Hello"})] == ["it-n1"]

        sqlserver_store.delete(loaded)
        assert sqlserver_store.load_by_uuid("node", "it-n1") is None

    def test_import_reaches_in_sync(self, sqlserver_store, settings, content_dir, make_export, write_export):
        """Test an imported source reads back InSync."""
        from recordsync.cli import build_services
        from recordsync.core.models import SyncStatus

        write_export(content_dir, make_export("it-n1", dependencies={"it-n2": "node"}))
        write_export(content_dir, make_export("it-n2"))
        services = build_services(settings, sqlserver_store)

        report = services.importer.import_from_source("default")

        assert report.ok, report.summary()
        assert services.factory.create_from_uuid("it-n1").status == SyncStatus.IN_SYNC
