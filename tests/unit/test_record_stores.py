"""
Unit tests for the memory and SQLite record stores and the store factory.
"""

import pytest

from recordsync.core.exceptions import RecordNotFoundError, RecordStoreError
from recordsync.store import (
    LanguageManager,
    MemoryRecordStore,
    SqliteRecordStore,
    create_language_manager,
    create_record_store,
    create_record_store_from_settings,
)


@pytest.fixture(params=["memory", "sqlite"])
def any_store(request, schema, tmp_path):
    """Each local backend, empty."""
    if request.param == "memory":
        store = MemoryRecordStore(schema)
    else:
        store = SqliteRecordStore(schema, tmp_path / "records.db")
    yield store
    store.close()


def _node(store, uuid, title, **extra):
    record = store.create("node", "article", uuid, "en", title)
    record.fields["title"] = [{"value": title}]
    record.fields.update(extra)
    return record


class TestRecordStores:
    """Behaviour shared by every local backend."""

    def test_save_assigns_id_and_loads(self, any_store):
        """Test a saved record can be loaded by id and identity."""
        record = any_store.save(_node(any_store, "n1", "Hello"))

        assert record.id is not None
        loaded = any_store.load("node", record.id)
        assert loaded.uuid == "n1"
        assert loaded.fields["title"] == [{"value": "Hello"}]
        assert any_store.load_by_uuid("node", "n1").id == record.id
        assert any_store.load_by_uuid("taxonomy_term", "n1") is None
        assert any_store.find_by_uuid("n1").record_type == "node"
        assert any_store.find_by_uuid("nope") is None

    def test_update_keeps_id(self, any_store):
        """Test saving an existing record updates it in place."""
        record = any_store.save(_node(any_store, "n1", "Hello"))
        record.fields["title"] = [{"value": "Changed"}]
        record.label = "Changed"
        any_store.save(record)

        loaded = any_store.load_by_uuid("node", "n1")
        assert loaded.id == record.id
        assert loaded.label == "Changed"
        assert loaded.fields["title"] == [{"value": "Changed"}]

    def test_translations(self, any_store):
        """Test translations are saved per langcode and survive default saves."""
        record = any_store.save(_node(any_store, "n1", "Hello"))
        record.add_translation("fr")["title"] = [{"value": "Bonjour"}]
        any_store.save_translation(record, "fr")
        any_store.save(record)

        loaded = any_store.load_by_uuid("node", "n1")
        assert loaded.translations == {"fr": {"title": [{"value": "Bonjour"}]}}
        assert loaded.get_values("title", "fr") == [{"value": "Bonjour"}]

    def test_translation_of_unsaved_record(self, any_store):
        """Test translations need a saved record."""
        record = _node(any_store, "n1", "Hello")
        record.add_translation("fr")

        with pytest.raises(RecordStoreError):
            any_store.save_translation(record, "fr")

    def test_load_by_properties(self, any_store):
        """Test metadata and attribute matching."""
        any_store.save(_node(any_store, "n1", "Hello", body=[{"value": "Text", "format": "basic"}]))
        any_store.save(_node(any_store, "n2", "World"))

        assert [r.uuid for r in any_store.load_by_properties("node", {"title": "World"})] == ["n2"]
        assert [r.uuid for r in any_store.load_by_properties("node", {"uuid": "n1"})] == ["n1"]
        assert [r.uuid for r in any_store.load_by_properties("node", {"body": "basic"})] == ["n1"]
        assert any_store.load_by_properties("node", {"body": "full"}) == []
        assert len(any_store.load_by_properties("node", {})) == 2

    def test_delete(self, any_store):
        """Test deleted records are gone."""
        record = any_store.save(_node(any_store, "n1", "Hello"))
        any_store.delete(record)

        assert any_store.load_by_uuid("node", "n1") is None

    def test_unknown_record_type(self, any_store):
        """Test records of unknown types cannot be created."""
        with pytest.raises(RecordNotFoundError):
            any_store.create("widget", "w", "w1", "en")


class TestMemoryRecordStore:
    """Tests specific to MemoryRecordStore."""

    def test_records_are_copied(self, store):
        """Test unsaved changes do not leak into the store."""
        record = store.save(_node(store, "n1", "Hello"))
        record.fields["title"][0]["value"] = "Unsaved"

        assert store.load_by_uuid("node", "n1").fields["title"] == [{"value": "Hello"}]
        assert store.count() == 1
        assert store.count("taxonomy_term") == 0


class TestSqliteRecordStore:
    """Tests specific to SqliteRecordStore."""

    def test_persists_across_connections(self, schema, tmp_path):
        """Test records survive closing the store."""
        db_path = tmp_path / "nested" / "records.db"
        with SqliteRecordStore(schema, db_path) as store:
            store.save(_node(store, "n1", "Hello"))

        with SqliteRecordStore(schema, db_path) as store:
            assert store.load_by_uuid("node", "n1").label == "Hello"


class TestStoreFactory:
    """Tests for the store factory functions."""

    def test_backends(self, schema, tmp_path):
        """Test backends are selected by name."""
        assert isinstance(create_record_store(schema, backend="memory"), MemoryRecordStore)
        store = create_record_store(schema, backend="SQLite", db_path=tmp_path / "x.db", administrator_id=7)
        assert isinstance(store, SqliteRecordStore)
        assert store.administrator_id() == 7
        store.close()

    def test_unknown_backend(self, schema):
        """Test an unknown backend raises ValueError."""
        with pytest.raises(ValueError):
            create_record_store(schema, backend="mongo")

    def test_from_settings(self, settings_factory, tmp_path, monkeypatch):
        """Test the store and its schema are built from settings."""
        monkeypatch.delenv("RECORDSYNC_STORE_BACKEND", raising=False)
        monkeypatch.delenv("RECORDSYNC_SQLITE_PATH", raising=False)
        settings = settings_factory(store={"backend": "sqlite", "sqlite": {"path": str(tmp_path / "s.db")}})

        store = create_record_store_from_settings(settings)

        assert isinstance(store, SqliteRecordStore)
        assert store.has_definition("node")
        assert store.get_definition("user").exportable is False
        store.close()

    def test_language_manager_from_settings(self, settings_factory):
        """Test languages are built from settings, default always known."""
        manager = create_language_manager(settings_factory(languages={"default": "de", "known": ["fr"]}))

        assert isinstance(manager, LanguageManager)
        assert manager.get_default_langcode() == "de"
        assert manager.known_langcodes() == ["de", "fr"]
        assert not manager.is_known("en")
