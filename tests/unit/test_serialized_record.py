"""
Unit tests for serialized records, canonical helpers and record collections.
"""

import pytest

from recordsync.core.canonical import canonicalize, compute_content_hash, strip_keys
from recordsync.core.collection import RecordCollection
from recordsync.core.exceptions import InvalidInputError, RecordNotFoundError
from recordsync.core.models import SerializedRecord


class TestSerializedRecord:
    """Tests for SerializedRecord."""

    def test_to_dict_layout(self, make_export):
        """Test the export mapping has _meta, default and dependencies."""
        record = make_export("n1", dependencies={"t1": "taxonomy_term"})
        data = record.to_dict()

        assert list(data.keys()) == ["_meta", "default"]
        assert data["_meta"]["uuid"] == "n1"
        assert data["_meta"]["entity_type"] == "node"
        assert data["_meta"]["bundle"] == "article"
        assert data["_meta"]["depends"] == {"t1": "taxonomy_term"}
        assert "options" not in data["_meta"]
        assert data["default"] == {"title": [{"value": "n1"}]}

    def test_to_dict_keeps_non_empty_options_and_translations(self, make_export):
        """Test options and translations are written when present."""
        record = make_export(
            "n1",
            options={"file_assets": {"should_export": True}},
            translations={"fr": {"title": [{"value": "Bonjour"}]}},
        )
        data = record.to_dict()

        assert data["_meta"]["options"] == {"file_assets": {"should_export": True}}
        assert data["translations"]["fr"]["title"] == [{"value": "Bonjour"}]

    def test_yaml_round_trip(self, make_export):
        """Test a record survives YAML serialization."""
        record = make_export(
            "n1",
            dependencies={"t1": "taxonomy_term"},
            translations={"fr": {"title": [{"value": "Élan"}]}},
        )
        loaded = SerializedRecord.from_yaml(record.to_yaml())

        assert loaded == record

    def test_from_dict_rejects_non_mapping(self):
        """Test a YAML document that is not a mapping is rejected."""
        with pytest.raises(InvalidInputError):
            SerializedRecord.from_dict(["not", "a", "mapping"])

    @pytest.mark.parametrize("data", [
        {"_meta": "just a string"},
        {"_meta": {"uuid": "x", "depends": ["a", "b"]}},
        {"_meta": {"uuid": "x", "options": ["a"]}},
        {"_meta": {"uuid": "x"}, "default": [1, 2]},
        {"_meta": {"uuid": "x"}, "translations": ["fr"]},
    ])
    def test_from_dict_rejects_non_mapping_sections(self, data):
        """Test sections that must be mappings are rejected."""
        with pytest.raises(InvalidInputError):
            SerializedRecord.from_dict(data)

    def test_from_dict_empty_sections(self):
        """Test empty sections, whatever their YAML shape, read as empty."""
        record = SerializedRecord.from_dict({"_meta": {"uuid": "x", "depends": [], "options": None}, "default": []})

        assert record.dependencies == {}
        assert record.options == {}
        assert record.default == {}

    def test_self_dependency_rejected(self, make_export):
        """Test a record cannot depend on itself."""
        with pytest.raises(InvalidInputError):
            make_export("n1", dependencies={"n1": "node"})

        record = make_export("n2")
        with pytest.raises(InvalidInputError):
            record.add_dependency("n2", "node")

    def test_translation_keyed_by_default_langcode_rejected(self, make_export):
        """Test translations cannot repeat the default locale."""
        with pytest.raises(InvalidInputError):
            make_export("n1", translations={"en": {"title": [{"value": "Hi"}]}})

    def test_identity_is_immutable(self, make_export):
        """Test the uuid cannot be changed once set."""
        record = make_export("n1")
        record.uuid = "n1"

        with pytest.raises(InvalidInputError):
            record.uuid = "n2"

    def test_load_sets_actual_path(self, tmp_path, make_export):
        """Test the file location wins over the stored path."""
        record = make_export("n1")
        record.path = "/somewhere/else/n1.yml"
        path = tmp_path / "n1.yml"
        path.write_text(record.to_yaml(), encoding="utf-8")

        loaded = SerializedRecord.load(path)

        assert loaded.path == str(path)

    def test_content_by_langcode(self, make_export):
        """Test content() returns the default or a translation payload."""
        record = make_export("n1", translations={"fr": {"title": [{"value": "Salut"}]}})

        assert record.content() == record.default
        assert record.content("en") == record.default
        assert record.content("fr") == {"title": [{"value": "Salut"}]}
        assert record.content("de") == {}

    def test_file_asset_filename(self, make_export):
        """Test file assets are named after identity and stored basename."""
        record = make_export(
            "f1",
            record_type="file",
            bundle="file",
            default={"uri": [{"value": "/var/files/logo.png"}]},
        )

        assert record.is_file()
        assert record.file_uri() == "/var/files/logo.png"
        assert record.file_asset_filename() == "f1--logo.png"

    def test_copy_is_deep(self, make_export):
        """Test copies do not share payloads."""
        record = make_export("n1")
        copied = record.copy()
        copied.default["title"][0]["value"] = "changed"

        assert record.default["title"][0]["value"] == "n1"


class TestCanonical:
    """Tests for canonical helpers."""

    def test_canonicalize_sorts_keys(self):
        """Test key order does not change the canonical string."""
        assert canonicalize({"b": 1, "a": {"d": 2, "c": 3}}) == canonicalize({"a": {"c": 3, "d": 2}, "b": 1})

    def test_strip_keys_nested(self):
        """Test keys are removed at every level, including inside lists."""
        data = {
            "entity_id": 3,
            "default": {"tags": [{"target_uuid": "t1", "original_values": {"target_id": 7}}]},
        }

        stripped = strip_keys(data, ["entity_id", "original_values"])

        assert stripped == {"default": {"tags": [{"target_uuid": "t1"}]}}
        assert "entity_id" in data

    def test_content_hash_ignores_empty_options(self, make_export):
        """Test empty options and translations do not change the hash."""
        data = make_export("n1").to_dict()
        with_empty = dict(data)
        with_empty["translations"] = {}
        with_empty["_meta"] = dict(data["_meta"], options={})

        assert compute_content_hash(data) == compute_content_hash(with_empty)


class TestRecordCollection:
    """Tests for RecordCollection."""

    def test_rejects_non_records(self):
        """Test only SerializedRecords can be added."""
        collection = RecordCollection()

        with pytest.raises(InvalidInputError):
            collection.add({"uuid": "n1"})

    def test_set_rejects_mismatched_key(self, make_export):
        """Test records are stored under their own identity."""
        collection = RecordCollection()

        with pytest.raises(InvalidInputError):
            collection.set("other", make_export("n1"))

    def test_insertion_order_and_replace(self, make_export):
        """Test iteration keeps insertion order and re-adding replaces in place."""
        collection = RecordCollection([make_export("b"), make_export("a")])
        collection.add(make_export("b", label="B2"))

        assert collection.uuids() == ["b", "a"]
        assert collection.get("b").label == "B2"
        assert len(collection) == 2
        assert "a" in collection

    def test_with_dependencies_orders_dependencies_first(self, make_export):
        """Test the requested record comes last after its transitive dependencies."""
        collection = RecordCollection([
            make_export("a", dependencies={"b": "node"}),
            make_export("b", dependencies={"c": "node"}),
            make_export("c"),
            make_export("unrelated"),
        ])

        assert collection.with_dependencies("a").uuids() == ["c", "b", "a"]

    def test_with_dependencies_ignores_missing_and_cycles(self, make_export):
        """Test missing dependencies are skipped and cycles terminate."""
        collection = RecordCollection([
            make_export("a", dependencies={"b": "node", "ghost": "node"}),
            make_export("b", dependencies={"a": "node"}),
        ])

        assert collection.with_dependencies("a").uuids() == ["b", "a"]

    def test_with_dependencies_missing_root(self):
        """Test asking for an unknown identity raises."""
        with pytest.raises(RecordNotFoundError):
            RecordCollection().with_dependencies("nope")

    def test_diff_and_filter(self, make_export):
        """Test set difference and filtering keep order."""
        full = RecordCollection([make_export("a"), make_export("b"), make_export("c")])
        part = RecordCollection([make_export("b")])

        assert full.diff(part).uuids() == ["a", "c"]
        assert full.filter(lambda r: r.uuid != "a").uuids() == ["b", "c"]

    def test_dependents_and_roots(self, make_export):
        """Test direct dependents and root records."""
        collection = RecordCollection([
            make_export("b"),
            make_export("a", dependencies={"b": "node"}),
            make_export("c", dependencies={"b": "node"}),
        ])

        assert collection.dependents_of("b").uuids() == ["a", "c"]
        assert collection.root_records().uuids() == ["a", "c"]
