"""
Unit tests for record discovery and dependency ordering.
"""

import logging

from recordsync.discovery.finder import ExportsCache, RecordFinder
from recordsync.discovery.graph import DependencyGraph
from recordsync.core.collection import RecordCollection


class TestDependencyGraph:
    """Tests for DependencyGraph.sort."""

    def test_dependencies_come_first(self, make_export):
        """Test a record is ordered after what it depends on, whatever the names."""
        graph = DependencyGraph.from_records([
            make_export("a", dependencies={"z": "node"}),
            make_export("z"),
        ])

        assert graph.sort() == ["z", "a"]

    def test_diamond(self, make_export):
        """Test a shared dependency comes before both of its dependents."""
        graph = DependencyGraph.from_records([
            make_export("d", dependencies={"b": "node", "c": "node"}),
            make_export("b", dependencies={"a": "node"}),
            make_export("c", dependencies={"a": "node"}),
            make_export("a"),
        ])

        order = graph.sort()

        assert order[0] == "a"
        assert order[-1] == "d"
        assert set(order[1:3]) == {"b", "c"}

    def test_weights_follow_order(self, make_export):
        """Test node weights are positions in the sorted order."""
        graph = DependencyGraph.from_records([
            make_export("node-2", dependencies={"node-1": "node"}),
            make_export("node-1"),
        ])

        order = graph.sort()

        assert [graph.nodes[uuid].weight for uuid in order] == [0, 1]

    def test_ghost_nodes_are_sorted(self, make_export):
        """Test dependencies without a record still get a node."""
        graph = DependencyGraph.from_records([make_export("a", dependencies={"ghost": "node"})])

        assert "ghost" in graph
        assert graph.sort() == ["ghost", "a"]

    def test_cycles_terminate(self, make_export):
        """Test every member of a cycle appears exactly once."""
        graph = DependencyGraph.from_records([
            make_export("a", dependencies={"b": "node"}),
            make_export("b", dependencies={"c": "node"}),
            make_export("c", dependencies={"a": "node"}),
        ])

        order = graph.sort()

        assert sorted(order) == ["a", "b", "c"]

    def test_sort_is_deterministic(self, make_export):
        """Test insertion order does not change the result."""
        records = [
            make_export("x", dependencies={"m": "node"}),
            make_export("m"),
            make_export("q"),
            make_export("b", dependencies={"q": "node"}),
        ]

        first = DependencyGraph.from_records(records).sort()
        second = DependencyGraph.from_records(list(reversed(records))).sort()

        assert first == second


class TestRecordFinder:
    """Tests for RecordFinder.discover."""

    def test_missing_directory_is_empty(self, tmp_path):
        """Test a directory that does not exist yields nothing."""
        collection = RecordFinder().discover(tmp_path / "missing")

        assert isinstance(collection, RecordCollection)
        assert len(collection) == 0

    def test_discovers_in_dependency_order(self, tmp_path, make_export, write_export):
        """Test node-1 comes before node-2 when node-2 depends on it."""
        write_export(tmp_path, make_export("node-2", dependencies={"node-1": "node"}))
        write_export(tmp_path, make_export("node-1"))

        collection = RecordFinder().discover(tmp_path)

        assert collection.uuids() == ["node-1", "node-2"]

    def test_nested_directories(self, tmp_path, make_export, write_export):
        """Test records in any subdirectory are found."""
        write_export(tmp_path, make_export("t1", record_type="taxonomy_term", bundle="tags", default={}))
        write_export(tmp_path, make_export("n1", dependencies={"t1": "taxonomy_term"}))

        collection = RecordFinder().discover(tmp_path)

        assert collection.uuids() == ["t1", "n1"]
        assert collection.get("t1").path.endswith("taxonomy_term/tags/t1.yml")

    def test_ghost_dependencies_dropped(self, tmp_path, make_export, write_export):
        """Test dependencies without a file are not part of the result."""
        write_export(tmp_path, make_export("a", dependencies={"ghost": "node"}))

        assert RecordFinder().discover(tmp_path).uuids() == ["a"]

    def test_malformed_files_skipped(self, tmp_path, make_export, write_export, caplog):
        """Test unparsable files are skipped with a warning."""
        write_export(tmp_path, make_export("good"))
        (tmp_path / "broken.yml").write_text("_meta: [unclosed\n", encoding="utf-8")
        (tmp_path / "list.yml").write_text("- just\n- a list\n", encoding="utf-8")
        (tmp_path / "no_uuid.yml").write_text("_meta:\n  entity_type: node\n", encoding="utf-8")
        (tmp_path / "scalar_meta.yml").write_text("_meta: just a string\n", encoding="utf-8")
        (tmp_path / "list_depends.yml").write_text("_meta:\n  uuid: x\n  depends: [a, b]\n", encoding="utf-8")
        (tmp_path / "list_options.yml").write_text("_meta:\n  uuid: y\n  options: [a]\n", encoding="utf-8")
        (tmp_path / "list_default.yml").write_text("_meta:\n  uuid: z\ndefault: [1, 2]\n", encoding="utf-8")
        (tmp_path / "list_translations.yml").write_text("_meta:\n  uuid: w\ntranslations: [fr]\n", encoding="utf-8")

        with caplog.at_level(logging.WARNING):
            collection = RecordFinder().discover(tmp_path)

        assert collection.uuids() == ["good"]
        assert "broken.yml" in caplog.text
        assert "list.yml" in caplog.text
        assert "no_uuid.yml" in caplog.text
        for name in ("scalar_meta", "list_depends", "list_options", "list_default", "list_translations"):
            assert f"{name}.yml" in caplog.text

    def test_non_yml_files_ignored(self, tmp_path, make_export, write_export):
        """Test only .yml files are considered."""
        write_export(tmp_path, make_export("a"))
        (tmp_path / "notes.txt").write_text("hello", encoding="utf-8")
        (tmp_path / "a--asset.png").write_bytes(b"\x89PNG")

        assert RecordFinder().discover(tmp_path).uuids() == ["a"]

    def test_duplicate_identity_last_path_wins(self, tmp_path, make_export):
        """Test the file parsed last wins when two files share an identity."""
        first = make_export("dup", label="first")
        second = make_export("dup", label="second")
        (tmp_path / "a").mkdir()
        (tmp_path / "b").mkdir()
        (tmp_path / "a" / "dup.yml").write_text(first.to_yaml(), encoding="utf-8")
        (tmp_path / "b" / "dup.yml").write_text(second.to_yaml(), encoding="utf-8")

        collection = RecordFinder().discover(tmp_path)

        assert len(collection) == 1
        assert collection.get("dup").label == "second"

    def test_discover_with_dependencies(self, tmp_path, make_export, write_export):
        """Test one record is returned with its dependencies only."""
        write_export(tmp_path, make_export("a", dependencies={"b": "node"}))
        write_export(tmp_path, make_export("b"))
        write_export(tmp_path, make_export("c"))

        assert RecordFinder().discover_with_dependencies(tmp_path, "a").uuids() == ["b", "a"]


class TestExportsCache:
    """Tests for ExportsCache."""

    def test_set_get_clear(self):
        """Test entries live until cleared, per key or entirely."""
        cache = ExportsCache()
        cache.set("one", RecordCollection())
        cache.set("two", RecordCollection())

        assert cache.has("one")
        cache.clear("one")
        assert not cache.has("one")
        assert cache.get("two") is not None
        cache.clear()
        assert cache.get("two") is None
