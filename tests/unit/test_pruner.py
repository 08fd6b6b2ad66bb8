"""
Unit tests for pruning exports.
"""

from recordsync.sync.pruner import Pruner


class TestRemoveWithDependencies:
    """Tests for Pruner.remove_with_dependencies."""

    def test_shared_dependency_kept(self, tmp_path, make_export, write_export):
        """Test a dependency still needed by another export survives."""
        a = write_export(tmp_path, make_export("a", dependencies={"b": "node"}))
        b = write_export(tmp_path, make_export("b"))
        c = write_export(tmp_path, make_export("c", dependencies={"b": "node"}))

        deleted = Pruner().remove_with_dependencies(tmp_path, "a")

        assert deleted == [a]
        assert not a.exists()
        assert b.exists()
        assert c.exists()

    def test_orphaned_dependency_removed(self, tmp_path, make_export, write_export):
        """Test the last dependent takes its dependency with it."""
        write_export(tmp_path, make_export("a", dependencies={"b": "node"}))
        b = write_export(tmp_path, make_export("b"))
        c = write_export(tmp_path, make_export("c", dependencies={"b": "node"}))

        pruner = Pruner()
        pruner.remove_with_dependencies(tmp_path, "a")
        deleted = pruner.remove_with_dependencies(tmp_path, "c")

        assert deleted == [b, c]
        assert not b.exists()
        assert not c.exists()

    def test_needed_target_not_removed(self, tmp_path, make_export, write_export):
        """Test nothing is removed when another export depends on the target."""
        node_1 = write_export(tmp_path, make_export("node-1"))
        node_2 = write_export(tmp_path, make_export("node-2", dependencies={"node-1": "node"}))

        deleted = Pruner().remove_with_dependencies(tmp_path, "node-1")

        assert deleted == []
        assert node_1.exists()
        assert node_2.exists()

    def test_missing_target(self, tmp_path, make_export, write_export):
        """Test an unknown identity is a no-op."""
        a = write_export(tmp_path, make_export("a"))

        assert Pruner().remove_with_dependencies(tmp_path, "nope") == []
        assert a.exists()

    def test_file_asset_removed(self, tmp_path, make_export, write_export):
        """Test a file record's exported asset goes with its YAML."""
        f1 = write_export(tmp_path, make_export(
            "f1",
            record_type="file",
            bundle="file",
            default={"uri": [{"value": "/var/files/logo.png"}]},
        ))
        asset = f1.parent / "f1--logo.png"
        asset.write_bytes(b"png")
        n1 = write_export(tmp_path, make_export("n1", dependencies={"f1": "file"}))

        deleted = Pruner().remove_with_dependencies(tmp_path, "n1")

        assert deleted == [f1, asset, n1]
        assert not asset.exists()
