"""Tests for snapshot merging and deletion extraction."""

import copy

from pymirror.sync.differ import flatten_deleted, merge_snapshots
from pymirror.sync.snapshot import Marker


class TestMergeSnapshots:
    """Tests for merge_snapshots."""

    def test_empty_snapshots(self):
        """Merging two empty snapshots yields an empty snapshot."""
        assert merge_snapshots({}, {}) == {}

    def test_new_files_are_marked_file(self):
        """Everything present now and unknown before is a file."""
        merged = merge_snapshots({}, {"a": Marker.FILE, "d": {"b": Marker.FILE}})
        assert merged == {"a": "file", "d": {"b": "file"}}

    def test_partial_directory_deletion(self):
        """A directory that still exists lists its missing children."""
        previous = {"a": "file", "b": {"c": "file"}}
        current = {"b": {}}

        merged = merge_snapshots(previous, current)

        assert merged == {"a": "deleted", "b": {"c": "deleted"}}
        assert flatten_deleted(merged) == ["a", "b/c"]

    def test_whole_subtree_deletion_collapses(self):
        """A missing directory becomes a single deleted marker."""
        merged = merge_snapshots({"d": {"x": "file", "y": "file"}}, {})

        assert merged == {"d": "deleted"}
        assert flatten_deleted(merged) == ["d"]

    def test_merge_is_idempotent_without_changes(self):
        """Merging twice with an unchanged tree gives the same result."""
        tree = {"a": Marker.FILE, "d": {"b": Marker.FILE, "e": {}}}

        first = merge_snapshots(tree, tree)
        second = merge_snapshots(first, tree)

        assert first == second == tree
        assert flatten_deleted(second) == []

    def test_deleted_marker_is_sticky_while_absent(self):
        """A deleted path stays deleted across cycles while still missing."""
        merged = merge_snapshots({"a": "deleted", "b": "file"}, {"b": Marker.FILE})
        assert merged == {"a": "deleted", "b": "file"}

    def test_recreated_file_overwrites_deleted_marker(self):
        """A deleted path that exists again becomes a live file."""
        merged = merge_snapshots({"a": "deleted"}, {"a": Marker.FILE})
        assert merged == {"a": "file"}

    def test_recreated_directory_overwrites_deleted_marker(self):
        """A deleted directory that exists again is merged from scratch."""
        merged = merge_snapshots({"d": "deleted"}, {"d": {"x": Marker.FILE}})
        assert merged == {"d": {"x": "file"}}

    def test_directory_replaced_by_file(self):
        """Directory -> file keeps the file and drops stale children."""
        merged = merge_snapshots({"k": {"x": "file"}}, {"k": Marker.FILE})

        assert merged == {"k": "file"}
        assert flatten_deleted(merged) == []

    def test_file_replaced_by_directory(self):
        """File -> directory merges against an empty subtree."""
        merged = merge_snapshots({"k": "file"}, {"k": {"x": Marker.FILE}})
        assert merged == {"k": {"x": "file"}}

    def test_nested_deleted_markers_survive(self):
        """Deleted markers deep in a live directory are kept."""
        previous = {"d": {"gone": "deleted", "kept": "file"}}
        merged = merge_snapshots(previous, {"d": {"kept": Marker.FILE}})
        assert merged == {"d": {"gone": "deleted", "kept": "file"}}

    def test_inputs_are_not_modified(self):
        """merge_snapshots never mutates its arguments."""
        previous = {"a": "file", "d": {"x": "file"}}
        current = {"d": {"y": Marker.FILE}}
        previous_copy = copy.deepcopy(previous)
        current_copy = copy.deepcopy(current)

        merged = merge_snapshots(previous, current)
        merged["d"]["z"] = Marker.FILE

        assert previous == previous_copy
        assert current == current_copy

    def test_key_order_previous_first(self):
        """Previous names keep their order; new names follow."""
        merged = merge_snapshots({"b": "file", "a": "file"}, {"c": "file", "a": "file"})
        assert list(merged) == ["b", "a", "c"]

    def test_values_are_markers(self):
        """Leaves in the merged snapshot are Marker members."""
        merged = merge_snapshots({"a": "file"}, {"b": "file"})
        assert merged["a"] is Marker.DELETED
        assert merged["b"] is Marker.FILE


class TestFlattenDeleted:
    """Tests for flatten_deleted."""

    def test_no_deletions(self):
        """A snapshot without deleted markers yields no paths."""
        assert flatten_deleted({"a": "file", "d": {"b": "file"}}) == []

    def test_base_path_prefix(self):
        """base_path is joined in front of every path."""
        assert flatten_deleted({"a": "deleted"}, "root/sub") == ["root/sub/a"]

    def test_deep_paths_in_order(self):
        """Paths come out depth-first in snapshot order."""
        snapshot = {
            "x": "deleted",
            "d": {"e": {"f": "deleted"}, "g": "file", "h": "deleted"},
            "z": "deleted",
        }
        assert flatten_deleted(snapshot) == ["x", "d/e/f", "d/h", "z"]

    def test_does_not_descend_into_deleted_directory(self):
        """A deleted directory contributes only its own path."""
        assert flatten_deleted({"d": "deleted"}) == ["d"]
