"""Snapshot diffing: detect deletions between two snapshots."""

import posixpath
from typing import Optional

from .snapshot import Entry, Marker, Snapshot, is_deleted, is_directory


def merge_snapshots(previous: Snapshot, current: Snapshot) -> Snapshot:
    """Merge a previous snapshot with the current tree.

    Rules:

    - A name in ``previous`` but missing from ``current`` becomes
      ``"deleted"``. A missing directory collapses to that single marker.
    - A name present in ``current`` is ``"file"`` or a recursively merged
      directory, replacing whatever ``previous`` held for it. A name that
      was ``"deleted"`` and exists again is therefore live again.
    - Directory -> file: the name becomes ``"file"`` and the old children
      are dropped without deletion markers.
    - File -> directory: the directory is merged against an empty subtree.

    Neither input is modified. Names from ``previous`` come first in the
    result, followed by new names in ``current`` order.

    Args:
        previous: Snapshot persisted by the last reconciliation
        current: Snapshot of the tree as it is now

    Returns:
        New merged snapshot

    Examples:
        >>> merge_snapshots({"a": "file", "b": {"c": "file"}}, {"b": {}})
        {'a': <Marker.DELETED: 'deleted'>, 'b': {'c': <Marker.DELETED: 'deleted'>}}
    """
    merged: Snapshot = {}

    for name, prev_entry in previous.items():
        if name not in current:
            merged[name] = Marker.DELETED
        else:
            merged[name] = _merge_entry(prev_entry, current[name])

    for name, cur_entry in current.items():
        if name not in merged:
            merged[name] = _merge_entry(None, cur_entry)

    return merged


def _merge_entry(previous: Optional[Entry], current: Entry) -> Entry:
    if not is_directory(current):
        return Marker.FILE
    prev_children = previous if is_directory(previous) else {}
    return merge_snapshots(prev_children, current)


def flatten_deleted(snapshot: Snapshot, base_path: str = "") -> list[str]:
    """List the relative paths marked deleted in a merged snapshot.

    Deleted directories contribute one path; directories that still exist
    are searched for deleted children.

    Args:
        snapshot: Merged snapshot
        base_path: Prefix joined in front of every path

    Returns:
        Slash-joined relative paths in snapshot order
    """
    deleted: list[str] = []

    for name, entry in snapshot.items():
        path = posixpath.join(base_path, name) if base_path else name
        if is_deleted(entry):
            deleted.append(path)
        elif is_directory(entry):
            deleted.extend(flatten_deleted(entry, path))

    return deleted
