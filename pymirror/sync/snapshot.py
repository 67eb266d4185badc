"""Snapshot model: a directory tree as a nested mapping.

A snapshot maps each entry name to either a :class:`Marker` or a nested
snapshot for a subdirectory::

    {"notes.txt": "file", "old.txt": "deleted", "photos": {"a.jpg": "file"}}

``Marker`` is a ``str`` enum, so snapshots serialize to JSON as-is and
compare equal to plain dictionaries using the literal strings.
"""

from enum import Enum
from typing import Any, Union


class Marker(str, Enum):
    """Leaf markers stored in a snapshot."""

    FILE = "file"
    """Entry is a file present in the tree"""

    DELETED = "deleted"
    """Entry existed in a previous snapshot and is gone now"""


Entry = Union[Marker, "Snapshot"]
Snapshot = dict[str, Entry]


def is_directory(entry: Any) -> bool:
    """Return True if ``entry`` is a nested snapshot."""
    return isinstance(entry, dict)


def is_deleted(entry: Any) -> bool:
    """Return True if ``entry`` carries the deleted marker."""
    return not is_directory(entry) and entry == Marker.DELETED


def snapshot_from_data(data: Any) -> Snapshot:
    """Convert parsed JSON into a snapshot with proper markers.

    Args:
        data: Parsed JSON document

    Returns:
        Snapshot with ``Marker`` leaves

    Raises:
        ValueError: If the document is not a valid snapshot
    """
    if not isinstance(data, dict):
        raise ValueError(f"Snapshot must be an object, got {type(data).__name__}")

    snapshot: Snapshot = {}
    for name, value in data.items():
        if isinstance(value, dict):
            snapshot[name] = snapshot_from_data(value)
        elif value in (Marker.FILE.value, Marker.DELETED.value):
            snapshot[name] = Marker(value)
        else:
            raise ValueError(f"Invalid snapshot value for {name!r}: {value!r}")
    return snapshot


def count_files(snapshot: Snapshot) -> int:
    """Count ``"file"`` leaves in a snapshot."""
    total = 0
    for entry in snapshot.values():
        if is_directory(entry):
            total += count_files(entry)
        elif entry == Marker.FILE:
            total += 1
    return total
