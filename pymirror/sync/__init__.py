"""Sync engine for pymirror - snapshot diffing and reconciliation."""

from .connectivity import ConnectivityTracker
from .differ import flatten_deleted, merge_snapshots
from .engine import MirrorEngine, ServerSession
from .operations import RemoteReconciler
from .scanner import DirectoryScanner, build_snapshot
from .snapshot import Marker, Snapshot, snapshot_from_data
from .state import SnapshotStateManager

__all__ = [
    "MirrorEngine",
    "ServerSession",
    "ConnectivityTracker",
    "RemoteReconciler",
    "DirectoryScanner",
    "build_snapshot",
    "merge_snapshots",
    "flatten_deleted",
    "Marker",
    "Snapshot",
    "snapshot_from_data",
    "SnapshotStateManager",
]
