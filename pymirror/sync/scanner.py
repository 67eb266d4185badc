"""Directory scanning: build a snapshot of the local tree."""

import logging
import os
import stat
from pathlib import Path
from typing import Optional

from ..exceptions import LocalIOError
from .snapshot import Marker, Snapshot

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 64


def iter_directory(directory: Path) -> list[tuple[Path, os.stat_result]]:
    """List a local directory with stat results, sorted by name.

    Symlinks are followed. Entries that vanish or whose symlink target is
    missing are skipped.

    Args:
        directory: Directory to list

    Returns:
        List of (path, stat_result) tuples

    Raises:
        LocalIOError: If the directory or one of its entries cannot be read
    """
    try:
        items = sorted(directory.iterdir(), key=lambda p: p.name)
    except OSError as e:
        raise LocalIOError(f"Cannot list directory {directory}: {e}", directory) from e

    results = []
    for item in items:
        try:
            results.append((item, item.stat()))
        except FileNotFoundError:
            logger.debug(f"Skipping vanished or dangling entry: {item}")
        except OSError as e:
            raise LocalIOError(f"Cannot stat {item}: {e}", item) from e
    return results


def directory_key(st: os.stat_result) -> tuple[int, int]:
    """Identity of a directory on disk, used to detect symlink cycles."""
    return (st.st_dev, st.st_ino)


class DirectoryScanner:
    """Builds snapshots of local directory trees.

    Symbolic links are followed, but a directory that is already being
    walked higher up the same branch is skipped, so link cycles terminate.
    ``max_depth`` caps the nesting depth as a second bound.
    Entries that are neither regular files nor directories are skipped.

    Examples:
        >>> scanner = DirectoryScanner()
        >>> snapshot = scanner.scan(Path("/srv/mirror"))
        >>> snapshot
        {'notes.txt': <Marker.FILE: 'file'>, 'photos': {}}
    """

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH):
        """Initialize directory scanner.

        Args:
            max_depth: Maximum directory nesting to descend into
        """
        self.max_depth = max_depth

    def scan(self, root: Path) -> Snapshot:
        """Recursively scan ``root`` into a snapshot.

        Args:
            root: Directory to scan

        Returns:
            Snapshot of the tree; empty directories map to ``{}``

        Raises:
            LocalIOError: If any directory in the tree cannot be read
        """
        root = Path(root)
        try:
            root_stat = root.stat()
        except OSError as e:
            raise LocalIOError(f"Cannot read directory {root}: {e}", root) from e
        if not stat.S_ISDIR(root_stat.st_mode):
            raise LocalIOError(f"Not a directory: {root}", root)

        return self._scan(root, {directory_key(root_stat)}, 0)

    def _scan(self, directory: Path, ancestors: set, depth: int) -> Snapshot:
        snapshot: Snapshot = {}

        for item, st in iter_directory(directory):
            if stat.S_ISREG(st.st_mode):
                snapshot[item.name] = Marker.FILE
                continue
            if not stat.S_ISDIR(st.st_mode):
                logger.debug(f"Skipping special file: {item}")
                continue

            key = directory_key(st)
            if key in ancestors:
                logger.warning(f"Skipping symlink cycle at {item}")
                continue
            if depth + 1 > self.max_depth:
                logger.warning(f"Maximum depth {self.max_depth} reached at {item}")
                continue

            snapshot[item.name] = self._scan(item, ancestors | {key}, depth + 1)

        return snapshot


def build_snapshot(root: Path, max_depth: Optional[int] = None) -> Snapshot:
    """Build a snapshot of the tree under ``root``.

    Args:
        root: Directory to scan
        max_depth: Optional depth cap (defaults to ``DEFAULT_MAX_DEPTH``)

    Returns:
        Snapshot of the tree

    Raises:
        LocalIOError: If the tree cannot be read
    """
    scanner = DirectoryScanner(
        max_depth=DEFAULT_MAX_DEPTH if max_depth is None else max_depth
    )
    return scanner.scan(root)
