"""Reconciliation operations against a single remote store."""

import logging
import posixpath
import stat
from collections.abc import Iterable
from pathlib import Path
from typing import Optional

from ..exceptions import LocalIOError, StoreError
from ..store import RemoteStore
from .scanner import DEFAULT_MAX_DEPTH, directory_key, iter_directory

logger = logging.getLogger(__name__)


def create_empty_stats() -> dict:
    """Create an empty statistics dictionary.

    Returns:
        Dictionary with zero counts for all stat categories
    """
    return {
        "deleted": 0,
        "downloads": 0,
        "uploads": 0,
        "skips": 0,
        "errors": 0,
    }


def add_stats(total: dict, other: dict) -> dict:
    """Add the counts of ``other`` into ``total`` in place and return it."""
    for key, value in other.items():
        total[key] = total.get(key, 0) + value
    return total


def _is_safe_name(name: str) -> bool:
    if not name or name in (".", ".."):
        return False
    return "/" not in name and "\\" not in name


class RemoteReconciler:
    """Delete, download and upload operations for one remote store.

    Every operation is idempotent. Errors are caught per path, logged and
    counted; they never abort the rest of the walk.
    """

    def __init__(
        self,
        store: RemoteStore,
        address: str = "",
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        """Initialize reconciler.

        Args:
            store: Connected remote store
            address: Server address, used in log messages
            max_depth: Maximum local directory nesting walked on upload
        """
        self.store = store
        self.address = address
        self.max_depth = max_depth

    def delete_paths(self, remote_root: str, paths: Iterable[str]) -> dict:
        """Propagate local deletions to the remote store.

        For each relative path the remote parent directory is listed. A
        missing target is already gone and is skipped; a directory is
        removed recursively, a file singly.

        Args:
            remote_root: Absolute remote root folder
            paths: Slash-joined paths relative to the root

        Returns:
            Dictionary with operation statistics
        """
        stats = create_empty_stats()

        for rel_path in paths:
            remote_path = posixpath.join(remote_root, rel_path)
            parent, name = posixpath.split(remote_path)

            try:
                entries = self.store.list(parent or "/")
                target = next((e for e in entries if e.name == name), None)

                if target is None:
                    logger.info(f"[{self.address}] Not found on server: {remote_path}")
                    stats["skips"] += 1
                    continue

                if target.is_directory:
                    self.store.remove_dir(remote_path)
                    logger.info(f"[{self.address}] Deleted remote dir: {remote_path}")
                else:
                    self.store.remove(remote_path)
                    logger.info(f"[{self.address}] Deleted remote file: {remote_path}")
                stats["deleted"] += 1
            except StoreError as e:
                logger.error(f"[{self.address}] Failed to delete {remote_path}: {e}")
                stats["errors"] += 1

        return stats

    def download_tree(
        self,
        remote_root: str,
        local_root: Path,
        exclude: Iterable[str] = (),
    ) -> dict:
        """Pull remote files that do not exist locally.

        Local files are never overwritten. Paths listed in ``exclude`` and
        everything below them are not downloaded.

        Args:
            remote_root: Absolute remote root folder
            local_root: Local root directory
            exclude: Relative paths that must not be downloaded

        Returns:
            Dictionary with operation statistics
        """
        stats = create_empty_stats()
        self._download_dir(remote_root, Path(local_root), "", set(exclude), stats)
        return stats

    def _download_dir(
        self,
        remote_dir: str,
        local_dir: Path,
        rel_dir: str,
        exclude: set[str],
        stats: dict,
    ) -> None:
        try:
            entries = self.store.list(remote_dir)
        except StoreError as e:
            logger.error(f"[{self.address}] Error listing {remote_dir}: {e}")
            stats["errors"] += 1
            return

        for entry in entries:
            if not _is_safe_name(entry.name):
                logger.warning(
                    f"[{self.address}] Ignoring unsafe remote name {entry.name!r} "
                    f"in {remote_dir}"
                )
                continue

            rel_path = posixpath.join(rel_dir, entry.name) if rel_dir else entry.name
            if rel_path in exclude:
                logger.info(f"[{self.address}] Skipping deleted path: {rel_path}")
                stats["skips"] += 1
                continue

            remote_path = posixpath.join(remote_dir, entry.name)
            local_path = local_dir / entry.name

            if entry.is_directory:
                try:
                    local_path.mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    logger.error(f"Error creating local directory {local_path}: {e}")
                    stats["errors"] += 1
                    continue
                self._download_dir(remote_path, local_path, rel_path, exclude, stats)
                continue

            if local_path.exists() or local_path.is_symlink():
                stats["skips"] += 1
                continue

            try:
                self.store.download_to(local_path, remote_path)
                logger.info(f"[{self.address}] Downloaded: {remote_path}")
                stats["downloads"] += 1
            except StoreError as e:
                logger.error(f"[{self.address}] Error downloading {remote_path}: {e}")
                stats["errors"] += 1

    def upload_tree(self, local_root: Path, remote_root: str) -> dict:
        """Push local files that the remote store does not have.

        A file is uploaded only if the remote size check reports nothing;
        a failing check counts as "does not exist". Remote directories are
        created as needed; a failure to create one is logged and its
        contents are still attempted.

        Args:
            local_root: Local root directory
            remote_root: Absolute remote root folder

        Returns:
            Dictionary with operation statistics
        """
        stats = create_empty_stats()
        local_root = Path(local_root)

        try:
            root_key = directory_key(local_root.stat())
        except OSError as e:
            logger.error(f"Cannot read local directory {local_root}: {e}")
            stats["errors"] += 1
            return stats

        self._upload_dir(local_root, remote_root, {root_key}, 0, stats)
        return stats

    def _upload_dir(
        self,
        local_dir: Path,
        remote_dir: str,
        ancestors: set,
        depth: int,
        stats: dict,
    ) -> None:
        try:
            items = iter_directory(local_dir)
        except LocalIOError as e:
            logger.error(f"Error reading local directory: {e}")
            stats["errors"] += 1
            return

        for item, st in items:
            remote_path = posixpath.join(remote_dir, item.name)

            if stat.S_ISDIR(st.st_mode):
                key = directory_key(st)
                if key in ancestors or depth + 1 > self.max_depth:
                    logger.warning(f"Not descending into {item}")
                    continue
                try:
                    self.store.ensure_dir(remote_path)
                except StoreError as e:
                    logger.error(
                        f"[{self.address}] Error ensuring remote directory "
                        f"{remote_path}: {e}"
                    )
                    stats["errors"] += 1
                self._upload_dir(item, remote_path, ancestors | {key}, depth + 1, stats)
                continue

            if not stat.S_ISREG(st.st_mode):
                logger.debug(f"Skipping special file: {item}")
                continue

            if self._remote_size(remote_path) is not None:
                stats["skips"] += 1
                continue

            try:
                self.store.upload_from(item, remote_path)
                logger.info(f"[{self.address}] Uploaded: {remote_path}")
                stats["uploads"] += 1
            except StoreError as e:
                logger.error(f"[{self.address}] Error uploading {remote_path}: {e}")
                stats["errors"] += 1

    def _remote_size(self, remote_path: str) -> Optional[int]:
        try:
            return self.store.size(remote_path)
        except StoreError as e:
            logger.debug(f"[{self.address}] Size check failed for {remote_path}: {e}")
            return None
