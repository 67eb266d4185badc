"""Core mirror engine: the polling and reconciliation loop."""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from ..config import MirrorConfig, ServerConfig
from ..exceptions import ConnectError, LocalIOError, MirrorError, StoreError
from ..store import RemoteStore, connect_store
from .connectivity import ConnectivityTracker
from .differ import flatten_deleted, merge_snapshots
from .operations import RemoteReconciler, add_stats, create_empty_stats
from .scanner import DirectoryScanner
from .snapshot import Snapshot
from .state import SnapshotStateManager

logger = logging.getLogger(__name__)

StoreFactory = Callable[[ServerConfig, float], RemoteStore]


@dataclass
class ServerSession:
    """A configured server and its connection for one cycle."""

    server: ServerConfig
    """Server configuration"""

    online: bool = False
    """Whether the connection attempt this cycle succeeded"""

    store: Optional[RemoteStore] = None
    """Live store handle, only set when online"""

    @property
    def address(self) -> str:
        """Server address."""
        return self.server.address


class MirrorEngine:
    """Keeps the local tree mirrored across intermittently reachable servers.

    Each cycle connects to every configured server. When at least one
    server has just come online, the local tree is reconciled against all
    online servers in three phases: deletions everywhere, then downloads
    everywhere, then uploads everywhere.
    """

    def __init__(
        self,
        config: MirrorConfig,
        connect: Optional[StoreFactory] = None,
        tracker: Optional[ConnectivityTracker] = None,
        state_manager: Optional[SnapshotStateManager] = None,
        scanner: Optional[DirectoryScanner] = None,
    ):
        """Initialize mirror engine.

        Args:
            config: Daemon configuration
            connect: Factory opening a store for a server (defaults to FTP)
            tracker: Connectivity tracker (a fresh one by default)
            state_manager: Snapshot persistence (defaults to ``config.db``)
            scanner: Local directory scanner
        """
        self.config = config
        self.connect = connect or connect_store
        self.tracker = tracker if tracker is not None else ConnectivityTracker()
        self.state_manager = state_manager or SnapshotStateManager(config.db)
        self.scanner = scanner or DirectoryScanner()

    def run_forever(self, max_cycles: Optional[int] = None) -> int:
        """Run cycles back to back, sleeping ``interval`` between them.

        Cycle failures caused by a :class:`MirrorError` are logged and the
        loop goes on; any other exception propagates.

        Args:
            max_cycles: Stop after this many cycles (run forever if None)

        Returns:
            Number of cycles run
        """
        cycles = 0
        while max_cycles is None or cycles < max_cycles:
            try:
                self.run_cycle()
            except MirrorError as e:
                logger.error(f"Cycle failed: {e}")
            cycles += 1

            if max_cycles is not None and cycles >= max_cycles:
                break
            time.sleep(self.config.interval_seconds)
        return cycles

    def run_cycle(self) -> dict:
        """Run one polling cycle.

        Connectivity is recorded and every connection closed even when
        reconciliation fails.

        Returns:
            Dictionary with cycle statistics

        Raises:
            MirrorError: If reconciliation could not run, e.g. the local
                tree is unreadable or the snapshot cannot be saved
        """
        logger.info("Monitoring servers...")
        stats = create_empty_stats()
        stats["synced"] = False

        previous = self.state_manager.load_state()
        sessions = self._connect_all()
        stats["online"] = sum(1 for s in sessions if s.online)

        try:
            transitioned = [
                s.address
                for s in sessions
                if self.tracker.is_transition(s.address, s.online)
            ]
            stats["transitioned"] = transitioned

            if transitioned:
                names = ", ".join(transitioned)
                logger.info(f"New server online ({names}), syncing...")
                self._reconcile(sessions, previous, stats)
                stats["synced"] = True
                self._log_summary(stats)
            else:
                logger.info("No servers transitioned from offline to online.")
        finally:
            for session in sessions:
                self.tracker.record(session.address, session.online)
                self._close(session)

        return stats

    def _connect_all(self) -> list[ServerSession]:
        sessions = []
        for server in self.config.servers:
            session = ServerSession(server=server)
            try:
                session.store = self.connect(server, self.config.timeout)
                session.online = True
                logger.info(f"Server online: {server.address}")
            except ConnectError as e:
                logger.warning(f"Server offline: {server.address} ({e})")
            sessions.append(session)
        return sessions

    def _close(self, session: ServerSession) -> None:
        if session.store is None:
            return
        try:
            session.store.close()
        except (StoreError, OSError) as e:
            logger.warning(f"Error closing connection to {session.address}: {e}")
        session.store = None

    def _scan_local(self) -> Snapshot:
        return self.scanner.scan(self.config.local)

    def _reconcile(
        self, sessions: list[ServerSession], previous: Snapshot, stats: dict
    ) -> None:
        local = self.config.local
        try:
            local.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise LocalIOError(
                f"Cannot create local directory {local}: {e}", local
            ) from e

        updated = merge_snapshots(previous, self._scan_local())
        deleted = flatten_deleted(updated)
        logger.info(f"Deleted files detected: {deleted}")

        reconcilers = [
            (s.server, RemoteReconciler(s.store, s.address, self.scanner.max_depth))
            for s in sessions
            if s.online and s.store is not None
        ]

        # Deletes finish on every server before any download starts
        for server, reconciler in reconcilers:
            logger.info(f"Deleting files on server: {server.address}")
            add_stats(stats, reconciler.delete_paths(server.remote_root, deleted))

        for server, reconciler in reconcilers:
            logger.info(f"Downloading from server: {server.address}")
            add_stats(
                stats,
                reconciler.download_tree(server.remote_root, local, exclude=deleted),
            )

        for server, reconciler in reconcilers:
            logger.info(f"Uploading to server: {server.address}")
            add_stats(stats, reconciler.upload_tree(local, server.remote_root))

        final = merge_snapshots(updated, self._scan_local())
        self.state_manager.save_state(final)
        logger.info("Synchronization completed.")

    def _log_summary(self, stats: dict) -> None:
        logger.info(
            f"Summary: {stats['deleted']} deleted, "
            f"{stats['downloads']} downloaded, "
            f"{stats['uploads']} uploaded, "
            f"{stats['skips']} skipped, "
            f"{stats['errors']} error(s)"
        )
