"""Persistence of the merged snapshot between reconciliation cycles.

The snapshot saved after a reconciliation is what the next cycle diffs the
local tree against. Deletion markers in it are what let a file removed
locally be removed from servers that were offline at the time.
"""

import json
import logging
import os
import tempfile
from pathlib import Path

from ..exceptions import PersistenceError
from .snapshot import Snapshot, count_files, snapshot_from_data

logger = logging.getLogger(__name__)


class SnapshotStateManager:
    """Loads and saves the persisted snapshot document.

    The document is read and written wholesale as indented JSON.
    """

    def __init__(self, state_file: Path):
        """Initialize state manager.

        Args:
            state_file: Path of the JSON snapshot document
        """
        self.state_file = Path(state_file)

    def read_state(self) -> Snapshot:
        """Read the persisted snapshot.

        Returns:
            The stored snapshot

        Raises:
            PersistenceError: If the document is missing, unreadable or
                not a valid snapshot
        """
        try:
            with open(self.state_file, encoding="utf-8") as f:
                data = json.load(f)
            return snapshot_from_data(data)
        except (OSError, json.JSONDecodeError, ValueError) as e:
            raise PersistenceError(
                f"Cannot read snapshot state {self.state_file}: {e}"
            ) from e

    def load_state(self) -> Snapshot:
        """Load the persisted snapshot, falling back to an empty one.

        An unreadable document is treated as "no previous state": every
        local file then looks new and no deletions are reported.

        Returns:
            The stored snapshot, or ``{}``
        """
        if not self.state_file.exists():
            logger.debug(f"No snapshot state found at {self.state_file}")
            return {}

        try:
            state = self.read_state()
        except PersistenceError as e:
            logger.warning(f"Failed to load snapshot state, starting empty: {e}")
            return {}

        logger.debug(
            f"Loaded snapshot state with {count_files(state)} file(s) "
            f"from {self.state_file}"
        )
        return state

    def save_state(self, snapshot: Snapshot) -> None:
        """Save the merged snapshot.

        The document is written to a temporary file next to the target and
        renamed over it, so a crash never leaves a truncated state behind.

        Args:
            snapshot: Merged snapshot to persist

        Raises:
            PersistenceError: If the document cannot be written
        """
        directory = self.state_file.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.state_file.name}.", suffix=".tmp", dir=directory
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(snapshot, f, indent=2)
                os.replace(tmp_name, self.state_file)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except (OSError, TypeError) as e:
            raise PersistenceError(
                f"Cannot save snapshot state {self.state_file}: {e}"
            ) from e

        logger.debug(
            f"Saved snapshot state with {count_files(snapshot)} file(s) "
            f"to {self.state_file}"
        )

    def clear_state(self) -> bool:
        """Remove the persisted snapshot.

        Returns:
            True if state was cleared, False if no state existed

        Raises:
            PersistenceError: If the document cannot be removed
        """
        if self.state_file.exists():
            try:
                self.state_file.unlink()
            except OSError as e:
                raise PersistenceError(
                    f"Cannot remove snapshot state {self.state_file}: {e}"
                ) from e
            logger.debug(f"Cleared snapshot state at {self.state_file}")
            return True
        return False
