"""Per-server reachability tracking across polling cycles."""

import logging
from typing import Optional

logger = logging.getLogger(__name__)


class ConnectivityTracker:
    """Remembers whether each server was reachable in the last cycle.

    Reconciliation is triggered by offline -> online edges. A server that
    has never been observed counts as previously offline.
    """

    def __init__(self):
        self._states: dict[str, bool] = {}

    def last_state(self, address: str) -> Optional[bool]:
        """Return the recorded state, or None if never observed."""
        return self._states.get(address)

    def is_transition(self, address: str, online: bool) -> bool:
        """Return True if ``online`` is an offline -> online edge."""
        return online and not self._states.get(address, False)

    def record(self, address: str, online: bool) -> None:
        """Record the state observed for ``address`` this cycle."""
        previous = self._states.get(address)
        if previous is not None and previous != online:
            logger.debug(
                f"Server {address} went {'online' if online else 'offline'}"
            )
        self._states[address] = online
