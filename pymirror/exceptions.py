"""Exceptions raised by pymirror."""


class MirrorError(Exception):
    """Base exception for all pymirror errors."""


class ConfigError(MirrorError):
    """Raised when the configuration is missing or invalid."""


class StoreError(MirrorError):
    """Base exception for remote store failures."""


class ConnectError(StoreError):
    """Raised when a remote store cannot be reached or logged into."""


class ListError(StoreError):
    """Raised when listing a remote directory fails."""


class TransferError(StoreError):
    """Raised when a single file transfer fails."""


class LocalIOError(MirrorError):
    """Raised when reading or writing the local tree fails."""

    def __init__(self, message: str, path: object = None):
        super().__init__(message)
        self.path = path


class PersistenceError(MirrorError):
    """Raised when the persisted snapshot cannot be read or written."""
