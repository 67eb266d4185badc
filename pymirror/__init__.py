"""pymirror - keep a local directory mirrored across intermittent FTP servers."""

from .config import MirrorConfig, ServerConfig, load_config
from .exceptions import (
    ConfigError,
    ConnectError,
    ListError,
    LocalIOError,
    MirrorError,
    PersistenceError,
    StoreError,
    TransferError,
)
from .store import FTPStore, RemoteEntry, RemoteStore, connect_store

__version__ = "0.1.0"

__all__ = [
    "MirrorConfig",
    "ServerConfig",
    "load_config",
    "FTPStore",
    "RemoteEntry",
    "RemoteStore",
    "connect_store",
    "MirrorError",
    "ConfigError",
    "ConnectError",
    "ListError",
    "LocalIOError",
    "PersistenceError",
    "StoreError",
    "TransferError",
]
