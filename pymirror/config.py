"""Configuration loading for pymirror.

The daemon is configured by a single JSON document listing the remote
servers to mirror, the local root directory, the path of the persisted
snapshot and the polling interval.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "config.json"
DEFAULT_FTP_PORT = 21
DEFAULT_TIMEOUT = 30.0
DEFAULT_USER = "anonymous"
DEFAULT_PASSWORD = "anonymous"


@dataclass
class ServerConfig:
    """One remote store to keep mirrored."""

    address: str
    """Network address as ``host:port`` (port defaults to 21)"""

    folder: str = ""
    """Remote root folder, normalized without leading/trailing slashes"""

    user: str = DEFAULT_USER
    """Login user"""

    password: str = DEFAULT_PASSWORD
    """Login password"""

    secure: bool = False
    """Use explicit FTP over TLS"""

    def __post_init__(self):
        """Normalize the address and folder."""
        self.address = str(self.address).strip()
        if not self.address:
            raise ConfigError("Server address must not be empty")
        self.folder = str(self.folder or "").strip("/")
        if not isinstance(self.secure, bool):
            raise ConfigError(
                f"'secure' must be true or false for {self.address}: {self.secure!r}"
            )
        # Validate the port eagerly so bad configs fail at startup
        _ = self.port

    @property
    def host(self) -> str:
        """Host part of the address."""
        if ":" not in self.address:
            return self.address
        return self.address.rpartition(":")[0]

    @property
    def port(self) -> int:
        """Port part of the address."""
        if ":" not in self.address:
            return DEFAULT_FTP_PORT
        _, _, port = self.address.rpartition(":")
        try:
            return int(port)
        except ValueError as e:
            raise ConfigError(f"Invalid port in server address: {self.address}") from e

    @property
    def remote_root(self) -> str:
        """Absolute remote path of the mirrored folder."""
        return f"/{self.folder}" if self.folder else "/"

    @classmethod
    def from_dict(cls, data: dict) -> "ServerConfig":
        """Create a ServerConfig from a dictionary.

        Args:
            data: Dictionary with at least an ``address`` key

        Returns:
            ServerConfig instance

        Raises:
            ConfigError: If the entry is malformed
        """
        if not isinstance(data, dict):
            raise ConfigError(f"Server entry must be an object, got: {data!r}")
        if "address" not in data:
            raise ConfigError(f"Server entry is missing 'address': {data!r}")
        return cls(
            address=data["address"],
            folder=data.get("folder", ""),
            user=data.get("user", DEFAULT_USER),
            password=data.get("password", DEFAULT_PASSWORD),
            secure=data.get("secure", False),
        )


@dataclass
class MirrorConfig:
    """Complete daemon configuration."""

    local: Path
    """Local root directory to mirror"""

    db: Path
    """Path of the persisted snapshot document"""

    interval: int
    """Milliseconds to wait between polling cycles"""

    servers: list[ServerConfig] = field(default_factory=list)
    """Remote stores, in the order they are contacted"""

    timeout: float = DEFAULT_TIMEOUT
    """Socket timeout in seconds for every remote store call"""

    def __post_init__(self):
        """Normalize paths and validate numbers."""
        self.local = Path(self.local)
        self.db = Path(self.db)
        if self.interval < 0:
            raise ConfigError(f"Interval must not be negative: {self.interval}")
        if self.timeout <= 0:
            raise ConfigError(f"Timeout must be positive: {self.timeout}")

    @property
    def interval_seconds(self) -> float:
        """Polling interval in seconds."""
        return self.interval / 1000.0

    @classmethod
    def from_dict(cls, data: Any, base_dir: Optional[Path] = None) -> "MirrorConfig":
        """Create a MirrorConfig from a parsed JSON document.

        Args:
            data: Parsed configuration document
            base_dir: Directory relative ``local`` and ``db`` paths are
                resolved against (defaults to the working directory)

        Returns:
            MirrorConfig instance

        Raises:
            ConfigError: If a required key is missing or has the wrong type
        """
        if not isinstance(data, dict):
            raise ConfigError("Configuration must be a JSON object")

        missing = [k for k in ("servers", "local", "db", "interval") if k not in data]
        if missing:
            raise ConfigError(f"Missing configuration keys: {', '.join(missing)}")

        servers = data["servers"]
        if not isinstance(servers, list):
            raise ConfigError("'servers' must be a list")

        try:
            interval = int(data["interval"])
            timeout = float(data.get("timeout", DEFAULT_TIMEOUT))
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid number in configuration: {e}") from e

        local = Path(data["local"]).expanduser()
        db = Path(data["db"]).expanduser()
        if base_dir is not None:
            local = base_dir / local
            db = base_dir / db

        return cls(
            local=local,
            db=db,
            interval=interval,
            servers=[ServerConfig.from_dict(s) for s in servers],
            timeout=timeout,
        )


def load_config(path: Path) -> MirrorConfig:
    """Load the daemon configuration from a JSON file.

    Relative ``local`` and ``db`` paths are resolved against the directory
    containing the configuration file.

    Args:
        path: Path to the JSON configuration file

    Returns:
        Parsed configuration

    Raises:
        ConfigError: If the file cannot be read or is invalid
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read configuration file {path}: {e}") from e

    config = MirrorConfig.from_dict(data, base_dir=path.parent)
    logger.debug(
        f"Loaded configuration with {len(config.servers)} server(s) from {path}"
    )
    return config
