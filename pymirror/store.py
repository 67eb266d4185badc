"""Remote store clients.

``RemoteStore`` is the capability set the reconciliation engine needs from a
remote file store. ``FTPStore`` implements it on top of :mod:`ftplib`.
"""

from __future__ import annotations

import ftplib
import logging
import posixpath
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .config import DEFAULT_TIMEOUT, ServerConfig
from .exceptions import ConnectError, ListError, StoreError, TransferError

logger = logging.getLogger(__name__)

# Reply codes meaning "command not implemented/understood"
_UNSUPPORTED_CODES = ("500", "501", "502", "504")

# Reply and listing text that is not valid UTF-8 fails to decode
_FTP_ERRORS = ftplib.all_errors + (UnicodeError,)


@dataclass(frozen=True)
class RemoteEntry:
    """One entry of a remote directory listing."""

    name: str
    """Entry name (no path components)"""

    is_directory: bool
    """True if the entry is a directory"""


class RemoteStore(ABC):
    """Abstract remote file store.

    All paths are absolute POSIX paths on the remote side. Implementations
    wrap their transport errors in :class:`~pymirror.exceptions.StoreError`
    subclasses.
    """

    @abstractmethod
    def list(self, path: str) -> list[RemoteEntry]:
        """List a remote directory.

        Raises:
            ListError: If the directory cannot be listed
        """

    @abstractmethod
    def download_to(self, local_path: Path, remote_path: str) -> None:
        """Download a remote file to a local path.

        Raises:
            TransferError: If the transfer fails
        """

    @abstractmethod
    def upload_from(self, local_path: Path, remote_path: str) -> None:
        """Upload a local file to a remote path.

        Raises:
            TransferError: If the transfer fails
        """

    @abstractmethod
    def size(self, remote_path: str) -> Optional[int]:
        """Return the size of a remote file, or None if it does not exist."""

    @abstractmethod
    def ensure_dir(self, remote_path: str) -> None:
        """Create a remote directory and any missing parents."""

    @abstractmethod
    def remove(self, remote_path: str) -> None:
        """Remove a single remote file."""

    @abstractmethod
    def remove_dir(self, remote_path: str) -> None:
        """Remove a remote directory and everything below it."""

    @abstractmethod
    def close(self) -> None:
        """Close the connection."""


class FTPStore(RemoteStore):
    """RemoteStore backed by an ftplib connection."""

    def __init__(self, ftp: ftplib.FTP, address: str = ""):
        """Wrap an already logged-in FTP connection.

        Args:
            ftp: Connected and logged-in ftplib client
            address: Server address, used in log messages
        """
        self._ftp = ftp
        self.address = address
        self._use_mlsd = True

    def list(self, path: str) -> list[RemoteEntry]:
        """List a remote directory using MLSD, falling back to LIST."""
        if self._use_mlsd:
            try:
                return self._list_mlsd(path)
            except ftplib.error_perm as e:
                if not str(e).startswith(_UNSUPPORTED_CODES):
                    raise ListError(f"Cannot list {path}: {e}") from e
                logger.debug(f"{self.address}: MLSD unsupported, using LIST")
                self._use_mlsd = False
            except _FTP_ERRORS as e:
                raise ListError(f"Cannot list {path}: {e}") from e

        try:
            lines: list[str] = []
            self._ftp.retrlines(f"LIST {path}", lines.append)
        except _FTP_ERRORS as e:
            raise ListError(f"Cannot list {path}: {e}") from e
        return parse_list_lines(lines)

    def _list_mlsd(self, path: str) -> list[RemoteEntry]:
        entries = []
        for name, facts in self._ftp.mlsd(path, facts=["type"]):
            entry_type = facts.get("type", "").lower()
            if entry_type in ("cdir", "pdir") or name in (".", ".."):
                continue
            entries.append(RemoteEntry(name=name, is_directory=entry_type == "dir"))
        return entries

    def download_to(self, local_path: Path, remote_path: str) -> None:
        local_path = Path(local_path)
        try:
            with open(local_path, "wb") as f:
                self._ftp.retrbinary(f"RETR {remote_path}", f.write)
        except _FTP_ERRORS as e:
            # No partial files are left behind
            try:
                local_path.unlink(missing_ok=True)
            except OSError:
                logger.warning(f"Could not remove partial download {local_path}")
            raise TransferError(f"Download of {remote_path} failed: {e}") from e

    def upload_from(self, local_path: Path, remote_path: str) -> None:
        try:
            with open(local_path, "rb") as f:
                self._ftp.storbinary(f"STOR {remote_path}", f)
        except _FTP_ERRORS as e:
            raise TransferError(f"Upload of {remote_path} failed: {e}") from e

    def size(self, remote_path: str) -> Optional[int]:
        try:
            self._ftp.voidcmd("TYPE I")
            return self._ftp.size(remote_path)
        except _FTP_ERRORS:
            return None

    def ensure_dir(self, remote_path: str) -> None:
        """Create ``remote_path`` component by component."""
        try:
            self._ftp.cwd("/")
            for part in remote_path.split("/"):
                if not part:
                    continue
                try:
                    self._ftp.cwd(part)
                except ftplib.error_perm:
                    self._ftp.mkd(part)
                    self._ftp.cwd(part)
            self._ftp.cwd("/")
        except _FTP_ERRORS as e:
            raise StoreError(f"Cannot create directory {remote_path}: {e}") from e

    def remove(self, remote_path: str) -> None:
        try:
            self._ftp.delete(remote_path)
        except _FTP_ERRORS as e:
            raise StoreError(f"Cannot remove {remote_path}: {e}") from e

    def remove_dir(self, remote_path: str) -> None:
        for entry in self.list(remote_path):
            child = posixpath.join(remote_path, entry.name)
            if entry.is_directory:
                self.remove_dir(child)
            else:
                self.remove(child)
        try:
            self._ftp.rmd(remote_path)
        except _FTP_ERRORS as e:
            raise StoreError(f"Cannot remove directory {remote_path}: {e}") from e

    def close(self) -> None:
        try:
            self._ftp.quit()
        except _FTP_ERRORS:
            self._ftp.close()


def parse_list_lines(lines: list[str]) -> list[RemoteEntry]:
    """Parse Unix-style ``LIST`` output into entries.

    Lines that do not look like ``ls -l`` output are skipped.

    Args:
        lines: Raw lines returned by the LIST command

    Returns:
        Parsed entries, without ``.`` and ``..``
    """
    entries = []
    for line in lines:
        parts = line.split(None, 8)
        if len(parts) < 9:
            continue
        mode, name = parts[0], parts[8]
        if mode.startswith("l"):
            # Symlink: "name -> target"
            name = name.split(" -> ", 1)[0]
        if name in (".", ".."):
            continue
        entries.append(RemoteEntry(name=name, is_directory=mode.startswith("d")))
    return entries


def connect_store(server: ServerConfig, timeout: float = DEFAULT_TIMEOUT) -> FTPStore:
    """Open a fresh, logged-in connection to a server.

    Args:
        server: Server to connect to
        timeout: Socket timeout in seconds, applied to every later call

    Returns:
        Connected FTPStore

    Raises:
        ConnectError: If the server is unreachable or rejects the login
    """
    ftp_class = ftplib.FTP_TLS if server.secure else ftplib.FTP
    ftp = ftp_class(timeout=timeout)
    try:
        ftp.connect(server.host, server.port)
        ftp.login(server.user, server.password)
        if server.secure:
            ftp.prot_p()
    except _FTP_ERRORS as e:
        ftp.close()
        raise ConnectError(f"Cannot connect to {server.address}: {e}") from e
    return FTPStore(ftp, address=server.address)
