"""Shared fixtures for pymirror tests."""

from __future__ import annotations

import posixpath
import tempfile
from pathlib import Path
from typing import Optional

import pytest

from pymirror.exceptions import ListError, StoreError, TransferError
from pymirror.store import RemoteEntry, RemoteStore


class MemoryStore(RemoteStore):
    """In-memory RemoteStore recording every call."""

    def __init__(self, files: Optional[dict] = None, dirs=()):
        self.files: dict[str, bytes] = {}
        self.dirs: set[str] = {"/"}
        self.calls: list[tuple[str, str]] = []
        self.closed = False
        self.fail_list: set[str] = set()
        self.fail_download: set[str] = set()
        self.fail_upload: set[str] = set()
        self.fail_ensure_dir: set[str] = set()
        self.fail_remove: set[str] = set()
        self.fail_size = False
        for path in dirs:
            self._add_dir(path)
        for path, content in (files or {}).items():
            self._add_dir(posixpath.dirname(path))
            self.files[path] = content

    def _add_dir(self, path: str) -> None:
        while path not in ("", "/"):
            self.dirs.add(path)
            path = posixpath.dirname(path)

    def list(self, path: str) -> list:
        self.calls.append(("list", path))
        if path in self.fail_list or path not in self.dirs:
            raise ListError(f"Cannot list {path}")
        entries = [
            RemoteEntry(name=posixpath.basename(d), is_directory=True)
            for d in sorted(self.dirs)
            if d != "/" and posixpath.dirname(d) == path
        ]
        entries += [
            RemoteEntry(name=posixpath.basename(f), is_directory=False)
            for f in sorted(self.files)
            if posixpath.dirname(f) == path
        ]
        return entries

    def download_to(self, local_path: Path, remote_path: str) -> None:
        self.calls.append(("download", remote_path))
        if remote_path in self.fail_download or remote_path not in self.files:
            raise TransferError(f"Download of {remote_path} failed")
        Path(local_path).write_bytes(self.files[remote_path])

    def upload_from(self, local_path: Path, remote_path: str) -> None:
        self.calls.append(("upload", remote_path))
        if remote_path in self.fail_upload:
            raise TransferError(f"Upload of {remote_path} failed")
        self.files[remote_path] = Path(local_path).read_bytes()

    def size(self, remote_path: str) -> Optional[int]:
        self.calls.append(("size", remote_path))
        if self.fail_size:
            raise StoreError("SIZE not supported")
        content = self.files.get(remote_path)
        return None if content is None else len(content)

    def ensure_dir(self, remote_path: str) -> None:
        self.calls.append(("ensure_dir", remote_path))
        if remote_path in self.fail_ensure_dir:
            raise StoreError(f"Cannot create {remote_path}")
        self._add_dir(remote_path)

    def remove(self, remote_path: str) -> None:
        self.calls.append(("remove", remote_path))
        if remote_path in self.fail_remove or remote_path not in self.files:
            raise StoreError(f"Cannot remove {remote_path}")
        del self.files[remote_path]

    def remove_dir(self, remote_path: str) -> None:
        self.calls.append(("remove_dir", remote_path))
        if remote_path in self.fail_remove:
            raise StoreError(f"Cannot remove {remote_path}")
        prefix = remote_path + "/"
        self.files = {p: c for p, c in self.files.items() if not p.startswith(prefix)}
        self.dirs = {
            d for d in self.dirs if d != remote_path and not d.startswith(prefix)
        }

    def close(self) -> None:
        self.calls.append(("close", ""))
        self.closed = True

    def ops(self, name: str) -> list[str]:
        """Paths passed to every call of operation ``name``."""
        return [path for op, path in self.calls if op == name]


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def memory_store_class():
    """Provide the in-memory store class."""
    return MemoryStore
