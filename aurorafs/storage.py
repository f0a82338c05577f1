"""
Persistence Module

Best-effort persistence of the tree and identity lists:
- A key -> text storage backend (in-memory by default)
- JSON snapshots bound to fixed storage keys
- A debounced writer that coalesces bursts of changes

A crash before the debounce fires loses at most the last burst.

Author: YSNRFD
Version: 1.0.0
"""

import json
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, List

from aurorafs.logger import get_logger


class StorageBackend(ABC):
    """A flat key -> text store."""

    @abstractmethod
    def load(self, key: str) -> Optional[str]:
        """Return the stored text, or None when absent."""

    @abstractmethod
    def save(self, key: str, value: str) -> None:
        """Store text under a key."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete a key if present."""


class MemoryStorage(StorageBackend):
    """Process-local storage, the default backend."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def load(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def save(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._data)


class JsonFileStorage(StorageBackend):
    """
    All keys in one JSON object on disk.

    An unreadable file counts as empty; the next save replaces it.
    """

    def __init__(self, path: str):
        self._path = Path(path)
        self._lock = threading.Lock()
        self._logger = get_logger('storage')

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            with open(self._path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            self._logger.warning(
                "Storage file unreadable, starting empty",
                context={'path': str(self._path), 'error': str(e)}
            )
            return {}
        if not isinstance(data, dict):
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _write(self, data: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + '.tmp')
        with open(tmp, 'w', encoding='utf-8') as f:
            json.dump(data, f)
        tmp.replace(self._path)

    def load(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read().get(key)

    def save(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def remove(self, key: str) -> None:
        with self._lock:
            data = self._read()
            if data.pop(key, None) is not None:
                self._write(data)


@dataclass
class Snapshot:
    """Raw persisted state, before migration."""
    tree: Optional[dict[str, Any]] = None
    users: Optional[List[dict[str, Any]]] = None
    groups: Optional[List[dict[str, Any]]] = None
    version: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return self.tree is None and self.users is None and self.groups is None


class SnapshotStore:
    """
    Reads and writes snapshots under fixed storage keys.

    Unreadable entries are logged and treated as missing.
    """

    def __init__(
        self,
        backend: StorageBackend,
        tree_key: str = 'aurora-filesystem',
        users_key: str = 'aurora-users',
        groups_key: str = 'aurora-groups',
        version_key: str = 'aurora-version'
    ):
        self._backend = backend
        self._tree_key = tree_key
        self._users_key = users_key
        self._groups_key = groups_key
        self._version_key = version_key
        self._logger = get_logger('storage')

    @property
    def backend(self) -> StorageBackend:
        return self._backend

    def _load_json(self, key: str, expected: type) -> Any:
        raw = self._backend.load(key)
        if raw is None:
            return None
        try:
            value = json.loads(raw)
        except json.JSONDecodeError as e:
            self._logger.warning(
                "Stored data is not valid JSON, ignoring it",
                context={'key': key, 'error': str(e)}
            )
            return None
        if not isinstance(value, expected):
            self._logger.warning(
                "Stored data has an unexpected shape, ignoring it",
                context={'key': key, 'type': type(value).__name__}
            )
            return None
        return value

    def load(self) -> Snapshot:
        return Snapshot(
            tree=self._load_json(self._tree_key, dict),
            users=self._load_json(self._users_key, list),
            groups=self._load_json(self._groups_key, list),
            version=self._load_json(self._version_key, int),
        )

    def save(self, snapshot: Snapshot) -> None:
        """Write every present part of a snapshot."""
        try:
            if snapshot.tree is not None:
                self._backend.save(self._tree_key, json.dumps(snapshot.tree))
            if snapshot.users is not None:
                self._backend.save(self._users_key, json.dumps(snapshot.users))
            if snapshot.groups is not None:
                self._backend.save(self._groups_key, json.dumps(snapshot.groups))
            if snapshot.version is not None:
                self._backend.save(self._version_key, json.dumps(snapshot.version))
        except (TypeError, ValueError, OSError) as e:
            self._logger.warning("Failed to save snapshot", context={'error': str(e)})

    def clear(self) -> None:
        for key in (self._tree_key, self._users_key, self._groups_key, self._version_key):
            self._backend.remove(key)


class DebouncedWriter:
    """
    Coalesces saves until ``delay`` seconds pass without a new one.

    Example:
        >>> writer = DebouncedWriter(1.0, store.save)
        >>> writer.schedule(snapshot)   # restarts the timer
        >>> writer.flush()              # write now
    """

    def __init__(self, delay: float, write: Callable[[Any], None]):
        self._delay = delay
        self._write = write
        self._timer: Optional[threading.Timer] = None
        self._pending: Any = None
        self._has_pending = False
        self._lock = threading.Lock()
        self._logger = get_logger('storage')

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._has_pending

    def schedule(self, payload: Any) -> None:
        """Replace the pending payload and restart the quiet period."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._pending = payload
            self._has_pending = True
            if self._delay <= 0:
                self._timer = None
            else:
                self._timer = threading.Timer(self._delay, self.flush)
                self._timer.daemon = True
                self._timer.start()
        if self._delay <= 0:
            self.flush()

    def flush(self) -> bool:
        """
        Write the pending payload now.

        Returns:
            True if something was written
        """
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            if not self._has_pending:
                return False
            payload = self._pending
            self._pending = None
            self._has_pending = False

        try:
            self._write(payload)
        except Exception as e:
            # Persistence is best-effort; the in-memory model stays authoritative.
            self._logger.warning("Debounced save failed", context={'error': str(e)})
            return False
        return True

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._pending = None
            self._has_pending = False
