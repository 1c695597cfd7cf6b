# Vault - Host Storage Backends
#
# Flat key-value storage holding text values (base64 records and JSON
# envelopes). One backend instance is injected into AuthGate and every
# EncryptedStore; nothing here knows about encryption.
#
# Backends:
#   - MemoryStorage   (tests, ephemeral sessions; optional byte quota)
#   - JsonFileStorage (single JSON file, atomic replace, 0600 permissions)
#   - SqliteStorage   (key/value table, WAL mode)

import json
import os
import sqlite3
import tempfile
from contextlib import closing
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Union

from .exceptions import StorageError
from ..core import db


class StorageBackend:
    """Interface for flat key-value host storage."""

    def get_item(self, key: str) -> Optional[str]:
        """Return the stored text for key, or None if absent."""
        raise NotImplementedError

    def set_item(self, key: str, value: str) -> None:
        """Store text under key, replacing any previous value."""
        raise NotImplementedError

    def remove_item(self, key: str) -> None:
        """Delete key. Missing keys are ignored."""
        raise NotImplementedError

    def contains(self, key: str) -> bool:
        return self.get_item(key) is not None


class MemoryStorage(StorageBackend):
    """Dict-backed storage.

    Args:
        quota_bytes: Optional limit on the total UTF-8 size of all values.
            A write that would exceed it raises StorageError.
    """

    def __init__(self, quota_bytes: Optional[int] = None):
        self._items: Dict[str, str] = {}
        self.quota_bytes = quota_bytes

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self.quota_bytes is not None:
            used = sum(
                len(v.encode("utf-8")) for k, v in self._items.items() if k != key
            )
            if used + len(value.encode("utf-8")) > self.quota_bytes:
                raise StorageError(f"Storage quota exceeded writing '{key}'")
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self):
        return list(self._items.keys())


class JsonFileStorage(StorageBackend):
    """All items in one JSON object on disk.

    Every write rewrites the whole file through a temp file and os.replace,
    so a crash never leaves a half-written file behind.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise StorageError(f"Cannot read storage file {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"Storage file {self.path} is not a JSON object")
        return data

    def _write_all(self, items: Dict[str, str]) -> None:
        try:
            fd, tmp_path = tempfile.mkstemp(
                dir=str(self.path.parent), prefix=".tmp-", suffix=".json"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(items, f, indent=2)
                # Owner read/write only
                os.chmod(tmp_path, 0o600)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise StorageError(f"Cannot write storage file {self.path}: {e}") from e

    def get_item(self, key: str) -> Optional[str]:
        value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        items = self._read_all()
        items[key] = value
        self._write_all(items)

    def remove_item(self, key: str) -> None:
        items = self._read_all()
        if key in items:
            del items[key]
            self._write_all(items)


class SqliteStorage(StorageBackend):
    """SQLite key/value table.

    Connections are opened per call through core.db.connect (WAL journal
    mode, busy timeout), then closed.
    """

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_database()

    def _connect(self) -> sqlite3.Connection:
        return db.connect(self.db_path)

    def _init_database(self):
        try:
            with closing(self._connect()) as conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS vault_storage (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        updated_at TEXT NOT NULL
                    )
                """)
                conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open storage database {self.db_path}: {e}") from e

    def get_item(self, key: str) -> Optional[str]:
        try:
            with closing(self._connect()) as conn:
                row = conn.execute(
                    "SELECT value FROM vault_storage WHERE key = ?", (key,)
                ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot read '{key}': {e}") from e
        if row is None:
            return None
        return row[0]

    def set_item(self, key: str, value: str) -> None:
        now = datetime.now(timezone.utc).isoformat()
        try:
            with closing(self._connect()) as conn:
                conn.execute(
                    """INSERT INTO vault_storage (key, value, updated_at)
                       VALUES (?, ?, ?)
                       ON CONFLICT(key) DO UPDATE SET
                           value = excluded.value,
                           updated_at = excluded.updated_at""",
                    (key, value, now),
                )
                conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot write '{key}': {e}") from e

    def remove_item(self, key: str) -> None:
        try:
            with closing(self._connect()) as conn:
                conn.execute("DELETE FROM vault_storage WHERE key = ?", (key,))
                conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot delete '{key}': {e}") from e
