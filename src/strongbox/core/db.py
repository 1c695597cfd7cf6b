# Core Module - SQLite Connection Helper
#
# The SQLite storage backend opens a fresh connection per call. Each one
# goes through connect() so every connection gets:
#
#   - WAL journal mode (readers are not blocked by the single writer)
#   - busy_timeout so a second process waits instead of failing with
#     SQLITE_BUSY

import sqlite3
from pathlib import Path
from typing import Union

BUSY_TIMEOUT_MS = 5000


def connect(
    db_path: Union[str, Path],
    *,
    busy_timeout_ms: int = BUSY_TIMEOUT_MS,
) -> sqlite3.Connection:
    """Open a SQLite connection with WAL mode and a busy timeout.

    Args:
        db_path: Path to the database file.
        busy_timeout_ms: How long a locked database is retried.

    Raises:
        sqlite3.Error: Database cannot be opened.
    """
    conn = sqlite3.connect(str(db_path))
    try:
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
    except sqlite3.Error:
        conn.close()
        raise
    return conn
