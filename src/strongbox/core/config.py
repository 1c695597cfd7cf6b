"""
Configuration for Strongbox.

Settings come from environment variables, optionally loaded from a .env
file in the working directory. The KDF cost is not configurable.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

STORAGE_BACKENDS = ("json", "sqlite", "memory")


@dataclass
class VaultSettings:
    """Application configuration."""

    # Storage
    DATA_DIR: Path = Path("./data")
    STORAGE_BACKEND: str = "json"
    AUDIT_DIR: Optional[Path] = None

    # API server
    HOST: str = "127.0.0.1"
    PORT: int = 8000

    def __post_init__(self):
        self.DATA_DIR = Path(self.DATA_DIR)
        if self.STORAGE_BACKEND not in STORAGE_BACKENDS:
            raise ValueError(
                f"Unknown storage backend '{self.STORAGE_BACKEND}' "
                f"(expected one of: {', '.join(STORAGE_BACKENDS)})"
            )
        if self.AUDIT_DIR is None:
            self.AUDIT_DIR = self.DATA_DIR / "audit_logs"
        self.AUDIT_DIR = Path(self.AUDIT_DIR)

    @classmethod
    def from_env(cls, dotenv_path: Optional[Path] = None) -> "VaultSettings":
        """Build settings from STRONGBOX_* environment variables."""
        load_dotenv(dotenv_path=dotenv_path)

        audit_dir = os.getenv("STRONGBOX_AUDIT_DIR")
        return cls(
            DATA_DIR=Path(os.getenv("STRONGBOX_DATA_DIR", "./data")),
            STORAGE_BACKEND=os.getenv("STRONGBOX_STORAGE_BACKEND", "json").lower(),
            AUDIT_DIR=Path(audit_dir) if audit_dir else None,
            HOST=os.getenv("STRONGBOX_HOST", "127.0.0.1"),
            PORT=int(os.getenv("STRONGBOX_PORT", "8000")),
        )

    @property
    def json_storage_path(self) -> Path:
        return self.DATA_DIR / "vault.json"

    @property
    def sqlite_storage_path(self) -> Path:
        return self.DATA_DIR / "vault.db"

    def create_backend(self):
        """Build the configured StorageBackend."""
        from ..vault.storage import JsonFileStorage, MemoryStorage, SqliteStorage

        if self.STORAGE_BACKEND == "sqlite":
            return SqliteStorage(self.sqlite_storage_path)
        if self.STORAGE_BACKEND == "memory":
            return MemoryStorage()
        return JsonFileStorage(self.json_storage_path)
