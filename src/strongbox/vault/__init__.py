# Vault Module - Encrypted Credential Store
#
# Master password -> PBKDF2 + HKDF -> AES-256-GCM key (memory only)
# Collections persisted as encrypted envelopes in a key-value backend

from .auth_gate import AuthGate, AuthState
from .encrypted_store import EncryptedStore
from .encryption import EncryptionService, verify_master_password
from .exceptions import (
    AlreadyInitializedError,
    AuthenticationError,
    KeyDestroyedError,
    NotFoundError,
    StorageError,
    ValidationError,
    VaultError,
    VaultLockedError,
)
from .key_handle import SecretKey
from .models import Category, Credential, CredentialInput
from .storage import JsonFileStorage, MemoryStorage, SqliteStorage, StorageBackend
from .vault_manager import VaultManager

__all__ = [
    "AuthGate",
    "AuthState",
    "EncryptedStore",
    "EncryptionService",
    "verify_master_password",
    "SecretKey",
    "Category",
    "Credential",
    "CredentialInput",
    "StorageBackend",
    "MemoryStorage",
    "JsonFileStorage",
    "SqliteStorage",
    "VaultManager",
    # Errors
    "VaultError",
    "ValidationError",
    "AuthenticationError",
    "StorageError",
    "VaultLockedError",
    "NotFoundError",
    "KeyDestroyedError",
    "AlreadyInitializedError",
]
