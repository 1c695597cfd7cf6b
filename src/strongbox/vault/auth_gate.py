# Vault - Auth Gate
#
# Master password -> live encryption key, or a rejected attempt.
#
# States: UNINITIALIZED -> {SETUP | LOCKED} -> UNLOCKED -> LOCKED
#
# Persisted (plaintext metadata, not secrets):
#   vault_salt  base64 of 16 random bytes
#   vault_hash  base64 of the 256-bit password verifier
#
# There is no recovery path: without the password the vault data is gone.

import asyncio
import hmac
import logging
from enum import Enum
from typing import Optional

from .encryption import EncryptionService, verify_master_password
from .exceptions import (
    AlreadyInitializedError,
    AuthenticationError,
    StorageError,
    ValidationError,
)
from .key_handle import SecretKey
from .storage import StorageBackend
from ..core.audit_log import get_audit_logger, EventType, EventSeverity

logger = logging.getLogger(__name__)

SALT_STORAGE_KEY = "vault_salt"
HASH_STORAGE_KEY = "vault_hash"


class AuthState(str, Enum):
    UNINITIALIZED = "uninitialized"
    SETUP = "setup"
    LOCKED = "locked"
    UNLOCKED = "unlocked"


class AuthGate:
    """
    Turns a master password into the session's encryption key.

    Security:
    - Verifier checked with a constant-time comparison
    - Verifier and key come from independent derivations
    - Key held only in memory and wiped on logout()
    - Failed attempts audited; the PBKDF2 cost is the brute-force throttle
    """

    def __init__(self, backend: StorageBackend):
        self.backend = backend
        self.state = AuthState.UNINITIALIZED
        self._key: Optional[SecretKey] = None
        self.failed_attempts = 0
        self.audit = get_audit_logger()

    @property
    def key(self) -> Optional[SecretKey]:
        """The live key while UNLOCKED, otherwise None."""
        return self._key

    @property
    def is_unlocked(self) -> bool:
        return self.state == AuthState.UNLOCKED and self._key is not None

    def has_auth_records(self) -> bool:
        return (
            self.backend.contains(SALT_STORAGE_KEY)
            and self.backend.contains(HASH_STORAGE_KEY)
        )

    def check(self) -> AuthState:
        """
        Startup check: both auth records present selects LOCKED,
        anything else selects SETUP.
        """
        self.state = AuthState.LOCKED if self.has_auth_records() else AuthState.SETUP
        logger.debug("Auth state after startup check: %s", self.state.value)
        return self.state

    async def setup(self, password: str, confirmation: str) -> SecretKey:
        """
        Create the vault's auth records and unlock.

        Args:
            password: New master password (min 8 characters)
            confirmation: Must equal password

        Returns:
            The live encryption key

        Raises:
            ValidationError: Short password or mismatched confirmation
            StorageError: Vault already initialized, or records not persisted
        """
        if self.state == AuthState.UNINITIALIZED:
            self.check()
        if self.state != AuthState.SETUP:
            raise AlreadyInitializedError("Vault already initialized. Log in instead.")

        try:
            verify_master_password(password, confirmation)
        except ValidationError as e:
            self.audit.log_event(
                event_type=EventType.VAULT_SETUP_REJECTED,
                severity=EventSeverity.INVESTIGATE,
                message=f"Vault setup rejected: {e}"
            )
            raise

        salt = EncryptionService.generate_salt()
        verifier = await asyncio.to_thread(
            EncryptionService.derive_password_verifier, password, salt
        )
        key_bytes = await asyncio.to_thread(EncryptionService.derive_key, password, salt)

        # Another setup may have finished while deriving; never overwrite its records
        if self.has_auth_records():
            if self.state == AuthState.SETUP:
                self.state = AuthState.LOCKED
            raise AlreadyInitializedError("Vault already initialized. Log in instead.")

        try:
            self.backend.set_item(SALT_STORAGE_KEY, EncryptionService.encode_for_storage(salt))
            self.backend.set_item(HASH_STORAGE_KEY, EncryptionService.encode_for_storage(verifier))
        except StorageError as e:
            self.audit.log_event(
                event_type=EventType.VAULT_ERROR,
                severity=EventSeverity.CRITICAL,
                message=f"Failed to persist auth records: {e}"
            )
            raise

        self._key = SecretKey(key_bytes)
        self.state = AuthState.UNLOCKED
        self.failed_attempts = 0

        self.audit.log_event(
            event_type=EventType.VAULT_CREATED,
            severity=EventSeverity.INFO,
            message="Vault initialized with master password"
        )

        return self._key

    def _read_auth_records(self):
        salt_b64 = self.backend.get_item(SALT_STORAGE_KEY)
        hash_b64 = self.backend.get_item(HASH_STORAGE_KEY)

        if not salt_b64 or not hash_b64:
            raise StorageError("Vault is not set up correctly: auth records missing")

        try:
            salt = EncryptionService.decode_from_storage(salt_b64)
            stored_verifier = EncryptionService.decode_from_storage(hash_b64)
        except ValueError:
            raise StorageError("Vault is not set up correctly: auth records unreadable") from None

        return salt, stored_verifier

    async def login(self, password: str) -> SecretKey:
        """
        Unlock with the master password.

        Returns:
            The live encryption key

        Raises:
            ValidationError: Empty password
            StorageError: Auth records missing or unreadable
            AuthenticationError: Wrong password (state stays LOCKED)
        """
        if not password:
            raise ValidationError("Please enter your master password.")

        try:
            salt, stored_verifier = self._read_auth_records()
        except StorageError as e:
            self.audit.log_event(
                event_type=EventType.VAULT_ERROR,
                severity=EventSeverity.CRITICAL,
                message=f"Vault login error: {e}"
            )
            raise

        # Re-login drops the previous session's key first
        if self._key is not None:
            self._key.destroy()
            self._key = None
        self.state = AuthState.LOCKED

        candidate = await asyncio.to_thread(
            EncryptionService.derive_password_verifier, password, salt
        )

        if not hmac.compare_digest(candidate, stored_verifier):
            self.failed_attempts += 1
            self.audit.log_event(
                event_type=EventType.VAULT_UNLOCK_FAILED,
                severity=EventSeverity.ALERT,
                message=f"Vault unlock failed: incorrect password (attempt {self.failed_attempts})"
            )
            raise AuthenticationError("Incorrect master password.")

        key_bytes = await asyncio.to_thread(EncryptionService.derive_key, password, salt)

        self._key = SecretKey(key_bytes)
        self.state = AuthState.UNLOCKED
        self.failed_attempts = 0

        self.audit.log_event(
            event_type=EventType.VAULT_UNLOCKED,
            severity=EventSeverity.INFO,
            message="Vault unlocked successfully"
        )

        return self._key

    def logout(self) -> None:
        """Wipe the in-memory key and return to LOCKED. Persisted data is untouched."""
        if self._key is not None:
            self._key.destroy()
            self._key = None

        if self.state == AuthState.UNLOCKED:
            self.state = AuthState.LOCKED

        self.audit.log_event(
            event_type=EventType.VAULT_LOCKED,
            severity=EventSeverity.INFO,
            message="Vault locked"
        )
