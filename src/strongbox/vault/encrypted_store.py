# Vault - Encrypted Store
#
# One logical collection (e.g. "credentials") kept in memory while the vault
# is unlocked and persisted as a single encrypted envelope:
#
#   <storage_key> = {"iv": base64, "ciphertext": base64}
#
# Every set() re-encrypts the whole value with a fresh nonce and overwrites
# the envelope. No partial writes, no versioning, no compare-and-swap: two
# overlapping set() calls race and the last completed write wins.
#
# A store only writes after it has loaded. Until then the in-memory value is
# the untouched default, and writing it could clobber real data that has not
# been decrypted yet.

import asyncio
import copy
import json
import logging
from typing import Any, Callable, Generic, Optional, TypeVar, Union

from .encryption import EncryptionService
from .exceptions import AuthenticationError, StorageError, VaultLockedError
from .key_handle import SecretKey
from .storage import StorageBackend
from ..core.audit_log import get_audit_logger, EventType, EventSeverity

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _identity(value):
    return value


class EncryptedStore(Generic[T]):
    """
    Encrypted persistence for one typed collection.

    Args:
        storage_key: Logical key in the storage backend
        default: Value used until (and unless) a persisted value loads
        backend: Host storage
        key: Live encryption key, if already unlocked
        encode: T -> JSON-compatible data (default: identity)
        decode: JSON-compatible data -> T (default: identity)

    Usage:
        store = EncryptedStore("credentials", [], backend)
        await store.open(key)
        await store.set(lambda items: items + [new_item])
    """

    def __init__(
        self,
        storage_key: str,
        default: T,
        backend: StorageBackend,
        key: Optional[SecretKey] = None,
        encode: Optional[Callable[[T], Any]] = None,
        decode: Optional[Callable[[Any], T]] = None,
    ):
        self.storage_key = storage_key
        self.backend = backend
        self._default = copy.deepcopy(default)
        self._value: T = copy.deepcopy(default)
        self._key = key
        self._encode = encode or _identity
        self._decode = decode or _identity

        # Set once the persisted value was decrypted, or found absent
        self._loaded = False
        # Set when the last write failed; the next set() rewrites everything
        self._dirty = False

        self.audit = get_audit_logger()

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def dirty(self) -> bool:
        return self._dirty

    async def open(self, key: SecretKey) -> T:
        """Attach the session key and load the persisted value."""
        self._key = key
        return await self.load()

    async def load(self) -> T:
        """
        Read and decrypt the persisted envelope.

        No envelope: keep the default and write nothing.

        Raises:
            VaultLockedError: No key attached, or the store was closed
                while decrypting
            StorageError: Backend unreadable
            AuthenticationError: Tag check failed or envelope malformed.
                The envelope is left untouched and the store stays unloaded.
        """
        key = self._key
        if key is None:
            raise VaultLockedError(f"No key for collection '{self.storage_key}'")

        self._loaded = False
        raw = self.backend.get_item(self.storage_key)

        if raw is None:
            self._value = copy.deepcopy(self._default)
            self._loaded = True
            logger.debug("Collection %s has no envelope yet, using default", self.storage_key)
            return self._value

        try:
            try:
                envelope = json.loads(raw)
                nonce = EncryptionService.decode_from_storage(envelope["iv"])
                ciphertext = EncryptionService.decode_from_storage(envelope["ciphertext"])
            except (ValueError, KeyError, TypeError, AttributeError):
                raise AuthenticationError(
                    "Decryption failed: wrong key or corrupted data"
                ) from None

            # Private copy: logout zeroes the live buffer in place
            key_bytes = bytes(key.material)
            plaintext = await asyncio.to_thread(
                EncryptionService.decrypt, ciphertext, nonce, key_bytes
            )

            try:
                value = self._decode(json.loads(plaintext))
            except (ValueError, KeyError, TypeError):
                raise AuthenticationError(
                    "Decryption failed: wrong key or corrupted data"
                ) from None
        except AuthenticationError:
            self.audit.log_event(
                event_type=EventType.COLLECTION_LOAD_FAILED,
                severity=EventSeverity.ALERT,
                message=f"Failed to decrypt collection '{self.storage_key}'",
                details={"storage_key": self.storage_key}
            )
            raise

        if self._key is not key or key.destroyed:
            # Closed (or re-keyed) while decrypting: drop the plaintext
            raise VaultLockedError(f"Collection '{self.storage_key}' was closed during load")

        self._value = value
        self._loaded = True
        self._dirty = False

        self.audit.log_event(
            event_type=EventType.COLLECTION_LOADED,
            severity=EventSeverity.INFO,
            message=f"Collection '{self.storage_key}' loaded",
            details={"storage_key": self.storage_key, "items": _size(value)}
        )

        return self._value

    def get(self) -> T:
        """Current in-memory value."""
        return self._value

    async def set(self, value: Union[T, Callable[[T], T]]) -> None:
        """
        Replace the whole value and persist it.

        Args:
            value: New value, or a function of the current value

        Raises:
            VaultLockedError: No key attached, or the store was closed
                while encrypting (nothing is written)
            StorageError: Store not loaded, or the backend write failed.
                On a failed write the new value stays in memory.
        """
        key = self._key
        if key is None:
            raise VaultLockedError(f"No key for collection '{self.storage_key}'")
        if not self._loaded:
            raise StorageError(f"Collection '{self.storage_key}' not loaded")

        new_value = value(self._value) if callable(value) else value
        self._value = new_value

        plaintext = json.dumps(
            self._encode(new_value), ensure_ascii=False, separators=(",", ":")
        )
        key_bytes = bytes(key.material)
        nonce, ciphertext = await asyncio.to_thread(
            EncryptionService.encrypt, plaintext, key_bytes
        )

        if self._key is not key or key.destroyed:
            # Locked while encrypting: nothing is written
            raise VaultLockedError(f"Collection '{self.storage_key}' was closed during write")

        envelope = json.dumps({
            "iv": EncryptionService.encode_for_storage(nonce),
            "ciphertext": EncryptionService.encode_for_storage(ciphertext),
        })

        try:
            self.backend.set_item(self.storage_key, envelope)
        except StorageError as e:
            self._dirty = True
            self.audit.log_event(
                event_type=EventType.COLLECTION_WRITE_FAILED,
                severity=EventSeverity.CRITICAL,
                message=f"Failed to write collection '{self.storage_key}': {e}",
                details={"storage_key": self.storage_key}
            )
            raise

        self._dirty = False
        logger.debug("Collection %s written (%s items)", self.storage_key, _size(new_value))

    def close(self) -> None:
        """Forget the key and the plaintext. The envelope stays on disk."""
        self._key = None
        self._value = copy.deepcopy(self._default)
        self._loaded = False
        self._dirty = False


def _size(value) -> Optional[int]:
    try:
        return len(value)
    except TypeError:
        return None
