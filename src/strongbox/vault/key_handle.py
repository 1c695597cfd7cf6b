# Vault - In-Memory Key Handle
#
# The derived AES-256 key lives in a mutable buffer owned by the unlocked
# session. logout() wipes it in place so the key does not outlive the session.
#
# Python may still hold transient copies (PBKDF2/HKDF outputs are immutable
# bytes), so wiping is best effort.

import ctypes

from .exceptions import KeyDestroyedError


class SecretKey:
    """
    Guarded handle around the vault encryption key.

    Usage:
        key = SecretKey(derived_bytes)
        EncryptionService.encrypt(text, key.material)
        key.destroy()   # material is zeroed, further use raises
    """

    KEY_LENGTH = 32

    __slots__ = ("_buffer", "_destroyed")

    def __init__(self, material: bytes):
        if len(material) != self.KEY_LENGTH:
            raise ValueError(f"Key must be {self.KEY_LENGTH} bytes, got {len(material)}")
        self._buffer = bytearray(material)
        self._destroyed = False

    @property
    def material(self) -> bytearray:
        """Live key buffer. Raises KeyDestroyedError after destroy()."""
        if self._destroyed:
            raise KeyDestroyedError("Encryption key has been destroyed")
        return self._buffer

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def destroy(self) -> None:
        """Overwrite the key with zeros. Safe to call more than once."""
        if self._destroyed:
            return
        buf = self._buffer
        for i in range(len(buf)):
            buf[i] = 0
        if len(buf):
            ctypes.memset(ctypes.addressof(ctypes.c_char.from_buffer(buf)), 0, len(buf))
        self._destroyed = True

    def __repr__(self) -> str:
        state = "destroyed" if self._destroyed else "live"
        return f"<SecretKey {state}>"
