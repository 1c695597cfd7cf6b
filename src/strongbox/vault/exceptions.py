"""
Vault Exception Classes
"""


class VaultError(Exception):
    """Base exception for vault operations"""
    pass


class ValidationError(VaultError):
    """Raised when input is rejected before any cryptographic work"""
    pass


class AuthenticationError(VaultError):
    """Raised on a wrong master password or a failed decryption tag check"""
    pass


class StorageError(VaultError):
    """Raised when host storage is unavailable, full or inconsistent"""
    pass


class VaultLockedError(VaultError):
    """Raised when an operation needs an unlocked vault"""
    pass


class NotFoundError(VaultError):
    """Raised when a credential or category id does not exist"""
    pass


class KeyDestroyedError(VaultError):
    """Raised when a wiped key handle is used"""
    pass


class AlreadyInitializedError(StorageError):
    """Raised when setup is attempted on a vault that already has auth records"""
    pass
