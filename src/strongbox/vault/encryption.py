# Vault - Encryption Service
#
# Master password -> master material (PBKDF2-HMAC-SHA256)
# Master material -> encryption key / password verifier (HKDF, separate labels)
# Collection encryption (AES-256-GCM, fresh random nonce per call)

import os
import base64
from typing import Tuple, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.backends import default_backend

from .exceptions import AuthenticationError, ValidationError

KeyBytes = Union[bytes, bytearray]


class EncryptionService:
    """
    Handles key derivation and encryption for the vault.

    Flow:
    1. User enters master password
    2. PBKDF2 derives 256-bit master material from password + salt
    3. HKDF splits it into the encryption key and the login verifier
    4. AES-256-GCM encrypts/decrypts each collection
    5. Every encryption uses a new random nonce

    The verifier and the key come from different HKDF labels, so storing
    the verifier reveals nothing about the key beyond what a password guess
    would.
    """

    # PBKDF2 parameters. Fixed: the cost throttles brute force and must not
    # be lowered at runtime.
    PBKDF2_ITERATIONS = 100_000
    KEY_LENGTH = 32  # 256 bits for AES-256
    SALT_LENGTH = 16  # 128-bit salt
    NONCE_LENGTH = 12  # 96-bit nonce for GCM (recommended)

    ENCRYPTION_KEY_INFO = b"strongbox/encryption-key"
    VERIFIER_INFO = b"strongbox/password-verifier"

    @staticmethod
    def _master_material(master_password: str, salt: bytes) -> bytes:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=EncryptionService.KEY_LENGTH,
            salt=salt,
            iterations=EncryptionService.PBKDF2_ITERATIONS,
            backend=default_backend()
        )
        return kdf.derive(master_password.encode('utf-8'))

    @staticmethod
    def _expand(material: bytes, info: bytes) -> bytes:
        hkdf = HKDF(
            algorithm=hashes.SHA256(),
            length=EncryptionService.KEY_LENGTH,
            salt=None,  # PBKDF2 already salted the material
            info=info,
            backend=default_backend()
        )
        return hkdf.derive(material)

    @staticmethod
    def derive_key(master_password: str, salt: bytes) -> bytes:
        """
        Derive the AES-256 encryption key from the master password.

        Args:
            master_password: User's master password
            salt: Random salt (stored as vault_salt)

        Returns:
            256-bit encryption key, identical for identical inputs
        """
        material = EncryptionService._master_material(master_password, salt)
        return EncryptionService._expand(material, EncryptionService.ENCRYPTION_KEY_INFO)

    @staticmethod
    def derive_password_verifier(master_password: str, salt: bytes) -> bytes:
        """
        Derive the 256-bit login verifier from the master password.

        Only used to check the password at login. Independent from the
        output of derive_key() for the same inputs.
        """
        material = EncryptionService._master_material(master_password, salt)
        return EncryptionService._expand(material, EncryptionService.VERIFIER_INFO)

    @staticmethod
    def generate_salt() -> bytes:
        """Generate cryptographically random salt."""
        return os.urandom(EncryptionService.SALT_LENGTH)

    @staticmethod
    def encrypt(plaintext: str, key: KeyBytes) -> Tuple[bytes, bytes]:
        """
        Encrypt plaintext using AES-256-GCM.

        Args:
            plaintext: Serialized collection (JSON text)
            key: 256-bit encryption key (from derive_key)

        Returns:
            Tuple of (nonce, ciphertext)
            Both needed for decryption
        """
        # Random nonce, never a counter: must be unique per encryption
        nonce = os.urandom(EncryptionService.NONCE_LENGTH)

        aesgcm = AESGCM(bytes(key))
        ciphertext = aesgcm.encrypt(nonce, plaintext.encode('utf-8'), None)

        return nonce, ciphertext

    @staticmethod
    def decrypt(ciphertext: bytes, nonce: bytes, key: KeyBytes) -> str:
        """
        Decrypt ciphertext using AES-256-GCM.

        Args:
            ciphertext: Encrypted data with appended tag
            nonce: Nonce used during encryption
            key: 256-bit encryption key (same as encryption)

        Returns:
            Decrypted plaintext

        Raises:
            AuthenticationError: Wrong key, corrupted or tampered data.
                All causes raise the same error with the same message.
        """
        try:
            aesgcm = AESGCM(bytes(key))
            plaintext_bytes = aesgcm.decrypt(nonce, ciphertext, None)
        except (InvalidTag, ValueError):
            raise AuthenticationError("Decryption failed: wrong key or corrupted data") from None

        return plaintext_bytes.decode('utf-8')

    @staticmethod
    def encode_for_storage(data: bytes) -> str:
        """
        Encode binary data for text storage (base64).

        Host storage holds text values, so binary data is base64-encoded.
        """
        return base64.b64encode(data).decode('utf-8')

    @staticmethod
    def decode_from_storage(data: str) -> bytes:
        """Decode base64-encoded data from storage.

        Raises:
            ValueError: If the text is not valid base64
        """
        return base64.b64decode(data.encode('utf-8'), validate=True)


MIN_MASTER_PASSWORD_LENGTH = 8


def verify_master_password(password: str, confirmation: str) -> None:
    """
    Check a new master password before any key derivation.

    Requirements:
    - At least 8 characters
    - Confirmation matches exactly

    Raises:
        ValidationError: With a user-facing message
    """
    if len(password) < MIN_MASTER_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_MASTER_PASSWORD_LENGTH} characters long."
        )

    if password != confirmation:
        raise ValidationError("Passwords do not match.")
