"""Tests for the vault auth gate.

Covers: startup check, setup validation, login/logout state machine,
verifier storage, and audit trail of failed attempts.
"""

import asyncio

import pytest

from strongbox.vault.auth_gate import (
    HASH_STORAGE_KEY,
    SALT_STORAGE_KEY,
    AuthGate,
    AuthState,
)
from strongbox.vault.encryption import EncryptionService
from strongbox.vault.exceptions import (
    AlreadyInitializedError,
    AuthenticationError,
    StorageError,
    ValidationError,
)
from strongbox.vault.storage import MemoryStorage

MASTER_PASSWORD = "correcthorse123"


class TestStartupCheck:

    def test_starts_uninitialized(self, backend):
        assert AuthGate(backend).state == AuthState.UNINITIALIZED

    def test_empty_storage_selects_setup(self, backend):
        assert AuthGate(backend).check() == AuthState.SETUP

    def test_records_select_locked(self, backend):
        backend.set_item(SALT_STORAGE_KEY, "c2FsdA==")
        backend.set_item(HASH_STORAGE_KEY, "aGFzaA==")
        assert AuthGate(backend).check() == AuthState.LOCKED

    def test_single_record_selects_setup(self, backend):
        backend.set_item(SALT_STORAGE_KEY, "c2FsdA==")
        assert AuthGate(backend).check() == AuthState.SETUP


class TestSetup:

    @pytest.mark.asyncio
    async def test_seven_chars_rejected(self, backend):
        gate = AuthGate(backend)
        gate.check()
        with pytest.raises(ValidationError):
            await gate.setup("1234567", "1234567")
        assert gate.state == AuthState.SETUP
        assert backend.get_item(SALT_STORAGE_KEY) is None

    @pytest.mark.asyncio
    async def test_eight_chars_accepted(self, backend):
        gate = AuthGate(backend)
        gate.check()
        key = await gate.setup("12345678", "12345678")
        assert gate.state == AuthState.UNLOCKED
        assert gate.key is key
        assert len(key.material) == 32

    @pytest.mark.asyncio
    async def test_mismatch_rejected(self, backend):
        gate = AuthGate(backend)
        gate.check()
        with pytest.raises(ValidationError):
            await gate.setup("12345678", "12345679")
        assert not backend.contains(HASH_STORAGE_KEY)

    @pytest.mark.asyncio
    async def test_persists_salt_and_verifier(self, backend):
        gate = AuthGate(backend)
        await gate.setup(MASTER_PASSWORD, MASTER_PASSWORD)

        salt = EncryptionService.decode_from_storage(backend.get_item(SALT_STORAGE_KEY))
        verifier = EncryptionService.decode_from_storage(backend.get_item(HASH_STORAGE_KEY))
        assert len(salt) == 16
        assert verifier == EncryptionService.derive_password_verifier(MASTER_PASSWORD, salt)

    @pytest.mark.asyncio
    async def test_stored_verifier_is_not_the_key(self, backend):
        gate = AuthGate(backend)
        key = await gate.setup(MASTER_PASSWORD, MASTER_PASSWORD)
        verifier = EncryptionService.decode_from_storage(backend.get_item(HASH_STORAGE_KEY))
        assert verifier != bytes(key.material)

    @pytest.mark.asyncio
    async def test_setup_twice_rejected(self, backend):
        await AuthGate(backend).setup(MASTER_PASSWORD, MASTER_PASSWORD)

        gate = AuthGate(backend)
        with pytest.raises(AlreadyInitializedError):
            await gate.setup("another-password", "another-password")
        assert gate.state == AuthState.LOCKED

    @pytest.mark.asyncio
    async def test_concurrent_setup_keeps_first_records(self, backend):
        gate = AuthGate(backend)
        results = await asyncio.gather(
            gate.setup("password-one", "password-one"),
            gate.setup("password-two", "password-two"),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, Exception)]
        assert len(failures) == 1
        assert isinstance(failures[0], AlreadyInitializedError)

        winner = "password-one" if results[0] is gate.key else "password-two"
        salt = EncryptionService.decode_from_storage(backend.get_item(SALT_STORAGE_KEY))
        stored = EncryptionService.decode_from_storage(backend.get_item(HASH_STORAGE_KEY))
        assert stored == EncryptionService.derive_password_verifier(winner, salt)
        assert bytes(gate.key.material) == EncryptionService.derive_key(winner, salt)

    @pytest.mark.asyncio
    async def test_records_written_elsewhere_during_setup(self, backend):
        gate = AuthGate(backend)
        gate.check()
        other = AuthGate(backend)
        await other.setup(MASTER_PASSWORD, MASTER_PASSWORD)
        before = backend.get_item(HASH_STORAGE_KEY)

        with pytest.raises(AlreadyInitializedError):
            await gate.setup("another-password", "another-password")
        assert gate.state == AuthState.LOCKED
        assert gate.key is None
        assert backend.get_item(HASH_STORAGE_KEY) == before

    @pytest.mark.asyncio
    async def test_storage_failure_leaves_locked_out(self):
        backend = MemoryStorage(quota_bytes=10)
        gate = AuthGate(backend)
        with pytest.raises(StorageError):
            await gate.setup(MASTER_PASSWORD, MASTER_PASSWORD)
        assert gate.key is None
        assert not gate.is_unlocked


class TestLogin:

    @pytest.fixture
    def initialized(self, backend):
        salt = bytes(range(16))
        backend.set_item(SALT_STORAGE_KEY, EncryptionService.encode_for_storage(salt))
        backend.set_item(
            HASH_STORAGE_KEY,
            EncryptionService.encode_for_storage(
                EncryptionService.derive_password_verifier(MASTER_PASSWORD, salt)
            ),
        )
        return backend

    @pytest.mark.asyncio
    async def test_correct_password_unlocks(self, initialized):
        gate = AuthGate(initialized)
        gate.check()
        key = await gate.login(MASTER_PASSWORD)
        assert gate.state == AuthState.UNLOCKED
        assert bytes(key.material) == EncryptionService.derive_key(
            MASTER_PASSWORD, bytes(range(16))
        )

    @pytest.mark.asyncio
    async def test_wrong_password_stays_locked(self, initialized):
        gate = AuthGate(initialized)
        gate.check()
        with pytest.raises(AuthenticationError, match="Incorrect master password"):
            await gate.login("wrongpassword")
        assert gate.state == AuthState.LOCKED
        assert gate.key is None
        assert gate.failed_attempts == 1

    @pytest.mark.asyncio
    async def test_failed_attempts_reset_on_success(self, initialized):
        gate = AuthGate(initialized)
        gate.check()
        for _ in range(2):
            with pytest.raises(AuthenticationError):
                await gate.login("wrongpassword")
        assert gate.failed_attempts == 2
        await gate.login(MASTER_PASSWORD)
        assert gate.failed_attempts == 0

    @pytest.mark.asyncio
    async def test_empty_password_rejected(self, initialized):
        gate = AuthGate(initialized)
        with pytest.raises(ValidationError):
            await gate.login("")

    @pytest.mark.asyncio
    async def test_missing_records_raise_storage_error(self, backend):
        gate = AuthGate(backend)
        with pytest.raises(StorageError):
            await gate.login(MASTER_PASSWORD)

    @pytest.mark.asyncio
    async def test_unreadable_records_raise_storage_error(self, backend):
        backend.set_item(SALT_STORAGE_KEY, "!!not-base64!!")
        backend.set_item(HASH_STORAGE_KEY, "!!not-base64!!")
        gate = AuthGate(backend)
        with pytest.raises(StorageError, match="unreadable"):
            await gate.login(MASTER_PASSWORD)

    @pytest.mark.asyncio
    async def test_relogin_destroys_previous_key(self, initialized):
        gate = AuthGate(initialized)
        first = await gate.login(MASTER_PASSWORD)
        second = await gate.login(MASTER_PASSWORD)
        assert first.destroyed
        assert not second.destroyed

    @pytest.mark.asyncio
    async def test_failed_attempt_audited(self, initialized, _isolate_audit_logs):
        gate = AuthGate(initialized)
        with pytest.raises(AuthenticationError):
            await gate.login("wrongpassword")

        log_text = _isolate_audit_logs.log_file.read_text(encoding="utf-8")
        assert "vault.unlock.failed" in log_text
        assert "wrongpassword" not in log_text


class TestSetupLoginRoundtrip:

    @pytest.mark.asyncio
    async def test_setup_logout_login(self, backend):
        gate = AuthGate(backend)
        setup_key = await gate.setup(MASTER_PASSWORD, MASTER_PASSWORD)
        setup_bytes = bytes(setup_key.material)

        gate.logout()
        assert gate.state == AuthState.LOCKED
        assert setup_key.destroyed

        # Fresh process: only the persisted records survive
        gate = AuthGate(backend)
        assert gate.check() == AuthState.LOCKED
        key = await gate.login(MASTER_PASSWORD)
        assert bytes(key.material) == setup_bytes


class TestLogout:

    @pytest.mark.asyncio
    async def test_logout_wipes_key(self, backend):
        gate = AuthGate(backend)
        key = await gate.setup(MASTER_PASSWORD, MASTER_PASSWORD)
        gate.logout()
        assert gate.key is None
        assert key.destroyed
        assert not gate.is_unlocked

    def test_logout_when_not_unlocked_keeps_state(self, backend):
        gate = AuthGate(backend)
        gate.check()
        gate.logout()
        assert gate.state == AuthState.SETUP

    @pytest.mark.asyncio
    async def test_logout_keeps_persisted_records(self, backend):
        gate = AuthGate(backend)
        await gate.setup(MASTER_PASSWORD, MASTER_PASSWORD)
        gate.logout()
        assert backend.contains(SALT_STORAGE_KEY)
        assert backend.contains(HASH_STORAGE_KEY)
