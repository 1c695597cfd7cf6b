"""Tests for the in-memory key handle."""

import pytest

from strongbox.vault.exceptions import KeyDestroyedError
from strongbox.vault.key_handle import SecretKey


class TestSecretKey:

    def test_material_matches_input(self):
        key = SecretKey(b"\x01" * 32)
        assert bytes(key.material) == b"\x01" * 32
        assert not key.destroyed

    def test_rejects_wrong_length(self):
        with pytest.raises(ValueError):
            SecretKey(b"\x01" * 16)

    def test_destroy_zeroes_buffer(self):
        key = SecretKey(b"\xff" * 32)
        buf = key.material
        key.destroy()
        assert key.destroyed
        assert bytes(buf) == bytes(32)

    def test_use_after_destroy_raises(self):
        key = SecretKey(b"\x02" * 32)
        key.destroy()
        with pytest.raises(KeyDestroyedError):
            key.material

    def test_destroy_idempotent(self):
        key = SecretKey(b"\x03" * 32)
        key.destroy()
        key.destroy()
        assert key.destroyed

    def test_repr_hides_material(self):
        key = SecretKey(b"\x04" * 32)
        assert repr(key) == "<SecretKey live>"
        key.destroy()
        assert repr(key) == "<SecretKey destroyed>"
