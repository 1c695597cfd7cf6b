# Vault - Vault Manager
#
# Session-level service for front ends: one AuthGate plus the two encrypted
# collections ("credentials", "categories") over one storage backend.
#
# Referential integrity is not enforced by the stores. Deleting a category is
# two independent writes: the category list first, then (optionally) the
# credential list with the dangling categoryId values cleared.

from dataclasses import replace
from typing import Any, Dict, List, Optional

from .auth_gate import AuthGate, AuthState
from .encrypted_store import EncryptedStore
from .exceptions import NotFoundError, ValidationError, VaultLockedError
from .key_handle import SecretKey
from .models import (
    Category,
    Credential,
    CredentialInput,
    decode_categories,
    decode_credentials,
    encode_categories,
    encode_credentials,
    new_id,
)
from .storage import StorageBackend
from ..core.audit_log import get_audit_logger, EventType

CREDENTIALS_KEY = "credentials"
CATEGORIES_KEY = "categories"

FILTER_ALL = "all"
FILTER_UNCATEGORIZED = "uncategorized"


class VaultManager:
    """
    Manages one encrypted vault session.

    Security:
    - Plaintext collections exist only while unlocked
    - logout() wipes the key and drops both collections from memory
    - Audit logging for all vault changes (ids only, never secrets)
    """

    def __init__(self, backend: StorageBackend):
        self.backend = backend
        self.auth = AuthGate(backend)
        self.credentials: EncryptedStore[List[Credential]] = EncryptedStore(
            CREDENTIALS_KEY, [], backend,
            encode=encode_credentials, decode=decode_credentials,
        )
        self.categories: EncryptedStore[List[Category]] = EncryptedStore(
            CATEGORIES_KEY, [], backend,
            encode=encode_categories, decode=decode_categories,
        )
        self.logger = get_audit_logger()

    # ── Auth ────────────────────────────────────────────────────────

    @property
    def is_unlocked(self) -> bool:
        return self.auth.is_unlocked

    def status(self) -> Dict[str, Any]:
        """State summary for front ends."""
        if self.auth.state == AuthState.UNINITIALIZED:
            self.auth.check()
        return {
            "state": self.auth.state.value,
            "is_unlocked": self.auth.is_unlocked,
            "vault_exists": self.auth.has_auth_records(),
        }

    async def setup(self, password: str, confirmation: str) -> None:
        """Create the vault and open both collections."""
        key = await self.auth.setup(password, confirmation)
        await self._open_collections(key)

    async def login(self, password: str) -> None:
        """Unlock the vault and load both collections."""
        self._close_collections()
        key = await self.auth.login(password)
        await self._open_collections(key)

    def logout(self) -> None:
        """Drop plaintext collections and wipe the key."""
        self._close_collections()
        self.auth.logout()

    async def _open_collections(self, key: SecretKey) -> None:
        # A load failure propagates; that store then refuses writes
        await self.credentials.open(key)
        await self.categories.open(key)

    def _close_collections(self) -> None:
        self.credentials.close()
        self.categories.close()

    def _require_unlocked(self) -> None:
        if not self.auth.is_unlocked:
            raise VaultLockedError("Vault is locked. Unlock vault first.")

    # ── Credentials ─────────────────────────────────────────────────

    def list_credentials(self, category_filter: str = FILTER_ALL) -> List[Credential]:
        """
        List credentials, optionally filtered.

        Args:
            category_filter: "all", "uncategorized" (no category or a
                dangling one), or a category id
        """
        self._require_unlocked()
        credentials = self.credentials.get()

        if category_filter == FILTER_ALL:
            return list(credentials)

        if category_filter == FILTER_UNCATEGORIZED:
            known = {c.id for c in self.categories.get()}
            return [c for c in credentials if not c.category_id or c.category_id not in known]

        return [c for c in credentials if c.category_id == category_filter]

    def get_credential(self, credential_id: str) -> Credential:
        self._require_unlocked()
        for credential in self.credentials.get():
            if credential.id == credential_id:
                return credential
        raise NotFoundError(f"Credential not found: {credential_id}")

    async def add_credential(self, data: CredentialInput) -> Credential:
        """Add a credential with a new id."""
        self._require_unlocked()
        _require_text(data.site, "Site")

        credential = Credential.create(data)
        await self.credentials.set(lambda items: items + [credential])

        self.logger.log_vault_event(
            EventType.CREDENTIAL_ADDED,
            "Credential added",
            details={"credential_id": credential.id},
        )
        return credential

    async def update_credential(self, credential_id: str, data: CredentialInput) -> Credential:
        """Replace a credential's fields. The id never changes."""
        existing = self.get_credential(credential_id)
        _require_text(data.site, "Site")

        updated = replace(
            existing,
            site=data.site,
            username=data.username,
            password=data.password,
            category_id=data.category_id,
        )
        await self.credentials.set(
            lambda items: [updated if c.id == credential_id else c for c in items]
        )

        self.logger.log_vault_event(
            EventType.CREDENTIAL_UPDATED,
            "Credential updated",
            details={"credential_id": credential_id},
        )
        return updated

    async def delete_credential(self, credential_id: str) -> None:
        self.get_credential(credential_id)
        await self.credentials.set(
            lambda items: [c for c in items if c.id != credential_id]
        )

        self.logger.log_vault_event(
            EventType.CREDENTIAL_DELETED,
            "Credential deleted",
            details={"credential_id": credential_id},
        )

    # ── Categories ──────────────────────────────────────────────────

    def list_categories(self) -> List[Category]:
        self._require_unlocked()
        return list(self.categories.get())

    def get_category(self, category_id: str) -> Category:
        self._require_unlocked()
        for category in self.categories.get():
            if category.id == category_id:
                return category
        raise NotFoundError(f"Category not found: {category_id}")

    async def add_category(self, name: str) -> Category:
        self._require_unlocked()
        _require_text(name, "Category name")

        category = Category(id=new_id(), name=name.strip())
        await self.categories.set(lambda items: items + [category])

        self.logger.log_vault_event(
            EventType.CATEGORY_ADDED,
            "Category added",
            details={"category_id": category.id},
        )
        return category

    async def rename_category(self, category_id: str, name: str) -> Category:
        existing = self.get_category(category_id)
        _require_text(name, "Category name")

        renamed = replace(existing, name=name.strip())
        await self.categories.set(
            lambda items: [renamed if c.id == category_id else c for c in items]
        )

        self.logger.log_vault_event(
            EventType.CATEGORY_UPDATED,
            "Category renamed",
            details={"category_id": category_id},
        )
        return renamed

    async def delete_category(self, category_id: str, uncategorize: bool = True) -> int:
        """
        Delete a category.

        Args:
            category_id: Category to delete
            uncategorize: Also clear categoryId on credentials that point
                at it (a second, independent write)

        Returns:
            Number of credentials uncategorized
        """
        self.get_category(category_id)

        await self.categories.set(
            lambda items: [c for c in items if c.id != category_id]
        )

        cleared = 0
        if uncategorize:
            cleared = sum(1 for c in self.credentials.get() if c.category_id == category_id)
            if cleared:
                await self.credentials.set(
                    lambda items: [
                        replace(c, category_id=None) if c.category_id == category_id else c
                        for c in items
                    ]
                )

        self.logger.log_vault_event(
            EventType.CATEGORY_DELETED,
            "Category deleted",
            details={"category_id": category_id, "uncategorized": cleared},
        )
        return cleared


def _require_text(value: Optional[str], field: str) -> None:
    if value is None or not value.strip():
        raise ValidationError(f"{field} is required.")
