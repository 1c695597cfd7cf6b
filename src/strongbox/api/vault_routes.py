# Vault API - REST endpoints for the local front end
#
# - Setup / login / logout
# - Credential CRUD with category filter
# - Category CRUD (delete optionally uncategorizes credentials)
#
# Every route requires the X-Session-Token header. Vault errors are mapped
# to HTTP status codes here and nowhere else.

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from ..vault import (
    AlreadyInitializedError,
    AuthenticationError,
    CredentialInput,
    MemoryStorage,
    NotFoundError,
    StorageError,
    ValidationError,
    VaultError,
    VaultLockedError,
    VaultManager,
)
from .security import require_session_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/vault", tags=["vault"])

# ── Singleton ────────────────────────────────────────────────────────

_vault_manager: Optional[VaultManager] = None


def get_vault_manager() -> VaultManager:
    """Lazy singleton. Configured at startup via set_vault_manager()."""
    global _vault_manager
    if _vault_manager is None:
        _vault_manager = VaultManager(MemoryStorage())
    return _vault_manager


def set_vault_manager(manager: Optional[VaultManager]) -> None:
    """Replace the singleton (startup and tests)."""
    global _vault_manager
    _vault_manager = manager


# ── Pydantic Models ──────────────────────────────────────────────────


class SetupRequest(BaseModel):
    password: str
    confirmation: str


class LoginRequest(BaseModel):
    password: str


class CredentialRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    site: str = Field(..., min_length=1, max_length=500)
    username: str = ""
    password: str = ""
    category_id: Optional[str] = Field(None, alias="categoryId")

    def to_input(self) -> CredentialInput:
        return CredentialInput(
            site=self.site,
            username=self.username,
            password=self.password,
            category_id=self.category_id or None,
        )


class CategoryRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)


class VaultStatusResponse(BaseModel):
    state: str
    is_unlocked: bool
    vault_exists: bool


def _http_error(e: VaultError) -> HTTPException:
    """Map a vault error to an HTTP response."""
    if isinstance(e, ValidationError):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(e, AuthenticationError):
        code = status.HTTP_401_UNAUTHORIZED
    elif isinstance(e, VaultLockedError):
        code = status.HTTP_403_FORBIDDEN
    elif isinstance(e, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(e, AlreadyInitializedError):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
        if isinstance(e, StorageError):
            logger.error("Vault storage error: %s", e)
    return HTTPException(status_code=code, detail=str(e))


def _public_view(credential) -> dict:
    """Credential without its password (list views)."""
    data = credential.to_dict()
    data.pop("password", None)
    return data


# ── Auth Routes ──────────────────────────────────────────────────────


@router.get("/status", response_model=VaultStatusResponse)
async def get_vault_status(token: str = Depends(require_session_token)):
    """Whether the vault exists and is unlocked."""
    try:
        return VaultStatusResponse(**get_vault_manager().status())
    except VaultError as e:
        raise _http_error(e)


@router.post("/setup")
async def setup_vault(request: SetupRequest, token: str = Depends(require_session_token)):
    """
    Create the vault with a master password.

    Password requirements:
    - At least 8 characters
    - Confirmation must match

    The password cannot be recovered. Losing it loses the data.
    """
    try:
        await get_vault_manager().setup(request.password, request.confirmation)
    except VaultError as e:
        raise _http_error(e)
    return {"success": True, "message": "Vault created successfully!"}


@router.post("/login")
async def login_vault(request: LoginRequest, token: str = Depends(require_session_token)):
    """Unlock the vault with the master password."""
    try:
        await get_vault_manager().login(request.password)
    except VaultError as e:
        raise _http_error(e)
    return {"success": True, "message": "Vault unlocked successfully!"}


@router.post("/logout")
async def logout_vault(token: str = Depends(require_session_token)):
    """Lock the vault. Encrypted data stays on disk."""
    get_vault_manager().logout()
    return {"success": True, "message": "Vault locked"}


# ── Credential Routes ────────────────────────────────────────────────


@router.get("/credentials")
async def list_credentials(
    category: str = "all",
    token: str = Depends(require_session_token)
):
    """
    List credentials without their passwords.

    category: "all", "uncategorized" or a category id.
    Use GET /credentials/{id} to read a password.
    """
    try:
        credentials = get_vault_manager().list_credentials(category)
    except VaultError as e:
        raise _http_error(e)
    return {
        "credentials": [_public_view(c) for c in credentials],
        "total": len(credentials),
    }


@router.post("/credentials")
async def add_credential(
    request: CredentialRequest,
    token: str = Depends(require_session_token)
):
    try:
        credential = await get_vault_manager().add_credential(request.to_input())
    except VaultError as e:
        raise _http_error(e)
    return {"success": True, "credential_id": credential.id}


@router.get("/credentials/{credential_id}")
async def get_credential(credential_id: str, token: str = Depends(require_session_token)):
    """Read one credential including its password."""
    try:
        credential = get_vault_manager().get_credential(credential_id)
    except VaultError as e:
        raise _http_error(e)
    return credential.to_dict()


@router.put("/credentials/{credential_id}")
async def update_credential(
    credential_id: str,
    request: CredentialRequest,
    token: str = Depends(require_session_token)
):
    try:
        credential = await get_vault_manager().update_credential(credential_id, request.to_input())
    except VaultError as e:
        raise _http_error(e)
    return {"success": True, "credential": _public_view(credential)}


@router.delete("/credentials/{credential_id}")
async def delete_credential(credential_id: str, token: str = Depends(require_session_token)):
    try:
        await get_vault_manager().delete_credential(credential_id)
    except VaultError as e:
        raise _http_error(e)
    return {"success": True, "message": "Credential deleted successfully"}


# ── Category Routes ──────────────────────────────────────────────────


@router.get("/categories")
async def list_categories(token: str = Depends(require_session_token)):
    try:
        categories = get_vault_manager().list_categories()
    except VaultError as e:
        raise _http_error(e)
    return {"categories": [c.to_dict() for c in categories], "total": len(categories)}


@router.post("/categories")
async def add_category(request: CategoryRequest, token: str = Depends(require_session_token)):
    try:
        category = await get_vault_manager().add_category(request.name)
    except VaultError as e:
        raise _http_error(e)
    return {"success": True, "category": category.to_dict()}


@router.put("/categories/{category_id}")
async def rename_category(
    category_id: str,
    request: CategoryRequest,
    token: str = Depends(require_session_token)
):
    try:
        category = await get_vault_manager().rename_category(category_id, request.name)
    except VaultError as e:
        raise _http_error(e)
    return {"success": True, "category": category.to_dict()}


@router.delete("/categories/{category_id}")
async def delete_category(
    category_id: str,
    uncategorize: bool = True,
    token: str = Depends(require_session_token)
):
    """
    Delete a category.

    With uncategorize=true (default) credentials in the category become
    uncategorized. That is a second write; if it fails the category is
    already gone and the credentials keep a dangling categoryId.
    """
    try:
        cleared = await get_vault_manager().delete_category(category_id, uncategorize=uncategorize)
    except VaultError as e:
        raise _http_error(e)
    return {"success": True, "uncategorized": cleared}
