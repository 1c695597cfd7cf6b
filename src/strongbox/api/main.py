# Strongbox - FastAPI Backend
#
# Local REST API that front ends use to drive the vault.

import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..core import VaultSettings
from ..vault import VaultManager
from .security import clear_session_token, initialize_session_token, session_active
from .vault_routes import router as vault_router, set_vault_manager

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Build the API application (no vault wiring)."""
    app = FastAPI(
        title="Strongbox API",
        description="Password-protected encrypted credential vault",
        version=__version__
    )

    # Local front ends only
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000", "http://127.0.0.1:3000",
            "http://localhost:8000", "http://127.0.0.1:8000",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(vault_router)

    @app.get("/health")
    async def health():
        return {"status": "ok", "version": __version__, "session_active": session_active()}

    return app


app = create_app()


def configure_vault(settings: VaultSettings) -> VaultManager:
    """Point the vault routes at the configured storage backend."""
    manager = VaultManager(settings.create_backend())
    manager.auth.check()
    set_vault_manager(manager)
    logger.info("Vault storage: %s backend in %s", settings.STORAGE_BACKEND, settings.DATA_DIR)
    return manager


def start_api_server(settings: Optional[VaultSettings] = None) -> None:
    """
    Start the API server.

    Args:
        settings: Host, port and storage settings (default: from environment)
    """
    settings = settings or VaultSettings.from_env()
    configure_vault(settings)

    token = initialize_session_token()
    print(f"  Session token: {token}")

    try:
        uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level="info")
    finally:
        clear_session_token()
