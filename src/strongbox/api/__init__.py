# Strongbox - Web API
#
# Local FastAPI backend that front ends use to set up, unlock and edit
# the vault.

from .main import app, configure_vault, create_app, start_api_server
from .security import (
    clear_session_token,
    initialize_session_token,
    require_session_token,
)
from .vault_routes import get_vault_manager, set_vault_manager

__all__ = [
    "app",
    "create_app",
    "configure_vault",
    "start_api_server",
    "initialize_session_token",
    "clear_session_token",
    "require_session_token",
    "get_vault_manager",
    "set_vault_manager",
]
