# Vault API - Session Token
#
# The vault routes carry decrypted passwords, so every /api/vault request must
# present the token printed when the server started (X-Session-Token header).
# The token lives only in this process and is cleared when the server stops;
# a restarted server issues a new one.

import logging
import secrets
from typing import Optional

from fastapi import Header, HTTPException, status

logger = logging.getLogger(__name__)

SESSION_HEADER = "X-Session-Token"
TOKEN_BYTES = 32

_session_token: Optional[str] = None


def initialize_session_token(token: Optional[str] = None) -> str:
    """
    Start a new API session.

    Args:
        token: Fixed token (tests); a random 256-bit token when omitted

    Returns:
        The token the front end must send with every vault request
    """
    global _session_token
    _session_token = token or secrets.token_urlsafe(TOKEN_BYTES)
    logger.info("Vault API session started")
    return _session_token


def clear_session_token() -> None:
    """End the session: every vault request is refused until re-initialized."""
    global _session_token
    _session_token = None


def session_active() -> bool:
    return _session_token is not None


async def require_session_token(x_session_token: Optional[str] = Header(None)) -> str:
    """FastAPI dependency guarding the vault routes.

    503 while no session is active (server still starting or stopped),
    401 for a missing or wrong token.
    """
    expected = _session_token
    if expected is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Vault API session not started"
        )

    if not x_session_token or not secrets.compare_digest(x_session_token, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing or invalid {SESSION_HEADER} header"
        )

    return x_session_token
