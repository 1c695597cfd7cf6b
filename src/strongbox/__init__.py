# Strongbox - Main Package
#
# Client-held secrets vault: site credentials and categories encrypted at
# rest under a single master password.

__version__ = "0.1.0"
__author__ = "Strongbox Team"
__description__ = "Password-protected encrypted credential vault"

from .core import (
    EventType,
    EventSeverity,
    get_audit_logger,
)

__all__ = [
    "__version__",
    "EventType",
    "EventSeverity",
    "get_audit_logger",
]
