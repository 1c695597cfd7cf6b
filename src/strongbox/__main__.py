# Strongbox - Main Entry Point
#
# Runs the local vault API server. Settings come from STRONGBOX_* environment
# variables (or .env); command-line flags override them.

import os
import sys
import argparse
from pathlib import Path

from . import __version__
from .core import (
    AuditLogger,
    EventSeverity,
    EventType,
    VaultSettings,
    get_audit_logger,
    set_audit_logger,
)


def main():
    """Main entry point for Strongbox."""
    parser = argparse.ArgumentParser(
        description="Strongbox - password-protected encrypted credential vault (local API server)"
    )

    parser.add_argument(
        "--host",
        default=None,
        help="API host (default: STRONGBOX_HOST or 127.0.0.1)"
    )

    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="API port (default: STRONGBOX_PORT or 8000)"
    )

    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Vault data directory (default: STRONGBOX_DATA_DIR or ./data)"
    )

    parser.add_argument(
        "--backend",
        choices=["json", "sqlite"],
        default=None,
        help="Storage backend (default: STRONGBOX_STORAGE_BACKEND or json)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Strongbox v{__version__}"
    )

    args = parser.parse_args()

    try:
        settings = VaultSettings.from_env()
    except ValueError as e:
        parser.error(str(e))

    if args.host:
        settings.HOST = args.host
    if args.port:
        settings.PORT = args.port
    if args.backend:
        settings.STORAGE_BACKEND = args.backend
    if args.data_dir:
        settings.DATA_DIR = args.data_dir
        if not os.getenv("STRONGBOX_AUDIT_DIR"):
            settings.AUDIT_DIR = args.data_dir / "audit_logs"

    set_audit_logger(AuditLogger(settings.AUDIT_DIR))

    get_audit_logger().log_event(
        event_type=EventType.SYSTEM_START,
        severity=EventSeverity.INFO,
        message="Strongbox starting",
        details={
            "version": __version__,
            "backend": settings.STORAGE_BACKEND,
        }
    )

    print("=" * 60)
    print(f"  Strongbox v{__version__}")
    print(f"  Storage: {settings.STORAGE_BACKEND} in {settings.DATA_DIR}")
    print(f"  Starting API server on {settings.HOST}:{settings.PORT}...")
    print("  Press Ctrl+C to stop")
    print("=" * 60)

    from .api.main import start_api_server

    try:
        start_api_server(settings)
    except KeyboardInterrupt:
        print("\n\nShutting down backend...")
        get_audit_logger().log_event(
            event_type=EventType.SYSTEM_STOP,
            severity=EventSeverity.INFO,
            message="Strongbox backend stopped (user interrupt)"
        )
    except Exception as e:
        print(f"\n\nError: {str(e)}")
        get_audit_logger().log_event(
            event_type=EventType.SYSTEM_STOP,
            severity=EventSeverity.CRITICAL,
            message=f"Strongbox backend crashed: {str(e)}"
        )
        sys.exit(1)
    else:
        get_audit_logger().log_event(
            event_type=EventType.SYSTEM_STOP,
            severity=EventSeverity.INFO,
            message="Strongbox backend stopped"
        )


if __name__ == "__main__":
    main()
