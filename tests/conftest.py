"""
Shared pytest fixtures for the Strongbox test suite.

Autouse fixtures below isolate tests from live application data:
  - Audit logger -> temp directory (keeps test events out of ./data/audit_logs)
  - Session token -> reset after every test
"""

import pytest

from strongbox.vault import MemoryStorage


@pytest.fixture(autouse=True)
def _isolate_audit_logs(tmp_path):
    """Point the global AuditLogger at a temp directory for every test.

    Components grab the singleton at construction, so this must run
    before any AuthGate, EncryptedStore or VaultManager is built.
    """
    import strongbox.core.audit_log as audit_mod

    old_logger = audit_mod._audit_logger
    audit_logger = audit_mod.AuditLogger(log_dir=tmp_path / "audit_logs")
    audit_mod.set_audit_logger(audit_logger)

    yield audit_logger

    audit_logger.close()
    audit_mod.set_audit_logger(old_logger)


@pytest.fixture(autouse=True)
def _reset_session_token():
    from strongbox.api import security

    yield
    security.clear_session_token()


@pytest.fixture
def backend():
    return MemoryStorage()
