"""Tests for the structured audit logger."""

import json

from strongbox.core.audit_log import (
    AuditLogger,
    EventSeverity,
    EventType,
    get_audit_logger,
)


def _events(logger: AuditLogger):
    lines = logger.log_file.read_text(encoding="utf-8").splitlines()
    return [json.loads(line) for line in lines if line.strip()]


class TestAuditLogger:

    def test_daily_file_in_log_dir(self, tmp_path):
        logger = AuditLogger(log_dir=tmp_path / "logs")
        try:
            assert logger.log_file.parent == tmp_path / "logs"
            assert logger.log_file.name.startswith("audit_")
        finally:
            logger.close()

    def test_event_written_as_json(self, _isolate_audit_logs):
        event_id = _isolate_audit_logs.log_event(
            event_type=EventType.VAULT_UNLOCK_FAILED,
            severity=EventSeverity.ALERT,
            message="Vault unlock failed",
            details={"attempt": 1},
        )

        events = [e for e in _events(_isolate_audit_logs) if e.get("event_id") == event_id]
        assert len(events) == 1
        event = events[0]
        assert event["event_type"] == "vault.unlock.failed"
        assert event["severity"] == "alert"
        assert event["details"] == {"attempt": 1}
        assert "hostname" in event["host"]

    def test_vault_event_is_info(self, _isolate_audit_logs):
        event_id = _isolate_audit_logs.log_vault_event(
            EventType.CREDENTIAL_ADDED, "Credential added", details={"credential_id": "c1"}
        )
        event = next(e for e in _events(_isolate_audit_logs) if e.get("event_id") == event_id)
        assert event["severity"] == "info"
        assert event["message"] == "Vault: Credential added"

    def test_singleton_is_replaced_by_fixture(self, _isolate_audit_logs):
        assert get_audit_logger() is _isolate_audit_logs
