"""Tests for audit logging."""

import json
import tempfile
from pathlib import Path

from mcp_notes_server.audit import AuditLogger


def _read_lines(path):
    return [json.loads(line) for line in path.read_text().splitlines()]


class TestAuditLogger:
    """Tests for the JSON Lines audit logger."""

    def test_creates_log_file(self):
        """Should create the log file and its parent directory."""
        with tempfile.TemporaryDirectory() as tmpdir:
            log_path = Path(tmpdir) / "logs" / "audit.jsonl"
            logger = AuditLogger(log_path)
            logger.close()

            assert log_path.exists()

    def test_logs_request(self):
        """Should write a request line."""
        with tempfile.TemporaryDirectory() as tmpdir:
            log_path = Path(tmpdir) / "audit.jsonl"
            with AuditLogger(log_path) as logger:
                logger.log_request("req-1", "create_note", {"title": "T", "content": "C"})

            (line,) = _read_lines(log_path)
            assert line["type"] == "request"
            assert line["request_id"] == "req-1"
            assert line["tool_name"] == "create_note"
            assert line["arguments"] == {"title": "T", "content": "C"}
            assert line["timestamp"].endswith("Z")

    def test_logs_response(self):
        """Should write a response line."""
        with tempfile.TemporaryDirectory() as tmpdir:
            log_path = Path(tmpdir) / "audit.jsonl"
            with AuditLogger(log_path) as logger:
                logger.log_response("req-1", "success", 12.5)

            (line,) = _read_lines(log_path)
            assert line["type"] == "response"
            assert line["result_status"] == "success"
            assert line["execution_time_ms"] == 12.5

    def test_redacts_sensitive_arguments(self):
        """Should redact sensitive keys, including nested ones."""
        with tempfile.TemporaryDirectory() as tmpdir:
            log_path = Path(tmpdir) / "audit.jsonl"
            with AuditLogger(log_path) as logger:
                logger.log_request(
                    "req-2",
                    "tool",
                    {"api_key": "abc", "nested": {"password": "pw", "keep": 1}},
                )

            (line,) = _read_lines(log_path)
            assert line["arguments"] == {
                "api_key": "[REDACTED]",
                "nested": {"password": "[REDACTED]", "keep": 1},
            }

    def test_logs_security_event(self):
        """Should write a security line."""
        with tempfile.TemporaryDirectory() as tmpdir:
            log_path = Path(tmpdir) / "audit.jsonl"
            with AuditLogger(log_path) as logger:
                logger.log_security_event("invalid_session", {"session_id": "x"})

            (line,) = _read_lines(log_path)
            assert line["type"] == "security"
            assert line["event_type"] == "invalid_session"
            assert line["details"] == {"session_id": "x"}

    def test_appends(self):
        """Should append to an existing log."""
        with tempfile.TemporaryDirectory() as tmpdir:
            log_path = Path(tmpdir) / "audit.jsonl"
            with AuditLogger(log_path) as logger:
                logger.log_response("a", "success", 1.0)
            with AuditLogger(log_path) as logger:
                logger.log_response("b", "error", 1.0)

            assert [line["request_id"] for line in _read_lines(log_path)] == ["a", "b"]
