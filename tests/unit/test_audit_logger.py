"""
Unit tests for audit logging.
"""

from unittest.mock import patch

import pytest

from hwlink.audit_logger import AuditLogger, get_audit_logger, init_audit_logger


class TestAuditLogger:
    """Test audit logger functionality."""

    @pytest.fixture
    def audit_logger(self):
        """Create an AuditLogger instance for testing."""
        return AuditLogger()

    def test_log_verification(self, audit_logger):
        """Test logging a verification outcome."""
        with patch.object(audit_logger.logger, "info") as mock_info:
            audit_logger.log_verification(player_id=42, username="alice", code="NXU15W", outcome="success")

            mock_info.assert_called_once()
            call_args = mock_info.call_args[0][0]
            assert "LINK_VERIFY" in call_args
            assert "player=42" in call_args
            assert "user=alice" in call_args
            assert "code=NXU15W" in call_args
            assert "outcome=success" in call_args

    def test_log_link_reset_success(self, audit_logger):
        with patch.object(audit_logger.logger, "warning") as mock_warning:
            audit_logger.log_link_reset(player_id=42, success=True, requested_by=42)

            call_args = mock_warning.call_args[0][0]
            assert "LINK_RESET" in call_args
            assert "player=42" in call_args
            assert "by=42" in call_args
            assert "status=SUCCESS" in call_args

    def test_log_link_reset_from_operator(self, audit_logger):
        with patch.object(audit_logger.logger, "warning") as mock_warning:
            audit_logger.log_link_reset(player_id=42, success=False)

            call_args = mock_warning.call_args[0][0]
            assert "by=None" in call_args
            assert "status=FAILURE" in call_args

    def test_log_codes_cleared(self, audit_logger):
        with patch.object(audit_logger.logger, "warning") as mock_warning:
            audit_logger.log_codes_cleared(count=3, success=True, requested_by=7)

            call_args = mock_warning.call_args[0][0]
            assert "CODES_CLEARED" in call_args
            assert "count=3" in call_args
            assert "by=7" in call_args

    def test_log_storage_degraded(self, audit_logger):
        with patch.object(audit_logger.logger, "warning") as mock_warning:
            audit_logger.log_storage_degraded("UsedCodes:usedCodes", "connection refused")

            call_args = mock_warning.call_args[0][0]
            assert "STORAGE_DEGRADED" in call_args
            assert "key=UsedCodes:usedCodes" in call_args
            assert "reason=connection refused" in call_args

    def test_log_dropped_request(self, audit_logger):
        with patch.object(audit_logger.logger, "info") as mock_info:
            audit_logger.log_dropped_request("HWLink:VerifyCodeRequest", 999, "player_not_connected")

            call_args = mock_info.call_args[0][0]
            assert "REQUEST_DROPPED" in call_args
            assert "event=HWLink:VerifyCodeRequest" in call_args
            assert "player=999" in call_args


class TestAuditLoggerInit:
    """Test audit logger initialization."""

    def test_init_audit_logger(self):
        init_audit_logger()
        assert isinstance(get_audit_logger(), AuditLogger)

    def test_get_audit_logger_is_shared(self):
        assert get_audit_logger() is get_audit_logger()
