"""
Audit logging for HWLink.

This is a basic implementation that logs to Python's logging system.
For production, integrate with structured logging (JSON) and log aggregation systems.
"""

import logging
from typing import Any, Optional

_logger = logging.getLogger("audit")
_audit_logger = None  # Will be initialized by init_audit_logger


def init_audit_logger():
    """Initialize the audit logger."""
    global _audit_logger

    _logger.setLevel(logging.INFO)

    # Add console handler if not already present
    if not _logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s - AUDIT - %(levelname)s - %(message)s"))
        _logger.addHandler(handler)

    _audit_logger = AuditLogger()

    _logger.info("Audit logger initialized")


def get_audit_logger():
    """Get the audit logger instance."""
    global _audit_logger

    if _audit_logger is None:
        init_audit_logger()
    return _audit_logger


class AuditLogger:
    """
    Audit logging interface for link events.

    Every verification outcome, administrative reset and ledger clear goes
    through here so operators can reconstruct who linked what and when.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or _logger

    def log_verification(self, player_id: int, username: str, code: str, outcome: str):
        """Log a code verification attempt and its outcome."""
        self.logger.info(f"LINK_VERIFY | player={player_id} | user={username} | code={code} | outcome={outcome}")

    def log_link_reset(self, player_id: int, success: bool, requested_by: Optional[int] = None):
        status = "SUCCESS" if success else "FAILURE"
        self.logger.warning(f"LINK_RESET | player={player_id} | by={requested_by} | status={status}")

    def log_codes_cleared(self, count: int, success: bool, requested_by: Optional[int] = None):
        status = "SUCCESS" if success else "FAILURE"
        self.logger.warning(f"CODES_CLEARED | count={count} | by={requested_by} | status={status}")

    def log_storage_degraded(self, key: str, reason: str):
        """Log that a shared store fell back to process memory."""
        self.logger.warning(f"STORAGE_DEGRADED | key={key} | reason={reason}")

    def log_dropped_request(self, event: str, player_id: Any, reason: str):
        self.logger.info(f"REQUEST_DROPPED | event={event} | player={player_id} | reason={reason}")
