"""Audit trail for scan lifecycle events."""

import logging
from datetime import datetime, timezone
from typing import Optional

from .logger_manager import AUDIT_LOGGER_NAME


class ScanAuditLogger:
    """Records who scanned which target and how each scan ended."""
    
    def __init__(self, logger: Optional[logging.Logger] = None):
        """Initialize audit logger.
        
        Args:
            logger: Logger to write to (defaults to ``aegis_scan.audit``)
        """
        self.logger = logger or logging.getLogger(AUDIT_LOGGER_NAME)
    
    def _record(self, level: int, message: str, event_type: str, **fields) -> None:
        self.logger.log(level, message, extra={
            'event_type': event_type,
            'event_category': 'scan_audit',
            'timestamp': datetime.now(timezone.utc).isoformat(),
            **fields
        })
    
    def log_scan_start(self, scan_id: str, target: str, categories: list,
                       user: Optional[str] = None) -> None:
        """Log scan start event.
        
        Args:
            scan_id: Unique scan identifier
            target: Target URL being scanned
            categories: Category identifiers requested
            user: User initiating the scan, if known
        """
        self._record(logging.INFO, "Scan started", 'scan_start',
                     scan_id=scan_id, target=target,
                     categories=categories, user=user)
    
    def log_scan_complete(self, scan_id: str, target: str, elapsed_seconds: int,
                          findings: int) -> None:
        """Log scan completion event."""
        self._record(logging.INFO, "Scan completed", 'scan_complete',
                     scan_id=scan_id, target=target,
                     elapsed_seconds=elapsed_seconds, findings=findings)
    
    def log_scan_failed(self, scan_id: str, target: str, reason: str) -> None:
        self._record(logging.WARNING, "Scan failed", 'scan_failed',
                     scan_id=scan_id, target=target, reason=reason)
    
    def log_scan_teardown(self, scan_id: str, target: str) -> None:
        self._record(logging.INFO, "Scan torn down before completion", 'scan_teardown',
                     scan_id=scan_id, target=target)
