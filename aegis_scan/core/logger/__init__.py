"""Logging framework for AegisScan."""

from .logger_manager import LoggerManager, get_logger
from .scan_audit_logger import ScanAuditLogger
from .structured_formatter import StructuredFormatter

__all__ = ['LoggerManager', 'get_logger', 'ScanAuditLogger', 'StructuredFormatter']
