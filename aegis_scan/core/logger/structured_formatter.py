"""Structured formatter for JSON logging."""

import json
import logging
from datetime import datetime
from typing import Dict, Any


class StructuredFormatter(logging.Formatter):
    """Formatter that renders each record as a single JSON line."""
    
    # LogRecord attributes that are never copied into 'extra'
    STANDARD_FIELDS = {
        'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
        'module', 'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
        'thread', 'threadName', 'processName', 'process', 'getMessage',
        'exc_info', 'exc_text', 'stack_info', 'taskName', 'message', 'asctime'
    }
    
    # Correlation fields written at the top level instead of under 'extra'
    SCAN_FIELDS = ('scan_id', 'target')
    
    def __init__(self, include_extra: bool = True):
        """Initialize structured formatter.
        
        Args:
            include_extra: Whether to include extra fields from log records
        """
        super().__init__()
        self.include_extra = include_extra
    
    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.
        
        Args:
            record: Log record to format
            
        Returns:
            JSON-formatted log string
        """
        log_data = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }
        
        for key in self.SCAN_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_data[key] = str(value)
        
        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)
        
        if self.include_extra:
            extra_fields = self._extract_extra_fields(record)
            if extra_fields:
                log_data['extra'] = extra_fields
        
        try:
            return json.dumps(log_data, ensure_ascii=False, separators=(',', ':'))
        except (TypeError, ValueError) as e:
            return f"LOG_SERIALIZATION_ERROR: {str(e)} - Original message: {record.getMessage()}"
    
    def _extract_extra_fields(self, record: logging.LogRecord) -> Dict[str, Any]:
        """Extract caller-supplied ``extra`` fields from a log record."""
        extra_fields = {}
        for key, value in record.__dict__.items():
            if key in self.STANDARD_FIELDS or key in self.SCAN_FIELDS or key.startswith('_'):
                continue
            try:
                json.dumps(value)
                extra_fields[key] = value
            except (TypeError, ValueError):
                extra_fields[key] = str(value)
        
        return extra_fields
