"""Scan-related exception classes."""

from typing import Optional, List
from .base_exceptions import AegisScanError


class ScanError(AegisScanError):
    """Base class for scan-related errors."""
    
    def __init__(self, message: str, target: Optional[str] = None,
                 scan_id: Optional[str] = None, **kwargs):
        """Initialize scan error.
        
        Args:
            message: Error message
            target: Target URL of the scan
            scan_id: Identifier of the scan
            **kwargs: Additional arguments for base class
        """
        details = kwargs.get('details', {})
        if target:
            details['target'] = target
        if scan_id:
            details['scan_id'] = scan_id
        
        kwargs['details'] = details
        kwargs['error_code'] = kwargs.get('error_code', 'SCAN_ERROR')
        
        super().__init__(message, **kwargs)
        
        self.target = target
        self.scan_id = scan_id


class InvalidRequestError(ScanError):
    """Raised synchronously when a scan request is rejected.
    
    Covers empty category or report format selections, unknown values and
    target URLs that do not parse as absolute http(s) URLs.
    """
    
    def __init__(self, message: str, problems: Optional[List[str]] = None, **kwargs):
        details = kwargs.get('details', {})
        details['problems'] = problems or [message]
        
        kwargs['details'] = details
        kwargs['error_code'] = 'INVALID_REQUEST'
        kwargs.setdefault('suggestion', 'Correct the scan request and submit it again')
        
        super().__init__(message, **kwargs)
        
        self.problems = details['problems']


class TransientProbeError(ScanError):
    """Raised by the ancillary CSRF probe when the target cannot be fetched."""
    
    def __init__(self, message: str, **kwargs):
        kwargs['error_code'] = 'TRANSIENT_PROBE_FAILURE'
        super().__init__(message, **kwargs)


class SynthesisError(ScanError):
    """Raised when findings cannot be synthesized for a completed scan."""
    
    def __init__(self, message: str, **kwargs):
        kwargs['error_code'] = 'SYNTHESIS_FAILURE'
        kwargs.setdefault('suggestion', 'Submit a new scan request')
        super().__init__(message, **kwargs)


class ScanStateError(ScanError):
    """Raised on an illegal progress driver transition."""
    
    def __init__(self, message: str, current_state: Optional[str] = None, **kwargs):
        details = kwargs.get('details', {})
        if current_state:
            details['current_state'] = current_state
        
        kwargs['details'] = details
        kwargs['error_code'] = 'SCAN_STATE_ERROR'
        
        super().__init__(message, **kwargs)
        
        self.current_state = current_state


class ExportError(ScanError):
    """Raised when a report cannot be rendered in the requested format."""
    
    def __init__(self, message: str, report_format: Optional[str] = None, **kwargs):
        details = kwargs.get('details', {})
        if report_format:
            details['format'] = report_format
        
        kwargs['details'] = details
        kwargs['error_code'] = 'EXPORT_ERROR'
        
        super().__init__(message, **kwargs)
        
        self.report_format = report_format


class RecordStoreError(ScanError):
    """Raised by a scan record store when saving or listing fails."""
    
    def __init__(self, message: str, user_id: Optional[str] = None, **kwargs):
        details = kwargs.get('details', {})
        if user_id:
            details['user_id'] = user_id
        
        kwargs['details'] = details
        kwargs['error_code'] = 'RECORD_STORE_ERROR'
        
        super().__init__(message, **kwargs)
        
        self.user_id = user_id
