"""Base exception classes for AegisScan."""

from typing import Optional, Dict, Any


class AegisScanException(Exception):
    """Base exception class for all AegisScan exceptions.
    
    Carries a machine-readable error code, structured details and an
    optional suggestion so callers can surface the failure to a user.
    """
    
    def __init__(self, message: str, error_code: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None,
                 suggestion: Optional[str] = None):
        """Initialize base exception.
        
        Args:
            message: Human-readable error message
            error_code: Machine-readable error code for programmatic handling
            details: Additional details about the error
            suggestion: Suggested action to resolve the error
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.suggestion = suggestion
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization.
        
        Returns:
            Dictionary representation of the exception
        """
        return {
            'exception_type': self.__class__.__name__,
            'message': self.message,
            'error_code': self.error_code,
            'details': self.details,
            'suggestion': self.suggestion,
        }
    
    def __str__(self) -> str:
        if self.suggestion:
            return f"{self.message}. Suggestion: {self.suggestion}"
        return self.message


class AegisScanError(AegisScanException):
    """Recoverable error; the current operation fails but the process goes on."""
    pass


class AegisScanCriticalError(AegisScanException):
    """Non-recoverable error."""
    pass
