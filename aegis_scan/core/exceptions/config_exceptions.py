"""Configuration-related exception classes."""

from typing import Optional, List
from .base_exceptions import AegisScanError


class ConfigurationError(AegisScanError):
    """Raised when configuration cannot be loaded or is unusable."""
    
    def __init__(self, message: str, config_path: Optional[str] = None, **kwargs):
        """Initialize configuration error.
        
        Args:
            message: Error message
            config_path: Path of the offending configuration file
            **kwargs: Additional arguments for base class
        """
        details = kwargs.get('details', {})
        if config_path:
            details['config_path'] = config_path
        
        kwargs['details'] = details
        kwargs['error_code'] = kwargs.get('error_code', 'CONFIG_ERROR')
        
        super().__init__(message, **kwargs)
        
        self.config_path = config_path


class ConfigValidationError(ConfigurationError):
    """Raised when configuration values fail validation."""
    
    def __init__(self, errors: List[str], **kwargs):
        """Initialize validation error.
        
        Args:
            errors: List of validation error messages
            **kwargs: Additional arguments for base class
        """
        message = f"Configuration validation failed with {len(errors)} error(s)"
        
        details = kwargs.get('details', {})
        details['validation_errors'] = errors
        
        kwargs['details'] = details
        kwargs['error_code'] = 'CONFIG_VALIDATION_ERROR'
        kwargs['suggestion'] = 'Fix the listed configuration values'
        
        super().__init__(message, **kwargs)
        
        self.errors = errors
