"""Exception classes for AegisScan."""

from .base_exceptions import AegisScanException, AegisScanError, AegisScanCriticalError
from .config_exceptions import ConfigurationError, ConfigValidationError
from .scan_exceptions import (
    ScanError, InvalidRequestError, TransientProbeError, SynthesisError,
    ScanStateError, ExportError, RecordStoreError
)

__all__ = [
    'AegisScanException', 'AegisScanError', 'AegisScanCriticalError',
    'ConfigurationError', 'ConfigValidationError',
    'ScanError', 'InvalidRequestError', 'TransientProbeError', 'SynthesisError',
    'ScanStateError', 'ExportError', 'RecordStoreError'
]
