"""AegisScan - Simulated Web Vulnerability Scan Orchestration

Turns a scan request against a target URL into a sequence of timed phases,
streams live log events while the scan runs, and synthesizes a findings
report when the sequence completes.

This package provides:
- Phase planning and an asyncio progress driver
- A bounded live event log and progress event bus
- Pluggable detectors (simulated by default) and finding synthesis
- Severity filtering, result aggregation and json/txt/html export

IMPORTANT: Detection outcomes are simulated. No exploit traffic is sent;
the only network access is an optional single GET used by the CSRF check.
"""

__version__ = "1.0.0"
__author__ = "AegisScan Development Team"
__description__ = "Simulated web vulnerability scan orchestration engine"
__license__ = "MIT"

from .core.exceptions import AegisScanException, AegisScanError
from .core.scanning import ScanEngine, ScanRequest

__all__ = [
    'ScanEngine',
    'ScanRequest',
    'AegisScanException',
    'AegisScanError',
    '__version__'
]
