"""Live progress: driver, log stream and event bus."""

from .models import DriverState, ScanRunState, ProgressSnapshot
from .log_stream import EventLogStream
from .events import ProgressEvent, ProgressEventType, ProgressEventBus, ProgressEventEmitter
from .driver import ProgressDriver, ScanHandle

__all__ = [
    'DriverState', 'ScanRunState', 'ProgressSnapshot',
    'EventLogStream',
    'ProgressEvent', 'ProgressEventType', 'ProgressEventBus', 'ProgressEventEmitter',
    'ProgressDriver', 'ScanHandle'
]
