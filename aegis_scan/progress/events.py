"""Event system for live scan progress updates."""

import asyncio
import json
import logging
import uuid
from datetime import datetime
from typing import Dict, List, Any, Optional, Callable
from dataclasses import dataclass, field
from enum import Enum

from ..core.scanning.data_structures import LogEntry, Phase, ScanRequest, ScanResult


logger = logging.getLogger(__name__)


class ProgressEventType(Enum):
    """Progress event types."""
    SCAN_STARTED = "scan_started"
    PHASE_ADVANCED = "phase_advanced"
    LOG_APPENDED = "log_appended"
    SCAN_COMPLETED = "scan_completed"
    SCAN_FAILED = "scan_failed"


@dataclass
class ProgressEvent:
    """Progress event data structure."""
    event_type: ProgressEventType = ProgressEventType.PHASE_ADVANCED
    scan_id: str = ""
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=datetime.now)
    data: Dict[str, Any] = field(default_factory=dict)
    source: str = "progress_driver"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'event_id': self.event_id,
            'event_type': self.event_type.value,
            'scan_id': self.scan_id,
            'timestamp': self.timestamp.isoformat(),
            'data': self.data,
            'source': self.source
        }

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProgressEvent':
        """Create from dictionary."""
        return cls(
            event_type=ProgressEventType(data['event_type']),
            scan_id=data.get('scan_id', ''),
            event_id=data.get('event_id') or str(uuid.uuid4()),
            timestamp=datetime.fromisoformat(data['timestamp']),
            data=data.get('data', {}),
            source=data.get('source', 'progress_driver')
        )


EventCallback = Callable[[ProgressEvent], Any]


class ProgressEventBus:
    """Event bus for progress updates."""

    def __init__(self, max_event_history: int = 1000):
        """Initialize event bus.

        Args:
            max_event_history: Maximum number of events to keep in history
        """
        self.subscribers: Dict[str, List[EventCallback]] = {}
        self.event_history: List[ProgressEvent] = []
        self.max_event_history = max_event_history
        self._lock = asyncio.Lock()

    async def emit(self, event: ProgressEvent) -> None:
        """Emit progress event to all subscribers.

        Args:
            event: ProgressEvent to emit
        """
        async with self._lock:
            self.event_history.append(event)
            if len(self.event_history) > self.max_event_history:
                self.event_history.pop(0)

        logger.debug(f"Emitting event {event.event_type.value} for scan {event.scan_id}")
        await self._notify_subscribers(event)

    async def subscribe(self, event_type: str, callback: EventCallback) -> None:
        """Subscribe to progress events.

        Args:
            event_type: Event type value to subscribe to ('*' for all events)
            callback: Sync or async callable invoked with each event
        """
        async with self._lock:
            self.subscribers.setdefault(event_type, []).append(callback)

        logger.debug(f"Subscriber added for event type: {event_type}")

    async def unsubscribe(self, event_type: str, callback: EventCallback) -> None:
        """Unsubscribe from progress events."""
        async with self._lock:
            if event_type in self.subscribers:
                if callback in self.subscribers[event_type]:
                    self.subscribers[event_type].remove(callback)
                if not self.subscribers[event_type]:
                    del self.subscribers[event_type]

        logger.debug(f"Subscriber removed for event type: {event_type}")

    async def get_event_history(self, scan_id: Optional[str] = None,
                                event_type: Optional[str] = None,
                                limit: int = 100) -> List[ProgressEvent]:
        """Get event history.

        Args:
            scan_id: Filter by scan ID (optional)
            event_type: Filter by event type value (optional)
            limit: Maximum number of events to return

        Returns:
            Most recent matching events, oldest first
        """
        async with self._lock:
            events = self.event_history.copy()

        if scan_id:
            events = [e for e in events if e.scan_id == scan_id]

        if event_type:
            events = [e for e in events if e.event_type.value == event_type]

        return events[-limit:] if limit > 0 else events

    async def clear_history(self) -> int:
        """Clear event history and return the number of events dropped."""
        async with self._lock:
            cleared_count = len(self.event_history)
            self.event_history.clear()

        if cleared_count > 0:
            logger.info(f"Cleared {cleared_count} events from history")
        return cleared_count

    async def _notify_subscribers(self, event: ProgressEvent) -> None:
        """Notify all subscribers of an event."""
        event_subscribers = self.subscribers.get(event.event_type.value, [])
        wildcard_subscribers = self.subscribers.get('*', [])

        for callback in event_subscribers + wildcard_subscribers:
            try:
                if asyncio.iscoroutinefunction(callback):
                    await callback(event)
                else:
                    callback(event)
            except Exception as e:
                # A broken subscriber must not stop the scan
                logger.error(f"Error in event subscriber: {e}")


class ProgressEventEmitter:
    """Helper for emitting typed scan events."""

    def __init__(self, event_bus: ProgressEventBus):
        self.event_bus = event_bus

    async def scan_started(self, scan_id: str, request: ScanRequest, phase_count: int) -> None:
        await self.event_bus.emit(ProgressEvent(
            event_type=ProgressEventType.SCAN_STARTED,
            scan_id=scan_id,
            data={'request': request.to_dict(), 'phase_count': phase_count}
        ))

    async def phase_advanced(self, scan_id: str, phase: Phase, index: int) -> None:
        await self.event_bus.emit(ProgressEvent(
            event_type=ProgressEventType.PHASE_ADVANCED,
            scan_id=scan_id,
            data={'phase': phase.to_dict(), 'index': index, 'progress': phase.target_progress}
        ))

    async def log_appended(self, scan_id: str, entry: LogEntry) -> None:
        await self.event_bus.emit(ProgressEvent(
            event_type=ProgressEventType.LOG_APPENDED,
            scan_id=scan_id,
            data={'entry': entry.to_dict()}
        ))

    async def scan_completed(self, scan_id: str, result: ScanResult) -> None:
        await self.event_bus.emit(ProgressEvent(
            event_type=ProgressEventType.SCAN_COMPLETED,
            scan_id=scan_id,
            data={
                'summary': result.summary.to_dict(),
                'elapsed_seconds': result.elapsed_seconds,
            }
        ))

    async def scan_failed(self, scan_id: str, error: BaseException) -> None:
        await self.event_bus.emit(ProgressEvent(
            event_type=ProgressEventType.SCAN_FAILED,
            scan_id=scan_id,
            data={'error': str(error), 'error_type': type(error).__name__}
        ))
