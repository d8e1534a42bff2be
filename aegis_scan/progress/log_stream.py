"""Bounded, timestamp-ordered live log."""

from collections import deque
from datetime import datetime
from typing import Callable, Deque, List, Optional

from ..core.scanning.data_structures import LogEntry, LogKind


DEFAULT_CAPACITY = 100


class EventLogStream:
    """Append-only log keeping the most recent ``capacity`` entries.

    The oldest entry is evicted first. Timestamps come from ``clock`` but
    are clamped so that an entry is never older than its predecessor, even
    if the wall clock steps backwards.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY,
                 clock: Optional[Callable[[], datetime]] = None):
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self.clock = clock or datetime.now
        self.auto_follow = True
        self._entries: Deque[LogEntry] = deque(maxlen=capacity)
        self._last_timestamp: Optional[datetime] = None
        self.total_appended = 0

    def append(self, kind: LogKind, message: str) -> LogEntry:
        """Create and store a new entry.

        Args:
            kind: Entry kind
            message: Human readable message

        Returns:
            The stored LogEntry
        """
        timestamp = self.clock()
        if self._last_timestamp is not None and timestamp < self._last_timestamp:
            timestamp = self._last_timestamp

        entry = LogEntry(timestamp=timestamp, kind=kind, message=message)
        self._entries.append(entry)
        self._last_timestamp = timestamp
        self.total_appended += 1
        return entry

    def entries(self) -> List[LogEntry]:
        """Retained entries, oldest first."""
        return list(self._entries)

    def latest(self) -> Optional[LogEntry]:
        return self._entries[-1] if self._entries else None

    def tail(self, count: int) -> List[LogEntry]:
        if count <= 0:
            return []
        return list(self._entries)[-count:]

    @property
    def evicted(self) -> int:
        """Number of entries dropped to honour the capacity."""
        return self.total_appended - len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(list(self._entries))
