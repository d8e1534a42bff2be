"""Run-state models for the progress driver."""

import asyncio
import uuid
from datetime import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Any, Optional, Tuple

from .log_stream import EventLogStream
from ..core.scanning.data_structures import (
    Category, Finding, LogEntry, Phase, ScanRequest, ScanResult
)
from ..core.scanning.detectors.base import CategoryObservation


class DriverState(Enum):
    """Progress driver lifecycle states."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (DriverState.COMPLETED, DriverState.FAILED)


@dataclass
class ScanRunState:
    """Mutable state owned by a single running scan."""
    request: ScanRequest
    phases: List[Phase]
    log: EventLogStream
    scan_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    state: DriverState = DriverState.IDLE
    cursor: int = 0
    current_phase: Optional[Phase] = None
    progress: float = 0.0
    elapsed_seconds: int = 0
    payloads_tested: int = 0
    category_payloads: Dict[Category, int] = field(default_factory=dict)
    observed_subtypes: Dict[Category, str] = field(default_factory=dict)
    last_detected_subtype: Optional[str] = None
    dbms_detected: Optional[str] = None
    started_at: Optional[datetime] = None
    timer_tasks: List[asyncio.Task] = field(default_factory=list)
    findings: Optional[Tuple[Finding, ...]] = None
    synthesis_runs: int = 0
    result: Optional[ScanResult] = None
    error: Optional[BaseException] = None
    torn_down: bool = False

    @property
    def phases_remaining(self) -> int:
        return len(self.phases) - self.cursor

    @property
    def is_live(self) -> bool:
        """True while ticks may still change the state."""
        return self.state == DriverState.RUNNING and not self.torn_down

    def record_payloads(self, category: Optional[Category], count: int) -> None:
        self.payloads_tested += count
        if category is not None:
            self.category_payloads[category] = self.category_payloads.get(category, 0) + count

    def observations(self) -> Dict[Category, CategoryObservation]:
        """Per-category observations handed to the detectors."""
        return {
            category: CategoryObservation(
                category=category,
                subtype=self.observed_subtypes.get(category),
                dbms_guess=self.dbms_detected if category == Category.SQLI else None,
                payloads_tested=self.category_payloads.get(category, 0),
            )
            for category in self.request.selected_categories
        }


@dataclass(frozen=True)
class ProgressSnapshot:
    """Immutable view of a scan at one instant."""
    scan_id: str
    state: DriverState
    phase_label: Optional[str]
    progress: float
    elapsed_seconds: int
    payloads_tested: int
    log_entries: Tuple[LogEntry, ...]
    dbms_detected: Optional[str] = None
    last_detected_subtype: Optional[str] = None

    @classmethod
    def of(cls, run: ScanRunState) -> 'ProgressSnapshot':
        return cls(
            scan_id=run.scan_id,
            state=run.state,
            phase_label=run.current_phase.label if run.current_phase else None,
            progress=run.progress,
            elapsed_seconds=run.elapsed_seconds,
            payloads_tested=run.payloads_tested,
            log_entries=tuple(run.log.entries()),
            dbms_detected=run.dbms_detected,
            last_detected_subtype=run.last_detected_subtype,
        )

    @property
    def elapsed_label(self) -> str:
        """Elapsed time as ``MM:SS``."""
        minutes, seconds = divmod(self.elapsed_seconds, 60)
        return f"{minutes:02d}:{seconds:02d}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'scan_id': self.scan_id,
            'state': self.state.value,
            'phase_label': self.phase_label,
            'progress': self.progress,
            'elapsed_seconds': self.elapsed_seconds,
            'payloads_tested': self.payloads_tested,
            'log_entries': [entry.to_dict() for entry in self.log_entries],
            'dbms_detected': self.dbms_detected,
            'last_detected_subtype': self.last_detected_subtype,
        }
