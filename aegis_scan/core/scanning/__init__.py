"""Scanning engine: request model, planner, detectors and aggregation."""

from .data_structures import (
    Category, ReportFormat, Severity, LogKind, PhaseStage,
    ScanRequest, Phase, LogEntry, Finding, ReportArtifact, ScanSummary, ScanResult
)
from .planner import plan_phases
from .severity_filter import (
    SeverityFilterState, filter_findings, count_by_severity, highest_severity, summarize
)
from .synthesizer import FindingSynthesizer
from .result_aggregator import ResultAggregator
from .scan_engine import ScanEngine

__all__ = [
    'Category', 'ReportFormat', 'Severity', 'LogKind', 'PhaseStage',
    'ScanRequest', 'Phase', 'LogEntry', 'Finding', 'ReportArtifact', 'ScanSummary', 'ScanResult',
    'plan_phases',
    'SeverityFilterState', 'filter_findings', 'count_by_severity', 'highest_severity', 'summarize',
    'FindingSynthesizer', 'ResultAggregator', 'ScanEngine'
]
