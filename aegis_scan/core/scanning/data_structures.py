"""Core data structures for the scanning engine."""

import uuid
from datetime import datetime
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Any, Optional, Iterable, Mapping, Tuple, Union
from urllib.parse import urlparse

from ..exceptions import InvalidRequestError


class Category(Enum):
    """Scan categories a request can select."""
    SQLI = "sqli"
    XSS = "xss"
    CSRF = "csrf"

    @property
    def display_name(self) -> str:
        return _CATEGORY_NAMES[self]

    @classmethod
    def parse(cls, value: Union[str, 'Category']) -> 'Category':
        """Parse a category id (case-insensitive)."""
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


_CATEGORY_NAMES = {
    Category.SQLI: "SQL Injection",
    Category.XSS: "Cross-Site Scripting",
    Category.CSRF: "Cross-Site Request Forgery",
}


class ReportFormat(Enum):
    """Report formats a request can ask for."""
    JSON = "json"
    TXT = "txt"
    HTML = "html"

    @property
    def extension(self) -> str:
        return self.value

    @property
    def mime_type(self) -> str:
        return _FORMAT_MIME_TYPES[self]

    @classmethod
    def parse(cls, value: Union[str, 'ReportFormat']) -> 'ReportFormat':
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


_FORMAT_MIME_TYPES = {
    ReportFormat.JSON: "application/json",
    ReportFormat.TXT: "text/plain",
    ReportFormat.HTML: "text/html",
}


class Severity(Enum):
    """Finding severity, ordered Critical > High > Medium > Low."""
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @property
    def rank(self) -> int:
        """Ordinal rank; higher is more severe."""
        return _SEVERITY_RANKS[self]

    @classmethod
    def parse(cls, value: Union[str, 'Severity']) -> 'Severity':
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        for severity in cls:
            if severity.value.lower() == normalized:
                return severity
        raise ValueError(f"Unknown severity: {value}")


_SEVERITY_RANKS = {
    Severity.CRITICAL: 4,
    Severity.HIGH: 3,
    Severity.MEDIUM: 2,
    Severity.LOW: 1,
}

ALL_SEVERITIES = frozenset(Severity)


class LogKind(Enum):
    """Kinds of live log entries."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"
    PAYLOAD = "payload"

    @property
    def prefix(self) -> str:
        """Terminal-style marker for the entry kind."""
        return _LOG_PREFIXES[self]


_LOG_PREFIXES = {
    LogKind.INFO: "[*]",
    LogKind.WARNING: "[!]",
    LogKind.ERROR: "[!]",
    LogKind.SUCCESS: "[+]",
    LogKind.PAYLOAD: "[>]",
}


class PhaseStage(Enum):
    """Position of a phase inside its category band."""
    SETUP = "setup"
    PARAMETER_ANALYSIS = "parameter_analysis"
    PAYLOAD_TESTING = "payload_testing"
    VERIFICATION = "verification"
    FINALIZE = "finalize"
    REPORT = "report"
    COMPLETED = "completed"


CATEGORY_STAGES = (
    PhaseStage.SETUP,
    PhaseStage.PARAMETER_ANALYSIS,
    PhaseStage.PAYLOAD_TESTING,
    PhaseStage.VERIFICATION,
    PhaseStage.FINALIZE,
)


def _parse_target_url(target_url: Any) -> Optional[str]:
    """Return a problem description, or None when the URL is usable."""
    if not isinstance(target_url, str) or not target_url.strip():
        return "Please enter a target URL"
    try:
        parsed = urlparse(target_url.strip())
        # Accessing port validates it; raises ValueError when out of range
        parsed.port
    except ValueError:
        return f"Target URL does not parse: {target_url}"
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        return "Please enter a valid URL (include http:// or https://)"
    return None


def _ordered_unique(values: Iterable[Any], parser, kind: str,
                    problems: List[str]) -> Tuple[Any, ...]:
    parsed = []
    for value in values:
        try:
            item = parser(value)
        except ValueError:
            problems.append(f"Unknown {kind}: {value}")
            continue
        if item not in parsed:
            parsed.append(item)
    return tuple(parsed)


@dataclass(frozen=True)
class ScanRequest:
    """Immutable description of a scan to run.

    The constructor checks the URL and both selections; :meth:`create` (or
    :meth:`from_dict`) additionally parses ids, drops duplicates and freezes
    ``advanced``. ``advanced`` is left out of the hash.
    """
    target_url: str
    selected_categories: Tuple[Category, ...]
    report_formats: Tuple[ReportFormat, ...]
    advanced: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}), hash=False)

    def __post_init__(self):
        problems: List[str] = []

        url_problem = _parse_target_url(self.target_url)
        if url_problem:
            problems.append(url_problem)
        if not self.selected_categories:
            problems.append("Please select at least one scan category")
        elif not all(isinstance(c, Category) for c in self.selected_categories):
            problems.append("Scan categories must be Category members")
        if not self.report_formats:
            problems.append("Please select at least one report format")
        elif not all(isinstance(f, ReportFormat) for f in self.report_formats):
            problems.append("Report formats must be ReportFormat members")

        if problems:
            raise InvalidRequestError(
                problems[0],
                problems=problems,
                target=self.target_url if isinstance(self.target_url, str) else None
            )

    @classmethod
    def create(cls, target_url: str,
               categories: Iterable[Union[str, Category]],
               formats: Iterable[Union[str, ReportFormat]],
               advanced: Optional[Mapping[str, Any]] = None) -> 'ScanRequest':
        """Validate inputs and build a request.

        Categories and formats keep the caller's order with duplicates
        removed. Unordered collections (sets) are put in declaration order
        so the phase plan is stable for a given input.

        Raises:
            InvalidRequestError: If the URL does not parse or a selection is
                empty or unknown
        """
        problems: List[str] = []

        url_problem = _parse_target_url(target_url)
        if url_problem:
            problems.append(url_problem)

        categories = cls._stable_order(categories or (), Category)
        formats = cls._stable_order(formats or (), ReportFormat)

        selected_categories = _ordered_unique(categories, Category.parse, "category", problems)
        report_formats = _ordered_unique(formats, ReportFormat.parse, "report format", problems)

        if not selected_categories:
            problems.append("Please select at least one scan category")
        if not report_formats:
            problems.append("Please select at least one report format")

        if problems:
            raise InvalidRequestError(
                problems[0],
                problems=problems,
                target=target_url if isinstance(target_url, str) else None
            )

        return cls(
            target_url=target_url.strip(),
            selected_categories=selected_categories,
            report_formats=report_formats,
            advanced=MappingProxyType(dict(advanced or {})),
        )

    @staticmethod
    def _stable_order(values: Iterable[Any], enum_cls) -> List[Any]:
        if not isinstance(values, (set, frozenset)):
            return list(values)
        order = {member.value: index for index, member in enumerate(enum_cls)}

        def sort_key(value):
            key = value.value if isinstance(value, enum_cls) else str(value).strip().lower()
            return (order.get(key, len(order)), key)

        return sorted(values, key=sort_key)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'ScanRequest':
        """Build a request from a form-style mapping.

        Accepts snake_case or camelCase keys (``targetUrl``,
        ``selectedCategories``/``selectedScanTypes``, ``reportFormats``/
        ``selectedReportFormats``).
        """
        def first(*keys, default=None):
            for key in keys:
                if key in data and data[key] is not None:
                    return data[key]
            return default

        return cls.create(
            target_url=first('target_url', 'targetUrl', default=''),
            categories=first('selected_categories', 'selectedCategories',
                             'selectedScanTypes', 'categories', default=()),
            formats=first('report_formats', 'reportFormats',
                          'selectedReportFormats', 'formats', default=()),
            advanced=first('advanced', default=None),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'target_url': self.target_url,
            'selected_categories': [c.value for c in self.selected_categories],
            'report_formats': [f.value for f in self.report_formats],
            'advanced': dict(self.advanced),
        }


@dataclass(frozen=True)
class Phase:
    """One timed step of a simulated scan."""
    label: str
    target_progress: float
    category: Optional[Category] = None
    stage: PhaseStage = PhaseStage.SETUP

    def to_dict(self) -> Dict[str, Any]:
        return {
            'label': self.label,
            'target_progress': self.target_progress,
            'category': self.category.value if self.category else None,
            'stage': self.stage.value,
        }


@dataclass(frozen=True)
class LogEntry:
    """A single live log line."""
    timestamp: datetime
    kind: LogKind
    message: str

    def format_line(self) -> str:
        return f"[{self.timestamp.strftime('%H:%M:%S')}] {self.kind.prefix} {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timestamp': self.timestamp.isoformat(),
            'kind': self.kind.value,
            'message': self.message,
        }


@dataclass(frozen=True)
class Finding:
    """A synthesized vulnerability record."""
    category: Category
    subtype: str
    severity: Severity
    description: str
    target_url: str
    parameter: str
    payload: Optional[str] = None
    dbms_guess: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'category': self.category.value,
            'type': self.category.display_name,
            'subtype': self.subtype,
            'severity': self.severity.value,
            'description': self.description,
            'target_url': self.target_url,
            'parameter': self.parameter,
            'payload': self.payload,
            'dbms_guess': self.dbms_guess,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Finding':
        return cls(
            category=Category.parse(data['category']),
            subtype=data['subtype'],
            severity=Severity.parse(data['severity']),
            description=data['description'],
            target_url=data['target_url'],
            parameter=data['parameter'],
            payload=data.get('payload'),
            dbms_guess=data.get('dbms_guess'),
        )


@dataclass(frozen=True)
class ReportArtifact:
    """Descriptor of a report file the exporter can produce."""
    format: ReportFormat
    filename: str
    size_bytes: int

    @property
    def size_label(self) -> str:
        return f"{max(1, round(self.size_bytes / 1024))}KB"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'format': self.format.value,
            'filename': self.filename,
            'size_bytes': self.size_bytes,
            'size': self.size_label,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'ReportArtifact':
        return cls(
            format=ReportFormat.parse(data['format']),
            filename=data['filename'],
            size_bytes=int(data['size_bytes']),
        )


@dataclass(frozen=True)
class ScanSummary:
    """Counts over a scan's findings."""
    counts: Mapping[Severity, int]
    total: int
    highest_severity: Optional[Severity]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'counts': {severity.value: self.counts.get(severity, 0) for severity in Severity},
            'total': self.total,
            'highest_severity': self.highest_severity.value if self.highest_severity else None,
        }


@dataclass(frozen=True)
class ScanResult:
    """Complete output bundle of a finished scan."""
    scan_id: str
    target_url: str
    findings: Tuple[Finding, ...]
    elapsed_seconds: int
    categories_run: Tuple[Category, ...]
    report_artifacts: Tuple[ReportArtifact, ...]
    started_at: datetime
    completed_at: datetime
    summary: ScanSummary
    payloads_tested: int = 0
    dbms_detected: Optional[str] = None
    advanced: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def to_request(self) -> ScanRequest:
        """Rebuild the request that produced this result (for rescans)."""
        return ScanRequest.create(
            target_url=self.target_url,
            categories=self.categories_run,
            formats=[artifact.format for artifact in self.report_artifacts],
            advanced=self.advanced,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'scan_id': self.scan_id,
            'target_url': self.target_url,
            'findings': [finding.to_dict() for finding in self.findings],
            'elapsed_seconds': self.elapsed_seconds,
            'categories_run': [category.value for category in self.categories_run],
            'report_artifacts': [artifact.to_dict() for artifact in self.report_artifacts],
            'started_at': self.started_at.isoformat(),
            'completed_at': self.completed_at.isoformat(),
            'summary': self.summary.to_dict(),
            'payloads_tested': self.payloads_tested,
            'dbms_detected': self.dbms_detected,
            'advanced': dict(self.advanced),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'ScanResult':
        """Restore a result from :meth:`to_dict` output."""
        from .severity_filter import summarize

        findings = tuple(Finding.from_dict(item) for item in data.get('findings', []))
        return cls(
            scan_id=data.get('scan_id') or str(uuid.uuid4()),
            target_url=data['target_url'],
            findings=findings,
            elapsed_seconds=int(data.get('elapsed_seconds', 0)),
            categories_run=tuple(Category.parse(c) for c in data.get('categories_run', [])),
            report_artifacts=tuple(
                ReportArtifact.from_dict(item) for item in data.get('report_artifacts', [])
            ),
            started_at=datetime.fromisoformat(data['started_at']),
            completed_at=datetime.fromisoformat(data['completed_at']),
            summary=summarize(findings),
            payloads_tested=int(data.get('payloads_tested', 0)),
            dbms_detected=data.get('dbms_detected'),
            advanced=MappingProxyType(dict(data.get('advanced') or {})),
        )
