"""Severity filtering and counting over findings."""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set, Union

from .data_structures import Finding, Severity, ScanSummary, ALL_SEVERITIES


SeverityLike = Union[str, Severity]


def _normalize(severities: Optional[Iterable[SeverityLike]]) -> Set[Severity]:
    if severities is None:
        return set(ALL_SEVERITIES)
    return {Severity.parse(severity) for severity in severities}


def filter_findings(findings: Sequence[Finding],
                    active: Optional[Iterable[SeverityLike]] = None) -> List[Finding]:
    """Return the findings whose severity is active, in original order.

    Args:
        findings: Findings to filter
        active: Active severities (labels or enum members); ``None`` means all

    Returns:
        New list with the matching findings
    """
    active_set = _normalize(active)
    return [finding for finding in findings if finding.severity in active_set]


def count_by_severity(findings: Iterable[Finding]) -> Dict[Severity, int]:
    """Count findings per severity; every level is present in the result."""
    counts = {severity: 0 for severity in Severity}
    for finding in findings:
        counts[finding.severity] += 1
    return counts


def highest_severity(findings: Iterable[Finding]) -> Optional[Severity]:
    highest = None
    for finding in findings:
        if highest is None or finding.severity.rank > highest.rank:
            highest = finding.severity
    return highest


def summarize(findings: Sequence[Finding]) -> ScanSummary:
    return ScanSummary(
        counts=count_by_severity(findings),
        total=len(findings),
        highest_severity=highest_severity(findings),
    )


@dataclass
class SeverityFilterState:
    """Active-severity selection behind a findings view.

    Holds no findings itself; :meth:`apply` projects a list through the
    current selection and :meth:`badge_counts` always counts the unfiltered
    list.
    """
    active: Set[Severity] = field(default_factory=lambda: set(ALL_SEVERITIES))

    @classmethod
    def of(cls, severities: Optional[Iterable[SeverityLike]] = None) -> 'SeverityFilterState':
        return cls(active=_normalize(severities))

    def toggle(self, severity: SeverityLike) -> None:
        severity = Severity.parse(severity)
        if severity in self.active:
            self.active.discard(severity)
        else:
            self.active.add(severity)

    def select_all(self) -> None:
        self.active = set(ALL_SEVERITIES)

    def clear_all(self) -> None:
        self.active = set()

    def is_active(self, severity: SeverityLike) -> bool:
        return Severity.parse(severity) in self.active

    def apply(self, findings: Sequence[Finding]) -> List[Finding]:
        return filter_findings(findings, self.active)

    def badge_counts(self, findings: Sequence[Finding]) -> Dict[Severity, int]:
        return count_by_severity(findings)

    def labels(self) -> List[str]:
        """Active labels, most severe first."""
        return [s.value for s in sorted(self.active, key=lambda s: s.rank, reverse=True)]
