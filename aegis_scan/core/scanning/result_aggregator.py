"""Builds ScanResult bundles and report descriptors."""

import logging
import uuid
from datetime import datetime
from typing import Dict, Optional, Sequence, Tuple

from .data_structures import (
    Category, Finding, ReportArtifact, ReportFormat, ScanRequest, ScanResult
)
from .severity_filter import summarize


logger = logging.getLogger(__name__)


class ResultAggregator:
    """Wraps findings and run metadata into a ScanResult.

    Report descriptors are synthetic: the filename embeds the completion
    time in milliseconds and the size is estimated from the findings, so
    identical findings and timestamps always give identical descriptors.
    """

    # Estimated bytes per report: fixed overhead plus a per-finding share
    BASE_SIZES: Dict[ReportFormat, int] = {
        ReportFormat.JSON: 2048,
        ReportFormat.TXT: 1024,
        ReportFormat.HTML: 6144,
    }
    PER_FINDING_SIZES: Dict[ReportFormat, int] = {
        ReportFormat.JSON: 512,
        ReportFormat.TXT: 256,
        ReportFormat.HTML: 1024,
    }

    def build(self, request: ScanRequest, findings: Sequence[Finding],
              elapsed_seconds: int, started_at: datetime,
              completed_at: Optional[datetime] = None,
              scan_id: Optional[str] = None,
              payloads_tested: int = 0,
              dbms_detected: Optional[str] = None) -> ScanResult:
        """Create the result of a completed scan.

        Args:
            request: Request that was scanned
            findings: Synthesized findings
            elapsed_seconds: Elapsed time counted by the driver
            started_at: Wall-clock start of the scan
            completed_at: Wall-clock completion (defaults to now)
            scan_id: Scan identifier (generated when omitted)
            payloads_tested: Simulated payload counter
            dbms_detected: DBMS guessed during the run, if any

        Returns:
            ScanResult instance
        """
        completed_at = completed_at or datetime.now()
        findings = tuple(findings)

        result = ScanResult(
            scan_id=scan_id or str(uuid.uuid4()),
            target_url=request.target_url,
            findings=findings,
            elapsed_seconds=int(elapsed_seconds),
            categories_run=tuple(request.selected_categories),
            report_artifacts=self.build_artifacts(
                request.selected_categories, request.report_formats, findings, completed_at
            ),
            started_at=started_at,
            completed_at=completed_at,
            summary=summarize(findings),
            payloads_tested=payloads_tested,
            dbms_detected=dbms_detected,
            advanced=request.advanced,
        )
        logger.debug(f"Aggregated result {result.scan_id} with {len(findings)} finding(s)")
        return result

    def build_artifacts(self, categories: Sequence[Category],
                        formats: Sequence[ReportFormat],
                        findings: Sequence[Finding],
                        timestamp: datetime) -> Tuple[ReportArtifact, ...]:
        """One descriptor per requested format, in request order."""
        stem = self.filename_stem(categories, timestamp)
        return tuple(
            ReportArtifact(
                format=report_format,
                filename=f"{stem}.{report_format.extension}",
                size_bytes=self.estimate_size(report_format, findings),
            )
            for report_format in formats
        )

    @staticmethod
    def filename_stem(categories: Sequence[Category], timestamp: datetime) -> str:
        slug = "-".join(category.value for category in categories) or "scan"
        return f"{slug}_scan_{int(timestamp.timestamp() * 1000)}"

    def estimate_size(self, report_format: ReportFormat, findings: Sequence[Finding]) -> int:
        size = self.BASE_SIZES[report_format]
        for finding in findings:
            size += self.PER_FINDING_SIZES[report_format] + len(finding.description)
        return size
