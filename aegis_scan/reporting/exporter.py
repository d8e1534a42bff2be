"""Report export: renders scan results into downloadable files."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Union

from .formatters.base import FormatterRegistry, FormatterError
from .templates import TemplateManager
from ..core.exceptions import ExportError
from ..core.scanning.data_structures import ReportFormat, ScanResult
from ..core.scanning.result_aggregator import ResultAggregator
from ..core.scanning.severity_filter import SeverityLike, filter_findings


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExportedReport:
    """A rendered report ready to be written or downloaded."""
    format: ReportFormat
    filename: str
    mime_type: str
    content: bytes

    @property
    def size_bytes(self) -> int:
        return len(self.content)


class ReportExporter:
    """Renders scan results through the formatter registry."""

    def __init__(self, registry: Optional[FormatterRegistry] = None,
                 template_manager: Optional[TemplateManager] = None):
        self.registry = registry or FormatterRegistry()
        self.template_manager = template_manager or TemplateManager()

    async def export(self, result: ScanResult, report_format: Union[str, ReportFormat],
                     severities: Optional[Iterable[SeverityLike]] = None) -> ExportedReport:
        """Render one report.

        Args:
            result: Completed scan result
            report_format: Target format
            severities: Only include findings of these severities (all when None)

        Returns:
            ExportedReport with UTF-8 encoded content

        Raises:
            ExportError: If the format is unknown or rendering fails
        """
        try:
            report_format = ReportFormat.parse(report_format)
        except ValueError:
            raise ExportError(f"Unsupported report format: {report_format}",
                              report_format=str(report_format))

        if not self.registry.is_format_supported(report_format):
            raise ExportError(f"No formatter registered for {report_format.value}",
                              report_format=report_format.value)
        formatter = self.registry.get_formatter(report_format)

        findings = filter_findings(result.findings, severities)
        try:
            content = await formatter.format_report(result, findings, self.template_manager)
        except ExportError:
            raise
        except Exception as e:
            raise FormatterError(f"Failed to render {report_format.value} report: {e}",
                                 report_format=report_format.value) from e

        exported = ExportedReport(
            format=report_format,
            filename=self.filename_for(result, report_format),
            mime_type=formatter.content_type,
            content=content.encode('utf-8'),
        )
        logger.info(f"Exported {exported.filename} ({exported.size_bytes} bytes)")
        return exported

    async def export_all(self, result: ScanResult,
                         severities: Optional[Iterable[SeverityLike]] = None) -> List[ExportedReport]:
        """Render every format the scan asked for, in request order."""
        severities = list(severities) if severities is not None else None
        return [
            await self.export(result, artifact.format, severities)
            for artifact in result.report_artifacts
        ]

    @staticmethod
    def filename_for(result: ScanResult, report_format: ReportFormat) -> str:
        for artifact in result.report_artifacts:
            if artifact.format == report_format:
                return artifact.filename
        stem = ResultAggregator.filename_stem(result.categories_run, result.completed_at)
        return f"{stem}.{report_format.extension}"

    @staticmethod
    def write(report: ExportedReport, output_dir: Union[str, Path]) -> Path:
        """Write a rendered report into ``output_dir`` and return its path."""
        output_path = Path(output_dir)
        try:
            output_path.mkdir(parents=True, exist_ok=True)
            file_path = output_path / report.filename
            file_path.write_bytes(report.content)
        except OSError as e:
            raise ExportError(f"Could not write report {report.filename}: {e}",
                              report_format=report.format.value) from e
        return file_path


async def export_report(result: ScanResult, report_format: Union[str, ReportFormat],
                        severities: Optional[Iterable[SeverityLike]] = None) -> ExportedReport:
    """Render ``result`` in ``report_format`` with the default formatters."""
    return await ReportExporter().export(result, report_format, severities)
