"""JSON report formatter."""

import json
from datetime import datetime
from typing import Any, Sequence

from .base import BaseFormatter, FormatterError
from ..templates import TemplateManager
from ...core.scanning.data_structures import Finding, ReportFormat, ScanResult
from ...core.scanning.severity_filter import summarize


class JSONFormatter(BaseFormatter):
    """Structured dump of the scan result."""

    def __init__(self, indent: int = 2):
        super().__init__()
        self.indent = indent

    @property
    def supported_format(self) -> ReportFormat:
        return ReportFormat.JSON

    async def format_report(self, result: ScanResult, findings: Sequence[Finding],
                            template_manager: TemplateManager) -> str:
        self.logger.debug(f"Formatting JSON report for {result.target_url}")

        report_data = result.to_dict()
        report_data['findings'] = [finding.to_dict() for finding in findings]
        report_data['summary'] = summarize(findings).to_dict()
        report_data['_metadata'] = {
            'format': 'json',
            'schema_version': '1.0',
            'generated_at': datetime.now().isoformat(),
            'filtered': len(findings) != len(result.findings),
            'total_findings': len(result.findings),
        }

        try:
            return json.dumps(report_data, indent=self.indent, ensure_ascii=False,
                              default=self._json_serializer)
        except (TypeError, ValueError) as e:
            raise FormatterError(f"JSON serialization failed: {e}",
                                 report_format='json') from e

    @staticmethod
    def _json_serializer(obj: Any) -> Any:
        if isinstance(obj, datetime):
            return obj.isoformat()
        if hasattr(obj, 'to_dict'):
            return obj.to_dict()
        raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")
