"""HTML report formatter."""

from typing import Sequence

from .base import BaseFormatter
from ..templates import TemplateManager
from ...core.scanning.data_structures import Finding, ReportFormat, ScanResult


class HTMLFormatter(BaseFormatter):
    """Self-contained HTML report with inline styles."""

    def __init__(self, title: str = "AegisScan Vulnerability Report"):
        super().__init__()
        self.title = title

    @property
    def supported_format(self) -> ReportFormat:
        return ReportFormat.HTML

    async def format_report(self, result: ScanResult, findings: Sequence[Finding],
                            template_manager: TemplateManager) -> str:
        self.logger.debug(f"Formatting HTML report for {result.target_url}")
        context = self.prepare_context(result, findings)
        context['title'] = self.title
        return await template_manager.render_template(self.get_template_name(), context)
