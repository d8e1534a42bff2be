"""Plain-text report formatter."""

from typing import Sequence

from .base import BaseFormatter
from ..templates import TemplateManager
from ...core.scanning.data_structures import Finding, ReportFormat, ScanResult


class TextFormatter(BaseFormatter):
    """Human readable plain-text report."""

    @property
    def supported_format(self) -> ReportFormat:
        return ReportFormat.TXT

    async def format_report(self, result: ScanResult, findings: Sequence[Finding],
                            template_manager: TemplateManager) -> str:
        self.logger.debug(f"Formatting text report for {result.target_url}")
        context = self.prepare_context(result, findings)
        return await template_manager.render_template(self.get_template_name(), context)
