"""Base formatter classes and registry."""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Any, Optional, Sequence

from ..templates import TemplateManager
from ... import __version__
from ...core.exceptions import ExportError
from ...core.scanning.data_structures import Finding, ReportFormat, ScanResult


class FormatterError(ExportError):
    """Formatter-specific error."""
    pass


class BaseFormatter(ABC):
    """Base class for all report formatters."""

    def __init__(self):
        self.logger = logging.getLogger(f'{__name__}.{self.__class__.__name__.lower()}')

    @abstractmethod
    async def format_report(self, result: ScanResult, findings: Sequence[Finding],
                            template_manager: TemplateManager) -> str:
        """Format a scan result.

        Args:
            result: Completed scan result
            findings: Findings to include (already severity-filtered)
            template_manager: Template manager instance

        Returns:
            Formatted report content
        """
        pass

    @property
    @abstractmethod
    def supported_format(self) -> ReportFormat:
        """Get supported report format."""
        pass

    @property
    def output_extension(self) -> str:
        return self.supported_format.extension

    @property
    def content_type(self) -> str:
        return self.supported_format.mime_type

    def get_template_name(self) -> str:
        return f"report.{self.output_extension}.j2"

    def prepare_context(self, result: ScanResult, findings: Sequence[Finding]) -> Dict[str, Any]:
        """Template context shared by the template-based formatters."""
        return {
            'result': result,
            'findings': list(findings),
            'summary': result.summary,
            'filtered': len(findings) != len(result.findings),
            'generated_at': datetime.now(),
            'generator': f'AegisScan {__version__}',
            'formatter': {
                'name': self.__class__.__name__,
                'format': self.supported_format.value,
                'extension': self.output_extension,
                'content_type': self.content_type
            }
        }


class FormatterRegistry:
    """Registry for managing report formatters."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self.formatters: Dict[ReportFormat, BaseFormatter] = {}
        self._register_default_formatters()

    def _register_default_formatters(self) -> None:
        from .html import HTMLFormatter
        from .json import JSONFormatter
        from .txt import TextFormatter

        self.register_formatter(JSONFormatter())
        self.register_formatter(TextFormatter())
        self.register_formatter(HTMLFormatter())

    def register_formatter(self, formatter: BaseFormatter) -> None:
        """Register a formatter, replacing any previous one for its format."""
        format_type = formatter.supported_format
        self.formatters[format_type] = formatter
        self.logger.debug(f"Registered formatter for {format_type.value} format")

    def get_formatter(self, format_type: ReportFormat) -> Optional[BaseFormatter]:
        return self.formatters.get(format_type)

    def is_format_supported(self, format_type: ReportFormat) -> bool:
        return format_type in self.formatters
