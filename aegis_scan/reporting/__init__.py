"""Report rendering and export."""

from .exporter import ExportedReport, ReportExporter, export_report
from .formatters import FormatterRegistry, BaseFormatter, FormatterError
from .templates import TemplateManager, TemplateError

__all__ = [
    'ExportedReport', 'ReportExporter', 'export_report',
    'FormatterRegistry', 'BaseFormatter', 'FormatterError',
    'TemplateManager', 'TemplateError'
]
