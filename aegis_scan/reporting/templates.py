"""Template management for rendered reports."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Iterable, Optional, Union

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape

from ..core.exceptions import ExportError
from ..core.scanning.data_structures import Finding, Severity


DEFAULT_TEMPLATE_PATH = Path(__file__).parent / "templates"


class TemplateError(ExportError):
    """Template-related error."""
    pass


_SEVERITY_COLORS = {
    Severity.CRITICAL: '#b91c1c',
    Severity.HIGH: '#ea580c',
    Severity.MEDIUM: '#ca8a04',
    Severity.LOW: '#2563eb',
}


def severity_color(severity: Union[str, Severity]) -> str:
    """Hex color used for a severity badge."""
    return _SEVERITY_COLORS.get(Severity.parse(severity), '#6b7280')


def format_timestamp(timestamp: Union[str, datetime], format_str: str = '%Y-%m-%d %H:%M:%S') -> str:
    if isinstance(timestamp, str):
        return timestamp
    return timestamp.strftime(format_str)


def format_duration(seconds: int) -> str:
    """Format seconds as ``MM:SS`` (or ``H:MM:SS`` past an hour)."""
    seconds = int(seconds)
    hours, remainder = divmod(seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes:02d}:{seconds:02d}"


def pluralize(count: int, singular: str = '', plural: str = 's') -> str:
    return singular if count == 1 else plural


class TemplateManager:
    """Renders report templates with Jinja2."""

    def __init__(self, template_path: Optional[Union[str, Path]] = None):
        """Initialize template manager.

        Args:
            template_path: Template directory (the packaged templates by default)
        """
        self.template_path = Path(template_path) if template_path else DEFAULT_TEMPLATE_PATH
        self.logger = logging.getLogger(__name__)

        self.jinja_env = Environment(
            loader=FileSystemLoader(str(self.template_path)),
            autoescape=select_autoescape(['html', 'html.j2']),
            trim_blocks=True,
            lstrip_blocks=True,
            finalize=lambda value: '' if value is None else value,
        )
        self.jinja_env.filters.update({
            'severity_color': severity_color,
            'format_timestamp': format_timestamp,
            'format_duration': format_duration,
            'pluralize': pluralize,
        })
        self.jinja_env.globals.update({
            'severity_count': self._severity_count,
            'severities': [severity for severity in Severity],
        })

        self.logger.debug(f"Template manager initialized with path: {self.template_path}")

    @staticmethod
    def _severity_count(findings: Iterable[Finding], severity: Union[str, Severity]) -> int:
        severity = Severity.parse(severity)
        return sum(1 for finding in findings if finding.severity == severity)

    async def render_template(self, template_name: str, context: Dict[str, Any]) -> str:
        """Render template with given context.

        Args:
            template_name: Name of template file
            context: Template context variables

        Returns:
            Rendered template content

        Raises:
            TemplateError: If the template is missing or fails to render
        """
        try:
            template = self.jinja_env.get_template(template_name)
            rendered_content = template.render(**context)
        except TemplateNotFound:
            raise TemplateError(f"Template not found: {template_name}")
        except Exception as e:
            self.logger.error(f"Template rendering failed: {e}")
            raise TemplateError(f"Failed to render template {template_name}: {e}") from e

        self.logger.debug(f"Rendered template: {template_name}")
        return rendered_content

    def template_exists(self, template_name: str) -> bool:
        try:
            self.jinja_env.get_template(template_name)
            return True
        except TemplateNotFound:
            return False
