"""Format-specific report renderers."""

from .base import BaseFormatter, FormatterRegistry, FormatterError
from .html import HTMLFormatter
from .json import JSONFormatter
from .txt import TextFormatter

__all__ = [
    'BaseFormatter', 'FormatterRegistry', 'FormatterError',
    'HTMLFormatter', 'JSONFormatter', 'TextFormatter'
]
