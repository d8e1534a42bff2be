"""Logger manager for centralized logging configuration."""

import logging
import logging.handlers
from pathlib import Path
from typing import Dict, Any

from .structured_formatter import StructuredFormatter


ROOT_LOGGER_NAME = 'aegis_scan'
AUDIT_LOGGER_NAME = 'aegis_scan.audit'


def get_logger(name: str) -> logging.Logger:
    """Get a logger in the ``aegis_scan`` hierarchy.
    
    Args:
        name: Dotted module name or short component name
        
    Returns:
        Logger instance
    """
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + '.'):
        return logging.getLogger(name)
    return logging.getLogger(f'{ROOT_LOGGER_NAME}.{name}')


class LoggerManager:
    """Configures handlers for the ``aegis_scan`` logger tree."""
    
    def __init__(self, config: Dict[str, Any]):
        """Initialize logger manager with configuration.
        
        Args:
            config: Configuration dictionary containing a ``logging`` section
                and optionally ``system.environment``
        """
        self.config = config
        self.logging_config = config.get('logging', {})
        self.loggers: Dict[str, logging.Logger] = {}
        self._setup_logging()
    
    def _setup_logging(self) -> None:
        """Set up logging configuration based on config."""
        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        root_logger.setLevel(self._get_log_level())
        root_logger.handlers.clear()
        
        self._add_console_handler(root_logger)
        
        log_file = self.logging_config.get('file')
        if log_file:
            self._add_file_handler(root_logger, Path(log_file))
        
        self._setup_audit_logger()
        
        self.loggers['root'] = root_logger
    
    def _get_log_level(self) -> int:
        level_name = str(self.logging_config.get('level', 'INFO')).upper()
        return getattr(logging, level_name, logging.INFO)
    
    def _add_console_handler(self, logger: logging.Logger) -> None:
        """Add console handler to logger.
        
        Args:
            logger: Logger to add handler to
        """
        console_handler = logging.StreamHandler()
        
        if self.config.get('system', {}).get('environment') == 'production':
            console_handler.setFormatter(StructuredFormatter())
        else:
            format_str = self.logging_config.get(
                'format',
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            console_handler.setFormatter(logging.Formatter(format_str))
        
        console_handler.setLevel(self._get_log_level())
        logger.addHandler(console_handler)
    
    def _add_file_handler(self, logger: logging.Logger, log_file: Path) -> None:
        """Add file handler to logger.
        
        Args:
            logger: Logger to add handler to
            log_file: Path of the log file
        """
        log_file.parent.mkdir(parents=True, exist_ok=True)
        
        if self.logging_config.get('file_rotation', True):
            max_bytes = self._parse_size(self.logging_config.get('max_file_size', '10MB'))
            backup_count = self.logging_config.get('backup_count', 5)
            
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding='utf-8'
            )
        else:
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
        
        # File logs are always structured
        file_handler.setFormatter(StructuredFormatter())
        file_handler.setLevel(self._get_log_level())
        
        logger.addHandler(file_handler)
    
    def _setup_audit_logger(self) -> None:
        """Configure the dedicated scan audit logger."""
        audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)
        audit_logger.setLevel(logging.INFO)
        audit_logger.propagate = False
        audit_logger.handlers.clear()
        
        audit_file = self.logging_config.get('audit_file')
        if audit_file:
            audit_path = Path(audit_file)
            audit_path.parent.mkdir(parents=True, exist_ok=True)
            audit_handler = logging.handlers.TimedRotatingFileHandler(
                audit_path,
                when='midnight',
                interval=1,
                backupCount=30,
                encoding='utf-8'
            )
        else:
            audit_handler = logging.NullHandler()
        
        audit_handler.setFormatter(StructuredFormatter())
        audit_logger.addHandler(audit_handler)
        
        self.loggers['audit'] = audit_logger
    
    def _parse_size(self, size_str: str) -> int:
        """Parse size string (e.g. ``'10MB'``) to bytes."""
        size_str = str(size_str).upper()
        multipliers = {
            'KB': 1024,
            'MB': 1024 * 1024,
            'GB': 1024 * 1024 * 1024,
            'B': 1,
        }
        
        for unit, multiplier in multipliers.items():
            if size_str.endswith(unit):
                number_str = size_str[:-len(unit)]
                try:
                    return int(float(number_str) * multiplier)
                except ValueError:
                    break
        
        # Default to 10MB if parsing fails
        return 10 * 1024 * 1024
    
    def get_logger(self, name: str) -> logging.Logger:
        """Get logger by name.
        
        Args:
            name: Logger name
            
        Returns:
            Logger instance
        """
        if name not in self.loggers:
            self.loggers[name] = get_logger(name)
        return self.loggers[name]
    
    def set_level(self, level: str) -> None:
        """Set logging level for all managed loggers."""
        log_level = getattr(logging, level.upper(), logging.INFO)
        
        for logger in self.loggers.values():
            logger.setLevel(log_level)
            for handler in logger.handlers:
                handler.setLevel(log_level)
    
    def shutdown(self) -> None:
        """Close and detach all handlers."""
        for logger in self.loggers.values():
            for handler in logger.handlers[:]:
                handler.close()
                logger.removeHandler(handler)
