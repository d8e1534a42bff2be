"""Configuration validator for AegisScan."""

from typing import Dict, Any, List

from ..scanning.data_structures import Category, ReportFormat


class ConfigValidator:
    """Validates configuration values before a scan engine is built."""
    
    VALID_ENVIRONMENTS = ['development', 'testing', 'production']
    VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
    
    def __init__(self, config: Dict[str, Any]):
        """Initialize validator with configuration.
        
        Args:
            config: Configuration dictionary to validate
        """
        self.config = config
        self.errors: List[str] = []
    
    def validate(self) -> List[str]:
        """Validate complete configuration.
        
        Returns:
            List of validation error messages
        """
        self.errors = []
        
        self._validate_system_config()
        self._validate_logging_config()
        self._validate_simulation_config()
        self._validate_reporting_config()
        
        return self.errors
    
    def _validate_system_config(self) -> None:
        system = self.config.get('system') or {}
        
        environment = system.get('environment', 'development')
        if environment not in self.VALID_ENVIRONMENTS:
            self.errors.append(f"Environment must be one of: {self.VALID_ENVIRONMENTS}")
        
        history_size = system.get('history_size', 10)
        if not self._is_int(history_size) or history_size <= 0:
            self.errors.append("system.history_size must be a positive integer")
    
    def _validate_logging_config(self) -> None:
        logging_config = self.config.get('logging') or {}
        
        level = str(logging_config.get('level', 'INFO')).upper()
        if level not in self.VALID_LOG_LEVELS:
            self.errors.append(f"logging.level must be one of: {self.VALID_LOG_LEVELS}")
    
    def _validate_simulation_config(self) -> None:
        """Validate timing and probability parameters of the simulation."""
        simulation = self.config.get('simulation') or {}
        
        for key in ('tick_interval', 'elapsed_interval'):
            value = simulation.get(key, 1.0)
            if not self._is_number(value) or value <= 0:
                self.errors.append(f"simulation.{key} must be a positive number")
        
        capacity = simulation.get('log_capacity', 100)
        if not self._is_int(capacity) or capacity <= 0:
            self.errors.append("simulation.log_capacity must be a positive integer")
        
        seed = simulation.get('seed')
        if seed is not None and not self._is_int(seed):
            self.errors.append("simulation.seed must be an integer or null")
        
        finding_probability = simulation.get('finding_probability', {})
        if self._is_number(finding_probability):
            self._check_probability('simulation.finding_probability', finding_probability)
        elif isinstance(finding_probability, dict):
            valid_categories = [c.value for c in Category]
            for category, probability in finding_probability.items():
                if category not in valid_categories:
                    self.errors.append(f"Unknown category in finding_probability: {category}")
                else:
                    self._check_probability(f"simulation.finding_probability.{category}", probability)
        else:
            self.errors.append("simulation.finding_probability must be a number or a mapping")
        
        for key in ('detection_probability', 'dbms_probability'):
            self._check_probability(f"simulation.{key}", simulation.get(key, 0.5))
        
        payload_range = simulation.get('payload_range', [1, 5])
        if (not isinstance(payload_range, (list, tuple)) or len(payload_range) != 2
                or not all(self._is_int(v) for v in payload_range)
                or payload_range[0] < 0 or payload_range[0] > payload_range[1]):
            self.errors.append("simulation.payload_range must be [low, high] with 0 <= low <= high")
        
        candidates = simulation.get('dbms_candidates', ['MySQL'])
        if not isinstance(candidates, list) or not candidates:
            self.errors.append("simulation.dbms_candidates must be a non-empty list")
        
        probe = simulation.get('csrf_probe') or {}
        if not isinstance(probe.get('enabled', True), bool):
            self.errors.append("simulation.csrf_probe.enabled must be a boolean")
        timeout = probe.get('timeout', 5.0)
        if not self._is_number(timeout) or timeout <= 0:
            self.errors.append("simulation.csrf_probe.timeout must be a positive number")
    
    def _validate_reporting_config(self) -> None:
        reporting = self.config.get('reporting') or {}
        
        valid_formats = [f.value for f in ReportFormat]
        formats = reporting.get('default_formats', ['json'])
        if not isinstance(formats, list) or not formats:
            self.errors.append("reporting.default_formats must be a non-empty list")
        else:
            for report_format in formats:
                if report_format not in valid_formats:
                    self.errors.append(f"Unsupported report format: {report_format}")
    
    def _check_probability(self, name: str, value: Any) -> None:
        if not self._is_number(value) or not 0.0 <= value <= 1.0:
            self.errors.append(f"{name} must be a probability between 0 and 1")
    
    @staticmethod
    def _is_number(value: Any) -> bool:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    
    @staticmethod
    def _is_int(value: Any) -> bool:
        return isinstance(value, int) and not isinstance(value, bool)
