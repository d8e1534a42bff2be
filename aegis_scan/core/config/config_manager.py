"""Configuration manager for AegisScan."""

import os
import yaml
from typing import Dict, Any, Optional, List
from pathlib import Path

from ..exceptions import ConfigurationError, ConfigValidationError


class ConfigManager:
    """Loads layered YAML configuration.
    
    Sources, lowest priority first: the packaged ``default.yml``, an
    environment file ``<env>.yml`` next to it (``AEGIS_SCAN_ENV``), a user
    supplied file, and finally ``AEGIS_SCAN_*`` environment variables.
    """
    
    ENV_MAPPINGS = {
        'AEGIS_SCAN_LOG_LEVEL': ('logging', 'level'),
        'AEGIS_SCAN_LOG_FILE': ('logging', 'file'),
        'AEGIS_SCAN_TICK_INTERVAL': ('simulation', 'tick_interval'),
        'AEGIS_SCAN_ELAPSED_INTERVAL': ('simulation', 'elapsed_interval'),
        'AEGIS_SCAN_SEED': ('simulation', 'seed'),
        'AEGIS_SCAN_CSRF_PROBE': ('simulation', 'csrf_probe', 'enabled'),
    }
    
    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration manager.
        
        Args:
            config_path: Optional path to custom configuration file
        """
        self.config_path = config_path
        self.config: Dict[str, Any] = {}
        self.base_dir = Path(__file__).parent
        self._load_configuration()
    
    def _load_configuration(self) -> None:
        """Load configuration from all sources in order of priority."""
        default_config = self._load_config_file(self.base_dir / "default.yml")
        if default_config:
            self.config.update(default_config)
        
        env = os.getenv('AEGIS_SCAN_ENV', 'development')
        env_config = self._load_config_file(self.base_dir / f"{env}.yml")
        if env_config:
            self._deep_merge(self.config, env_config)
        
        if self.config_path:
            path = Path(self.config_path)
            if not path.exists():
                raise ConfigurationError(
                    f"Configuration file not found: {path}",
                    config_path=str(path)
                )
            user_config = self._load_config_file(path)
            if user_config:
                self._deep_merge(self.config, user_config)
        
        self._load_environment_variables()
    
    def _load_config_file(self, file_path: Path) -> Optional[Dict[str, Any]]:
        """Load configuration from YAML file.
        
        Args:
            file_path: Path to configuration file
            
        Returns:
            Configuration dictionary or None if file doesn't exist
        """
        if not file_path.exists():
            return None
        
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except (yaml.YAMLError, IOError) as e:
            raise ConfigurationError(
                f"Failed to load configuration from {file_path}: {e}",
                config_path=str(file_path)
            ) from e
        
        if data is not None and not isinstance(data, dict):
            raise ConfigurationError(
                f"Configuration file {file_path} must contain a mapping",
                config_path=str(file_path)
            )
        return data
    
    def _deep_merge(self, base: Dict[str, Any], update: Dict[str, Any]) -> None:
        """Deep merge update dictionary into base dictionary."""
        for key, value in update.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value
    
    def _load_environment_variables(self) -> None:
        for env_var, config_path in self.ENV_MAPPINGS.items():
            value = os.getenv(env_var)
            if value:
                self._set_nested_value(self.config, config_path, self._convert_env_value(value))
    
    def _set_nested_value(self, config: Dict[str, Any], path: tuple, value: Any) -> None:
        current = config
        for key in path[:-1]:
            if not isinstance(current.get(key), dict):
                current[key] = {}
            current = current[key]
        current[path[-1]] = value
    
    def _convert_env_value(self, value: str) -> Any:
        """Convert environment variable string to bool, int, float or str."""
        if value.lower() in ('true', 'false'):
            return value.lower() == 'true'
        
        try:
            if '.' in value:
                return float(value)
            return int(value)
        except ValueError:
            return value
    
    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by dot-separated key.
        
        Args:
            key: Dot-separated configuration key (e.g., 'simulation.tick_interval')
            default: Default value if key not found
            
        Returns:
            Configuration value or default
        """
        current = self.config
        
        for k in key.split('.'):
            if isinstance(current, dict) and k in current:
                current = current[k]
            else:
                return default
        
        return current
    
    def set(self, key: str, value: Any) -> None:
        """Set configuration value by dot-separated key."""
        self._set_nested_value(self.config, tuple(key.split('.')), value)
    
    def get_section(self, section: str) -> Dict[str, Any]:
        return self.config.get(section) or {}
    
    def reload(self) -> None:
        """Reload configuration from all sources."""
        self.config = {}
        self._load_configuration()
    
    def validate(self) -> List[str]:
        """Validate configuration and return list of errors."""
        from .config_validator import ConfigValidator
        return ConfigValidator(self.config).validate()
    
    def validate_or_raise(self) -> None:
        """Validate configuration.
        
        Raises:
            ConfigValidationError: If any value is invalid
        """
        errors = self.validate()
        if errors:
            raise ConfigValidationError(errors, config_path=self.config_path)
    
    def to_dict(self) -> Dict[str, Any]:
        return self.config.copy()
