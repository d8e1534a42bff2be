"""Configuration management module for AegisScan."""

from .config_manager import ConfigManager
from .config_validator import ConfigValidator
from .settings import SimulationSettings, ProbeSettings

__all__ = ['ConfigManager', 'ConfigValidator', 'SimulationSettings', 'ProbeSettings']
