"""Configuration detection and parsing for kubeterm."""

from kubeterm.config.detector import detect_config
from kubeterm.config.models import TerminalConfig
from kubeterm.config.parser import ConfigError, parse_config

__all__ = [
    "ConfigError",
    "TerminalConfig",
    "detect_config",
    "parse_config",
]
