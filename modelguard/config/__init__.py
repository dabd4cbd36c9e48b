"""
Configuration package for modelguard.

Contains environment settings and the logging setup.
"""

from modelguard.config.settings import Settings, get_settings, settings
from modelguard.config.logging import build_logging_config, setup_logging

__all__ = ['Settings', 'get_settings', 'settings', 'build_logging_config', 'setup_logging']
