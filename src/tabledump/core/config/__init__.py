"""
Configuration Management Package

Provides Pydantic-based configuration models and management for tabledump.
"""

from tabledump.core.config.models import AppConfig, ConnectionConfig, OutputConfig
from tabledump.core.config.manager import ConfigManager, load_dotenv

__all__ = [
    "AppConfig",
    "ConnectionConfig",
    "OutputConfig",
    "ConfigManager",
    "load_dotenv",
]
