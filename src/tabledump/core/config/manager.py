"""
Configuration Manager

Handles hierarchical configuration loading and validation with support for
CLI args -> environment variables -> config files -> defaults.
"""

import os
import json
import logging
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, Union, List
from pydantic import ValidationError

from tabledump.core.config.models import AppConfig
from tabledump.core.exceptions import ConfigurationError, ErrorCode

logger = logging.getLogger("tabledump.config")


class ConfigManager:
    """
    Manages application configuration with hierarchical loading and validation.

    Configuration sources in order of precedence:
    1. CLI arguments (highest priority)
    2. Environment variables (a .env file fills in unset ones)
    3. Configuration files
    4. Default values (lowest priority)
    """

    def __init__(self, config_file: Optional[Union[str, Path]] = None,
                 dotenv_file: Optional[Union[str, Path]] = ".env"):
        """
        Initialize configuration manager.

        Args:
            config_file: Optional path to configuration file
            dotenv_file: Optional .env file loaded before reading the environment
        """
        self.config_file = Path(config_file) if config_file else None
        self.dotenv_file = Path(dotenv_file) if dotenv_file else None
        self._config: Optional[AppConfig] = None
        self._config_paths = self._get_default_config_paths()

    def _get_default_config_paths(self) -> List[Path]:
        """Get default configuration file search paths."""
        search_paths = [
            Path.cwd() / "tabledump.yaml",
            Path.cwd() / "tabledump.yml",
            Path.cwd() / ".tabledump.yaml",
            Path.home() / ".config" / "tabledump" / "config.yaml",
        ]

        xdg_config = os.environ.get('XDG_CONFIG_HOME')
        if xdg_config:
            search_paths.append(Path(xdg_config) / "tabledump" / "config.yaml")

        return search_paths

    def load_config(self, cli_args: Optional[Dict[str, Any]] = None) -> AppConfig:
        """
        Load and validate configuration from all sources.

        Args:
            cli_args: Dictionary of CLI arguments

        Returns:
            Validated AppConfig instance

        Raises:
            ConfigurationError: If configuration is invalid
        """
        config_data: Dict[str, Any] = {}

        file_config = self._load_config_file()
        if file_config:
            config_data.update(file_config)

        if self.dotenv_file:
            load_dotenv(self.dotenv_file)

        env_config = self._load_env_config()
        if env_config:
            config_data = self._deep_merge(config_data, env_config)

        if cli_args:
            cli_config = self._normalize_cli_args(cli_args)
            config_data = self._deep_merge(config_data, cli_config)

        try:
            self._config = AppConfig(**config_data)
            return self._config
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed: {e}", cause=e)

    def _load_config_file(self) -> Optional[Dict[str, Any]]:
        """Load configuration from file."""
        config_file = self.config_file

        if not config_file:
            for path in self._config_paths:
                if path.exists() and path.is_file():
                    config_file = path
                    break

        if not config_file:
            return None
        if not config_file.exists():
            raise ConfigurationError(
                f"Config file not found: {config_file}",
                error_code=ErrorCode.CONFIG_INVALID_FORMAT,
            )

        logger.debug(f"Loading configuration from {config_file}")
        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                if config_file.suffix.lower() == '.json':
                    return json.load(f)
                return yaml.safe_load(f) or {}
        except (IOError, yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigurationError(
                f"Failed to load config file {config_file}: {e}",
                error_code=ErrorCode.CONFIG_INVALID_FORMAT,
                cause=e,
            )

    def _load_env_config(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        env_config: Dict[str, Any] = {}

        env_mappings = {
            "MSSQL_SERVER": ("connection", "server", str),
            "MSSQL_PORT": ("connection", "port", int),
            "MSSQL_USER": ("connection", "user", str),
            "MSSQL_PASSWORD": ("connection", "password", str),
            "MSSQL_DATABASE": ("connection", "database", str),
            "TABLEDUMP_URL": ("connection", "url", str),
            "TABLEDUMP_DRIVER": ("connection", "driver", str),
            "TABLEDUMP_OUTPUT_DIR": ("output", "output_dir", str),
            "TABLEDUMP_FORMAT": ("output", "default_format", str),
            "TABLEDUMP_BATCH_SIZE": ("output", "batch_size", int),
            "TABLEDUMP_OVERWRITE_FILES": ("output", "overwrite_files", self._parse_bool),
            "TABLEDUMP_VERBOSE": ("verbose", None, self._parse_bool),
            "TABLEDUMP_QUIET": ("quiet", None, self._parse_bool),
        }

        for env_var, (section, key, parser) in env_mappings.items():
            value = os.environ.get(env_var)
            if value is None or not value.strip():
                continue
            try:
                parsed_value = parser(value.strip())
            except (ValueError, TypeError) as e:
                raise ConfigurationError(
                    f"Invalid value for {env_var}: {value} ({e})",
                    config_key=env_var,
                    cause=e,
                )
            if key is None:
                env_config[section] = parsed_value
            else:
                env_config.setdefault(section, {})[key] = parsed_value

        return env_config

    def _normalize_cli_args(self, cli_args: Dict[str, Any]) -> Dict[str, Any]:
        """Normalize CLI arguments to configuration structure."""
        normalized: Dict[str, Any] = {}

        cli_mappings = {
            'verbose': 'verbose',
            'quiet': 'quiet',
            'url': ('connection', 'url'),
            'server': ('connection', 'server'),
            'port': ('connection', 'port'),
            'user': ('connection', 'user'),
            'password': ('connection', 'password'),
            'database': ('connection', 'database'),
            'output_dir': ('output', 'output_dir'),
            'batch_size': ('output', 'batch_size'),
        }

        for cli_key, value in cli_args.items():
            if value is None:
                continue

            mapping = cli_mappings.get(cli_key)
            if mapping is None:
                continue
            if isinstance(mapping, tuple):
                section, key = mapping
                normalized.setdefault(section, {})[key] = value
            else:
                normalized[mapping] = value

        return normalized

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries, with override taking precedence."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    @staticmethod
    def _parse_bool(value: Union[str, bool]) -> bool:
        """Parse boolean value from string."""
        if isinstance(value, bool):
            return value
        return value.lower() in {'true', '1', 'yes', 'on', 'enabled'}

    def create_example_config(self, output_file: Path) -> None:
        """Write the default configuration as YAML."""
        config_dict = AppConfig().model_dump(mode='json')
        with open(output_file, 'w', encoding='utf-8') as f:
            yaml.dump(config_dict, f, default_flow_style=False, indent=2)

    @property
    def config(self) -> Optional[AppConfig]:
        """Get the loaded configuration."""
        return self._config


def load_dotenv(dotenv_path: Union[str, Path] = ".env") -> Dict[str, str]:
    """
    Load key-value pairs from a .env file into the environment.
    Does not override existing environment variables.

    Args:
        dotenv_path: Path to the .env file

    Returns:
        Dictionary of newly loaded variables
    """
    dotenv_path = Path(dotenv_path)
    loaded_vars: Dict[str, str] = {}

    if not dotenv_path.is_file():
        logger.debug(f"{dotenv_path} not found, using existing environment")
        return loaded_vars

    try:
        with open(dotenv_path, 'r', encoding='utf-8') as f:
            for line_number, line in enumerate(f, 1):
                line = line.strip()
                if not line or line.startswith('#') or '=' not in line:
                    continue

                key, value = line.split('=', 1)
                key = key.strip()
                if key.startswith('export '):
                    key = key[len('export '):].strip()
                value = value.strip().strip("'\"")

                if not key:
                    logger.warning(f"Skipping line {line_number} in {dotenv_path.name}: empty key")
                    continue

                if key not in os.environ:
                    os.environ[key] = value
                    loaded_vars[key] = value
    except OSError as e:
        logger.warning(f"Could not read {dotenv_path}: {e}")

    logger.debug(f"Loaded {len(loaded_vars)} variable(s) from {dotenv_path}")
    return loaded_vars
