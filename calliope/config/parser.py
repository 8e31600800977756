"""Configuration parser for Calliope."""

import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import ValidationError

from calliope.config.models import CalliopeConfig, EnvironmentSettings
from calliope.exceptions import ConfigurationError


class ConfigParser:
    """Configuration parser with environment variable interpolation."""

    ENV_VAR_PATTERN = re.compile(r'\$\{([^}]+)\}')

    def __init__(self) -> None:
        """Initialize the configuration parser."""
        self.env_settings = EnvironmentSettings()

    def load_config(self, config_path: Optional[Union[str, Path]] = None) -> CalliopeConfig:
        """Load and validate configuration from YAML file.

        Args:
            config_path: Path to configuration file. If None, looks for default locations.

        Returns:
            Validated CalliopeConfig instance.

        Raises:
            ConfigurationError: If configuration is invalid or file not found.
        """
        config_file = self._find_config_file(config_path)
        raw_config = self._read_yaml(config_file)

        if not raw_config:
            raise ConfigurationError(f"Configuration file '{config_file}' is empty")
        if not isinstance(raw_config, dict):
            raise ConfigurationError(f"Configuration file '{config_file}' must contain a mapping")

        processed_config = self._process_env_vars(raw_config)

        # Resolve the descriptor file relative to the configuration file
        queries_path = processed_config.get('queries')
        if queries_path and not Path(queries_path).is_absolute():
            processed_config['queries'] = str(config_file.parent / queries_path)

        try:
            return CalliopeConfig(**processed_config)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed: {e}") from e

    def load_query_descriptors(self, path: Union[str, Path]) -> List[Dict[str, Any]]:
        """Load raw query descriptors from a YAML file.

        The file holds either a list of descriptors or a mapping with a
        ``queries`` key. Descriptors are validated when the facade is built.

        Raises:
            ConfigurationError: If the file is missing or not shaped like a descriptor list.
        """
        raw = self._read_yaml(Path(path))
        if isinstance(raw, dict):
            raw = raw.get('queries')
        if not isinstance(raw, list):
            raise ConfigurationError(f"Descriptor file '{path}' must contain a list of queries")

        descriptors = []
        for index, entry in enumerate(raw):
            if not isinstance(entry, dict) or 'name' not in entry:
                raise ConfigurationError(
                    f"Descriptor #{index + 1} in '{path}' must be a mapping with a 'name'"
                )
            descriptors.append(self._process_env_vars(entry))
        return descriptors

    def _read_yaml(self, path: Path) -> Any:
        try:
            with open(path, 'r', encoding='utf-8') as file:
                return yaml.safe_load(file)
        except FileNotFoundError as e:
            raise ConfigurationError(f"File '{path}' not found") from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in '{path}': {e}") from e

    def _find_config_file(self, config_path: Optional[Union[str, Path]]) -> Path:
        """Find configuration file in default locations.

        Args:
            config_path: Explicit path to configuration file.

        Returns:
            Path to configuration file.

        Raises:
            ConfigurationError: If no configuration file is found.
        """
        if config_path:
            path = Path(config_path)
            if path.exists():
                return path
            raise ConfigurationError(f"Configuration file '{config_path}' not found")

        # Check environment variable
        if self.env_settings.config_file:
            path = Path(self.env_settings.config_file)
            if path.exists():
                return path

        default_locations = [
            Path.cwd() / "calliope.yaml",
            Path.cwd() / "calliope.yml",
            Path.cwd() / "config" / "calliope.yaml",
        ]

        for location in default_locations:
            if location.exists():
                return location

        raise ConfigurationError(
            f"No configuration file found in default locations: {default_locations}"
        )

    def _process_env_vars(self, config: Any) -> Any:
        """Recursively process environment variables in configuration."""
        if isinstance(config, dict):
            return {key: self._process_env_vars(value) for key, value in config.items()}
        elif isinstance(config, list):
            return [self._process_env_vars(item) for item in config]
        elif isinstance(config, str):
            return self._substitute_env_vars(config)
        else:
            return config

    def _substitute_env_vars(self, value: str) -> str:
        """Substitute environment variables in a string.

        Raises:
            ConfigurationError: If required environment variable is not set.
        """
        def replace_var(match):
            var_expr = match.group(1)

            # Handle default values: ${VAR:-default}
            if ':-' in var_expr:
                var_name, default = var_expr.split(':-', 1)
                return os.getenv(var_name.strip(), default.strip())

            var_name = var_expr.strip()
            env_value = os.getenv(var_name)
            if env_value is None:
                raise ConfigurationError(f"Required environment variable '{var_name}' is not set")
            return env_value

        return self.ENV_VAR_PATTERN.sub(replace_var, value)

    def validate_config_file(self, config_path: Union[str, Path]) -> bool:
        """Validate a configuration file.

        Raises:
            ConfigurationError: If configuration is invalid.
        """
        self.load_config(config_path)
        return True

    def create_sample_config(self, output_path: Union[str, Path]) -> None:
        """Create a sample configuration file.

        Args:
            output_path: Path where to create the sample configuration.
        """
        sample_config = {
            'databases': {
                'dev': {
                    'type': 'postgresql',
                    'host': 'localhost',
                    'port': 5432,
                    'database': 'myapp_dev',
                    'username': 'dev_user',
                    'password': '${DEV_DB_PASSWORD:-dev_password}',
                    'options': {
                        'log_sql': True,
                        'log_parameters': False,
                    }
                },
                'local': {
                    'type': 'sqlite',
                    'path': './calliope.db'
                }
            },
            'connection_pools': {
                'default': {
                    'max_connections': 10,
                    'max_overflow': 0,
                    'timeout': 30,
                }
            },
            'default_database': 'local',
            'queries': 'queries.yaml',
        }

        with open(output_path, 'w', encoding='utf-8') as file:
            yaml.safe_dump(sample_config, file, default_flow_style=False, sort_keys=False)

    def create_sample_queries(self, output_path: Union[str, Path]) -> None:
        """Create a descriptor file matching the sample configuration's SQLite database."""
        sample_queries = [
            {'name': 'people'},
            {'name': 'getPersonByEmail', 'sql': 'SELECT * FROM people WHERE email = ?'},
            {
                'name': 'addPerson',
                'type': 'INSERT',
                'table': 'people',
                'columns': {'name': True, 'email': True, 'created_at': 'CURRENT_TIMESTAMP'},
            },
            {
                'name': 'editPerson',
                'type': 'UPDATE',
                'table': 'people',
                'columns': {'name': True, 'email': True},
                'idColumn': 'id',
            },
        ]

        with open(output_path, 'w', encoding='utf-8') as file:
            yaml.safe_dump({'queries': sample_queries}, file, default_flow_style=False, sort_keys=False)


# Global configuration instance
_config_parser = ConfigParser()
_loaded_config: Optional[CalliopeConfig] = None


def get_config(config_path: Optional[Union[str, Path]] = None, reload: bool = False) -> CalliopeConfig:
    """Get the global configuration instance.

    Args:
        config_path: Path to configuration file.
        reload: Force reload of configuration.
    """
    global _loaded_config

    if _loaded_config is None or reload:
        _loaded_config = _config_parser.load_config(config_path)

    return _loaded_config


def load_query_descriptors(path: Union[str, Path]) -> List[Dict[str, Any]]:
    """Load query descriptors from a YAML file."""
    return _config_parser.load_query_descriptors(path)


def validate_config_file(config_path: Union[str, Path]) -> bool:
    """Validate a configuration file."""
    return _config_parser.validate_config_file(config_path)


def create_sample_config(output_path: Union[str, Path]) -> None:
    """Create a sample configuration file."""
    _config_parser.create_sample_config(output_path)


def create_sample_queries(output_path: Union[str, Path]) -> None:
    """Create a sample query descriptor file."""
    _config_parser.create_sample_queries(output_path)
