#!/usr/bin/env python3
"""
Configuration Management Module for the bwt CLI

Handles hierarchical configuration loading (defaults, profile, config file,
environment variables), validation, and conversion to the settings used by
the transaction builder.
"""

import os
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from transaction.settings import BuilderSettings


# Configuration file locations in order of precedence (highest to lowest)
CONFIG_SEARCH_PATHS = [
    Path.cwd() / '.bwt.yml',              # Project-specific YAML
    Path.cwd() / '.bwt.json',             # Project-specific JSON
    Path.cwd() / 'bwt.config.yml',        # Alternative project config
    Path.cwd() / 'bwt.config.json',       # Alternative project config
    Path.home() / '.bwt' / 'config.yml',  # User global YAML
    Path.home() / '.bwt' / 'config.json', # User global JSON
]

# Environment variable prefix
ENV_PREFIX = 'BWT_'

OUTPUT_FORMATS = ['table', 'json', 'yaml']

# Default configuration values
DEFAULT_CONFIG = {
    # Transaction builder
    'builder': {
        'sat_per_kb': 100,
        'default_description': 'Transaction',
        'input_description': 'Transaction input',
        'output_description': 'Transaction output',
        'change_description': 'Change',
    },

    # CLI behavior
    'cli': {
        'output_format': 'table',
        'verbose': 0,
    },
}

# Configuration profiles
PROFILES = {
    'economy': {
        'builder': {'sat_per_kb': 50},
    },
    'priority': {
        'builder': {'sat_per_kb': 500},
    },
    'development': {
        'cli': {'verbose': 2, 'output_format': 'json'},
    },
}


class ConfigurationManager:
    """Manages hierarchical configuration with environment variable support."""

    def __init__(self, config_file: Optional[str] = None, profile: Optional[str] = None):
        """
        Initialize configuration manager.

        Args:
            config_file: Explicit configuration file path
            profile: Configuration profile to apply (economy, priority, development)
        """
        self.logger = logging.getLogger('bwt-cli.config')
        self.config_file = config_file
        self.profile = profile
        self._config_cache = None
        self._config_sources = []

    def load(self) -> Dict[str, Any]:
        """
        Load configuration from all sources in hierarchical order.

        Returns:
            Merged configuration dictionary
        """
        if self._config_cache is not None:
            return self._config_cache

        self._config_sources = []
        configs = [DEFAULT_CONFIG]
        self._config_sources.append("defaults")

        if self.profile:
            if self.profile in PROFILES:
                configs.append(PROFILES[self.profile])
                self._config_sources.append(f"profile:{self.profile}")
                self.logger.debug(f"Applied profile: {self.profile}")
            else:
                self.logger.warning(f"Unknown configuration profile: {self.profile}")

        if self.config_file:
            config_data = self._load_config_file(Path(self.config_file))
            if config_data:
                configs.append(config_data)
                self._config_sources.append(f"file:{self.config_file}")
        else:
            for config_path in CONFIG_SEARCH_PATHS:
                if config_path.exists():
                    config_data = self._load_config_file(config_path)
                    if config_data:
                        configs.append(config_data)
                        self._config_sources.append(f"file:{config_path}")
                        self.logger.debug(f"Loaded config from {config_path}")
                        break  # Use first found config file

        env_config = self._load_environment_variables()
        if env_config:
            configs.append(env_config)
            self._config_sources.append("environment")

        # Later sources override earlier ones
        self._config_cache = self._deep_merge(*configs)
        return self._config_cache

    def _load_config_file(self, path: Path) -> Optional[Dict[str, Any]]:
        """Load configuration from a YAML or JSON file."""
        if not path.exists():
            self.logger.warning(f"Config file not found: {path}")
            return None

        try:
            with open(path, 'r') as f:
                if path.suffix in ['.yml', '.yaml']:
                    data = yaml.safe_load(f)
                elif path.suffix == '.json':
                    data = json.load(f)
                else:
                    self.logger.warning(f"Unknown config file format: {path}")
                    return None
        except (OSError, ValueError, yaml.YAMLError) as e:
            self.logger.error(f"Failed to load config from {path}: {e}")
            return None

        if data is not None and not isinstance(data, dict):
            self.logger.error(f"Config file {path} must contain a mapping")
            return None
        return data

    def _load_environment_variables(self) -> Dict[str, Any]:
        """
        Load configuration from environment variables.

        BWT_<SECTION>_<KEY> maps to {section: {key: value}}, e.g.
        BWT_BUILDER_SAT_PER_KB -> {'builder': {'sat_per_kb': value}}.
        """
        env_config: Dict[str, Any] = {}

        for key, value in os.environ.items():
            if not key.startswith(ENV_PREFIX):
                continue
            section, _, option = key[len(ENV_PREFIX):].lower().partition('_')
            if not section or not option:
                continue
            env_config.setdefault(section, {})[option] = self._parse_env_value(value)

        return env_config

    def _parse_env_value(self, value: str) -> Union[str, int, float, bool]:
        """Parse environment variable value to appropriate type."""
        if value.lower() in ['true', 'yes']:
            return True
        elif value.lower() in ['false', 'no']:
            return False

        # Numbers and JSON lists/objects
        try:
            return json.loads(value)
        except ValueError:
            pass

        return value

    def _deep_merge(self, *dicts: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge multiple dictionaries into a new one."""
        result: Dict[str, Any] = {}

        for dictionary in dicts:
            for key, value in dictionary.items():
                if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                    result[key] = self._deep_merge(result[key], value)
                elif isinstance(value, dict):
                    result[key] = self._deep_merge(value)
                else:
                    result[key] = value

        return result

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-notation path.

        Args:
            key_path: Dot-separated path (e.g., 'builder.sat_per_kb')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        current = self.load()

        for key in key_path.split('.'):
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default

        return current

    def set(self, key_path: str, value: Any):
        """
        Set configuration value by dot-notation path.

        Args:
            key_path: Dot-separated path (e.g., 'builder.sat_per_kb')
            value: Value to set
        """
        config = self.load()

        keys = key_path.split('.')
        current = config
        for key in keys[:-1]:
            if not isinstance(current.get(key), dict):
                current[key] = {}
            current = current[key]

        current[keys[-1]] = value

    def validate(self) -> List[str]:
        """
        Validate current configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        config = self.load()
        errors = []

        builder = config.get('builder', {})
        rate = builder.get('sat_per_kb')
        if isinstance(rate, bool) or not isinstance(rate, (int, float)) or rate < 0:
            errors.append(f"builder.sat_per_kb must be a non-negative number, got {rate!r}")

        for key in ('default_description', 'input_description',
                    'output_description', 'change_description'):
            value = builder.get(key)
            if not isinstance(value, str) or not value:
                errors.append(f"builder.{key} must be a non-empty string")

        output_format = config.get('cli', {}).get('output_format')
        if output_format not in OUTPUT_FORMATS:
            errors.append(f"Invalid output format: {output_format}")

        verbose = config.get('cli', {}).get('verbose')
        if isinstance(verbose, bool) or not isinstance(verbose, int) or verbose < 0:
            errors.append("cli.verbose must be a non-negative integer")

        return errors

    def get_sources(self) -> List[str]:
        """Get list of configuration sources that were loaded."""
        self.load()
        return list(self._config_sources)

    def builder_settings(self) -> BuilderSettings:
        """
        Settings for TransactionBuilder taken from the 'builder' section.

        Returns:
            BuilderSettings instance
        """
        builder = self.get('builder', {})
        defaults = BuilderSettings()
        return BuilderSettings(
            sat_per_kb=builder.get('sat_per_kb', defaults.sat_per_kb),
            default_description=builder.get('default_description', defaults.default_description),
            input_description=builder.get('input_description', defaults.input_description),
            output_description=builder.get('output_description', defaults.output_description),
            change_description=builder.get('change_description', defaults.change_description),
        )

    def reset(self):
        """Reset configuration cache."""
        self._config_cache = None
        self._config_sources = []
