"""
Configuration Management for mgnify-pathways

Environment-based configuration with validation and support for multiple
deployment environments.
"""

import os
import json
from pathlib import Path
from typing import Dict, Any, Optional
from enum import Enum
import logging

import yaml

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class Environment(Enum):
    """Deployment environments."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


class Config:
    """
    Configuration manager with environment-based settings.

    Supports configuration via:
    1. Environment variables
    2. Configuration files (JSON or YAML)
    3. Default values
    """

    def __init__(self, env: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            env: Environment name (development, production, testing)
        """
        env_name = env or os.getenv('MGNIFY_PATHWAYS_ENV', 'development')
        try:
            self.env = Environment(env_name)
        except ValueError:
            raise ConfigurationError(
                'environment',
                f"Unknown environment '{env_name}'; expected one of "
                f"{', '.join(e.value for e in Environment)}"
            )
        self._config = self._load_config()
        self._validate()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        config = {
            'environment': self.env.value,

            # Remote services
            'kegg_base_url': os.getenv('KEGG_BASE_URL', 'https://rest.kegg.jp'),
            'mgnify_base_url': os.getenv(
                'MGNIFY_BASE_URL',
                'https://www.ebi.ac.uk/metagenomics/api/v1'
            ),
            'request_timeout': int(os.getenv('REQUEST_TIMEOUT', '30')),
            'max_retries': int(os.getenv('MAX_RETRIES', '3')),
            # KEGG asks clients to stay under ~3 requests per second
            'kegg_request_interval': float(os.getenv('KEGG_REQUEST_INTERVAL', '0.35')),

            # Concurrency
            'max_concurrent_lookups': int(os.getenv('MAX_CONCURRENT_LOOKUPS', '8')),
            'max_download_workers': int(os.getenv('MAX_DOWNLOAD_WORKERS', '4')),
            # Seconds per KEGG lookup before the identifier is skipped; 0 disables
            'lookup_timeout': float(os.getenv('LOOKUP_TIMEOUT', '0')),

            # Module selection
            'completeness_threshold': float(os.getenv('COMPLETENESS_THRESHOLD', '100.0')),

            # Caching
            'cache_enabled': os.getenv('CACHE_ENABLED', 'true').lower() == 'true',
            'cache_ttl': int(os.getenv('CACHE_TTL', '3600')),
            'cache_max_size': int(os.getenv('CACHE_MAX_SIZE', '5000')),

            # Logging
            'log_level': os.getenv('LOG_LEVEL', 'INFO'),
            'log_file': os.getenv('LOG_FILE', ''),
            'log_format': os.getenv(
                'LOG_FORMAT',
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            ),
            'structured_logging': os.getenv('STRUCTURED_LOGGING', 'false').lower() == 'true',

            # Output
            'output_dir': os.getenv('OUTPUT_DIR', 'results'),
        }

        if self.env == Environment.PRODUCTION:
            config.update(self._get_production_overrides())
        elif self.env == Environment.TESTING:
            config.update(self._get_testing_overrides())

        return config

    def _get_production_overrides(self) -> Dict[str, Any]:
        """Get production-specific configuration overrides."""
        return {
            'log_level': 'WARNING',
            'max_retries': 5,
            'cache_enabled': True,
            'structured_logging': True,
        }

    def _get_testing_overrides(self) -> Dict[str, Any]:
        """Get testing-specific configuration overrides."""
        return {
            'log_level': 'DEBUG',
            'request_timeout': 10,
            'kegg_request_interval': 0.0,
            'cache_enabled': False,
            'output_dir': 'test_results',
        }

    def _validate(self):
        """Validate configuration parameters."""
        errors = []

        for key in ('kegg_base_url', 'mgnify_base_url'):
            if not str(self._config[key]).startswith(('http://', 'https://')):
                errors.append(f"{key} must be an http(s) URL")

        if not 0 < self._config['completeness_threshold'] <= 100:
            errors.append("completeness_threshold must be between 0 and 100")

        if self._config['request_timeout'] < 1:
            errors.append("request_timeout must be at least 1 second")

        if self._config['max_retries'] < 1:
            errors.append("max_retries must be at least 1")

        for key in ('kegg_request_interval', 'lookup_timeout'):
            if self._config[key] < 0:
                errors.append(f"{key} must not be negative")

        for key in ('max_concurrent_lookups', 'max_download_workers'):
            if self._config[key] < 1:
                errors.append(f"{key} must be at least 1")

        if self._config['log_level'].upper() not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            errors.append(f"log_level '{self._config['log_level']}' is not a logging level")

        if errors:
            error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            raise ConfigurationError('validation', error_msg)

        logger.debug(f"Configuration validated for {self.env.value} environment")

    def ensure_directories(self) -> Path:
        """Create the output directory (and log directory) and return the former."""
        output_dir = Path(self._config['output_dir'])
        output_dir.mkdir(parents=True, exist_ok=True)
        if self._config['log_file']:
            Path(self._config['log_file']).parent.mkdir(parents=True, exist_ok=True)
        return output_dir

    def override(self, **values: Any) -> 'Config':
        """Apply overrides (e.g. from command-line flags) and re-validate."""
        self._config.update(values)
        self._validate()
        return self

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        return self._config.get(key, default)

    def __getitem__(self, key: str) -> Any:
        return self._config[key]

    def __getattr__(self, key: str) -> Any:
        if key.startswith('_'):
            return object.__getattribute__(self, key)
        return self._config.get(key)

    def to_dict(self) -> Dict[str, Any]:
        """Export configuration as dictionary."""
        return self._config.copy()

    def save_to_file(self, filepath: str):
        """Save configuration to a JSON or YAML file (chosen by extension)."""
        with open(filepath, 'w') as f:
            if filepath.endswith(('.yaml', '.yml')):
                yaml.safe_dump(self._config, f, sort_keys=True)
            else:
                json.dump(self._config, f, indent=2)
        logger.info(f"Configuration saved to {filepath}")

    @classmethod
    def from_file(cls, filepath: str, env: Optional[str] = None) -> 'Config':
        """Load configuration overrides from a JSON or YAML file."""
        try:
            with open(filepath, 'r') as f:
                if filepath.endswith(('.yaml', '.yml')):
                    config_data = yaml.safe_load(f) or {}
                else:
                    config_data = json.load(f)
        except FileNotFoundError:
            raise ConfigurationError('config_file', f"Configuration file not found: {filepath}",
                                     config_file=filepath)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigurationError('config_file', f"Invalid configuration file: {e}",
                                     config_file=filepath)

        if not isinstance(config_data, dict):
            raise ConfigurationError('config_file', "Configuration file must contain a mapping",
                                     config_file=filepath)

        instance = cls(env=env or config_data.get('environment'))
        return instance.override(**{str(key): value for key, value in config_data.items()})


# Global configuration instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def reset_config():
    """Reset global configuration (useful for testing)."""
    global _config
    _config = None


def configure_logging(config: Optional[Config] = None):
    """Configure logging based on configuration."""
    if config is None:
        config = get_config()

    if config.structured_logging:
        from .logging_config import setup_structured_logging
        setup_structured_logging(log_level=config.log_level, log_file=config.log_file or None)
        return

    handlers = [logging.StreamHandler()]
    if config.log_file:
        Path(config.log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(config.log_file))

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper()),
        format=config.log_format,
        handlers=handlers,
        force=True
    )

    logger.info(f"Logging configured: level={config.log_level}, file={config.log_file or '-'}")
