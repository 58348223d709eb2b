"""Settings configuration loader module.

This module handles loading and parsing of the settings.conf file which contains
the service settings: database location, token verification and webhook keys,
connection pool sizing and the HTTP bind address.

The settings file uses INI format with a [DEFAULT] section containing key-value pairs.
The file is optional; built-in defaults apply to anything it does not set, and every
key can be overridden with a DELIGHT_<KEY> environment variable (e.g. DELIGHT_DB_URL).

Example settings.conf:
    [DEFAULT]
    db_url = postgresql://root@localhost:26257/delight?sslmode=disable
    jwt_secret = change-me
    api_key = webhook-key

Raises:
    SettingsError: If the settings file is invalid or settings fail validation
"""
from configparser import ConfigParser
from pathlib import Path
from typing import Dict, Any, List
import logging
import os
import secrets

logger = logging.getLogger(__name__)

ENV_PREFIX = 'DELIGHT_'

class ConfigValidationError:
    """Helper class to format configuration validation errors"""
    def __init__(self):
        self.missing: List[str] = []
        self.invalid: List[str] = []
        self.missing_sections: List[str] = []

    def has_errors(self) -> bool:
        """Check if any errors exist"""
        return bool(self.missing or self.invalid or self.missing_sections)

    def format_message(self) -> str:
        """Format error message in a clean, readable way"""
        messages = []

        if self.missing_sections:
            messages.append("Missing required sections:")
            messages.extend(f"  - {item}" for item in self.missing_sections)

        if self.missing:
            if messages:
                messages.append("")
            messages.append("Missing required settings:")
            messages.extend(f"  - {item}" for item in self.missing)

        if self.invalid:
            if messages:
                messages.append("")
            messages.append("Invalid settings:")
            messages.extend(f"  - {item}" for item in self.invalid)

        return "\n".join(messages)

class SettingsError(Exception):
    """Raised when there are issues loading or parsing the settings configuration."""
    pass

# Default settings
DEFAULTS = {
    'store': 'postgres',  # postgres or memory
    'db_url': 'postgresql://root@localhost:26257/delight?sslmode=disable',
    'jwt_secret': secrets.token_urlsafe(32),  # Random secret per process unless configured
    'jwt_algorithm': 'HS256',
    'api_key': '',  # Webhooks are refused until a key is configured
    'db_pool_min_size': '2',
    'db_pool_max_size': '20',
    'db_command_timeout': '60',  # seconds
    'cors_origins': '*',
    'host': '0.0.0.0',
    'port': '8000'
}

REQUIRED_SETTINGS = ['db_url', 'jwt_secret', 'jwt_algorithm']

def load_settings_conf(settings_path: str = ".") -> Dict[str, Any]:
    """Load and parse settings.conf, then apply environment overrides.

    Args:
        settings_path: Directory containing settings.conf

    Returns:
        Dictionary containing raw (string) settings

    Raises:
        SettingsError: If the file exists but cannot be parsed or lacks [DEFAULT]
    """
    config_path = Path(settings_path) / 'settings.conf'
    settings: Dict[str, Any] = dict(DEFAULTS)

    if config_path.exists():
        try:
            parser = ConfigParser()
            parser.read(config_path)
        except Exception as e:
            raise SettingsError(f"Error parsing settings.conf: {str(e)}")

        errors = ConfigValidationError()

        # Ensure DEFAULT section has content
        if not parser.defaults():
            errors.missing_sections.append('[DEFAULT]')
            raise SettingsError(
                "Settings Configuration Validation Failed\n\n" +
                errors.format_message()
            )

        settings.update(parser.defaults())
    else:
        logger.info(f"No settings file at {config_path}, using defaults and environment")

    for key in DEFAULTS:
        env_value = os.environ.get(f"{ENV_PREFIX}{key.upper()}")
        if env_value is not None:
            settings[key] = env_value

    return settings

def validate_settings(settings: Dict[str, Any]) -> Dict[str, Any]:
    """Validate loaded settings.

    Args:
        settings: Dictionary of settings to validate

    Returns:
        Validated and processed settings

    Raises:
        SettingsError: If validation fails
    """
    errors = ConfigValidationError()

    errors.missing.extend(key for key in REQUIRED_SETTINGS if not settings.get(key))

    try:
        # Convert numeric settings
        settings['db_pool_min_size'] = int(settings['db_pool_min_size'])
        settings['db_pool_max_size'] = int(settings['db_pool_max_size'])
        settings['db_command_timeout'] = float(settings['db_command_timeout'])
        settings['port'] = int(settings['port'])
    except (ValueError, KeyError) as e:
        raise SettingsError(f"Invalid settings configuration: {str(e)}")

    # Validate numeric ranges
    if settings['db_pool_min_size'] < 1:
        errors.invalid.append("db_pool_min_size must be at least 1")
    if settings['db_pool_max_size'] < settings['db_pool_min_size']:
        errors.invalid.append("db_pool_max_size must not be lower than db_pool_min_size")
    if settings['db_command_timeout'] <= 0:
        errors.invalid.append("db_command_timeout must be positive")
    if settings.get('store') not in ('postgres', 'memory'):
        errors.invalid.append("store must be 'postgres' or 'memory'")
    if not 0 < settings['port'] < 65536:
        errors.invalid.append("port must be between 1 and 65535")

    if isinstance(settings.get('cors_origins'), str):
        settings['cors_origins'] = [
            origin.strip() for origin in settings['cors_origins'].split(',') if origin.strip()
        ]

    if errors.has_errors():
        raise SettingsError(
            "Settings Configuration Validation Failed\n\n" +
            errors.format_message()
        )

    return settings
