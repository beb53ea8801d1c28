"""Configuration manager for loading and managing configuration.

Configuration is loaded with the following precedence (highest to lowest):
1. CLI arguments (handled by caller)
2. Environment variables (FEDFARM_* prefix, .env honoured)
3. Configuration file (JSON)
4. Default values
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from fedfarm.config.defaults import DEFAULT_CONFIG, DEFAULT_CONFIG_PATH
from fedfarm.config.schema import Config
from fedfarm.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "FEDFARM_"

# (environment suffix, section, field, converter)
_ENV_OVERRIDES = (
    ("BASE_URL", "provider", "base_url", str),
    ("VERIFY_TLS", "provider", "verify_tls", "bool"),
    ("TIMEOUT_CONNECT", "provider", "timeout_connect", int),
    ("TIMEOUT_READ", "provider", "timeout_read", int),
    ("MAX_RETRIES", "provider", "max_retries", int),
    ("BACKOFF_FACTOR", "provider", "backoff_factor", float),
    ("DEFAULT_STORE", "certificates", "default_store", str),
    ("LOG_LEVEL", "logging", "level", str),
    ("LOG_FILE", "logging", "log_file", str),
    ("REDACT_SECRETS", "logging", "redact_secrets", "bool"),
)


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from file and environment variables.

    Args:
        config_path: Path to configuration file. If None, uses ./config/config.json

    Returns:
        Validated Config instance

    Raises:
        ConfigurationError: If configuration is invalid or malformed

    Example:
        >>> config = load_config(Path("config/farm.json"))
        >>> config.provider.base_url
        'https://adfs01.corp.example/adfs/admin'
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(DEFAULT_CONFIG_PATH)

    config_dict = _load_config_file(config_path)
    config_dict = _apply_env_overrides(config_dict)
    _check_sensitive_values(config_dict)

    try:
        return Config(**config_dict)
    except ValidationError as e:
        raise ConfigurationError(
            f"Configuration validation failed:\n{e}\n\n"
            f"Fix: Check your configuration file at {config_path} and ensure all "
            f"values match the expected format."
        ) from e


def _load_config_file(config_path: Path) -> dict[str, Any]:
    """Load configuration file or return a copy of the defaults.

    Raises:
        ConfigurationError: If JSON is malformed or unreadable
    """
    if not config_path.exists():
        logger.info(f"Config file not found: {config_path}. Using default configuration.")
        return copy.deepcopy(DEFAULT_CONFIG)

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config_dict = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            f"Invalid JSON in config file: {config_path}\n"
            f"Error: {e}\n"
            f"Fix: Check JSON syntax at line {e.lineno}, column {e.colno}"
        ) from e
    except OSError as e:
        raise ConfigurationError(
            f"Failed to read config file: {config_path}\n"
            f"Error: {e}\n"
            f"Fix: Check file permissions and path"
        ) from e

    if not isinstance(config_dict, dict):
        raise ConfigurationError(
            f"Config file {config_path} must contain a JSON object.\n"
            f"Fix: Wrap the settings in {{ ... }} with provider/certificates/logging sections"
        )
    logger.info(f"Loaded configuration from {config_path}")
    return config_dict


def _apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """Apply FEDFARM_<FIELD> environment overrides.

    For example: FEDFARM_BASE_URL, FEDFARM_LOG_LEVEL, FEDFARM_VERIFY_TLS

    Raises:
        ConfigurationError: If a numeric override cannot be parsed
    """
    for suffix, section, field, converter in _ENV_OVERRIDES:
        if raw := os.getenv(f"{ENV_PREFIX}{suffix}"):
            try:
                value = _parse_bool(raw) if converter == "bool" else converter(raw)
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid value for {ENV_PREFIX}{suffix}: {raw!r}\n"
                    f"Fix: Set it to a valid {converter.__name__}"
                ) from e
            config_dict.setdefault(section, {})[field] = value
            logger.debug(f"Override: {field} from environment")
    return config_dict


def _parse_bool(value: str) -> bool:
    """Parse boolean value from string (case-insensitive)."""
    return value.lower() in ("true", "1", "yes", "on")


def _check_sensitive_values(config_dict: dict[str, Any]) -> None:
    """Warn when a PKCS12 password sits in the config file itself."""
    certs = config_dict.get("certificates", {})
    if isinstance(certs, dict) and "pkcs12_password" in certs:
        logger.warning(
            "PKCS12 password found in configuration file! "
            "Passwords should be stored in environment variables, not config files. "
            f"Use {ENV_PREFIX}PKCS12_PASSWORD environment variable instead."
        )
