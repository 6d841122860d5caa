"""
Configuration loading and management for the portfolio analytics engine.

This module handles loading application settings from YAML files, .env files
and STOCKFOLIO_* environment variables, plus validation of each parameter.
"""

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import dotenv_values

from stockfolio.models import AppConfig


# Default paths for configuration files
PROJECT_ROOT = Path(__file__).parent.parent.parent
DEFAULT_ENV_FILE = PROJECT_ROOT / ".env"

ENV_PREFIX = "STOCKFOLIO_"

QUOTE_SOURCES = ("static", "yfinance")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigurationError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""
    pass


def load_app_config(
    config_path: str | Path | None = None,
    env_file: str | Path | None = None,
) -> AppConfig:
    """
    Load application configuration from multiple sources with priority.

    Sources are checked in this order (later sources override earlier):
    1. YAML configuration file (if given)
    2. .env file (STOCKFOLIO_* keys)
    3. Environment variables (STOCKFOLIO_* keys)

    Args:
        config_path: Path to a YAML configuration file
        env_file: Path to .env file (defaults to project root .env)

    Returns:
        Validated AppConfig

    Raises:
        ConfigurationError: If a file cannot be loaded or a value is invalid

    Example:
        >>> config = load_app_config("config/stockfolio.yaml")
        >>> config.quote_timeout_seconds
        5.0
    """
    raw: dict[str, Any] = {}

    # 1. YAML file
    if config_path is not None:
        raw.update(_load_yaml(Path(config_path)))

    # 2. .env file
    env_path = Path(env_file) if env_file else DEFAULT_ENV_FILE
    if env_path.exists():
        raw.update(_from_env_mapping(dotenv_values(env_path)))

    # 3. Environment variables (highest priority)
    raw.update(_from_env_mapping(os.environ))

    return _parse_app_config(raw)


def _load_yaml(config_path: Path) -> dict[str, Any]:
    """Read a YAML mapping from disk."""
    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r") as f:
            raw_config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in configuration file: {e}")

    if not isinstance(raw_config, dict):
        raise ConfigurationError(
            f"Configuration file {config_path} must contain a mapping"
        )
    return raw_config


def _from_env_mapping(values: Any) -> dict[str, Any]:
    """Pick STOCKFOLIO_* keys out of an env-style mapping."""
    result: dict[str, Any] = {}
    for key, value in values.items():
        if key.startswith(ENV_PREFIX) and value not in (None, ""):
            result[key[len(ENV_PREFIX):].lower()] = value
    return result


def _parse_app_config(raw: dict[str, Any]) -> AppConfig:
    """
    Parse and validate a raw configuration dictionary into AppConfig.

    Args:
        raw: Merged dictionary of settings

    Returns:
        Validated AppConfig

    Raises:
        ConfigurationError: If a value is invalid
    """
    defaults = AppConfig()

    quote_source = str(raw.get("quote_source", defaults.quote_source)).lower()
    if quote_source not in QUOTE_SOURCES:
        raise ConfigurationError(
            f"quote_source must be one of {QUOTE_SOURCES}, got {quote_source}"
        )

    log_level = str(raw.get("log_level", defaults.log_level)).upper()
    if log_level not in LOG_LEVELS:
        raise ConfigurationError(
            f"log_level must be one of {LOG_LEVELS}, got {log_level}"
        )

    quote_file = raw.get("quote_file", defaults.quote_file)

    portfolio_id = str(raw.get("portfolio_id", defaults.portfolio_id))
    if not portfolio_id:
        raise ConfigurationError("portfolio_id cannot be empty")

    return AppConfig(
        data_dir=str(raw.get("data_dir", defaults.data_dir)),
        log_dir=str(raw.get("log_dir", defaults.log_dir)),
        quote_source=quote_source,
        quote_file=str(quote_file) if quote_file else None,
        quote_timeout_seconds=_parse_number(
            raw.get("quote_timeout_seconds", defaults.quote_timeout_seconds),
            "quote_timeout_seconds",
            min_val=0.0,
        ),
        insight_cooldown_minutes=int(_parse_number(
            raw.get("insight_cooldown_minutes", defaults.insight_cooldown_minutes),
            "insight_cooldown_minutes",
            min_val=0.0,
        )),
        log_level=log_level,
        portfolio_id=portfolio_id,
    )


def _parse_number(
    value: Any,
    field_name: str,
    min_val: Optional[float] = None,
    max_val: Optional[float] = None,
) -> float:
    """
    Parse a numeric value with optional range validation.

    Args:
        value: The value to parse
        field_name: Name of the field for error messages
        min_val: Minimum allowed value (inclusive)
        max_val: Maximum allowed value (inclusive)

    Returns:
        Parsed float

    Raises:
        ConfigurationError: If the value is invalid or out of range
    """
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Invalid numeric value for {field_name}: {value}")

    if min_val is not None and number < min_val:
        raise ConfigurationError(f"{field_name} must be >= {min_val}, got {number}")

    if max_val is not None and number > max_val:
        raise ConfigurationError(f"{field_name} must be <= {max_val}, got {number}")

    return number


def write_config(config: AppConfig, output_path: str | Path) -> None:
    """
    Write an AppConfig to a YAML file.

    Args:
        config: The configuration to write
        output_path: Path to write the YAML file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    config_dict = {
        "data_dir": config.data_dir,
        "log_dir": config.log_dir,
        "quote_source": config.quote_source,
        "quote_file": config.quote_file,
        "quote_timeout_seconds": config.quote_timeout_seconds,
        "insight_cooldown_minutes": config.insight_cooldown_minutes,
        "log_level": config.log_level,
        "portfolio_id": config.portfolio_id,
    }

    with open(output_path, "w") as f:
        yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False)
