"""Configuration loading from the environment, dictionaries and JSON profiles."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Mapping

from .errors import ConfigError
from .models import CRMConfig

logger = logging.getLogger(__name__)

ENV_URL = "SUITE_CRM_URL"
ENV_USERNAME = "SUITE_CRM_USERNAME"
ENV_PASSWORD = "SUITE_CRM_PASSWORD"
ENV_TIMEOUT = "SUITE_CRM_TIMEOUT"
ENV_DEBUG = "SUITE_CRM_DEBUG"
ENV_SSL_VERIFY = "SUITE_CRM_SSL_VERIFY"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def parse_bool(value: Any, name: str) -> bool:
    """Interpret a flag given as bool, int or string."""
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigError(f"Invalid boolean value for {name}: {value!r}")


def parse_timeout(value: Any, name: str = "timeout") -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid timeout value for {name}: {value!r}") from e


def config_from_env(env: Mapping[str, str] | None = None) -> CRMConfig:
    """
    Build a configuration from SUITE_CRM_* environment variables.

    Args:
        env: Mapping to read instead of os.environ

    Returns:
        Validated CRMConfig

    Raises:
        ConfigError: If URL, username or password is missing, or a value
            cannot be parsed
    """
    if env is None:
        env = os.environ

    missing = [
        name for name in (ENV_URL, ENV_USERNAME, ENV_PASSWORD)
        if not env.get(name)
    ]
    if missing:
        raise ConfigError(
            f"Missing required environment variables: {', '.join(missing)}"
        )

    return CRMConfig(
        url=env[ENV_URL],
        username=env[ENV_USERNAME],
        password=env[ENV_PASSWORD],
        timeout=parse_timeout(env.get(ENV_TIMEOUT, "30"), ENV_TIMEOUT),
        debug=parse_bool(env.get(ENV_DEBUG, "false"), ENV_DEBUG),
        ssl_verify=parse_bool(env.get(ENV_SSL_VERIFY, "true"), ENV_SSL_VERIFY),
    )


def config_from_dict(data: Mapping[str, Any]) -> CRMConfig:
    """Build a configuration from a plain mapping, coercing string values."""
    return CRMConfig.from_dict({
        "url": data.get("url", ""),
        "username": data.get("username", ""),
        "password": data.get("password", ""),
        "timeout": parse_timeout(data.get("timeout", 30)),
        "debug": parse_bool(data.get("debug", False), "debug"),
        "ssl_verify": parse_bool(data.get("ssl_verify", True), "ssl_verify"),
    })


def get_base_dir() -> Path:
    """
    Get the base directory for stored connection profiles.

    The directory is determined by:
    1. Environment variable SUITECRM_TOOLKIT_HOME if set
    2. Otherwise, ~/.suitecrm_toolkit

    The directory is created if it does not exist.

    Returns:
        Path to the base directory
    """
    env_home = os.environ.get("SUITECRM_TOOLKIT_HOME")
    if env_home:
        base_dir = Path(env_home)
    else:
        base_dir = Path.home() / ".suitecrm_toolkit"

    base_dir.mkdir(parents=True, exist_ok=True)
    return base_dir


def profile_path(name: str) -> Path:
    """Get the path of a named connection profile."""
    return get_base_dir() / f"{name}.json"


def save_config_file(
    config: CRMConfig,
    path: Path,
    include_password: bool = False,
) -> Path:
    """
    Save a configuration as JSON.

    The password is left out unless explicitly requested.

    Raises:
        ConfigError: If the file cannot be written
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(config.to_dict(include_password=include_password), f, indent=2)
    except OSError as e:
        raise ConfigError(f"Failed to save configuration to {path}: {e}") from e

    logger.info(f"Saved configuration to {path}")
    return path


def load_config_file(path: Path, env: Mapping[str, str] | None = None) -> CRMConfig:
    """
    Load a configuration from a JSON file.

    A profile saved without its password takes it from SUITE_CRM_PASSWORD.

    Raises:
        ConfigError: If the file is missing, unreadable or invalid
    """
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Configuration in {path} must be a JSON object")

    if not data.get("password"):
        if env is None:
            env = os.environ
        data["password"] = env.get(ENV_PASSWORD, "")

    return config_from_dict(data)
