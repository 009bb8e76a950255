"""Configuration module: engine, provider and stack settings."""

from typing import Dict, Any, Optional
from ..utils.errors import ConfigError
from ..utils.logging import get_logger
from .manager import load_config, save_config
from .paths import get_user_dir, get_user_config_path, get_project_config_path
from .stack import load_stack_config, stack_config_from_env

logger = get_logger("config")


def load_engine_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load and validate the merged configuration.

    Args:
        config_path: Optional extra YAML file layered over defaults, user and
            project configs

    Returns:
        Configuration dictionary with ``engine``, ``provider`` and ``stack``
        sections

    Raises:
        ConfigError: If the config is malformed
    """
    config = load_config(config_path)

    validation_issues = []

    for section in ("engine", "provider", "stack"):
        if not isinstance(config.get(section), dict):
            validation_issues.append(f"{section} is not a dict")

    engine = config.get("engine")
    if isinstance(engine, dict):
        timeout = engine.get("call_timeout")
        if timeout is not None and (isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0):
            validation_issues.append(f"engine.call_timeout must be a positive number or null, got {timeout!r}")

    provider = config.get("provider")
    if isinstance(provider, dict):
        if not isinstance(provider.get("name"), str):
            validation_issues.append("provider.name must be a string")

    if validation_issues:
        raise ConfigError(f"Invalid configuration: {'; '.join(validation_issues)}")

    return config


__all__ = [
    "load_engine_config",
    "load_config",
    "save_config",
    "load_stack_config",
    "stack_config_from_env",
    "get_user_dir",
    "get_user_config_path",
    "get_project_config_path",
]
