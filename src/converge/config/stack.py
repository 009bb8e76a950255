"""Load code-server stack settings from YAML or an .env file."""

import yaml
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
from dotenv import dotenv_values
from pydantic import ValidationError
from ..stack.catalog import StackConfig
from ..utils.errors import ConfigError
from ..utils.logging import get_logger

logger = get_logger("config.stack")

# .env variable -> StackConfig field, matching the deploy script's variables.
ENV_FIELDS = {
    "GCP_PROJECT_ID": "project_id",
    "GCP_REGION": "region",
    "GCP_ZONE": "zone",
    "VM_NAME": "vm_name",
    "VM_MACHINE_TYPE": "machine_type",
    "BOOT_DISK_SIZE": "boot_disk_size",
    "BOOT_DISK_TYPE": "boot_disk_type",
    "SERVICE_ACCOUNT": "service_account",
    "VM_NETWORK_TAGS": "network_tags",
    "RESOURCE_LABELS": "labels",
    "ENABLE_HTTPS_LB": "enable_https",
    "CUSTOM_DOMAIN": "custom_domain",
}

TRUE_VALUES = ("1", "true", "yes", "on")


def _build(values: Dict[str, Any], source: str) -> StackConfig:
    try:
        return StackConfig(**values)
    except ValidationError as e:
        raise ConfigError(f"Invalid stack configuration in {source}: {e}")


def load_stack_config(
    stack_path: str,
    defaults: Optional[Dict[str, Any]] = None,
    overrides: Optional[Dict[str, Any]] = None
) -> StackConfig:
    """
    Load a stack config YAML file.

    The file may hold the settings at top level or under a ``stack`` key.
    ``defaults`` (usually the ``stack`` section of the merged config) fill in
    anything the file leaves out; ``overrides`` win over the file.
    """
    path = Path(stack_path)
    if not path.exists():
        raise ConfigError(f"Stack config file not found: {stack_path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in stack config: {e}")
    except OSError as e:
        raise ConfigError(f"Error reading stack config: {e}")

    if not isinstance(data, dict):
        raise ConfigError("Stack config file must contain a dictionary")
    if isinstance(data.get("stack"), dict):
        data = data["stack"]

    values = dict(defaults or {})
    values.update(data)
    values.update(overrides or {})
    logger.info(f"Loaded stack configuration from {stack_path}")
    return _build(values, stack_path)


def stack_config_from_env(
    env: Mapping[str, Optional[str]],
    defaults: Optional[Dict[str, Any]] = None,
    overrides: Optional[Dict[str, Any]] = None
) -> StackConfig:
    """
    Build a StackConfig from deploy-script style variables.

    ``VM_NETWORK_TAGS`` is comma separated, ``RESOURCE_LABELS`` is
    ``key=value`` pairs separated by commas and ``ENABLE_HTTPS_LB`` accepts
    1/true/yes/on. Empty values are ignored.
    """
    values = dict(defaults or {})
    for variable, field_name in ENV_FIELDS.items():
        raw = env.get(variable)
        if raw is None or str(raw).strip() == "":
            continue
        raw = str(raw).strip()
        if field_name == "network_tags":
            values[field_name] = [tag.strip() for tag in raw.split(",") if tag.strip()]
        elif field_name == "labels":
            labels = {}
            for pair in raw.split(","):
                if "=" not in pair:
                    raise ConfigError(f"Invalid label '{pair}' in RESOURCE_LABELS (expected key=value)")
                key, value = pair.split("=", 1)
                labels[key.strip()] = value.strip()
            values[field_name] = labels
        elif field_name == "enable_https":
            values[field_name] = raw.lower() in TRUE_VALUES
        else:
            values[field_name] = raw
    values.update(overrides or {})
    return _build(values, "environment")


def load_stack_env_file(
    env_path: str,
    defaults: Optional[Dict[str, Any]] = None,
    overrides: Optional[Dict[str, Any]] = None
) -> StackConfig:
    """Read an .env file without touching the process environment."""
    path = Path(env_path)
    if not path.exists():
        raise ConfigError(f"Environment file not found: {env_path}")
    logger.info(f"Loading configuration from {env_path}")
    return stack_config_from_env(dotenv_values(path), defaults, overrides)
