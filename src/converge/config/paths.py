"""Locations of the packaged, user and project configuration files."""

import os
from pathlib import Path
from typing import Optional

HOME_ENV = "CONVERGE_HOME"
CONFIG_DIR_NAME = ".converge"
CONFIG_FILE_NAME = "config.yaml"


def get_defaults_path() -> Path:
    """Packaged defaults shipped next to this module."""
    return Path(__file__).parent / "defaults.yaml"


def get_user_dir() -> Path:
    """User settings directory: ``$CONVERGE_HOME`` or ``~/.converge``."""
    override = os.environ.get(HOME_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / CONFIG_DIR_NAME


def get_user_config_path() -> Path:
    return get_user_dir() / CONFIG_FILE_NAME


def get_project_config_path(start: Optional[Path] = None) -> Optional[Path]:
    """
    Find ``.converge/config.yaml`` in the working directory or its parents.

    The search stops at the first match and never reaches the home directory,
    whose ``.converge`` holds the user config.
    """
    current = (start or Path.cwd()).resolve()
    home = Path.home().resolve()
    for directory in [current, *current.parents]:
        if directory == home:
            break
        candidate = directory / CONFIG_DIR_NAME / CONFIG_FILE_NAME
        if candidate.is_file():
            return candidate
    return None
