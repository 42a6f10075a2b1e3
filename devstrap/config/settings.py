"""Layered user settings for devstrap.

Settings are resolved from, lowest to highest precedence:

1. Built-in defaults
2. The user config file (``~/.config/devstrap/config.yaml`` or ``$DEVSTRAP_CONFIG``)
3. Environment variables (``ProjectsRoot``, ``DEVSTRAP_*``)
4. Command-line overrides
"""

import logging
import os
import platform
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from devstrap.config.loader import load_yaml_file
from devstrap.core.exceptions import SettingsError
from devstrap.core.filesystem import expand_path

logger = logging.getLogger(__name__)

# Exported by the bootstrap scripts into ~/.bashrc
PROJECTS_ROOT_ENV = "ProjectsRoot"

ENV_OVERRIDES = {
    "DEVSTRAP_PROJECTS_ROOT": "projects_root",
    "DEVSTRAP_MANIFEST": "manifest",
    "DEVSTRAP_STATE_DIR": "state_dir",
    "DEVSTRAP_RECIPE_DIR": "recipe_dirs",
}


def config_home() -> Path:
    """Directory holding the user config file and default manifest."""
    if platform.system() == "Windows":
        base = os.environ.get("APPDATA")
        if base:
            return Path(base) / "devstrap"
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "devstrap"
    return Path.home() / ".config" / "devstrap"


def default_state_dir() -> Path:
    """Directory holding bootstrap progress state."""
    if platform.system() == "Windows":
        base = os.environ.get("LOCALAPPDATA")
        if base:
            return Path(base) / "devstrap"
    return Path.home() / ".devstrap"


@dataclass
class Settings:
    """
    Resolved settings.

    Attributes:
        projects_root: Directory projects are cloned into
        manifest: Path to the project manifest
        state_dir: Directory for bootstrap progress state
        recipe_dirs: Extra directories searched for bootstrap recipes
        interactive: Whether prompts may read from the console
        variables: Default values for recipe variables
    """

    projects_root: Path = field(default_factory=lambda: Path.home() / "repos")
    manifest: Path = field(default_factory=lambda: config_home() / "projects.yaml")
    state_dir: Path = field(default_factory=default_state_dir)
    recipe_dirs: List[Path] = field(default_factory=list)
    interactive: bool = True
    variables: Dict[str, str] = field(default_factory=dict)


_PATH_FIELDS = ("projects_root", "manifest", "state_dir")


def default_config_file(environ: Optional[Mapping[str, str]] = None) -> Path:
    environ = os.environ if environ is None else environ
    if environ.get("DEVSTRAP_CONFIG"):
        return expand_path(environ["DEVSTRAP_CONFIG"])
    return config_home() / "config.yaml"


def load_settings(
    config_file: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    overrides: Optional[Dict[str, Any]] = None,
    config_required: bool = True,
) -> Settings:
    """
    Resolve settings from all layers.

    Args:
        config_file: Explicit config file
        config_required: Whether an explicit config file must already exist
        environ: Environment mapping (default: os.environ)
        overrides: Values from the command line; None values are ignored

    Returns:
        Resolved Settings

    Raises:
        SettingsError: If the config file is invalid
    """
    environ = os.environ if environ is None else environ
    settings = Settings()

    if config_file is not None:
        _apply_file(settings, Path(config_file), required=config_required)
    else:
        _apply_file(settings, default_config_file(environ), required=False)

    _apply_environment(settings, environ)

    for key, value in (overrides or {}).items():
        if value is not None:
            _set(settings, key, value, source="command line")

    logger.debug(f"Resolved settings: {settings}")
    return settings


def _apply_file(settings: Settings, path: Path, required: bool) -> None:
    if not path.exists():
        if required:
            raise SettingsError(f"Configuration file not found: {path}")
        logger.debug(f"Config file not found (optional): {path}")
        return

    data = load_yaml_file(path, SettingsError) or {}
    if not isinstance(data, dict):
        raise SettingsError(f"Configuration file must be a mapping: {path}")

    known = {f.name for f in fields(Settings)}
    for key, value in data.items():
        if key not in known:
            logger.warning(f"Ignoring unknown setting '{key}' in {path}")
            continue
        _set(settings, key, value, source=str(path))


def _apply_environment(settings: Settings, environ: Mapping[str, str]) -> None:
    if environ.get(PROJECTS_ROOT_ENV):
        _set(settings, "projects_root", environ[PROJECTS_ROOT_ENV], source="environment")

    for env_name, key in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value:
            if key == "recipe_dirs":
                value = [p for p in value.split(os.pathsep) if p]
            _set(settings, key, value, source="environment")


def _set(settings: Settings, key: str, value: Any, source: str) -> None:
    if key in _PATH_FIELDS:
        if not isinstance(value, (str, Path)):
            raise SettingsError(f"{key} must be a path ({source})")
        value = expand_path(value)
    elif key == "recipe_dirs":
        if isinstance(value, (str, Path)):
            value = [value]
        if not isinstance(value, list):
            raise SettingsError(f"recipe_dirs must be a list of paths ({source})")
        value = [expand_path(p) for p in value]
    elif key == "interactive":
        if not isinstance(value, bool):
            raise SettingsError(f"interactive must be true or false ({source})")
    elif key == "variables":
        if not isinstance(value, dict):
            raise SettingsError(f"variables must be a mapping ({source})")
        merged = dict(settings.variables)
        merged.update({str(k): str(v) for k, v in value.items()})
        value = merged
    else:
        raise SettingsError(f"Unknown setting: {key}")

    setattr(settings, key, value)
