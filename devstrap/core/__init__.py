"""
Core functionality for devstrap.

This package contains the foundational modules that other components depend on.
"""

from .exceptions import (
    DevstrapError,
    SettingsError,
    ManifestError,
    DuplicateKeyError,
    ProjectNotFoundError,
    CommandError,
    ToolNotFoundError,
    CommandFailedError,
    RecipeError,
    StepError,
    PromptError,
    StateError,
    DownloadError,
)
from .platform import PlatformInfo, detect_platform, clear_platform_cache
from .process import CommandResult, run_command, command_succeeds, which
from .prompts import Prompter
from .state import StateManager, BootstrapState

__all__ = [
    "DevstrapError",
    "SettingsError",
    "ManifestError",
    "DuplicateKeyError",
    "ProjectNotFoundError",
    "CommandError",
    "ToolNotFoundError",
    "CommandFailedError",
    "RecipeError",
    "StepError",
    "PromptError",
    "StateError",
    "DownloadError",
    "PlatformInfo",
    "detect_platform",
    "clear_platform_cache",
    "CommandResult",
    "run_command",
    "command_succeeds",
    "which",
    "Prompter",
    "StateManager",
    "BootstrapState",
]
