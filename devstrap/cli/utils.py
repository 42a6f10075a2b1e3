"""
Shared utilities for CLI commands.

Provides settings resolution from global flags and consistent console
output across commands.
"""

import logging
import sys
from typing import Any, Dict, List, Optional

from devstrap.config.manifest import ProjectManifest, load_manifest
from devstrap.config.settings import Settings, load_settings
from devstrap.core.prompts import Prompter

logger = logging.getLogger(__name__)


# ============================================================================
# Settings
# ============================================================================


def settings_from_args(args, config_required: bool = True) -> Settings:
    """
    Resolve settings from global command-line flags.

    Args:
        args: Parsed arguments
        config_required: Whether --config must name an existing file

    Returns:
        Resolved Settings

    Raises:
        SettingsError: If the settings file is invalid
    """
    overrides: Dict[str, Any] = {
        "projects_root": getattr(args, "projects_root", None),
        "manifest": getattr(args, "manifest", None),
    }
    if getattr(args, "yes", False):
        overrides["interactive"] = False
    return load_settings(
        config_file=getattr(args, "config", None),
        overrides=overrides,
        config_required=config_required,
    )


def manifest_from_settings(settings: Settings) -> ProjectManifest:
    """Load the manifest the settings point at."""
    return load_manifest(settings.manifest, settings.projects_root)


def parse_variables(pairs: Optional[List[List[str]]]) -> Dict[str, str]:
    """
    Convert ``--var KEY=VALUE`` pairs to a dict.

    Raises:
        ValueError: If a pair has no '='
    """
    variables = {}
    for pair in pairs or []:
        if len(pair) != 2 or not pair[0]:
            raise ValueError(f"Invalid --var value: {'='.join(pair)} (expected KEY=VALUE)")
        variables[pair[0]] = pair[1]
    return variables


def prompter_from_settings(settings: Settings, answers: Optional[Dict[str, str]] = None) -> Prompter:
    merged = dict(settings.variables)
    merged.update(answers or {})
    return Prompter(interactive=settings.interactive, answers=merged)


# ============================================================================
# User Interface / Output Formatting
# ============================================================================


def format_table(rows: List[List[str]], headers: List[str]) -> str:
    """Render rows as a left-aligned text table."""
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    def render(cells):
        return "  ".join(cell.ljust(widths[i]) for i, cell in enumerate(cells)).rstrip()

    lines = [render(headers), render(["-" * w for w in widths])]
    lines.extend(render(row) for row in rows)
    return "\n".join(lines)


def format_success_message(
    title: str,
    details: Dict[str, Any],
    next_steps: Optional[list] = None,
    width: int = 70,
) -> str:
    """
    Format a standardized success message.

    Args:
        title: Success message title
        details: Key-value pairs to display
        next_steps: Optional list of next step instructions
        width: Width of message box

    Returns:
        Formatted message string
    """
    lines = ["=" * width, title, "=" * width, ""]

    for key, value in details.items():
        lines.append(f"{key}: {value}")

    if next_steps:
        lines.append("")
        lines.append("Next steps:")
        for step in next_steps:
            lines.append(f"  {step}")

    lines.append("")
    return "\n".join(lines)


def print_error(message: str, details: Optional[str] = None):
    """
    Print error message to stderr in consistent format.

    Args:
        message: Main error message
        details: Optional additional details
    """
    print(f"ERROR: {message}", file=sys.stderr)
    if details:
        print(f"  {details}", file=sys.stderr)


def print_warning(message: str):
    """Print warning message to stderr."""
    print(f"WARNING: {message}", file=sys.stderr)


def safe_print(message: str, file=None):
    """
    Print message with safe encoding handling for Windows console.

    Falls back to ASCII-safe characters if Unicode symbols can't be encoded.
    """
    try:
        print(message, file=file)
    except UnicodeEncodeError:
        safe_message = message.replace("✓", "[OK]").replace("✗", "[FAIL]")
        print(safe_message, file=file)
