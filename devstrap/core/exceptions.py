"""
Centralized exception hierarchy for devstrap.

Library code raises these; only CLI command handlers translate them into
messages and exit codes.
"""

from typing import List, Optional, Sequence, Union


# ============================================================================
# Base Exceptions
# ============================================================================


class DevstrapError(Exception):
    """Base exception for all devstrap errors."""

    pass


# ============================================================================
# Configuration Exceptions
# ============================================================================


class SettingsError(DevstrapError):
    """Raised when user settings are invalid."""

    pass


class ManifestError(DevstrapError):
    """Raised when the project manifest is missing or invalid."""

    pass


class DuplicateKeyError(ManifestError):
    """Raised when a YAML mapping repeats a key."""

    def __init__(self, key: str, line: Optional[int] = None):
        self.key = key
        self.line = line
        msg = f"Duplicate key: {key}"
        if line is not None:
            msg += f" (line {line})"
        super().__init__(msg)


class ProjectNotFoundError(ManifestError):
    """Raised when a project name is not in the manifest."""

    def __init__(self, name: str, suggestions: Optional[List[str]] = None):
        self.name = name
        self.suggestions = suggestions or []
        msg = f"Project not found in manifest: {name}"
        if self.suggestions:
            msg += f" (did you mean: {', '.join(self.suggestions)}?)"
        super().__init__(msg)


# ============================================================================
# Process Exceptions
# ============================================================================


class CommandError(DevstrapError):
    """Base exception for external command errors."""

    pass


class ToolNotFoundError(CommandError):
    """Raised when an external executable is not on PATH."""

    def __init__(self, tool: str):
        self.tool = tool
        super().__init__(f"Executable not found on PATH: {tool}")


class CommandFailedError(CommandError):
    """Raised when an external command exits with a non-zero code."""

    def __init__(
        self,
        command: Union[str, Sequence[str]],
        returncode: int,
        cwd: Optional[str] = None,
        stderr: Optional[str] = None,
    ):
        self.command = command if isinstance(command, str) else " ".join(command)
        self.returncode = returncode
        self.cwd = cwd
        self.stderr = stderr
        msg = f"Command failed with exit code {returncode}: {self.command}"
        if cwd:
            msg += f" (in {cwd})"
        super().__init__(msg)


# ============================================================================
# Bootstrap Exceptions
# ============================================================================


class RecipeError(DevstrapError):
    """Raised when a bootstrap recipe is unknown or invalid."""

    pass


class StepError(DevstrapError):
    """Raised when a bootstrap step fails."""

    def __init__(self, step_id: str, message: str):
        self.step_id = step_id
        super().__init__(f"Step '{step_id}' failed: {message}")


class PromptError(DevstrapError):
    """Raised when input is required but prompting is disabled."""

    pass


class StateError(DevstrapError):
    """Raised when the progress state file cannot be used."""

    pass


class DownloadError(DevstrapError):
    """Raised when a download fails."""

    pass
