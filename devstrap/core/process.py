"""
External command execution.

Every external tool devstrap drives (git, dotnet, yarn, apt, ...) goes through
``run_command``. A non-zero exit raises ``CommandFailedError`` so callers stop
at the first failure unless they opt out with ``check=False``.

Example:
    >>> from devstrap.core.process import run_command
    >>> result = run_command(["git", "status", "--short"], cwd=repo, capture=True)
    >>> print(result.stdout)
"""

import logging
import os
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from devstrap.core.exceptions import (
    CommandError,
    CommandFailedError,
    ToolNotFoundError,
)

logger = logging.getLogger(__name__)

Command = Union[str, Sequence[str]]


@dataclass
class CommandResult:
    """Outcome of an external command."""

    command: str
    returncode: int
    stdout: str = ""
    stderr: str = ""
    dry_run: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def format_command(command: Command, redact: Sequence[str] = ()) -> str:
    """Render a command for logging, masking any ``redact`` values."""
    if isinstance(command, str):
        rendered = command
    else:
        rendered = shlex.join([str(part) for part in command])
    for secret in redact:
        if secret:
            rendered = rendered.replace(secret, "****")
    return rendered


def which(tool: str) -> Optional[str]:
    """Return the full path of an executable, or None if not on PATH."""
    return shutil.which(tool)


def run_command(
    command: Command,
    cwd: Optional[Union[str, Path]] = None,
    env: Optional[Dict[str, str]] = None,
    check: bool = True,
    capture: bool = False,
    dry_run: bool = False,
    input_text: Optional[str] = None,
    redact: Sequence[str] = (),
    shell: Optional[bool] = None,
) -> CommandResult:
    """
    Run an external command.

    By default a string command is run through the shell and a sequence is
    run directly; ``shell`` overrides that choice.

    Args:
        command: Command line (argv list or shell string)
        cwd: Working directory
        env: Extra environment variables layered over os.environ
        check: Raise CommandFailedError on non-zero exit
        capture: Capture stdout/stderr instead of streaming to the console
        dry_run: Log the command without running it
        input_text: Text to send on stdin
        redact: Values (tokens, passwords) masked in logs and errors
        shell: Run through the shell (default: True for string commands)

    Returns:
        CommandResult

    Raises:
        ToolNotFoundError: If the executable does not exist
        CommandFailedError: If check is True and the command exits non-zero
    """
    rendered = format_command(command, redact)
    location = f" (in {cwd})" if cwd else ""

    if dry_run:
        logger.info(f"[dry-run] $ {rendered}{location}")
        return CommandResult(command=rendered, returncode=0, dry_run=True)

    logger.info(f"$ {rendered}{location}")

    if cwd and not Path(cwd).is_dir():
        raise CommandError(f"Working directory does not exist: {cwd}")

    full_env = None
    if env:
        full_env = dict(os.environ)
        full_env.update(env)

    if shell is None:
        shell = isinstance(command, str)
    argv: Union[str, List[str]]
    if shell:
        argv = command if isinstance(command, str) else shlex.join([str(p) for p in command])
    else:
        argv = shlex.split(command) if isinstance(command, str) else [str(p) for p in command]

    try:
        completed = subprocess.run(
            argv,
            cwd=str(cwd) if cwd else None,
            env=full_env,
            shell=shell,
            capture_output=capture,
            text=True,
            input=input_text,
        )
    except FileNotFoundError as e:
        raise ToolNotFoundError(argv[0] if not shell else rendered) from e

    result = CommandResult(
        command=rendered,
        returncode=completed.returncode,
        stdout=(completed.stdout or "") if capture else "",
        stderr=(completed.stderr or "") if capture else "",
    )

    if result.returncode != 0:
        logger.debug(f"Exit code {result.returncode}: {rendered}")
        if check:
            raise CommandFailedError(
                rendered, result.returncode, str(cwd) if cwd else None, result.stderr
            )

    return result


def command_succeeds(command: Command, cwd: Optional[Union[str, Path]] = None) -> bool:
    """
    Check whether a command exits 0, with output suppressed.

    Used for ``unless`` guards such as ``command -v brew``.
    """
    rendered = format_command(command)
    logger.debug(f"Checking: {rendered}")
    try:
        completed = subprocess.run(
            command if isinstance(command, str) else [str(p) for p in command],
            cwd=str(cwd) if cwd else None,
            shell=isinstance(command, str),
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except (FileNotFoundError, PermissionError):
        return False
    return completed.returncode == 0
