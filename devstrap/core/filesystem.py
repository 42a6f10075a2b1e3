"""
Filesystem helpers.

Provides atomic writes for state and manifest files, and idempotent
append for shell profiles and ssh config.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)


def expand_path(path: Union[str, Path]) -> Path:
    """
    Expand ``~`` and environment variables in a path.

    Example:
        >>> expand_path("~/repos")
        PosixPath('/home/user/repos')
    """
    return Path(os.path.expandvars(os.path.expanduser(str(path))))


def ensure_directory(path: Union[str, Path], mode: Optional[int] = None) -> Path:
    """
    Ensure a directory exists, optionally applying permissions.

    Args:
        path: Directory path
        mode: Permission bits (e.g. 0o700) applied after creation

    Returns:
        Path to directory
    """
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    if mode is not None:
        path.chmod(mode)
    return path


def atomic_write(
    file_path: Union[str, Path], content: Union[str, bytes], encoding: str = "utf-8"
) -> None:
    """
    Write file atomically using temp file + rename.

    If the write fails, the original file (if any) remains unchanged.

    Args:
        file_path: Path to write to
        content: Content to write (string or bytes)
        encoding: Text encoding (used only for string content)
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    # Same directory keeps the rename on one filesystem
    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)

    try:
        if isinstance(content, str):
            with open(temp_fd, "w", encoding=encoding) as f:
                f.write(content)
        else:
            with open(temp_fd, "wb") as f:
                f.write(content)

        temp_path.replace(file_path)

    except Exception:
        temp_path.unlink(missing_ok=True)
        raise


def append_once(
    file_path: Union[str, Path],
    block: str,
    marker: Optional[str] = None,
    mode: Optional[int] = None,
) -> bool:
    """
    Append a block of text to a file unless it is already present.

    The block counts as present when ``marker`` (default: the first non-empty
    line of the block) appears anywhere in the file.

    Args:
        file_path: File to append to (created if missing)
        block: Text to append
        marker: Substring identifying the block
        mode: Permission bits applied when the file is created

    Returns:
        True if the file was changed, False if the block was already there
    """
    file_path = Path(file_path)
    if marker is None:
        lines = [line for line in block.splitlines() if line.strip()]
        if not lines:
            raise ValueError("Cannot append an empty block")
        marker = lines[0].strip()

    existing = ""
    created = not file_path.exists()
    if not created:
        existing = file_path.read_text(encoding="utf-8")
        if marker in existing:
            logger.debug(f"Already present in {file_path}: {marker}")
            return False

    separator = ""
    if existing and not existing.endswith("\n"):
        separator = "\n"
    if existing:
        separator += "\n"

    text = block if block.endswith("\n") else block + "\n"

    file_path.parent.mkdir(parents=True, exist_ok=True)
    with open(file_path, "a", encoding="utf-8") as f:
        f.write(separator + text)

    if created and mode is not None:
        file_path.chmod(mode)

    logger.info(f"Updated {file_path}")
    return True
