"""
Interactive console input.

Bootstrap recipes ask for a git name, email address or tokens and wait for
the user to finish manual steps such as adding an ssh key to GitHub. The
``Prompter`` serves those requests from preset answers first (``--var``),
then from the console, and refuses when running non-interactively.
"""

import getpass
import logging
from typing import Dict, Optional

from devstrap.core.exceptions import PromptError

logger = logging.getLogger(__name__)


class Prompter:
    """
    Ask the user for values.

    Attributes:
        interactive: Whether the console may be used
        answers: Values already known, keyed by variable name
    """

    def __init__(
        self, interactive: bool = True, answers: Optional[Dict[str, str]] = None
    ):
        self.interactive = interactive
        self.answers: Dict[str, str] = dict(answers or {})

    def ask(
        self,
        key: str,
        message: str,
        default: Optional[str] = None,
        secret: bool = False,
    ) -> str:
        """
        Return the value for ``key``, prompting if it is not known yet.

        Args:
            key: Variable name used to cache the answer
            message: Prompt text
            default: Value used when the user enters nothing
            secret: Read without echo

        Raises:
            PromptError: If the value is unknown and prompting is disabled
        """
        if key in self.answers:
            return self.answers[key]

        if not self.interactive:
            if default is not None:
                self.answers[key] = default
                return default
            raise PromptError(
                f"Value for '{key}' is required; pass --var {key}=VALUE "
                f"when running non-interactively"
            )

        suffix = f" [{default}]" if default else ""
        prompt = f"{message}{suffix}: "
        value = getpass.getpass(prompt) if secret else input(prompt)
        value = value.strip()

        if not value:
            if default is None:
                raise PromptError(f"No value entered for '{key}'")
            value = default

        self.answers[key] = value
        return value

    def pause(self, message: str) -> None:
        """Wait for the user to press Enter."""
        if not self.interactive:
            logger.info(f"{message} (skipped, non-interactive)")
            return
        input(f"{message} ")

    def confirm(self, message: str, default: bool = False) -> bool:
        """Ask a yes/no question."""
        if not self.interactive:
            return default
        hint = "[Y/n]" if default else "[y/N]"
        answer = input(f"{message} {hint} ").strip().lower()
        if not answer:
            return default
        return answer in ("y", "yes")
