"""
Bootstrap progress state.

Records which steps of which recipe have completed so that re-running a
recipe after a failure resumes at the failing step. State is persisted to
``<state_dir>/state.json`` with atomic writes under a file lock.

Example:
    >>> manager = StateManager(Path.home() / ".devstrap")
    >>> if not manager.is_done("ubuntu/01-git", "ssh-key"):
    ...     run_step()
    ...     manager.mark_done("ubuntu/01-git", "ssh-key")
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from filelock import FileLock, Timeout

from devstrap.core.exceptions import StateError
from devstrap.core.filesystem import atomic_write

logger = logging.getLogger(__name__)

STATE_VERSION = 1


@dataclass
class BootstrapState:
    """
    Persisted progress.

    Attributes:
        version: State file format version
        recipes: recipe id -> {step id -> completion timestamp}
        last_run: ISO 8601 timestamp of the last recorded step
    """

    version: int = STATE_VERSION
    recipes: Dict[str, Dict[str, str]] = field(default_factory=dict)
    last_run: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "recipes": self.recipes,
            "last_run": self.last_run,
        }


class StateManager:
    """
    Manages bootstrap state persistence.

    Attributes:
        state_dir: Directory holding state.json
        state_file: Path to state.json
    """

    def __init__(self, state_dir: Path, lock_timeout: float = 10):
        self.state_dir = Path(state_dir)
        self.state_file = self.state_dir / "state.json"
        self.lock_timeout = lock_timeout
        self._state: Optional[BootstrapState] = None

    def _lock(self) -> FileLock:
        self.state_dir.mkdir(parents=True, exist_ok=True)
        return FileLock(str(self.state_dir / "state.json.lock"), timeout=self.lock_timeout)

    def load(self, refresh: bool = False) -> BootstrapState:
        """
        Load state from disk.

        A missing file yields empty state. A corrupted file logs a warning and
        yields empty state.
        """
        if self._state is not None and not refresh:
            return self._state

        if not self.state_file.exists():
            logger.debug(f"State file not found, starting fresh: {self.state_file}")
            self._state = BootstrapState()
            return self._state

        try:
            with open(self.state_file, "r", encoding="utf-8") as f:
                data = json.load(f)

            recipes = data.get("recipes", {})
            if not isinstance(recipes, dict):
                raise TypeError("recipes must be a mapping")

            self._state = BootstrapState(
                version=data.get("version", STATE_VERSION),
                recipes={str(k): dict(v) for k, v in recipes.items()},
                last_run=data.get("last_run"),
            )
        except (json.JSONDecodeError, TypeError, ValueError, AttributeError) as e:
            logger.warning(
                f"Invalid state file {self.state_file}, resetting to default: {e}"
            )
            self._state = BootstrapState()

        return self._state

    def _update(self, mutate) -> None:
        try:
            with self._lock():
                # Re-read under the lock so concurrent runs are merged
                state = self.load(refresh=True)
                mutate(state)
                atomic_write(self.state_file, json.dumps(state.to_dict(), indent=2))
        except Timeout as e:
            raise StateError(
                f"Could not lock state file {self.state_file} within "
                f"{self.lock_timeout}s"
            ) from e

    def is_done(self, recipe_id: str, step_id: str) -> bool:
        """Check whether a step has completed."""
        return step_id in self.load().recipes.get(recipe_id, {})

    def completed(self, recipe_id: str) -> List[str]:
        """Return completed step ids of a recipe in completion order."""
        return list(self.load().recipes.get(recipe_id, {}).keys())

    def mark_done(self, recipe_id: str, step_id: str) -> None:
        """Record a completed step."""
        timestamp = datetime.now().isoformat(timespec="seconds")

        def mutate(state: BootstrapState):
            state.recipes.setdefault(recipe_id, {})[step_id] = timestamp
            state.last_run = timestamp

        self._update(mutate)
        logger.debug(f"Recorded {recipe_id}:{step_id}")

    def reset(self, recipe_id: str) -> bool:
        """
        Forget the progress of a recipe.

        Returns:
            True if the recipe had recorded progress
        """
        existed = recipe_id in self.load().recipes

        def mutate(state: BootstrapState):
            state.recipes.pop(recipe_id, None)

        self._update(mutate)
        return existed
