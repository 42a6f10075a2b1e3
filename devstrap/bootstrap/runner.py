"""
Recipe execution.

Steps run strictly in order. The first failing step halts the recipe;
completed steps are recorded in the state file so the next run resumes at
the failure instead of repeating finished work.
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Set

from devstrap.bootstrap.recipe import Recipe, StepSpec, references, substitute
from devstrap.bootstrap.steps import StepContext, apply_profile_environment, get_handler
from devstrap.config.settings import Settings
from devstrap.core.exceptions import DevstrapError, RecipeError, StepError
from devstrap.core.platform import PlatformInfo, detect_platform
from devstrap.core.process import command_succeeds
from devstrap.core.prompts import Prompter
from devstrap.core.state import StateManager

logger = logging.getLogger(__name__)


@dataclass
class StepOutcome:
    """What happened to one step."""

    step_id: str
    status: str  # 'done', 'skipped', 'ignored'
    message: str = ""


@dataclass
class RecipeReport:
    """Outcome of a recipe run."""

    recipe_id: str
    outcomes: List[StepOutcome] = field(default_factory=list)
    started: str = field(default_factory=lambda: datetime.now().isoformat(timespec="seconds"))

    def count(self, status: str) -> int:
        return sum(1 for o in self.outcomes if o.status == status)


class RecipeRunner:
    """
    Runs bootstrap recipes.

    Attributes:
        settings: Resolved user settings
        state: Progress state manager
        prompter: Interactive input
        platform: Platform used for step filtering
        dry_run: Log actions without performing them
        force: Re-run steps already recorded as done
    """

    def __init__(
        self,
        settings: Settings,
        state: StateManager,
        prompter: Prompter,
        platform: Optional[PlatformInfo] = None,
        dry_run: bool = False,
        force: bool = False,
    ):
        self.settings = settings
        self.state = state
        self.prompter = prompter
        self.platform = platform or detect_platform()
        self.dry_run = dry_run
        self.force = force

    def _base_variables(self) -> Dict[str, str]:
        variables = dict(os.environ)
        variables.update(self.settings.variables)
        variables["projects_root"] = str(self.settings.projects_root)
        variables["home"] = os.path.expanduser("~")
        return variables

    def _pending_steps(self, recipe: Recipe, start: int) -> List[StepSpec]:
        """Steps this run will execute or whose environment it reapplies."""
        pending = []
        for step in recipe.steps[start:]:
            if not self.platform.matches_any(step.platforms):
                continue
            if (
                self.force
                or step.type == "profile"
                or "capture" in step.options
                or not self.state.is_done(recipe.id, step.id)
            ):
                pending.append(step)
        return pending

    def resolve_variables(
        self, recipe: Recipe, steps: Optional[List[StepSpec]] = None
    ) -> StepContext:
        """
        Resolve recipe variables, prompting where needed.

        Prompts happen here, before the first step, so a long install is not
        interrupted halfway by a question. When ``steps`` is given, only
        variables those steps reference are prompted for; a resumed run does
        not ask again for answers that finished steps already used.
        """
        context = StepContext(
            prompter=self.prompter,
            platform=self.platform,
            variables=self._base_variables(),
            dry_run=self.dry_run,
        )

        needed: Optional[Set[str]] = None
        if steps is not None:
            needed = references([[step.options, step.unless] for step in steps])
            # Literal variables may refer to earlier ones
            for spec in reversed(list(recipe.variables.values())):
                if spec.value is not None and spec.name in needed:
                    needed |= references(spec.value)

        for name, spec in recipe.variables.items():
            if spec.value is not None:
                value = substitute(spec.value, context.variables)
            elif needed is not None and name not in needed:
                logger.debug(f"Not asking for '{name}': no pending step uses it")
                continue
            else:
                value = self.prompter.ask(
                    name, spec.prompt or name, default=spec.default, secret=spec.secret
                )
            context.variables[name] = value
            if spec.secret and value:
                context.secrets.append(value)

        return context

    def run(self, recipe: Recipe, from_step: Optional[str] = None) -> RecipeReport:
        """
        Run a recipe.

        Args:
            recipe: Recipe to run
            from_step: Start at this step id, skipping earlier ones

        Returns:
            RecipeReport

        Raises:
            RecipeError: If the recipe does not apply to this platform or
                from_step is unknown
            StepError: When a step fails; earlier steps stay recorded
        """
        if not self.platform.matches_any(recipe.platforms):
            raise RecipeError(
                f"Recipe '{recipe.id}' targets {', '.join(recipe.platforms)}, "
                f"not {self.platform}"
            )

        start = recipe.index_of(from_step) if from_step else 0
        context = self.resolve_variables(recipe, self._pending_steps(recipe, start))
        report = RecipeReport(recipe_id=recipe.id)

        if recipe.description:
            logger.info(f"Running recipe {recipe.id}: {recipe.description}")
        else:
            logger.info(f"Running recipe {recipe.id}")

        for index, step in enumerate(recipe.steps):
            if index < start:
                report.outcomes.append(StepOutcome(step.id, "skipped", "before start step"))
                continue
            report.outcomes.append(self._run_step(recipe, step, context))

        logger.info(
            f"Recipe {recipe.id}: {report.count('done')} done, "
            f"{report.count('skipped')} skipped, {report.count('ignored')} failed (ignored)"
        )
        return report

    def _run_step(self, recipe: Recipe, step: StepSpec, context: StepContext) -> StepOutcome:
        label = f"[{recipe.id}] {step.id}"

        # Captures feed later steps, so they always run again
        resumable = "capture" not in step.options
        if resumable and not self.force and self.state.is_done(recipe.id, step.id):
            logger.info(f"{label}: already done")
            self._reapply_environment(step, context)
            return StepOutcome(step.id, "skipped", "already done")

        if not self.platform.matches_any(step.platforms):
            logger.info(f"{label}: not applicable to {self.platform}")
            return StepOutcome(step.id, "skipped", "other platform")

        if step.unless is not None and not self.dry_run:
            guard = substitute(step.unless, context.variables)
            if command_succeeds(guard):
                logger.info(f"{label}: skipped, guard satisfied")
                self._reapply_environment(step, context)
                self._record(recipe, step)
                return StepOutcome(step.id, "skipped", "guard satisfied")

        logger.info(f"==> {label}: {step.summary()}")
        handler = get_handler(step.type)
        options = substitute(step.options, context.variables)

        try:
            message = handler(options, context)
        except (DevstrapError, OSError, ValueError) as e:
            if step.ignore_errors:
                logger.warning(f"{label}: failed, continuing: {e}")
                self._record(recipe, step)
                return StepOutcome(step.id, "ignored", str(e))
            raise StepError(step.id, str(e)) from e

        self._record(recipe, step)
        return StepOutcome(step.id, "done", message)

    def _reapply_environment(self, step: StepSpec, context: StepContext) -> None:
        if step.type == "profile":
            apply_profile_environment(substitute(step.options, context.variables))

    def _record(self, recipe: Recipe, step: StepSpec) -> None:
        if not self.dry_run:
            self.state.mark_done(recipe.id, step.id)

    def reset(self, recipe: Recipe) -> bool:
        """Forget recorded progress of a recipe."""
        return self.state.reset(recipe.id)
