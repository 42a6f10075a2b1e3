"""
Bootstrap commands: list, show, run and reset workstation recipes.
"""

import logging

from devstrap.bootstrap.recipe import RecipeCatalog
from devstrap.bootstrap.runner import RecipeRunner
from devstrap.cli.utils import (
    format_table,
    parse_variables,
    print_error,
    prompter_from_settings,
    safe_print,
    settings_from_args,
)
from devstrap.core.exceptions import DevstrapError, StepError
from devstrap.core.platform import detect_platform
from devstrap.core.state import StateManager

logger = logging.getLogger(__name__)


def _catalog(settings) -> RecipeCatalog:
    return RecipeCatalog(extra_dirs=settings.recipe_dirs)


def run_list(args) -> int:
    """List recipes for this platform with their progress."""
    try:
        settings = settings_from_args(args)
        catalog = _catalog(settings)
        platform_info = detect_platform()
        recipes = catalog.all() if args.all_platforms else catalog.for_platform(platform_info)
    except DevstrapError as e:
        print_error("Cannot list recipes", str(e))
        return 1

    if not recipes:
        safe_print(f"No recipes for {platform_info}. Use --all to list every recipe.")
        return 0

    state = StateManager(settings.state_dir)
    rows = []
    for recipe in recipes:
        done = len(set(state.completed(recipe.id)) & set(recipe.step_ids()))
        rows.append(
            [
                recipe.id,
                f"{done}/{len(recipe.steps)}",
                ",".join(recipe.platforms) or "any",
                recipe.description,
            ]
        )

    safe_print(format_table(rows, ["RECIPE", "DONE", "PLATFORMS", "DESCRIPTION"]))
    return 0


def run_show(args) -> int:
    """Print the steps of a recipe."""
    try:
        settings = settings_from_args(args)
        recipe = _catalog(settings).find(args.recipe)
    except DevstrapError as e:
        print_error("Cannot show recipe", str(e))
        return 1

    state = StateManager(settings.state_dir)
    completed = set(state.completed(recipe.id))

    safe_print(f"{recipe.id}: {recipe.description}")
    if recipe.source:
        safe_print(f"  source: {recipe.source}")
    if recipe.variables:
        safe_print(f"  variables: {', '.join(recipe.variables)}")
    safe_print("")

    for index, step in enumerate(recipe.steps, start=1):
        mark = "✓" if step.id in completed else " "
        extra = f" [{','.join(step.platforms)}]" if step.platforms else ""
        safe_print(f"  {mark} {index:2d}. {step.id} ({step.type}){extra}")
    return 0


def run_run(args) -> int:
    """Run recipes in the order given, halting at the first failure."""
    try:
        settings = settings_from_args(args)
        answers = parse_variables(args.var)
        catalog = _catalog(settings)
        recipes = [catalog.find(recipe_id) for recipe_id in args.recipes]
    except (DevstrapError, ValueError) as e:
        print_error("Cannot run recipes", str(e))
        return 1

    runner = RecipeRunner(
        settings=settings,
        state=StateManager(settings.state_dir),
        prompter=prompter_from_settings(settings, answers),
        dry_run=args.dry_run,
        force=args.force,
    )

    for index, recipe in enumerate(recipes):
        from_step = args.from_step if index == 0 else None
        try:
            runner.run(recipe, from_step=from_step)
        except StepError as e:
            print_error(f"Recipe {recipe.id} halted", str(e))
            safe_print(
                f"Fix the problem and re-run 'devstrap bootstrap run {recipe.id}' "
                f"to resume at step '{e.step_id}'."
            )
            return 1
        except DevstrapError as e:
            print_error(f"Recipe {recipe.id} failed", str(e))
            return 1

    return 0


def run_reset(args) -> int:
    """Forget the recorded progress of a recipe."""
    try:
        settings = settings_from_args(args)
        recipe = _catalog(settings).find(args.recipe)
        had_progress = StateManager(settings.state_dir).reset(recipe.id)
    except DevstrapError as e:
        print_error("Cannot reset recipe", str(e))
        return 1

    if had_progress:
        safe_print(f"Progress of {recipe.id} cleared.")
    else:
        safe_print(f"{recipe.id} has no recorded progress.")
    return 0
