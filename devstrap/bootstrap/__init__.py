"""
Workstation bootstrap: declarative recipes replacing the numbered setup
scripts, run step by step with resumable progress.
"""

from .installers import Installer, PackageSpec, get_installer, get_registry
from .recipe import Recipe, RecipeCatalog, StepSpec, VariableSpec, load_recipe
from .runner import RecipeReport, RecipeRunner, StepOutcome
from .steps import STEP_HANDLERS, StepContext

__all__ = [
    "Installer",
    "PackageSpec",
    "get_installer",
    "get_registry",
    "Recipe",
    "RecipeCatalog",
    "StepSpec",
    "VariableSpec",
    "load_recipe",
    "RecipeReport",
    "RecipeRunner",
    "StepOutcome",
    "STEP_HANDLERS",
    "StepContext",
]
