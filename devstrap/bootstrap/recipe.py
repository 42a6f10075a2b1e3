"""Bootstrap recipe parser and catalog.

A recipe is the declarative form of one numbered bootstrap script
(``01-git``, ``02-install``...). Recipes ship with the package under
``devstrap/bootstrap/recipes/<os>/`` and may also live in user directories.

    id: ubuntu/01-git
    description: Configure git and ssh
    platforms: [ubuntu]
    vars:
      email: {prompt: "Please enter your email address for git"}
    steps:
      - id: identity
        type: git_config
        settings:
          user.email: ${email}
"""

import logging
import string
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

from devstrap.config.loader import load_yaml_file
from devstrap.core.exceptions import RecipeError
from devstrap.core.platform import PlatformInfo

logger = logging.getLogger(__name__)

BUILTIN_RECIPE_DIR = Path(__file__).parent / "recipes"

# Required options per step type
STEP_TYPES: Dict[str, List[str]] = {
    "packages": ["manager", "packages"],
    "command": ["run"],
    "script": ["url"],
    "git_config": ["settings"],
    "ssh_key": [],
    "profile": ["file", "lines"],
    "directory": ["path"],
    "pause": ["message"],
}

_STEP_KEYS = {"id", "type", "description", "platforms", "unless", "ignore_errors"}


@dataclass
class VariableSpec:
    """
    A recipe variable.

    Either a literal ``value`` or a ``prompt`` asked at run time.
    """

    name: str
    value: Optional[str] = None
    prompt: Optional[str] = None
    default: Optional[str] = None
    secret: bool = False


@dataclass
class StepSpec:
    """
    One step of a recipe.

    Attributes:
        id: Identifier, unique within the recipe
        type: One of STEP_TYPES
        options: Type-specific options (still containing ${var} references)
        description: Human readable summary
        platforms: Selectors limiting where the step runs
        unless: Command; the step is skipped when it exits 0
        ignore_errors: Treat failure as success
    """

    id: str
    type: str
    options: Dict[str, Any] = field(default_factory=dict)
    description: str = ""
    platforms: List[str] = field(default_factory=list)
    unless: Optional[Any] = None
    ignore_errors: bool = False

    def summary(self) -> str:
        return self.description or f"{self.type} step"


@dataclass
class Recipe:
    """A parsed bootstrap recipe."""

    id: str
    steps: List[StepSpec]
    description: str = ""
    platforms: List[str] = field(default_factory=list)
    variables: Dict[str, VariableSpec] = field(default_factory=dict)
    source: Optional[Path] = None

    def step_ids(self) -> List[str]:
        return [step.id for step in self.steps]

    def index_of(self, step_id: str) -> int:
        """
        Position of a step.

        Raises:
            RecipeError: If the step does not exist
        """
        try:
            return self.step_ids().index(step_id)
        except ValueError:
            raise RecipeError(
                f"Recipe '{self.id}' has no step '{step_id}' "
                f"(steps: {', '.join(self.step_ids())})"
            ) from None


def load_recipe(path: Path, recipe_id: Optional[str] = None) -> Recipe:
    """
    Load and validate a recipe file.

    Args:
        path: YAML file
        recipe_id: Id used when the file does not declare one

    Raises:
        RecipeError: If the recipe is invalid
    """
    path = Path(path)
    data = load_yaml_file(path, RecipeError)
    if not isinstance(data, dict):
        raise RecipeError(f"Recipe must be a mapping: {path}")

    recipe = parse_recipe(data, recipe_id or path.stem)
    recipe.source = path
    return recipe


def parse_recipe(data: dict, default_id: str) -> Recipe:
    """Validate raw recipe data."""
    recipe_id = str(data.get("id") or default_id)

    steps_data = data.get("steps")
    if not steps_data or not isinstance(steps_data, list):
        raise RecipeError(f"Recipe '{recipe_id}' must define a list of steps")

    steps = []
    seen = set()
    for index, step_data in enumerate(steps_data, start=1):
        step = _parse_step(recipe_id, index, step_data)
        if step.id in seen:
            raise RecipeError(f"Recipe '{recipe_id}': duplicate step id '{step.id}'")
        seen.add(step.id)
        steps.append(step)

    return Recipe(
        id=recipe_id,
        steps=steps,
        description=str(data.get("description", "")),
        platforms=_as_list(data.get("platforms")),
        variables=_parse_variables(recipe_id, data.get("vars") or {}),
    )


def _as_list(value) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def _parse_variables(recipe_id: str, data) -> Dict[str, VariableSpec]:
    if not isinstance(data, dict):
        raise RecipeError(f"Recipe '{recipe_id}': vars must be a mapping")

    variables = {}
    for name, spec in data.items():
        name = str(name)
        if isinstance(spec, dict):
            if "value" not in spec and "prompt" not in spec:
                raise RecipeError(
                    f"Recipe '{recipe_id}': variable '{name}' needs a value or a prompt"
                )
            variables[name] = VariableSpec(
                name=name,
                value=None if spec.get("value") is None else str(spec["value"]),
                prompt=spec.get("prompt"),
                default=None if spec.get("default") is None else str(spec["default"]),
                secret=bool(spec.get("secret", False)),
            )
        else:
            variables[name] = VariableSpec(name=name, value=str(spec))
    return variables


def _parse_step(recipe_id: str, index: int, data) -> StepSpec:
    if not isinstance(data, dict):
        raise RecipeError(f"Recipe '{recipe_id}': step {index} must be a mapping")

    step_type = data.get("type")
    if step_type not in STEP_TYPES:
        raise RecipeError(
            f"Recipe '{recipe_id}': step {index} has invalid type: {step_type} "
            f"(expected one of {sorted(STEP_TYPES)})"
        )

    step_id = str(data.get("id") or f"{index:02d}-{step_type}")
    options = {k: v for k, v in data.items() if k not in _STEP_KEYS}

    for required in STEP_TYPES[step_type]:
        if required not in options:
            raise RecipeError(
                f"Recipe '{recipe_id}': step '{step_id}' missing required option: {required}"
            )

    return StepSpec(
        id=step_id,
        type=step_type,
        options=options,
        description=str(data.get("description", "")),
        platforms=_as_list(data.get("platforms")),
        unless=data.get("unless"),
        ignore_errors=bool(data.get("ignore_errors", False)),
    )


class _BracedTemplate(string.Template):
    # Only ${name}; bare $NAME and $$ belong to the shell
    pattern = r"""
    \$(?:
      (?P<escaped>(?!)) |
      \{(?P<braced>[_a-z][_a-z0-9]*)\} |
      (?P<named>(?!)) |
      (?P<invalid>(?!))
    )
    """


def substitute(value: Any, context: Mapping[str, str]) -> Any:
    """
    Replace ``${name}`` references in strings, lists and mappings.

    Unknown references are left untouched, and so are bare ``$NAME`` shell
    variables.
    """
    if isinstance(value, str):
        return _BracedTemplate(value).safe_substitute(context)
    if isinstance(value, list):
        return [substitute(v, context) for v in value]
    if isinstance(value, dict):
        return {k: substitute(v, context) for k, v in value.items()}
    return value


def references(value: Any) -> Set[str]:
    """Names of the ``${name}`` references in strings, lists and mappings."""
    if isinstance(value, str):
        return {m.group("braced") for m in _BracedTemplate.pattern.finditer(value)}
    found: Set[str] = set()
    if isinstance(value, list):
        for item in value:
            found |= references(item)
    elif isinstance(value, dict):
        for item in value.values():
            found |= references(item)
    return found


class RecipeCatalog:
    """
    Discovers recipes from the built-in directory and user directories.

    Recipe ids are ``<subdirectory>/<file stem>`` relative to their root, so
    ``recipes/ubuntu/01-git.yaml`` is ``ubuntu/01-git``. User directories
    override built-in recipes with the same id.
    """

    def __init__(self, extra_dirs: Optional[Iterable[Path]] = None, include_builtin: bool = True):
        self.roots: List[Path] = []
        if include_builtin:
            self.roots.append(BUILTIN_RECIPE_DIR)
        self.roots.extend(Path(d) for d in (extra_dirs or []))
        self._recipes: Optional[Dict[str, Recipe]] = None

    def _discover(self) -> Dict[str, Recipe]:
        if self._recipes is not None:
            return self._recipes

        recipes: Dict[str, Recipe] = {}
        for root in self.roots:
            if not root.is_dir():
                logger.debug(f"Recipe directory not found: {root}")
                continue
            for path in sorted(root.rglob("*.y*ml")):
                derived_id = path.relative_to(root).with_suffix("").as_posix()
                recipe = load_recipe(path, derived_id)
                if recipe.id in recipes:
                    logger.debug(f"Recipe {recipe.id} overridden by {path}")
                recipes[recipe.id] = recipe

        self._recipes = dict(sorted(recipes.items()))
        return self._recipes

    def all(self) -> List[Recipe]:
        """All recipes sorted by id, which follows the numbered order."""
        return list(self._discover().values())

    def find(self, recipe_id: str) -> Recipe:
        """
        Look up a recipe by id.

        Raises:
            RecipeError: If no recipe has that id
        """
        recipes = self._discover()
        if recipe_id in recipes:
            return recipes[recipe_id]
        raise RecipeError(
            f"Unknown recipe: {recipe_id} (run 'devstrap bootstrap list')"
        )

    def for_platform(self, info: PlatformInfo) -> List[Recipe]:
        """Recipes applicable to a platform."""
        return [r for r in self.all() if info.matches_any(r.platforms)]
