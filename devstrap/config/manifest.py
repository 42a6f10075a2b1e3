"""Project manifest parser for devstrap.

The manifest is a YAML file mapping project names to their git remote, local
directory and build tooling:

    version: 1
    projects:
      my-api:
        remote: git@github.com:me/my-api.git
        dotnet:
          solution: src/MyApi.sln
        node:
          directory: src/ui
          package_manager: yarn
"""

import difflib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import yaml

from devstrap.config.loader import load_yaml_file
from devstrap.core.exceptions import DuplicateKeyError, ManifestError, ProjectNotFoundError
from devstrap.core.filesystem import atomic_write, expand_path

logger = logging.getLogger(__name__)

MANIFEST_VERSION = 1
NODE_PACKAGE_MANAGERS = ("yarn", "npm")
PYTHON_TOOLS = ("poetry", "uv")
PROJECT_KINDS = ("dotnet", "node", "python")


@dataclass
class DotnetSettings:
    """dotnet build settings."""

    solution: Optional[str] = None


@dataclass
class NodeSettings:
    """Node.js build settings."""

    directory: str = "."
    package_manager: str = "yarn"


@dataclass
class PythonSettings:
    """Python build settings."""

    directory: str = "."
    tool: str = "poetry"


@dataclass
class Project:
    """A single manifest entry."""

    name: str
    remote: str
    path: Path
    tags: List[str] = field(default_factory=list)
    dotnet: Optional[DotnetSettings] = None
    node: Optional[NodeSettings] = None
    python: Optional[PythonSettings] = None
    directory: Optional[str] = None

    @property
    def kinds(self) -> List[str]:
        """Configured project type flags in build order."""
        return [kind for kind in PROJECT_KINDS if getattr(self, kind) is not None]

    @property
    def is_cloned(self) -> bool:
        return (self.path / ".git").exists()


@dataclass
class ProjectManifest:
    """Parsed manifest."""

    projects_root: Path
    projects: Dict[str, Project] = field(default_factory=dict)
    version: int = MANIFEST_VERSION
    source: Optional[Path] = None

    def names(self) -> List[str]:
        return list(self.projects.keys())

    def get(self, name: str) -> Project:
        """
        Look up a project.

        Raises:
            ProjectNotFoundError: With close-match suggestions
        """
        try:
            return self.projects[name]
        except KeyError:
            suggestions = difflib.get_close_matches(name, self.names(), n=3)
            raise ProjectNotFoundError(name, suggestions) from None

    def select(
        self,
        names: Optional[Iterable[str]] = None,
        tags: Optional[Iterable[str]] = None,
        all_projects: bool = False,
    ) -> List[Project]:
        """
        Select projects by name or tag, in manifest order.

        Raises:
            ProjectNotFoundError: If a name is unknown
            ManifestError: If the selection is empty
        """
        names = list(names or [])
        tags = set(tags or [])

        if all_projects:
            selected = list(self.projects.values())
        else:
            wanted = {self.get(name).name for name in names}
            selected = [
                project
                for project in self.projects.values()
                if project.name in wanted or tags.intersection(project.tags)
            ]

        if not selected:
            if names or tags:
                raise ManifestError("No projects match the selection")
            raise ManifestError("No projects selected (give names, --tag or --all)")

        return selected


def load_manifest(path: Path, projects_root: Optional[Path] = None) -> ProjectManifest:
    """
    Load and validate a project manifest.

    Args:
        path: Manifest file
        projects_root: Default root for project directories, used when the
            manifest does not set ``projects_root``

    Raises:
        ManifestError: If the manifest is missing or invalid
        DuplicateKeyError: If a key is repeated
    """
    path = Path(path)
    if not path.exists():
        raise ManifestError(
            f"Project manifest not found: {path}. Run 'devstrap init' to create one."
        )

    data = load_yaml_file(path, ManifestError)
    if data is None:
        raise ManifestError(f"Project manifest is empty: {path}")

    manifest = parse_manifest(data, projects_root)
    manifest.source = path
    logger.debug(f"Loaded {len(manifest.projects)} project(s) from {path}")
    return manifest


def parse_manifest(data: dict, projects_root: Optional[Path] = None) -> ProjectManifest:
    """Validate raw manifest data."""
    if not isinstance(data, dict):
        raise ManifestError("Manifest must be a mapping")

    if "version" not in data:
        raise ManifestError("Missing required field: version")
    if data["version"] != MANIFEST_VERSION:
        raise ManifestError(
            f"Unsupported manifest version: {data['version']} (expected {MANIFEST_VERSION})"
        )

    if data.get("projects_root"):
        root = expand_path(data["projects_root"])
    elif projects_root is not None:
        root = Path(projects_root)
    else:
        root = Path.home() / "repos"

    raw_projects = data.get("projects")
    if not raw_projects or not isinstance(raw_projects, dict):
        raise ManifestError("Manifest must define at least one project under 'projects'")

    projects = {}
    for name, entry in raw_projects.items():
        # 1 and '1' are distinct YAML keys but the same project name
        if str(name) in projects:
            raise DuplicateKeyError(str(name))
        projects[str(name)] = _parse_project(str(name), entry, root)

    return ProjectManifest(projects_root=root, projects=projects, version=data["version"])


def _parse_project(name: str, data, root: Path) -> Project:
    if not isinstance(data, dict):
        raise ManifestError(f"Project '{name}' must be a mapping")

    if not data.get("remote"):
        raise ManifestError(f"Project '{name}' missing required field: remote")

    directory = data.get("directory")
    path = expand_path(directory) if directory else Path(name)
    if not path.is_absolute():
        path = root / path

    tags = data.get("tags", [])
    if isinstance(tags, str):
        tags = [tags]
    if not isinstance(tags, list):
        raise ManifestError(f"Project '{name}': tags must be a list")

    return Project(
        name=name,
        remote=str(data["remote"]),
        path=path,
        directory=directory,
        tags=[str(t) for t in tags],
        dotnet=_parse_dotnet(name, data.get("dotnet")),
        node=_parse_node(name, data.get("node")),
        python=_parse_python(name, data.get("python")),
    )


def _section(name: str, kind: str, data) -> Optional[dict]:
    if data is None or data is False:
        return None
    if data is True:
        return {}
    if not isinstance(data, dict):
        raise ManifestError(f"Project '{name}': {kind} must be a mapping or true")
    return data


def _parse_dotnet(name: str, data) -> Optional[DotnetSettings]:
    section = _section(name, "dotnet", data)
    if section is None:
        return None
    return DotnetSettings(solution=section.get("solution"))


def _parse_node(name: str, data) -> Optional[NodeSettings]:
    section = _section(name, "node", data)
    if section is None:
        return None
    manager = section.get("package_manager", "yarn")
    if manager not in NODE_PACKAGE_MANAGERS:
        raise ManifestError(
            f"Project '{name}': invalid node package_manager: {manager} "
            f"(expected one of {list(NODE_PACKAGE_MANAGERS)})"
        )
    return NodeSettings(directory=section.get("directory", "."), package_manager=manager)


def _parse_python(name: str, data) -> Optional[PythonSettings]:
    section = _section(name, "python", data)
    if section is None:
        return None
    tool = section.get("tool", "poetry")
    if tool not in PYTHON_TOOLS:
        raise ManifestError(
            f"Project '{name}': invalid python tool: {tool} "
            f"(expected one of {list(PYTHON_TOOLS)})"
        )
    return PythonSettings(directory=section.get("directory", "."), tool=tool)


def render_manifest(manifest: ProjectManifest) -> str:
    """Serialize a manifest back to YAML."""
    projects = {}
    for project in manifest.projects.values():
        entry: dict = {"remote": project.remote}
        if project.directory:
            entry["directory"] = project.directory
        if project.tags:
            entry["tags"] = list(project.tags)
        if project.dotnet is not None:
            entry["dotnet"] = (
                {"solution": project.dotnet.solution} if project.dotnet.solution else True
            )
        if project.node is not None:
            entry["node"] = {
                "directory": project.node.directory,
                "package_manager": project.node.package_manager,
            }
        if project.python is not None:
            entry["python"] = {
                "directory": project.python.directory,
                "tool": project.python.tool,
            }
        projects[project.name] = entry

    data = {
        "version": manifest.version,
        "projects_root": str(manifest.projects_root),
        "projects": projects,
    }
    return yaml.safe_dump(data, sort_keys=False, default_flow_style=False)


def write_manifest(manifest: ProjectManifest, path: Path) -> None:
    """Write a manifest atomically."""
    atomic_write(path, render_manifest(manifest))
    logger.info(f"Wrote project manifest: {path}")
