"""
Build tool wrappers for manifest projects.

Each wrapper turns a project action into external command lines (git,
dotnet, yarn/npm, poetry/uv) and runs them in the right directory through
``run_command``. A non-zero exit stops the action.

Classes:
    GitTool: clone, pull, push, status
    BuildTool: Abstract base for toolchains that install, build and test
    DotnetTool: dotnet restore/build/test
    NodeTool: yarn or npm install/build/test
    PythonTool: poetry or uv install/test
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Sequence

from devstrap.config.manifest import Project
from devstrap.core.process import CommandResult, run_command

logger = logging.getLogger(__name__)


class GitTool:
    """Source control operations for a project."""

    def __init__(self, dry_run: bool = False):
        self.dry_run = dry_run

    def clone(self, project: Project) -> Optional[CommandResult]:
        """
        Clone the project remote into its directory.

        Returns:
            None if the directory already exists
        """
        if project.path.exists():
            logger.info(f"{project.name}: already present at {project.path}")
            return None

        if not self.dry_run:
            project.path.parent.mkdir(parents=True, exist_ok=True)
        return run_command(
            ["git", "clone", project.remote, str(project.path)],
            dry_run=self.dry_run,
        )

    def pull(self, project: Project) -> CommandResult:
        return run_command(
            ["git", "pull", "--ff-only"], cwd=project.path, dry_run=self.dry_run
        )

    def push(self, project: Project) -> CommandResult:
        return run_command(["git", "push"], cwd=project.path, dry_run=self.dry_run)

    def status(self, project: Project) -> CommandResult:
        return run_command(
            ["git", "status", "--short", "--branch"],
            cwd=project.path,
            dry_run=self.dry_run,
        )


class BuildTool(ABC):
    """
    Abstract base for a project toolchain.

    Attributes:
        project: Project being built
        dry_run: Log commands without running them
    """

    kind: str = ""

    def __init__(self, project: Project, dry_run: bool = False):
        self.project = project
        self.dry_run = dry_run

    @property
    @abstractmethod
    def working_directory(self) -> Path:
        """Directory the tool runs in."""
        pass

    @abstractmethod
    def install_commands(self) -> List[List[str]]:
        """Commands that restore dependencies."""
        pass

    @abstractmethod
    def build_commands(self) -> List[List[str]]:
        """Commands that compile the project (may be empty)."""
        pass

    @abstractmethod
    def test_commands(self) -> List[List[str]]:
        """Commands that run the test suite."""
        pass

    def _run_all(self, commands: Sequence[Sequence[str]]) -> List[CommandResult]:
        results = []
        for command in commands:
            results.append(
                run_command(command, cwd=self.working_directory, dry_run=self.dry_run)
            )
        return results

    def install(self) -> List[CommandResult]:
        return self._run_all(self.install_commands())

    def build(self) -> List[CommandResult]:
        """Restore dependencies, then build."""
        return self._run_all(self.install_commands() + self.build_commands())

    def test(self) -> List[CommandResult]:
        return self._run_all(self.test_commands())


class DotnetTool(BuildTool):
    """dotnet CLI wrapper."""

    kind = "dotnet"

    @property
    def working_directory(self) -> Path:
        return self.project.path

    def _target(self) -> List[str]:
        solution = self.project.dotnet.solution if self.project.dotnet else None
        return [solution] if solution else []

    def install_commands(self) -> List[List[str]]:
        return [["dotnet", "restore", *self._target()]]

    def build_commands(self) -> List[List[str]]:
        return [["dotnet", "build", *self._target(), "--no-restore"]]

    def test_commands(self) -> List[List[str]]:
        return [["dotnet", "test", *self._target()]]


class NodeTool(BuildTool):
    """yarn / npm wrapper."""

    kind = "node"

    @property
    def package_manager(self) -> str:
        return self.project.node.package_manager if self.project.node else "yarn"

    @property
    def working_directory(self) -> Path:
        directory = self.project.node.directory if self.project.node else "."
        return self.project.path / directory

    def install_commands(self) -> List[List[str]]:
        return [[self.package_manager, "install"]]

    def build_commands(self) -> List[List[str]]:
        if self.package_manager == "npm":
            return [["npm", "run", "build"]]
        return [["yarn", "build"]]

    def test_commands(self) -> List[List[str]]:
        if self.package_manager == "npm":
            return [["npm", "test"]]
        return [["yarn", "test"]]


class PythonTool(BuildTool):
    """poetry / uv wrapper."""

    kind = "python"

    @property
    def tool(self) -> str:
        return self.project.python.tool if self.project.python else "poetry"

    @property
    def working_directory(self) -> Path:
        directory = self.project.python.directory if self.project.python else "."
        return self.project.path / directory

    def install_commands(self) -> List[List[str]]:
        if self.tool == "uv":
            return [["uv", "sync"]]
        return [["poetry", "install"]]

    def build_commands(self) -> List[List[str]]:
        # Installing is the build step for Python projects
        return []

    def test_commands(self) -> List[List[str]]:
        return [[self.tool, "run", "pytest"]]


_TOOL_CLASSES = {
    "dotnet": DotnetTool,
    "node": NodeTool,
    "python": PythonTool,
}


def toolchains_for(project: Project, dry_run: bool = False) -> List[BuildTool]:
    """Build tools for a project in build order: dotnet, node, python."""
    return [_TOOL_CLASSES[kind](project, dry_run=dry_run) for kind in project.kinds]
