"""
Doctor command for diagnosing environment issues.

Checks that the external tools devstrap drives are on PATH, that git is new
enough and has an identity configured, and that the project manifest and
projects root are usable.
"""

import logging
import re
import subprocess
from dataclasses import dataclass
from typing import List, Optional

from packaging.version import InvalidVersion, Version

from devstrap.bootstrap.installers import get_installer
from devstrap.cli.utils import print_error, safe_print, settings_from_args
from devstrap.config.manifest import load_manifest
from devstrap.config.settings import Settings
from devstrap.core.exceptions import DevstrapError
from devstrap.core.platform import PlatformInfo, default_package_managers, detect_platform
from devstrap.core.process import which

logger = logging.getLogger(__name__)

# init.defaultBranch appeared in git 2.28
MINIMUM_GIT_VERSION = Version("2.28")

PROJECT_TOOLS = {
    "dotnet": "dotnet",
    "node": "node",
    "yarn": "yarn",
    "npm": "npm",
    "poetry": "poetry",
    "uv": "uv",
}


@dataclass
class CheckResult:
    """Result of a health check."""

    name: str
    passed: bool
    message: str
    fix_command: Optional[str] = None
    required: bool = True


def parse_version(output: str) -> Optional[Version]:
    """Extract the first dotted version number from tool output."""
    match = re.search(r"(\d+\.\d+(?:\.\d+)?)", output)
    if not match:
        return None
    try:
        return Version(match.group(1))
    except InvalidVersion:
        return None


class EnvironmentChecker:
    """Check workstation health."""

    def __init__(self, settings: Settings, platform_info: Optional[PlatformInfo] = None):
        self.settings = settings
        self.platform = platform_info or detect_platform()

    def check_git(self) -> CheckResult:
        """Check git is installed and recent enough."""
        try:
            result = subprocess.run(
                ["git", "--version"], capture_output=True, text=True, timeout=5
            )
        except FileNotFoundError:
            return CheckResult(
                name="git",
                passed=False,
                message="git not found in PATH",
                fix_command="Run: devstrap bootstrap run <os>/01-git",
            )
        except subprocess.TimeoutExpired:
            return CheckResult(name="git", passed=False, message="git check timed out")

        found = parse_version(result.stdout)
        if found is None:
            return CheckResult(
                name="git", passed=False, message=f"Unrecognized version: {result.stdout.strip()}"
            )
        if found < MINIMUM_GIT_VERSION:
            return CheckResult(
                name="git",
                passed=False,
                message=f"git {found} is too old (need {MINIMUM_GIT_VERSION}+)",
                fix_command="Upgrade git with your package manager",
            )
        return CheckResult(name="git", passed=True, message=f"git {found}")

    def check_git_identity(self) -> CheckResult:
        """Check user.name and user.email are configured globally."""
        missing = []
        for key in ("user.name", "user.email"):
            try:
                result = subprocess.run(
                    ["git", "config", "--global", "--get", key],
                    capture_output=True,
                    text=True,
                    timeout=5,
                )
            except (FileNotFoundError, subprocess.TimeoutExpired):
                missing.append(key)
                continue
            if result.returncode != 0 or not result.stdout.strip():
                missing.append(key)

        if missing:
            return CheckResult(
                name="git identity",
                passed=False,
                message=f"Not configured: {', '.join(missing)}",
                fix_command="Run: git config --global user.name/user.email",
            )
        return CheckResult(name="git identity", passed=True, message="configured")

    def check_package_managers(self) -> List[CheckResult]:
        """Check the platform's package managers are available."""
        results = []
        for name in default_package_managers(self.platform):
            executable = get_installer(name).executable
            path = which(executable)
            results.append(
                CheckResult(
                    name=name,
                    passed=path is not None,
                    message=path or f"{executable} not found in PATH",
                    required=False,
                )
            )
        return results

    def check_projects_root(self) -> CheckResult:
        root = self.settings.projects_root
        if root.is_dir():
            return CheckResult(name="projects root", passed=True, message=str(root))
        return CheckResult(
            name="projects root",
            passed=False,
            message=f"Directory not found: {root}",
            fix_command=f"mkdir -p {root}",
        )

    def check_manifest(self) -> List[CheckResult]:
        """Check the manifest parses and the tools its projects need exist."""
        try:
            manifest = load_manifest(self.settings.manifest, self.settings.projects_root)
        except DevstrapError as e:
            return [
                CheckResult(
                    name="manifest",
                    passed=False,
                    message=str(e),
                    fix_command="Run: devstrap init",
                )
            ]

        results = [
            CheckResult(
                name="manifest",
                passed=True,
                message=f"{len(manifest.projects)} project(s) in {self.settings.manifest}",
            )
        ]

        needed = set()
        for project in manifest.projects.values():
            if project.dotnet:
                needed.add("dotnet")
            if project.node:
                needed.update(["node", project.node.package_manager])
            if project.python:
                needed.add(project.python.tool)

        for tool in sorted(needed):
            path = which(PROJECT_TOOLS[tool])
            results.append(
                CheckResult(
                    name=tool,
                    passed=path is not None,
                    message=path or f"{tool} not found in PATH (needed by manifest projects)",
                )
            )
        return results

    def run_all(self) -> List[CheckResult]:
        results = [self.check_git(), self.check_git_identity()]
        results.extend(self.check_package_managers())
        results.append(self.check_projects_root())
        results.extend(self.check_manifest())
        return results


def run(args) -> int:
    """
    Run the doctor command.

    Returns:
        0 when every required check passes
    """
    try:
        settings = settings_from_args(args)
    except DevstrapError as e:
        print_error("Invalid settings", str(e))
        return 1

    checker = EnvironmentChecker(settings)
    safe_print(f"Platform: {checker.platform}")
    safe_print("")

    results = checker.run_all()
    for result in results:
        if result.passed:
            mark = "✓"
        elif result.required:
            mark = "✗"
        else:
            mark = "-"
        safe_print(f"  {mark} {result.name}: {result.message}")
        if not result.passed and result.fix_command:
            safe_print(f"      {result.fix_command}")

    failures = [r for r in results if not r.passed and r.required]
    safe_print("")
    if failures:
        safe_print(f"{len(failures)} problem(s) found.")
        return 1
    safe_print("No problems found.")
    return 0
