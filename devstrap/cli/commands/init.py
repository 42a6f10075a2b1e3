"""
Init command implementation.

Creates a starter project manifest and user settings file.
"""

import logging
from pathlib import Path
from typing import Dict, Optional

from devstrap.cli.utils import (
    format_success_message,
    print_error,
    print_warning,
    safe_print,
    settings_from_args,
)
from devstrap.config.manifest import (
    DotnetSettings,
    NodeSettings,
    Project,
    ProjectManifest,
    PythonSettings,
    write_manifest,
)
from devstrap.config.settings import default_config_file
from devstrap.core.exceptions import DevstrapError
from devstrap.core.filesystem import atomic_write
from devstrap.core.process import run_command

logger = logging.getLogger(__name__)

CONFIG_TEMPLATE = """\
# devstrap user settings
projects_root: {projects_root}
manifest: {manifest}
# interactive: true
# variables:
#   email: me@example.com
#   name: My Name
"""


def run(args) -> int:
    """
    Run the init command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, 1 for error)
    """
    logger.debug(f"Arguments: {args}")

    try:
        # init may be the command that writes --config
        settings = settings_from_args(args, config_required=False)
    except DevstrapError as e:
        print_error("Invalid settings", str(e))
        return 1

    manifest_path = settings.manifest
    if manifest_path.exists() and not args.force:
        print_error(
            "Project manifest already exists",
            f"Manifest: {manifest_path}\n  Use --force to overwrite",
        )
        return 1

    projects: Dict[str, Project] = {}
    if args.scan:
        projects = scan_projects(settings.projects_root)
        logger.info(f"Found {len(projects)} git repositories under {settings.projects_root}")
    if not projects:
        projects = {"example": _example_project(settings.projects_root)}

    manifest = ProjectManifest(projects_root=settings.projects_root, projects=projects)

    if args.dry_run:
        safe_print(f"[dry-run] would write {manifest_path} with {len(projects)} project(s)")
        return 0

    try:
        write_manifest(manifest, manifest_path)
    except OSError as e:
        print_error("Failed to write project manifest", str(e))
        return 1

    config_file = args.config or default_config_file()
    if not config_file.exists():
        try:
            atomic_write(
                config_file,
                CONFIG_TEMPLATE.format(
                    projects_root=settings.projects_root, manifest=manifest_path
                ),
            )
        except OSError as e:
            print_warning(f"Failed to write settings file: {e}")

    safe_print(
        format_success_message(
            "Project manifest created",
            {
                "Manifest": manifest_path,
                "Settings": config_file,
                "Projects root": settings.projects_root,
                "Projects": ", ".join(projects),
            },
            next_steps=[
                f"Edit {manifest_path} to list your repositories",
                "devstrap clone --all",
                "devstrap build --all",
            ],
        )
    )
    return 0


def _example_project(projects_root: Path) -> Project:
    return Project(
        name="example",
        remote="git@github.com:OWNER/example.git",
        path=projects_root / "example",
        tags=["work"],
        dotnet=DotnetSettings(solution="Example.sln"),
    )


def scan_projects(projects_root: Path) -> Dict[str, Project]:
    """
    Build manifest entries for git checkouts directly under the projects root.

    Checkouts without an ``origin`` remote are skipped.
    """
    projects: Dict[str, Project] = {}
    if not projects_root.is_dir():
        return projects

    for path in sorted(projects_root.iterdir()):
        if not (path / ".git").exists():
            continue
        remote = _origin_url(path)
        if not remote:
            logger.warning(f"Skipping {path.name}: no origin remote")
            continue
        projects[path.name] = Project(
            name=path.name,
            remote=remote,
            path=path,
            dotnet=_detect_dotnet(path),
            node=_detect_node(path),
            python=_detect_python(path),
        )
    return projects


def _origin_url(path: Path) -> Optional[str]:
    result = run_command(
        ["git", "remote", "get-url", "origin"], cwd=path, check=False, capture=True
    )
    if not result.ok:
        return None
    return result.stdout.strip() or None


def _detect_dotnet(path: Path) -> Optional[DotnetSettings]:
    solutions = sorted(path.glob("*.sln"))
    if solutions:
        return DotnetSettings(solution=solutions[0].name)
    return None


def _detect_node(path: Path) -> Optional[NodeSettings]:
    if not (path / "package.json").exists():
        return None
    manager = "npm" if (path / "package-lock.json").exists() else "yarn"
    return NodeSettings(package_manager=manager)


def _detect_python(path: Path) -> Optional[PythonSettings]:
    if not (path / "pyproject.toml").exists():
        return None
    tool = "uv" if (path / "uv.lock").exists() else "poetry"
    return PythonSettings(tool=tool)
