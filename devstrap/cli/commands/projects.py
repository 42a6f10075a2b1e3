"""
Project commands: list the manifest and run clone/pull/push/status/build/test.
"""

import logging

from devstrap.cli.utils import (
    format_table,
    manifest_from_settings,
    print_error,
    safe_print,
    settings_from_args,
)
from devstrap.core.exceptions import DevstrapError
from devstrap.projects.runner import ProjectRunner, summarize

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run a project action; ``args.command`` names the action.

    Returns:
        Exit code (0 when every project succeeded)
    """
    action = args.command
    logger.debug(f"Arguments: {args}")

    try:
        settings = settings_from_args(args)
        manifest = manifest_from_settings(settings)
        projects = manifest.select(args.names, args.tag, args.all_projects)
    except DevstrapError as e:
        print_error(f"Cannot {action}", str(e))
        return 1

    runner = ProjectRunner(dry_run=args.dry_run, keep_going=args.keep_going)
    report = runner.run(action, projects)

    if len(report.outcomes) > 1 or not report.success:
        safe_print("")
        safe_print(summarize(report, action))

    return 0 if report.success else 1


def run_list(args) -> int:
    """List manifest projects."""
    try:
        settings = settings_from_args(args)
        manifest = manifest_from_settings(settings)
    except DevstrapError as e:
        print_error("Cannot read project manifest", str(e))
        return 1

    tags = set(args.tag or [])
    rows = []
    for project in manifest.projects.values():
        if tags and not tags.intersection(project.tags):
            continue
        rows.append(
            [
                project.name,
                "yes" if project.is_cloned else "no",
                ",".join(project.kinds) or "-",
                ",".join(project.tags) or "-",
                str(project.path),
            ]
        )

    if not rows:
        safe_print("No projects match.")
        return 0

    safe_print(format_table(rows, ["NAME", "CLONED", "KINDS", "TAGS", "PATH"]))
    return 0
