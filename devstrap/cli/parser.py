"""
devstrap CLI argument parser.

This module implements the command-line interface for devstrap using argparse.
"""

import argparse
import importlib
import logging
import sys
import traceback
from pathlib import Path
from typing import List, Optional

from devstrap.projects.runner import ACTIONS

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("devstrap")
except PackageNotFoundError:
    __version__ = "0.1.0"

logger = logging.getLogger(__name__)

_ACTION_HELP = {
    "clone": "Clone projects that are not present locally",
    "pull": "Pull (fast-forward only) project repositories",
    "push": "Push project repositories",
    "status": "Show git status of projects",
    "build": "Restore dependencies and build projects",
    "test": "Run project test suites",
}


class CLI:
    """devstrap command-line interface."""

    def __init__(self):
        """Initialize CLI with argument parser."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all subcommands.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="devstrap",
            description="devstrap - workstation bootstrap and project helper",
            epilog='Use "devstrap COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument(
            "--version", action="version", version=f"devstrap {__version__}"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--config",
            type=Path,
            metavar="PATH",
            help="User settings file (default: ~/.config/devstrap/config.yaml)",
        )
        parser.add_argument(
            "--manifest",
            type=Path,
            metavar="PATH",
            help="Project manifest (default: ~/.config/devstrap/projects.yaml)",
        )
        parser.add_argument(
            "--projects-root",
            type=Path,
            metavar="PATH",
            help="Directory projects live in (default: $ProjectsRoot or ~/repos)",
        )
        parser.add_argument(
            "--yes",
            "-y",
            action="store_true",
            help="Never prompt; use --var values and defaults",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would run without changing anything",
        )

        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_init_command(subparsers)
        self._add_projects_command(subparsers)
        for action in ACTIONS:
            self._add_action_command(subparsers, action)
        self._add_bootstrap_command(subparsers)
        self._add_doctor_command(subparsers)

        return parser

    def _add_init_command(self, subparsers):
        """Add 'init' subcommand."""
        parser = subparsers.add_parser(
            "init",
            help="Create a starter project manifest",
            description="Create a starter project manifest and user settings file",
        )
        parser.add_argument(
            "--force",
            action="store_true",
            help="Overwrite an existing manifest",
        )
        parser.add_argument(
            "--scan",
            action="store_true",
            help="Add git repositories already present under the projects root",
        )

    def _add_projects_command(self, subparsers):
        """Add 'projects' subcommand."""
        parser = subparsers.add_parser(
            "projects",
            help="Inspect the project manifest",
            description="Inspect the project manifest",
        )
        projects_subparsers = parser.add_subparsers(
            dest="projects_command", help="Manifest commands", metavar="COMMAND"
        )
        list_parser = projects_subparsers.add_parser(
            "list", help="List projects", description="List manifest projects"
        )
        list_parser.add_argument(
            "--tag", action="append", metavar="TAG", help="Only projects with this tag"
        )

    def _add_action_command(self, subparsers, action: str):
        """Add a project action subcommand (clone, pull, build, ...)."""
        parser = subparsers.add_parser(
            action, help=_ACTION_HELP[action], description=_ACTION_HELP[action]
        )
        parser.add_argument("names", nargs="*", metavar="PROJECT", help="Project names")
        parser.add_argument(
            "--all", dest="all_projects", action="store_true", help="All projects"
        )
        parser.add_argument(
            "--tag",
            action="append",
            metavar="TAG",
            help="Projects with this tag (can be used multiple times)",
        )
        parser.add_argument(
            "--keep-going",
            action="store_true",
            help="Continue with remaining projects after a failure",
        )

    def _add_bootstrap_command(self, subparsers):
        """Add 'bootstrap' subcommand with sub-subcommands."""
        parser = subparsers.add_parser(
            "bootstrap",
            help="Run workstation bootstrap recipes",
            description="List, inspect and run workstation bootstrap recipes",
        )
        bootstrap_subparsers = parser.add_subparsers(
            dest="bootstrap_command", help="Bootstrap commands", metavar="COMMAND"
        )

        list_parser = bootstrap_subparsers.add_parser(
            "list",
            help="List recipes",
            description="List recipes and their progress",
        )
        list_parser.add_argument(
            "--all",
            dest="all_platforms",
            action="store_true",
            help="Include recipes for other platforms",
        )

        show_parser = bootstrap_subparsers.add_parser(
            "show", help="Show recipe steps", description="Show the steps of a recipe"
        )
        show_parser.add_argument("recipe", metavar="RECIPE", help="Recipe id")

        run_parser = bootstrap_subparsers.add_parser(
            "run",
            help="Run recipes in order",
            description="Run one or more recipes; completed steps are skipped",
        )
        run_parser.add_argument(
            "recipes", nargs="+", metavar="RECIPE", help="Recipe ids, run in order"
        )
        run_parser.add_argument(
            "--from-step", metavar="STEP", help="Start the first recipe at this step"
        )
        run_parser.add_argument(
            "--force", action="store_true", help="Re-run steps already done"
        )
        run_parser.add_argument(
            "--var",
            action="append",
            default=[],
            type=lambda kv: kv.split("=", 1),
            metavar="KEY=VALUE",
            help="Recipe variable value (can be used multiple times)",
        )

        reset_parser = bootstrap_subparsers.add_parser(
            "reset",
            help="Forget recipe progress",
            description="Forget recorded progress so a recipe runs from the start",
        )
        reset_parser.add_argument("recipe", metavar="RECIPE", help="Recipe id")

    def _add_doctor_command(self, subparsers):
        """Add 'doctor' subcommand."""
        subparsers.add_parser(
            "doctor",
            help="Diagnose environment and configuration",
            description="Check tools, git identity, manifest and projects root",
        )

    def parse_args(self, args: Optional[List[str]] = None):
        """
        Parse command-line arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Parsed arguments namespace
        """
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        parsed_args = self.parse_args(args)

        self._configure_logging(parsed_args)

        if not parsed_args.command:
            self.parser.print_help()
            return 1

        try:
            return self._dispatch_command(parsed_args)
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 130  # Standard exit code for SIGINT
        except Exception as e:
            logger.error(f"Error: {e}")
            if parsed_args.verbose:
                traceback.print_exc()
            return 1

    def _configure_logging(self, args):
        """
        Configure logging based on verbose/quiet flags.

        Args:
            args: Parsed arguments with verbose/quiet flags
        """
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(
            level=level,
            format=format_str,
            force=True,  # Reconfigure if already configured
        )

    def _dispatch_command(self, args) -> int:
        """
        Dispatch to appropriate command handler.

        Args:
            args: Parsed arguments with command field

        Returns:
            Exit code from command handler
        """
        if args.command == "bootstrap":
            return self._dispatch_subcommand(
                args, "bootstrap_command", "devstrap.cli.commands.bootstrap"
            )
        if args.command == "projects":
            return self._dispatch_subcommand(
                args, "projects_command", "devstrap.cli.commands.projects"
            )

        command_map = {
            "init": "devstrap.cli.commands.init",
            "doctor": "devstrap.cli.commands.doctor",
        }
        for action in ACTIONS:
            command_map[action] = "devstrap.cli.commands.projects"

        module_name = command_map.get(args.command)
        if not module_name:
            logger.error(f"Unknown command: {args.command}")
            return 1

        module = importlib.import_module(module_name)
        return module.run(args)

    def _dispatch_subcommand(self, args, attribute: str, module_name: str) -> int:
        """
        Dispatch a command that has sub-commands.

        Handlers are ``run_<subcommand>`` functions of the command module.
        """
        subcommand = getattr(args, attribute, None)
        if not subcommand:
            logger.error(
                f"No {args.command} sub-command specified "
                f'(see "devstrap {args.command} --help")'
            )
            return 1

        module = importlib.import_module(module_name)
        handler = getattr(module, f"run_{subcommand.replace('-', '_')}", None)
        if handler is None:
            logger.error(f"Unknown {args.command} command: {subcommand}")
            return 1

        return handler(args)


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
