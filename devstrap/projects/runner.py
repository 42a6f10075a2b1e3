"""
Run actions across manifest projects.

Projects are processed one at a time in manifest order. By default the first
failing command halts the whole run; with ``keep_going`` failures are
recorded and the remaining projects still run.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from devstrap.config.manifest import Project
from devstrap.core.exceptions import CommandError, DevstrapError
from devstrap.projects.tools import GitTool, toolchains_for

logger = logging.getLogger(__name__)

ACTIONS = ("clone", "pull", "push", "status", "build", "test")


@dataclass
class ProjectOutcome:
    """Result of an action on one project."""

    project: str
    action: str
    success: bool
    message: str = ""


@dataclass
class RunReport:
    """Outcomes of a run in execution order."""

    outcomes: List[ProjectOutcome] = field(default_factory=list)
    halted: bool = False

    @property
    def success(self) -> bool:
        return not self.halted and all(o.success for o in self.outcomes)

    @property
    def failures(self) -> List[ProjectOutcome]:
        return [o for o in self.outcomes if not o.success]


class ProjectRunner:
    """
    Runs clone/pull/push/status/build/test over selected projects.

    Attributes:
        dry_run: Log commands without running them
        keep_going: Continue with the next project after a failure
    """

    def __init__(self, dry_run: bool = False, keep_going: bool = False):
        self.dry_run = dry_run
        self.keep_going = keep_going
        self.git = GitTool(dry_run=dry_run)
        self._handlers: Dict[str, Callable[[Project], str]] = {
            "clone": self._clone,
            "pull": self._pull,
            "push": self._push,
            "status": self._status,
            "build": self._build,
            "test": self._test,
        }

    def run(self, action: str, projects: List[Project]) -> RunReport:
        """
        Run an action on each project.

        Args:
            action: One of ACTIONS
            projects: Projects in execution order

        Returns:
            RunReport; ``halted`` is set when a failure stopped the run early

        Raises:
            ValueError: If the action is unknown
        """
        handler = self._handlers.get(action)
        if handler is None:
            raise ValueError(f"Unknown action: {action} (expected one of {list(ACTIONS)})")

        report = RunReport()
        for index, project in enumerate(projects):
            logger.info(f"==> {action} {project.name}")
            try:
                message = handler(project)
            except DevstrapError as e:
                logger.error(f"{project.name}: {e}")
                report.outcomes.append(
                    ProjectOutcome(project.name, action, success=False, message=str(e))
                )
                if not self.keep_going:
                    remaining = len(projects) - index - 1
                    if remaining:
                        logger.error(f"Halting; {remaining} project(s) not processed")
                    report.halted = True
                    break
                continue

            report.outcomes.append(
                ProjectOutcome(project.name, action, success=True, message=message)
            )

        return report

    def _require_clone(self, project: Project) -> None:
        if not self.dry_run and not project.path.exists():
            raise CommandError(
                f"{project.name} is not cloned at {project.path}; "
                f"run 'devstrap clone {project.name}' first"
            )

    def _clone(self, project: Project) -> str:
        result = self.git.clone(project)
        return "already cloned" if result is None else "cloned"

    def _pull(self, project: Project) -> str:
        self._require_clone(project)
        self.git.pull(project)
        return "pulled"

    def _push(self, project: Project) -> str:
        self._require_clone(project)
        self.git.push(project)
        return "pushed"

    def _status(self, project: Project) -> str:
        self._require_clone(project)
        self.git.status(project)
        return "ok"

    def _build(self, project: Project) -> str:
        self._require_clone(project)
        tools = toolchains_for(project, dry_run=self.dry_run)
        if not tools:
            logger.warning(f"{project.name}: no build tooling configured")
            return "nothing to build"
        for tool in tools:
            tool.build()
        return f"built ({', '.join(t.kind for t in tools)})"

    def _test(self, project: Project) -> str:
        self._require_clone(project)
        tools = toolchains_for(project, dry_run=self.dry_run)
        if not tools:
            logger.warning(f"{project.name}: no test tooling configured")
            return "nothing to test"
        for tool in tools:
            tool.test()
        return f"tested ({', '.join(t.kind for t in tools)})"


def summarize(report: RunReport, action: Optional[str] = None) -> str:
    """Render a report as one line per project."""
    lines = []
    for outcome in report.outcomes:
        mark = "OK  " if outcome.success else "FAIL"
        lines.append(f"  [{mark}] {outcome.project}: {outcome.message}")
    total = len(report.outcomes)
    failed = len(report.failures)
    header = f"{action or 'run'}: {total - failed}/{total} succeeded"
    if report.halted:
        header += " (halted)"
    return "\n".join([header, *lines])
