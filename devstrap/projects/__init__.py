"""
Project helpers: thin wrappers around git and build tools, driven by the
project manifest.
"""

from .tools import (
    GitTool,
    BuildTool,
    DotnetTool,
    NodeTool,
    PythonTool,
    toolchains_for,
)
from .runner import ACTIONS, ProjectRunner, ProjectOutcome, RunReport, summarize

__all__ = [
    "GitTool",
    "BuildTool",
    "DotnetTool",
    "NodeTool",
    "PythonTool",
    "toolchains_for",
    "ACTIONS",
    "ProjectRunner",
    "ProjectOutcome",
    "RunReport",
    "summarize",
]
