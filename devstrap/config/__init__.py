"""
Configuration for devstrap: user settings and the project manifest.
"""

from .manifest import (
    Project,
    ProjectManifest,
    DotnetSettings,
    NodeSettings,
    PythonSettings,
    load_manifest,
    parse_manifest,
    render_manifest,
    write_manifest,
)
from .settings import Settings, load_settings

__all__ = [
    "Project",
    "ProjectManifest",
    "DotnetSettings",
    "NodeSettings",
    "PythonSettings",
    "load_manifest",
    "parse_manifest",
    "render_manifest",
    "write_manifest",
    "Settings",
    "load_settings",
]
