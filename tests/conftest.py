"""
Pytest configuration and shared fixtures for devstrap tests.
"""

from pathlib import Path
from textwrap import dedent

import pytest

from devstrap.config.settings import Settings
from devstrap.core.platform import PlatformInfo, clear_platform_cache


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run integration tests that call real git and the network",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --integration flag is provided."""
    if config.getoption("--integration"):
        return
    skip_integration = pytest.mark.skip(reason="need --integration option to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (requires --integration)",
    )


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch):
    """Keep tests away from the real home directory and user settings."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    for name in (
        "ProjectsRoot",
        "DEVSTRAP_CONFIG",
        "DEVSTRAP_PROJECTS_ROOT",
        "DEVSTRAP_MANIFEST",
        "DEVSTRAP_STATE_DIR",
        "DEVSTRAP_RECIPE_DIR",
    ):
        monkeypatch.delenv(name, raising=False)
    clear_platform_cache()
    yield home
    clear_platform_cache()


@pytest.fixture
def projects_root(tmp_path: Path) -> Path:
    root = tmp_path / "repos"
    root.mkdir()
    return root


@pytest.fixture
def manifest_file(tmp_path: Path, projects_root: Path) -> Path:
    """Create a manifest with three projects of different kinds."""
    content = dedent(
        f"""\
        version: 1
        projects_root: {projects_root}
        projects:
          api:
            remote: git@github.com:me/api.git
            tags: [work, backend]
            dotnet:
              solution: Api.sln
          web:
            remote: git@github.com:me/web.git
            tags: [work]
            node:
              directory: src/ui
              package_manager: npm
          tools:
            remote: https://github.com/me/tools.git
            directory: misc/tools
            python:
              tool: uv
        """
    )
    path = tmp_path / "projects.yaml"
    path.write_text(content)
    return path


@pytest.fixture
def settings(tmp_path: Path, projects_root: Path, manifest_file: Path) -> Settings:
    return Settings(
        projects_root=projects_root,
        manifest=manifest_file,
        state_dir=tmp_path / "state",
        interactive=False,
    )


@pytest.fixture
def ubuntu() -> PlatformInfo:
    return PlatformInfo(os="linux", arch="x64", distribution="ubuntu", version="24.04")


@pytest.fixture
def windows() -> PlatformInfo:
    return PlatformInfo(os="windows", arch="x64", version="10.0.22631")
