"""
Tests for doctor command.

This module tests the environment diagnostic functionality.
"""

import subprocess
from unittest.mock import Mock, patch

import pytest
from packaging.version import Version

from devstrap.cli.commands.doctor import CheckResult, EnvironmentChecker, parse_version, run


def completed(stdout="", returncode=0):
    return Mock(stdout=stdout, returncode=returncode)


@pytest.fixture
def checker(settings, ubuntu):
    return EnvironmentChecker(settings, platform_info=ubuntu)


class TestParseVersion:
    @pytest.mark.parametrize(
        "output,expected",
        [
            ("git version 2.43.0", Version("2.43.0")),
            ("git version 2.39.3 (Apple Git-146)", Version("2.39.3")),
            ("git version 2.45.1.windows.1", Version("2.45.1")),
            ("no digits", None),
        ],
    )
    def test_parse(self, output, expected):
        assert parse_version(output) == expected


class TestCheckGit:
    def test_recent(self, checker):
        with patch("subprocess.run", return_value=completed("git version 2.43.0\n")):
            result = checker.check_git()

        assert result.passed is True
        assert result.message == "git 2.43.0"

    def test_too_old(self, checker):
        with patch("subprocess.run", return_value=completed("git version 2.25.1\n")):
            result = checker.check_git()

        assert result.passed is False
        assert "too old" in result.message
        assert "2.28+" in result.message

    def test_missing(self, checker):
        with patch("subprocess.run", side_effect=FileNotFoundError()):
            result = checker.check_git()

        assert result.passed is False
        assert result.fix_command is not None

    def test_timeout(self, checker):
        with patch("subprocess.run", side_effect=subprocess.TimeoutExpired("git", 5)):
            assert checker.check_git().passed is False


class TestCheckGitIdentity:
    def test_configured(self, checker):
        with patch("subprocess.run", return_value=completed("Jane\n")):
            assert checker.check_git_identity().passed is True

    def test_missing_email(self, checker):
        with patch(
            "subprocess.run", side_effect=[completed("Jane\n"), completed("", returncode=1)]
        ):
            result = checker.check_git_identity()

        assert result.passed is False
        assert result.message == "Not configured: user.email"


class TestOtherChecks:
    def test_package_managers_optional(self, checker):
        with patch("devstrap.cli.commands.doctor.which", return_value=None):
            results = checker.check_package_managers()

        assert [r.name for r in results] == ["apt", "snap", "brew"]
        assert all(not r.passed and not r.required for r in results)
        assert results[0].message == "apt-get not found in PATH"

    def test_projects_root(self, checker, settings, tmp_path):
        assert checker.check_projects_root().passed is True

        settings.projects_root = tmp_path / "missing"
        result = checker.check_projects_root()
        assert result.passed is False
        assert "mkdir" in result.fix_command

    def test_manifest_tools(self, checker):
        with patch(
            "devstrap.cli.commands.doctor.which",
            side_effect=lambda tool: None if tool == "uv" else f"/usr/bin/{tool}",
        ):
            results = checker.check_manifest()

        assert results[0].passed is True
        assert "3 project(s)" in results[0].message
        by_name = {r.name: r for r in results[1:]}
        assert set(by_name) == {"dotnet", "node", "npm", "uv"}
        assert by_name["uv"].passed is False
        assert by_name["npm"].passed is True

    def test_invalid_manifest(self, checker, settings, tmp_path):
        settings.manifest = tmp_path / "missing.yaml"

        results = checker.check_manifest()

        assert len(results) == 1
        assert results[0].passed is False
        assert results[0].fix_command == "Run: devstrap init"


class TestRun:
    def test_exit_code_reflects_required_failures(self, capsys):
        checks = [
            CheckResult("git", True, "git 2.43.0"),
            CheckResult("snap", False, "snap not found in PATH", required=False),
        ]
        args = Mock(config=None, projects_root=None, manifest=None, yes=False)

        with patch.object(EnvironmentChecker, "run_all", return_value=checks), patch(
            "devstrap.cli.commands.doctor.detect_platform"
        ):
            assert run(args) == 0

        out = capsys.readouterr().out
        assert "✓ git: git 2.43.0" in out
        assert "- snap: snap not found in PATH" in out
        assert "No problems found." in out

    def test_failure(self, capsys):
        checks = [CheckResult("git", False, "git not found in PATH", fix_command="install git")]
        args = Mock(config=None, projects_root=None, manifest=None, yes=False)

        with patch.object(EnvironmentChecker, "run_all", return_value=checks), patch(
            "devstrap.cli.commands.doctor.detect_platform"
        ):
            assert run(args) == 1

        out = capsys.readouterr().out
        assert "install git" in out
        assert "1 problem(s) found." in out
