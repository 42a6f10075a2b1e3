"""
Tests for external command execution.

subprocess.run is mocked except in the integration tests.
"""

import subprocess
from unittest.mock import Mock, patch

import pytest

from devstrap.core.exceptions import CommandError, CommandFailedError, ToolNotFoundError
from devstrap.core.process import (
    command_succeeds,
    format_command,
    run_command,
)


def completed(returncode=0, stdout="", stderr=""):
    return Mock(returncode=returncode, stdout=stdout, stderr=stderr)


class TestFormatCommand:
    """Test command rendering."""

    def test_argv_is_quoted(self):
        assert format_command(["git", "commit", "-m", "two words"]) == (
            "git commit -m 'two words'"
        )

    def test_redact(self):
        rendered = format_command(
            ["dotnet", "nuget", "add", "source", "--password", "s3cret"],
            redact=["s3cret"],
        )
        assert "s3cret" not in rendered
        assert rendered.endswith("--password ****")

    def test_empty_secret_ignored(self):
        assert format_command("echo hi", redact=[""]) == "echo hi"


class TestRunCommand:
    """Test run_command."""

    @patch("devstrap.core.process.subprocess.run")
    def test_success(self, mock_run, tmp_path):
        mock_run.return_value = completed(0)

        result = run_command(["git", "status"], cwd=tmp_path)

        assert result.ok
        assert result.dry_run is False
        args, kwargs = mock_run.call_args
        assert args[0] == ["git", "status"]
        assert kwargs["cwd"] == str(tmp_path)
        assert kwargs["shell"] is False

    @patch("devstrap.core.process.subprocess.run")
    def test_string_runs_through_shell(self, mock_run):
        mock_run.return_value = completed(0)

        run_command("echo hi | cat")

        args, kwargs = mock_run.call_args
        assert args[0] == "echo hi | cat"
        assert kwargs["shell"] is True

    @patch("devstrap.core.process.subprocess.run")
    def test_shell_false_splits_string(self, mock_run):
        mock_run.return_value = completed(0)

        run_command("git commit -m 'two words'", shell=False)

        args, kwargs = mock_run.call_args
        assert args[0] == ["git", "commit", "-m", "two words"]
        assert kwargs["shell"] is False

    @patch("devstrap.core.process.subprocess.run")
    def test_shell_true_joins_argv(self, mock_run):
        mock_run.return_value = completed(0)

        run_command(["echo", "two words"], shell=True)

        args, kwargs = mock_run.call_args
        assert args[0] == "echo 'two words'"
        assert kwargs["shell"] is True

    @patch("devstrap.core.process.subprocess.run")
    def test_failure_raises(self, mock_run, tmp_path):
        mock_run.return_value = completed(1, stderr="fatal")

        with pytest.raises(CommandFailedError) as exc_info:
            run_command(["git", "pull"], cwd=tmp_path, capture=True)

        assert exc_info.value.returncode == 1
        assert exc_info.value.cwd == str(tmp_path)
        assert exc_info.value.stderr == "fatal"

    @patch("devstrap.core.process.subprocess.run")
    def test_failure_without_check(self, mock_run):
        mock_run.return_value = completed(2)

        result = run_command(["false"], check=False)

        assert result.returncode == 2
        assert not result.ok

    @patch("devstrap.core.process.subprocess.run")
    def test_capture(self, mock_run):
        mock_run.return_value = completed(0, stdout="token\n")

        result = run_command(["gh", "auth", "token"], capture=True)

        assert result.stdout == "token\n"
        assert mock_run.call_args.kwargs["capture_output"] is True

    @patch("devstrap.core.process.subprocess.run")
    def test_missing_tool(self, mock_run):
        mock_run.side_effect = FileNotFoundError("dotnet")

        with pytest.raises(ToolNotFoundError) as exc_info:
            run_command(["dotnet", "build"])

        assert exc_info.value.tool == "dotnet"

    def test_missing_cwd(self, tmp_path):
        with pytest.raises(CommandError, match="Working directory does not exist"):
            run_command(["git", "status"], cwd=tmp_path / "missing")

    @patch("devstrap.core.process.subprocess.run")
    def test_dry_run_does_not_execute(self, mock_run, tmp_path):
        result = run_command(["rm", "-rf", "x"], cwd=tmp_path / "missing", dry_run=True)

        mock_run.assert_not_called()
        assert result.ok
        assert result.dry_run is True

    @patch("devstrap.core.process.subprocess.run")
    def test_env_is_merged(self, mock_run, monkeypatch):
        monkeypatch.setenv("KEEP_ME", "1")
        mock_run.return_value = completed(0)

        run_command(["env"], env={"EXTRA": "2"})

        env = mock_run.call_args.kwargs["env"]
        assert env["KEEP_ME"] == "1"
        assert env["EXTRA"] == "2"

    @patch("devstrap.core.process.subprocess.run")
    def test_secret_not_in_error(self, mock_run):
        mock_run.return_value = completed(1)

        with pytest.raises(CommandFailedError) as exc_info:
            run_command(["login", "hunter2"], redact=["hunter2"])

        assert "hunter2" not in str(exc_info.value)


class TestCommandSucceeds:
    """Test command_succeeds guards."""

    @patch("devstrap.core.process.subprocess.run")
    def test_zero_exit(self, mock_run):
        mock_run.return_value = completed(0)
        assert command_succeeds("command -v brew") is True
        assert mock_run.call_args.kwargs["stdout"] == subprocess.DEVNULL

    @patch("devstrap.core.process.subprocess.run")
    def test_non_zero_exit(self, mock_run):
        mock_run.return_value = completed(1)
        assert command_succeeds(["dpkg", "-s", "git"]) is False

    @patch("devstrap.core.process.subprocess.run")
    def test_missing_executable(self, mock_run):
        mock_run.side_effect = FileNotFoundError()
        assert command_succeeds(["brew", "list"]) is False


@pytest.mark.integration
class TestRealCommands:
    """Run real tools; needs git on PATH."""

    def test_git_version(self):
        result = run_command(["git", "--version"], capture=True)

        assert result.ok
        assert result.stdout.startswith("git version")

    def test_missing_tool(self):
        with pytest.raises(ToolNotFoundError):
            run_command(["devstrap-no-such-tool-xyz"])
