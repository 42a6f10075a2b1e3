"""
Tests for the project commands.
"""

from unittest.mock import patch

from devstrap.cli.parser import CLI
from devstrap.core.exceptions import CommandFailedError
from devstrap.core.process import CommandResult


def run_cli(manifest_file, *argv):
    return CLI().run(["--manifest", str(manifest_file), *argv])


class TestProjectsList:
    def test_list(self, manifest_file, projects_root, capsys):
        (projects_root / "api" / ".git").mkdir(parents=True)

        assert run_cli(manifest_file, "projects", "list") == 0

        out = capsys.readouterr().out
        lines = out.splitlines()
        assert lines[0].split() == ["NAME", "CLONED", "KINDS", "TAGS", "PATH"]
        assert lines[2].split()[:4] == ["api", "yes", "dotnet", "work,backend"]
        assert lines[3].split()[:3] == ["web", "no", "node"]

    def test_list_by_tag(self, manifest_file, capsys):
        assert run_cli(manifest_file, "projects", "list", "--tag", "backend") == 0

        out = capsys.readouterr().out
        assert "api" in out
        assert "web" not in out

    def test_no_match(self, manifest_file, capsys):
        assert run_cli(manifest_file, "projects", "list", "--tag", "nope") == 0
        assert "No projects match." in capsys.readouterr().out

    def test_missing_manifest(self, tmp_path, capsys):
        assert run_cli(tmp_path / "missing.yaml", "projects", "list") == 1
        assert "devstrap init" in capsys.readouterr().err


class TestActions:
    def test_clone_all(self, manifest_file, projects_root, capsys):
        with patch("devstrap.projects.tools.run_command") as mock_run:
            mock_run.return_value = CommandResult(command="", returncode=0)
            assert run_cli(manifest_file, "clone", "--all") == 0

        cloned = [c.args[0][3] for c in mock_run.call_args_list]
        assert cloned == [
            str(projects_root / "api"),
            str(projects_root / "web"),
            str(projects_root / "misc" / "tools"),
        ]
        assert "clone: 3/3 succeeded" in capsys.readouterr().out

    def test_halts_with_exit_code(self, manifest_file, projects_root, capsys):
        for name in ("api", "web"):
            (projects_root / name).mkdir()

        with patch("devstrap.projects.tools.run_command") as mock_run:
            mock_run.side_effect = CommandFailedError(["git", "pull", "--ff-only"], 1)
            assert run_cli(manifest_file, "pull", "--tag", "work") == 1

        assert mock_run.call_count == 1
        out = capsys.readouterr().out
        assert "pull: 0/1 succeeded (halted)" in out

    def test_unknown_project(self, manifest_file, capsys):
        assert run_cli(manifest_file, "build", "wbe") == 1
        assert "did you mean: web?" in capsys.readouterr().err

    def test_no_selection(self, manifest_file, capsys):
        assert run_cli(manifest_file, "status") == 1
        assert "No projects selected" in capsys.readouterr().err

    def test_dry_run(self, manifest_file):
        with patch("devstrap.core.process.subprocess.run") as mock_subprocess:
            assert run_cli(manifest_file, "--dry-run", "build", "api") == 0

        mock_subprocess.assert_not_called()
