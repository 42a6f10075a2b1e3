"""
Tests for init command.
"""

from unittest.mock import patch

from devstrap.cli.parser import CLI
from devstrap.config.manifest import load_manifest
from devstrap.core.process import CommandResult


def run_init(manifest, projects_root, *extra):
    return CLI().run(
        ["--manifest", str(manifest), "--projects-root", str(projects_root), "init", *extra]
    )


class TestInit:
    def test_creates_starter_manifest(self, tmp_path, projects_root, isolated_environment, capsys):
        manifest_path = tmp_path / "new" / "projects.yaml"

        assert run_init(manifest_path, projects_root) == 0

        manifest = load_manifest(manifest_path)
        assert manifest.names() == ["example"]
        assert manifest.projects_root == projects_root
        assert "Project manifest created" in capsys.readouterr().out

        config = isolated_environment / ".config" / "devstrap" / "config.yaml"
        assert config.exists()
        assert f"manifest: {manifest_path}" in config.read_text()

    def test_writes_new_config_file(self, tmp_path, projects_root):
        config = tmp_path / "custom" / "devstrap.yaml"
        manifest_path = tmp_path / "projects.yaml"

        result = CLI().run(
            [
                "--config",
                str(config),
                "--manifest",
                str(manifest_path),
                "--projects-root",
                str(projects_root),
                "init",
            ]
        )

        assert result == 0
        assert manifest_path.exists()
        assert f"manifest: {manifest_path}" in config.read_text()

    def test_refuses_to_overwrite(self, manifest_file, projects_root, capsys):
        before = manifest_file.read_text()

        assert run_init(manifest_file, projects_root) == 1

        assert manifest_file.read_text() == before
        assert "--force" in capsys.readouterr().err

    def test_force(self, manifest_file, projects_root):
        assert run_init(manifest_file, projects_root, "--force") == 0
        assert load_manifest(manifest_file).names() == ["example"]

    def test_keeps_existing_config(self, tmp_path, projects_root, isolated_environment):
        config = isolated_environment / ".config" / "devstrap" / "config.yaml"
        config.parent.mkdir(parents=True)
        config.write_text("interactive: false\n")

        run_init(tmp_path / "projects.yaml", projects_root)

        assert config.read_text() == "interactive: false\n"

    def test_scan(self, tmp_path, projects_root):
        api = projects_root / "api"
        (api / ".git").mkdir(parents=True)
        (api / "Api.sln").write_text("")
        (api / "package.json").write_text("{}")
        (api / "package-lock.json").write_text("{}")
        web = projects_root / "web"
        (web / ".git").mkdir(parents=True)
        (web / "pyproject.toml").write_text("")
        (web / "uv.lock").write_text("")
        (projects_root / "notes").mkdir()
        local = projects_root / "local"
        (local / ".git").mkdir(parents=True)

        def fake_remote(argv, cwd, check, capture):
            if cwd == local:
                return CommandResult(command="", returncode=2)
            return CommandResult(
                command="", returncode=0, stdout=f"git@github.com:me/{cwd.name}.git\n"
            )

        manifest_path = tmp_path / "projects.yaml"
        with patch("devstrap.cli.commands.init.run_command", side_effect=fake_remote):
            assert run_init(manifest_path, projects_root, "--scan") == 0

        manifest = load_manifest(manifest_path)
        assert manifest.names() == ["api", "web"]
        api_project = manifest.get("api")
        assert api_project.remote == "git@github.com:me/api.git"
        assert api_project.dotnet.solution == "Api.sln"
        assert api_project.node.package_manager == "npm"
        assert manifest.get("web").python.tool == "uv"

    def test_dry_run_writes_nothing(self, tmp_path, projects_root, capsys):
        manifest_path = tmp_path / "projects.yaml"

        result = CLI().run(
            [
                "--dry-run",
                "--manifest",
                str(manifest_path),
                "--projects-root",
                str(projects_root),
                "init",
            ]
        )

        assert result == 0
        assert not manifest_path.exists()
        assert "[dry-run]" in capsys.readouterr().out
