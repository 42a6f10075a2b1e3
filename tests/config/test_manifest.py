"""
Tests for the project manifest parser.
"""

from textwrap import dedent

import pytest

from devstrap.config.manifest import (
    load_manifest,
    parse_manifest,
    render_manifest,
    write_manifest,
)
from devstrap.core.exceptions import (
    DuplicateKeyError,
    ManifestError,
    ProjectNotFoundError,
)


class TestLoadManifest:
    def test_load(self, manifest_file, projects_root):
        manifest = load_manifest(manifest_file)

        assert manifest.names() == ["api", "web", "tools"]
        assert manifest.projects_root == projects_root
        assert manifest.source == manifest_file

        api = manifest.get("api")
        assert api.path == projects_root / "api"
        assert api.kinds == ["dotnet"]
        assert api.dotnet.solution == "Api.sln"
        assert api.tags == ["work", "backend"]

        web = manifest.get("web")
        assert web.node.directory == "src/ui"
        assert web.node.package_manager == "npm"

        tools = manifest.get("tools")
        assert tools.path == projects_root / "misc" / "tools"
        assert tools.python.tool == "uv"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ManifestError, match="devstrap init"):
            load_manifest(tmp_path / "projects.yaml")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "projects.yaml"
        path.write_text("")
        with pytest.raises(ManifestError, match="empty"):
            load_manifest(path)

    def test_duplicate_project(self, tmp_path):
        path = tmp_path / "projects.yaml"
        path.write_text(
            dedent(
                """\
                version: 1
                projects:
                  api:
                    remote: a
                  api:
                    remote: b
                """
            )
        )

        with pytest.raises(DuplicateKeyError) as exc_info:
            load_manifest(path)

        assert exc_info.value.key == "api"

    def test_numeric_and_string_key_collide(self, tmp_path):
        path = tmp_path / "projects.yaml"
        path.write_text(
            dedent(
                """\
                version: 1
                projects:
                  1:
                    remote: a
                  '1':
                    remote: b
                """
            )
        )

        with pytest.raises(DuplicateKeyError) as exc_info:
            load_manifest(path)

        assert exc_info.value.key == "1"

    def test_default_projects_root(self, tmp_path):
        path = tmp_path / "projects.yaml"
        path.write_text("version: 1\nprojects:\n  api:\n    remote: a\n")

        manifest = load_manifest(path, projects_root=tmp_path / "src")

        assert manifest.get("api").path == tmp_path / "src" / "api"


class TestParseManifest:
    def test_boolean_sections(self, tmp_path):
        manifest = parse_manifest(
            {
                "version": 1,
                "projects": {"app": {"remote": "r", "node": True, "python": True}},
            },
            tmp_path,
        )

        app = manifest.get("app")
        assert app.kinds == ["node", "python"]
        assert app.node.package_manager == "yarn"
        assert app.python.tool == "poetry"

    @pytest.mark.parametrize(
        "data,message",
        [
            ([], "must be a mapping"),
            ({"projects": {"a": {"remote": "r"}}}, "Missing required field: version"),
            ({"version": 2, "projects": {"a": {"remote": "r"}}}, "Unsupported manifest version"),
            ({"version": 1, "projects": {}}, "at least one project"),
            ({"version": 1, "projects": {"a": {}}}, "missing required field: remote"),
            ({"version": 1, "projects": {"a": "r"}}, "must be a mapping"),
            (
                {"version": 1, "projects": {"a": {"remote": "r", "node": {"package_manager": "pnpm"}}}},
                "invalid node package_manager: pnpm",
            ),
            (
                {"version": 1, "projects": {"a": {"remote": "r", "python": {"tool": "pipenv"}}}},
                "invalid python tool: pipenv",
            ),
            (
                {"version": 1, "projects": {"a": {"remote": "r", "dotnet": "yes"}}},
                "dotnet must be a mapping or true",
            ),
            (
                {"version": 1, "projects": {"a": {"remote": "r", "tags": {"x": 1}}}},
                "tags must be a list",
            ),
        ],
    )
    def test_invalid(self, tmp_path, data, message):
        with pytest.raises(ManifestError, match=message):
            parse_manifest(data, tmp_path)


class TestSelection:
    def test_get_unknown_suggests(self, manifest_file):
        manifest = load_manifest(manifest_file)

        with pytest.raises(ProjectNotFoundError) as exc_info:
            manifest.get("wbe")

        assert exc_info.value.suggestions == ["web"]

    def test_select_by_name_keeps_manifest_order(self, manifest_file):
        manifest = load_manifest(manifest_file)

        selected = manifest.select(["tools", "api"])

        assert [p.name for p in selected] == ["api", "tools"]

    def test_select_by_tag(self, manifest_file):
        manifest = load_manifest(manifest_file)
        assert [p.name for p in manifest.select(tags=["work"])] == ["api", "web"]

    def test_select_all(self, manifest_file):
        manifest = load_manifest(manifest_file)
        assert len(manifest.select(all_projects=True)) == 3

    def test_select_nothing(self, manifest_file):
        manifest = load_manifest(manifest_file)
        with pytest.raises(ManifestError, match="No projects selected"):
            manifest.select()

    def test_select_unmatched_tag(self, manifest_file):
        manifest = load_manifest(manifest_file)
        with pytest.raises(ManifestError, match="No projects match"):
            manifest.select(tags=["nope"])

    def test_select_unknown_name(self, manifest_file):
        manifest = load_manifest(manifest_file)
        with pytest.raises(ProjectNotFoundError):
            manifest.select(["nope"])


class TestRender:
    def test_write_and_reload(self, manifest_file, tmp_path):
        manifest = load_manifest(manifest_file)
        target = tmp_path / "copy" / "projects.yaml"

        write_manifest(manifest, target)
        reloaded = load_manifest(target)

        assert reloaded.names() == manifest.names()
        assert reloaded.get("tools").path == manifest.get("tools").path
        assert reloaded.get("web").node == manifest.get("web").node
        assert reloaded.get("api").dotnet == manifest.get("api").dotnet

    def test_render_keeps_order(self, manifest_file):
        text = render_manifest(load_manifest(manifest_file))
        assert text.index("api:") < text.index("web:") < text.index("tools:")
        assert text.startswith("version: 1\n")
