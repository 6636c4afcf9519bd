"""
Tests for local executable resolution.
"""

import os

from toolbridge.core.models import ResolutionMode
from toolbridge.core.services.resolver import LocalExecutableResolver


class TestGlobalMode:
    def test_command_as_given(self, tmp_path):
        resolution = LocalExecutableResolver().resolve(
            "eslint", ResolutionMode.GLOBAL, str(tmp_path / "a.js"), tmp_path
        )
        assert resolution.path == "eslint"
        assert resolution.cwd == os.getcwd()
        assert not resolution.local

    def test_ignores_local_copy(self, tmp_path, make_executable):
        make_executable(tmp_path / "eslint")
        resolution = LocalExecutableResolver().resolve(
            "eslint", ResolutionMode.GLOBAL, str(tmp_path / "a.js"), tmp_path
        )
        assert resolution.path == "eslint"


class TestPreferLocal:
    def test_uses_local_copy(self, tmp_path, make_executable):
        exe = make_executable(tmp_path / "files" / "cat")
        resolution = LocalExecutableResolver().resolve(
            "cat", ResolutionMode.PREFER_LOCAL, str(tmp_path / "files" / "test.txt"), tmp_path
        )
        assert resolution.path == str(exe)
        assert resolution.cwd == str(tmp_path / "files")
        assert resolution.local

    def test_falls_back_to_global(self, tmp_path):
        resolution = LocalExecutableResolver().resolve(
            "ls", ResolutionMode.PREFER_LOCAL, str(tmp_path / "files" / "test.txt"), tmp_path
        )
        assert resolution.path == "ls"
        assert resolution.cwd == os.getcwd()

    def test_prefix(self, tmp_path, make_executable):
        exe = make_executable(tmp_path / "node_modules" / ".bin" / "eslint")
        resolution = LocalExecutableResolver().resolve(
            "eslint",
            ResolutionMode.PREFER_LOCAL,
            str(tmp_path / "src" / "app.js"),
            tmp_path,
            prefix="node_modules/.bin",
        )
        assert resolution.path == str(exe)
        assert resolution.cwd == str(tmp_path)

    def test_non_executable_ignored(self, tmp_path):
        (tmp_path / "eslint").write_text("not executable")
        resolution = LocalExecutableResolver().resolve(
            "eslint", ResolutionMode.PREFER_LOCAL, str(tmp_path / "a.js"), tmp_path
        )
        assert not resolution.local

    def test_without_document_path(self, tmp_path):
        resolution = LocalExecutableResolver().resolve("eslint", ResolutionMode.PREFER_LOCAL)
        assert resolution.path == "eslint"


class TestOnlyLocal:
    def test_local_copy(self, tmp_path, make_executable):
        exe = make_executable(tmp_path / "files" / "cat")
        resolution = LocalExecutableResolver().resolve(
            "cat", ResolutionMode.ONLY_LOCAL, str(tmp_path / "files" / "test.txt"), tmp_path
        )
        assert resolution.path == str(exe)
        assert resolution.cwd == str(exe.parent)

    def test_no_local_copy(self, tmp_path):
        resolution = LocalExecutableResolver().resolve(
            "cat", ResolutionMode.ONLY_LOCAL, str(tmp_path / "files" / "test.txt"), tmp_path
        )
        assert resolution is None


class TestAncestorSearch:
    def _nested(self, tmp_path, make_executable):
        make_executable(tmp_path / "tool")
        return str(tmp_path / "a" / "b" / "c" / "file.txt")

    def test_walks_up_to_workspace_root(self, tmp_path, make_executable):
        document = self._nested(tmp_path, make_executable)
        resolution = LocalExecutableResolver().resolve(
            "tool", ResolutionMode.ONLY_LOCAL, document, tmp_path
        )
        assert resolution.cwd == str(tmp_path)

    def test_stops_at_workspace_root(self, tmp_path, make_executable):
        make_executable(tmp_path / "tool")
        workspace = tmp_path / "project"
        document = str(workspace / "src" / "file.txt")
        resolution = LocalExecutableResolver().resolve(
            "tool", ResolutionMode.ONLY_LOCAL, document, workspace
        )
        assert resolution is None

    def test_search_ancestors_disabled(self, tmp_path, make_executable):
        document = self._nested(tmp_path, make_executable)
        resolver = LocalExecutableResolver(search_ancestors=False)
        assert resolver.resolve("tool", ResolutionMode.ONLY_LOCAL, document, tmp_path) is None

    def test_max_depth(self, tmp_path, make_executable):
        document = self._nested(tmp_path, make_executable)
        assert LocalExecutableResolver(max_depth=2).resolve(
            "tool", ResolutionMode.ONLY_LOCAL, document, tmp_path
        ) is None
        assert LocalExecutableResolver(max_depth=3).resolve(
            "tool", ResolutionMode.ONLY_LOCAL, document, tmp_path
        ) is not None

    def test_nearest_copy_wins(self, tmp_path, make_executable):
        document = self._nested(tmp_path, make_executable)
        nearer = make_executable(tmp_path / "a" / "b" / "tool")
        resolution = LocalExecutableResolver().resolve(
            "tool", ResolutionMode.PREFER_LOCAL, document, tmp_path
        )
        assert resolution.path == str(nearer)
