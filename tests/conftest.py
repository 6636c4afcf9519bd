"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest

from toolbridge.adapters.mock import MockCommandRunner
from toolbridge.core.context import Session

from tests.generators import TEST_FILE_CONTENT


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A workspace root with a one-line test file."""
    (tmp_path / "test-file.lua").write_text(TEST_FILE_CONTENT)
    return tmp_path


@pytest.fixture
def runner() -> MockCommandRunner:
    """Mock process runner: nothing is really spawned."""
    return MockCommandRunner()


@pytest.fixture
def session(workspace: Path, runner: MockCommandRunner) -> Session:
    """A session over ``workspace`` using the mock runner."""
    return Session(workspace, runner=runner)


@pytest.fixture
def open_file(session: Session, workspace: Path):
    """Write a file into the workspace and open it; returns the document id."""

    def _open(name: str = "test-file.lua", text: str | None = None) -> str:
        path = workspace / name
        if text is not None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text)
        return session.documents.open_file(path).document_id

    return _open


@pytest.fixture
def make_executable():
    """Create an executable shell script at ``path``."""

    def _make(path: Path, body: str = "cat") -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"#!/bin/sh\n{body}\n")
        path.chmod(0o755)
        return path

    return _make
