"""Shared test fixtures for the fnkit test suite.

Provides settings bound to the running interpreter, a factory for throwaway
workspaces written from inline sources, and a private copy of the bundled
sample workspace.
"""

from __future__ import annotations

import shutil
import sys
import textwrap
from pathlib import Path

import pytest

from fnkit.core.workspace import Workspace
from fnkit.shared.config import Settings
from fnkit.shared.logs import configure_logging

SAMPLE_WORKSPACE = Path(__file__).resolve().parent.parent / "workspace"


@pytest.fixture(autouse=True)
def _logging():
    configure_logging("WARNING")


# ---------------------------------------------------------------------------
# Settings and workspaces
# ---------------------------------------------------------------------------


@pytest.fixture
def make_settings(tmp_path):
    """Factory for Settings rooted in a temporary directory."""

    def _make(root: Path | None = None, **overrides) -> Settings:
        return Settings(root_dir=root or tmp_path, python_bin=sys.executable, **overrides)

    return _make


@pytest.fixture
def make_workspace(tmp_path, make_settings):
    """Factory that writes ``{relative path: source}`` files and returns a Workspace.

    Sources are dedented, so tests can write them as indented triple-quoted
    strings. Shell scripts are made executable.
    """

    def _make(files: dict[str, str], root: Path | None = None) -> Workspace:
        root = root or tmp_path / "ws"
        root.mkdir(parents=True, exist_ok=True)
        for rel, text in files.items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(textwrap.dedent(text).lstrip("\n"), encoding="utf-8")
            if path.suffix == ".sh":
                path.chmod(0o755)
        return Workspace(make_settings(root))

    return _make


@pytest.fixture
def sample_workspace(tmp_path, make_settings) -> Workspace:
    """A private copy of the bundled sample workspace."""
    root = tmp_path / "sample"
    shutil.copytree(SAMPLE_WORKSPACE, root)
    return Workspace(make_settings(root))


# ---------------------------------------------------------------------------
# Common sources
# ---------------------------------------------------------------------------


ECHO_SH = """
    #!/usr/bin/env bash
    set -euo pipefail

    # @describe "Echo input"
    # @option --text! "text to echo"

    text=""
    while [[ $# -gt 0 ]]; do
        case "$1" in
            --text) text="$2"; shift 2 ;;
            *) shift ;;
        esac
    done
    printf '%s\\n' "$text" >> "$LLM_OUTPUT"
"""


@pytest.fixture
def echo_source() -> str:
    return ECHO_SH
