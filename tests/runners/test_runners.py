"""Tests for the language runners and their launchers."""

from __future__ import annotations

import json
import os
import shutil
import sys
import textwrap

import pytest

from fnkit.runners import RUNNERS, build_runners
from fnkit.runners.bash import BashRunner, to_cli_args
from fnkit.runners.node import NODE_LAUNCHER, NodeRunner
from fnkit.runners.python import PYTHON_LAUNCHER, PythonRunner

requires_node = pytest.mark.skipif(shutil.which("node") is None, reason="node is not installed")


class TestToCliArgs:
    def test_scalars_and_flags(self):
        assert to_cli_args({"text": "hi", "count": 3, "ratio": 0.5, "force": True, "quiet": False}) == [
            "--text", "hi", "--count", "3", "--ratio", "0.5", "--force",
        ]

    def test_lists_repeat_the_option(self):
        assert to_cli_args({"tag": ["a", "b"]}) == ["--tag", "a", "--tag", "b"]

    def test_none_is_omitted(self):
        assert to_cli_args({"limit": None}) == []

    def test_underscores_become_hyphens(self):
        assert to_cli_args({"file_name": "x"}) == ["--file-name", "x"]

    def test_nested_values_are_json(self):
        assert to_cli_args({"meta": {"a": 1}}) == ["--meta", '{"a": 1}']

    def test_declared_spelling_wins(self):
        options = {"file_name": "--file_name"}
        assert to_cli_args({"file_name": "x", "dry_run": True}, options) == ["--file_name", "x", "--dry-run"]


class TestCommands:
    def test_bash_command(self, make_settings, tmp_path):
        runner = BashRunner(make_settings())
        entry = tmp_path / "tools.sh"
        assert runner.command(entry, {"x": "1"}, "add") == ["bash", str(entry), "add", "--x", "1"]
        assert runner.command(entry, {}) == ["bash", str(entry)]
        assert runner.command(entry, {"file_name": "a"}, None, {"file_name": "--file_name"}) == [
            "bash", str(entry), "--file_name", "a",
        ]

    def test_python_command_defaults_to_run(self, make_settings, tmp_path):
        runner = PythonRunner(make_settings())
        argv = runner.command(tmp_path / "t.py", {"a": 1})
        assert argv == [sys.executable, str(PYTHON_LAUNCHER), str(tmp_path / "t.py"), "run", '{"a": 1}']

    def test_node_command(self, make_settings, tmp_path):
        runner = NodeRunner(make_settings(node_bin="/opt/node/bin/node"))
        argv = runner.command(tmp_path / "t.js", {}, "list_notes")
        assert argv[:3] == ["/opt/node/bin/node", str(NODE_LAUNCHER), str(tmp_path / "t.js")]
        assert argv[3:] == ["list_notes", "{}"]

    def test_launchers_are_shipped(self):
        assert PYTHON_LAUNCHER.is_file()
        assert NODE_LAUNCHER.is_file()

    def test_registry_matches_dialect_languages(self, make_settings):
        assert set(RUNNERS) == {"bash", "python", "javascript"}
        assert set(build_runners(make_settings())) == set(RUNNERS)


class TestInvoke:
    @pytest.mark.asyncio
    async def test_exit_code_and_streams(self, make_settings, tmp_path):
        entry = tmp_path / "t.sh"
        entry.write_text('echo "out $1 $2"\necho err >&2\nexit 3\n')
        outcome = await BashRunner(make_settings()).invoke(entry, {"x": "1"}, dict(os.environ))
        assert outcome.exit_code == 3
        assert outcome.stdout == "out --x 1\n"
        assert outcome.stderr == "err\n"

    @pytest.mark.asyncio
    async def test_missing_interpreter(self, make_settings, tmp_path):
        runner = BashRunner(make_settings(bash_bin=str(tmp_path / "no-such-bash")))
        outcome = await runner.invoke(tmp_path / "t.sh", {}, dict(os.environ))
        assert outcome.exit_code == 127
        assert "command not found" in outcome.stderr

    @pytest.mark.asyncio
    async def test_python_launcher_runs_async_functions(self, make_settings, tmp_path):
        entry = tmp_path / "agent.py"
        entry.write_text(
            textwrap.dedent(
                '''
                async def ping(word):
                    """Echo back."""
                    return [word, word]
                '''
            )
        )
        output = tmp_path / "out"
        output.touch()
        env = {**os.environ, "LLM_OUTPUT": str(output)}
        outcome = await PythonRunner(make_settings()).invoke(entry, {"word": "hi"}, env, "ping")
        assert outcome.exit_code == 0, outcome.stderr
        assert json.loads(output.read_text()) == ["hi", "hi"]

    @pytest.mark.asyncio
    async def test_python_launcher_awaits_non_coroutine_awaitables(self, make_settings, tmp_path):
        entry = tmp_path / "agent.py"
        entry.write_text(
            textwrap.dedent(
                '''
                import asyncio


                class Deferred:
                    def __init__(self, value):
                        self.value = value

                    def __await__(self):
                        return self._resolve().__await__()

                    async def _resolve(self):
                        await asyncio.sleep(0)
                        return self.value


                def ping(word):
                    """Echo back later."""
                    return Deferred(word.upper())
                '''
            )
        )
        output = tmp_path / "out"
        output.touch()
        env = {**os.environ, "LLM_OUTPUT": str(output)}
        outcome = await PythonRunner(make_settings()).invoke(entry, {"word": "hi"}, env, "ping")
        assert outcome.exit_code == 0, outcome.stderr
        assert output.read_text() == "HI"

    @pytest.mark.asyncio
    async def test_python_launcher_unknown_function(self, make_settings, tmp_path):
        entry = tmp_path / "agent.py"
        entry.write_text("def ping():\n    pass\n")
        outcome = await PythonRunner(make_settings()).invoke(entry, {}, dict(os.environ), "pong")
        assert outcome.exit_code == 2
        assert "pong" in outcome.stderr


@requires_node
class TestNodeLauncher:
    @pytest.mark.asyncio
    async def test_commonjs_return_value(self, make_settings, tmp_path):
        entry = tmp_path / "join.js"
        entry.write_text("exports.run = function run(args) { return args.words.join('-'); };\n")
        output = tmp_path / "out"
        output.touch()
        env = {**os.environ, "LLM_OUTPUT": str(output)}
        outcome = await NodeRunner(make_settings()).invoke(entry, {"words": ["a", "b"]}, env)
        assert outcome.exit_code == 0, outcome.stderr
        assert output.read_text() == "a-b"

    @pytest.mark.asyncio
    async def test_thrown_error(self, make_settings, tmp_path):
        entry = tmp_path / "boom.js"
        entry.write_text("exports.run = async function run() { throw new Error('kaboom'); };\n")
        outcome = await NodeRunner(make_settings()).invoke(entry, {}, dict(os.environ))
        assert outcome.exit_code == 1
        assert "kaboom" in outcome.stderr
