"""Tests for the bundled sample workspace.

Every listed tool and agent must build, and every declaration must be
structurally sound: names follow conventions, descriptions are present and
parameter types are valid. Add new sample tools to ``workspace/tools.txt``
and they are picked up here automatically.
"""

from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from fnkit.core.builder import build_all
from fnkit.core.checker import Checker
from fnkit.core.dispatcher import Dispatcher
from fnkit.core.workspace import read_listing
from fnkit.shared.schemas.tools import ITEM_TYPES, PARAM_TYPES

SAMPLE_WORKSPACE = Path(__file__).resolve().parents[2] / "workspace"

requires_node = pytest.mark.skipif(shutil.which("node") is None, reason="node is not installed")

SAMPLE_TOOLS = read_listing(SAMPLE_WORKSPACE / "tools.txt")
SAMPLE_AGENTS = read_listing(SAMPLE_WORKSPACE / "agents.txt")


@pytest.fixture
def built(sample_workspace):
    report = build_all(sample_workspace)
    assert not report.failed, [a.error for a in report.failed]
    return sample_workspace


def _all_declarations(workspace):
    declarations = [("tools", d) for d in workspace.load_tools_schema()]
    for agent in SAMPLE_AGENTS:
        declarations += [(agent, d) for d in workspace.load_agent_schema(agent)]
    return declarations


# ===================================================================
# Structure
# ===================================================================


class TestSampleStructure:
    """Structural validation for every sample declaration."""

    def test_every_listed_tool_is_declared(self, built):
        names = built.load_tools_schema().names()
        assert names == [entry.rsplit(".", 1)[0] for entry in SAMPLE_TOOLS]

    def test_descriptions_are_present(self, built):
        for owner, declaration in _all_declarations(built):
            assert declaration.description, f"{owner}: '{declaration.name}' has empty description"

    def test_parameter_types_are_valid(self, built):
        for owner, declaration in _all_declarations(built):
            for param in declaration.parameters:
                assert param.type in PARAM_TYPES, f"{owner}: '{declaration.name}.{param.name}' type {param.type}"
                if param.is_array:
                    assert param.items in ITEM_TYPES

    def test_parameters_have_descriptions(self, built):
        for owner, declaration in _all_declarations(built):
            for param in declaration.parameters:
                assert param.description, f"{owner}: '{declaration.name}' param '{param.name}' has no description"

    @pytest.mark.parametrize("agent", SAMPLE_AGENTS)
    def test_agent_actions_are_prefixed(self, built, agent):
        shared = {entry.rsplit(".", 1)[0] for entry in built.agent_shared_tools(agent)}
        for declaration in built.load_agent_schema(agent):
            if declaration.name in shared:
                continue
            parts = declaration.name.split(".")
            assert len(parts) == 2 and parts[0] == agent, declaration.name

    def test_check_passes_with_every_binary_present(self, sample_workspace):
        checker = Checker(sample_workspace, environ={}, which=lambda name: f"/usr/bin/{name}")
        assert checker.check_all() == []


# ===================================================================
# Calls
# ===================================================================


class TestSampleCalls:
    @pytest.mark.asyncio
    async def test_echo(self, built):
        result = await Dispatcher(built.settings, built).invoke_tool("echo", {"text": "Echo input"})
        assert result.output == "Echo input\n"

    @pytest.mark.asyncio
    async def test_current_time_in_utc(self, built):
        result = await Dispatcher(built.settings, built).invoke_tool("get_current_time", {"timezone": "UTC"})
        assert "UTC" in result.output

    @pytest.mark.asyncio
    async def test_word_count(self, built):
        dispatcher = Dispatcher(built.settings, built)
        result = await dispatcher.invoke_tool("word_count", {"text": "a b A b", "case": "lower", "unique": True})
        assert result.output == '{\n  "words": 2\n}'

    @requires_node
    @pytest.mark.asyncio
    async def test_join_words(self, built):
        result = await Dispatcher(built.settings, built).invoke_tool("join_words", {"words": "solo"})
        assert result.output == "solo"

    @pytest.mark.asyncio
    async def test_notes_agent_round_trip(self, built, monkeypatch):
        monkeypatch.delenv("LLM_AGENT_VAR_NOTES_FILE", raising=False)
        dispatcher = Dispatcher(built.settings, built)

        empty = await dispatcher.invoke_agent("notes", "list_notes")
        assert empty.output == "no notes\n"

        await dispatcher.invoke_agent("notes", "add_note", {"text": "first"})
        await dispatcher.invoke_agent("notes", "add_note", {"text": "second", "tag": ["work", "urgent"]})

        listed = await dispatcher.invoke_agent("notes", "list_notes", {"reverse": True})
        assert listed.output == "second [work urgent]\nfirst\n"
        assert (built.root / "cache" / "notes" / "notes.txt").is_file()

    @pytest.mark.asyncio
    async def test_notes_agent_shared_tool(self, built):
        result = await Dispatcher(built.settings, built).invoke_agent("notes", "echo", {"text": "shared"})
        assert result.output == "shared\n"
