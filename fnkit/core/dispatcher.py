"""Invocation dispatcher - routes a validated call to exactly one child process.

Every invocation gets its own ``ExecutionContext``: a private temporary
directory holding the output-capture file, the ``LLM_*`` environment bindings
and the resolved entry point. Nothing is shared between invocations except the
per-tool cache directory.
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog

from fnkit.core.parsing import dialect_for
from fnkit.core.validator import validate
from fnkit.core.workspace import Workspace
from fnkit.runners import Runner, build_runners
from fnkit.shared.config import Settings
from fnkit.shared.errors import ExecutionError, MissingVariableError, NotFoundError
from fnkit.shared.schemas.agents import AgentManifest
from fnkit.shared.schemas.results import InvocationResult

logger = structlog.get_logger()


@dataclass
class ExecutionContext:
    """Everything one child process needs; discarded after the call."""

    kind: str  # "tool" or "agent"
    name: str
    entry: Path
    arguments: dict[str, Any]
    output_path: Path
    bindings: dict[str, str] = field(default_factory=dict)
    function: str | None = None

    def environment(self, base: Mapping[str, str] | None = None) -> dict[str, str]:
        env = dict(os.environ if base is None else base)
        env.update(self.bindings)
        env["LLM_OUTPUT"] = str(self.output_path)
        return env


def resolve_variables(
    manifest: AgentManifest,
    overrides: Mapping[str, str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Value of each agent variable: override, then ``LLM_AGENT_VAR_*``, then default."""
    overrides = overrides or {}
    environ = os.environ if environ is None else environ
    values: dict[str, str] = {}
    missing: list[str] = []
    for var in manifest.variables:
        if var.name in overrides:
            values[var.name] = overrides[var.name]
        elif var.env_name in environ:
            values[var.name] = environ[var.env_name]
        elif var.default is not None:
            values[var.name] = var.default
        else:
            missing.append(var.name)
    if missing:
        raise MissingVariableError(manifest.name, missing)
    return values


class Dispatcher:
    """Validates calls against built schemas and runs them."""

    def __init__(self, settings: Settings, workspace: Workspace | None = None):
        self.settings = settings
        self.workspace = workspace or Workspace(settings)
        self.runners = build_runners(settings)

    def runner_for(self, entry: Path) -> Runner:
        return self.runners[dialect_for(entry).language]

    async def invoke(
        self,
        kind: str,
        name: str,
        action: str | None = None,
        arguments: dict[str, Any] | None = None,
        *,
        variables: Mapping[str, str] | None = None,
    ) -> InvocationResult:
        if kind == "tool":
            return await self.invoke_tool(name, arguments)
        if kind == "agent":
            if not action:
                raise NotFoundError("action", f"{name}.", "no action given")
            return await self.invoke_agent(name, action, arguments, variables=variables)
        raise NotFoundError("kind", kind, "expected 'tool' or 'agent'")

    async def invoke_tool(self, name: str, arguments: dict[str, Any] | None = None) -> InvocationResult:
        """Run a shared tool by name."""
        declaration = self.workspace.load_tools_schema().get(name)
        if declaration is None:
            raise NotFoundError("tool", name, "not declared in the built schema")
        args = validate(declaration, arguments)
        entry = self.workspace.find_tool_entry(name)
        return await self._execute(
            "tool", name, entry, args, self._tool_bindings(name), options=declaration.cli_options
        )

    async def invoke_agent(
        self,
        agent: str,
        action: str,
        arguments: dict[str, Any] | None = None,
        *,
        variables: Mapping[str, str] | None = None,
    ) -> InvocationResult:
        """Run one agent action, or a shared tool the agent lists."""
        manifest = self.workspace.load_agent_manifest(agent)
        schema = self.workspace.load_agent_schema(agent)

        qualified = f"{agent}.{action}"
        declaration = schema.get(qualified)
        shared_tool = None
        if declaration is None:
            declaration = schema.get(action)
            if declaration is None:
                raise NotFoundError("action", qualified, f"agent '{agent}' declares no such action")
            shared_tool = action

        args = validate(declaration, arguments)
        values = resolve_variables(manifest, variables)
        bindings = self._agent_bindings(agent, action, values)

        if shared_tool is not None:
            entry = self.workspace.find_tool_entry(shared_tool)
            bindings.update(self._tool_bindings(shared_tool))
            return await self._execute(
                "agent", qualified, entry, args, bindings, options=declaration.cli_options
            )

        entry = self.workspace.find_agent_module(agent)
        if entry is None:
            raise NotFoundError("agent", agent, "no tools.sh, tools.py or tools.js module")
        bindings.update(
            LLM_TOOL_NAME=qualified,
            LLM_TOOL_CACHE_DIR=bindings["LLM_AGENT_CACHE_DIR"],
        )
        return await self._execute(
            "agent", qualified, entry, args, bindings, function=action, options=declaration.cli_options
        )

    # -- internals -----------------------------------------------------------

    def _tool_bindings(self, name: str) -> dict[str, str]:
        return {
            "LLM_ROOT_DIR": str(self.workspace.root),
            "LLM_TOOL_NAME": name,
            "LLM_TOOL_CACHE_DIR": str(self.workspace.cache_dir(name)),
        }

    def _agent_bindings(self, agent: str, action: str, values: Mapping[str, str]) -> dict[str, str]:
        bindings = {
            "LLM_ROOT_DIR": str(self.workspace.root),
            "LLM_AGENT_NAME": agent,
            "LLM_AGENT_FUNC": action,
            "LLM_AGENT_ROOT_DIR": str(self.workspace.agent_dir(agent)),
            "LLM_AGENT_CACHE_DIR": str(self.workspace.cache_dir(agent)),
        }
        for name, value in values.items():
            bindings[f"LLM_AGENT_VAR_{name.upper()}"] = value
        return bindings

    async def _execute(
        self,
        kind: str,
        name: str,
        entry: Path,
        args: dict[str, Any],
        bindings: dict[str, str],
        function: str | None = None,
        options: Mapping[str, str] | None = None,
    ) -> InvocationResult:
        runner = self.runner_for(entry)
        with tempfile.TemporaryDirectory(prefix="fnkit-") as tmp:
            context = ExecutionContext(
                kind=kind,
                name=name,
                entry=entry,
                arguments=args,
                output_path=Path(tmp) / "output",
                bindings=bindings,
                function=function,
            )
            context.output_path.touch()
            logger.info("invocation_started", kind=kind, name=name, entry=str(entry), function=function)

            outcome = await runner.invoke(entry, args, context.environment(), function, options)
            if outcome.exit_code != 0:
                logger.warning("invocation_failed", name=name, exit_code=outcome.exit_code)
                raise ExecutionError(name, outcome.exit_code, outcome.stderr)

            captured = context.output_path.read_text(encoding="utf-8", errors="replace")

        logger.info("invocation_completed", name=name, captured=bool(captured))
        return InvocationResult(
            name=name,
            output=captured if captured else outcome.stdout,
            exit_code=outcome.exit_code,
            stderr=outcome.stderr,
        )
