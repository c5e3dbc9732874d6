"""Environment checks for ``fnkit check``.

Reports, without running anything, what would make a tool or agent fail at
call time: unset required ``@env`` variables, binaries named by
``@meta require-tools`` that are not on PATH, missing language runtimes and
agent variables with no value.
"""

from __future__ import annotations

import os
import shutil
from collections.abc import Callable, Mapping
from pathlib import Path

import structlog

from fnkit.core.parsing import dialect_for
from fnkit.core.parsing.grammar import meta_values
from fnkit.core.workspace import Workspace
from fnkit.shared.errors import FnkitError
from fnkit.shared.schemas.results import CheckIssue

logger = structlog.get_logger()

Which = Callable[[str], str | None]


class Checker:
    def __init__(
        self,
        workspace: Workspace,
        environ: Mapping[str, str] | None = None,
        which: Which = shutil.which,
    ):
        self.workspace = workspace
        self.environ = os.environ if environ is None else environ
        self.which = which

    def check_all(self) -> list[CheckIssue]:
        issues: list[CheckIssue] = []
        for entry in self.workspace.listed_tools():
            issues.extend(self.check_tool(Path(entry).stem, self.workspace.tool_source(entry)))
        for agent in self.workspace.listed_agents():
            issues.extend(self.check_agent(agent))
        logger.info("check_completed", issues=len(issues))
        return issues

    def check_tool(self, name: str, path: Path) -> list[CheckIssue]:
        return self._check_source("tool", name, path)

    def check_agent(self, agent: str) -> list[CheckIssue]:
        try:
            manifest = self.workspace.load_agent_manifest(agent)
        except FnkitError as e:
            return [CheckIssue(kind="agent", owner=agent, item="manifest", message=str(e))]

        issues = []
        for var in manifest.variables:
            if var.default is None and var.env_name not in self.environ:
                issues.append(
                    CheckIssue(
                        kind="agent",
                        owner=agent,
                        item=var.name,
                        message=f"variable has no default and {var.env_name} is not set",
                    )
                )
        module = self.workspace.find_agent_module(agent)
        if module is not None:
            issues.extend(self._check_source("agent", agent, module))
        return issues

    def _check_source(self, kind: str, owner: str, path: Path) -> list[CheckIssue]:
        try:
            dialect = dialect_for(path)
            records = dialect.parse_environment(path.read_text(encoding="utf-8"))
        except (FnkitError, OSError, UnicodeDecodeError) as e:
            return [CheckIssue(kind=kind, owner=owner, item=path.name, message=str(e))]

        issues = []
        runtime = self._runtime_for(dialect.language)
        if runtime and self.which(runtime) is None:
            issues.append(
                CheckIssue(kind=kind, owner=owner, item=runtime, message="language runtime not found on PATH")
            )

        for record in records:
            if record.env is not None:
                env = record.env
                if env.required and env.default is None and not self.environ.get(env.name):
                    issues.append(
                        CheckIssue(
                            kind=kind,
                            owner=owner,
                            item=env.name,
                            message="required environment variable is not set",
                        )
                    )
                continue
            key, values = meta_values(record)
            if key != "require-tools":
                continue
            for binary in values:
                if self.which(binary) is None:
                    issues.append(
                        CheckIssue(kind=kind, owner=owner, item=binary, message="required binary not found on PATH")
                    )
        return issues

    def _runtime_for(self, language: str) -> str | None:
        return {
            "bash": self.workspace.settings.bash_bin,
            "python": self.workspace.settings.python_bin,
            "javascript": self.workspace.settings.node_bin,
        }.get(language)
