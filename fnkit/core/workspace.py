"""Workspace layout: where sources, listings, schema documents and caches live.

    <root>/tools.txt                  tool files to build, one per line
    <root>/tools/<name>.{sh,py,js}    tool sources
    <root>/functions.json             built tool schema document
    <root>/agents.txt                 agents to build, one per line
    <root>/agents/<name>/index.yaml   agent manifest
    <root>/agents/<name>/tools.{sh,py,js}
    <root>/agents/<name>/tools.txt    shared tools the agent may call
    <root>/agents/<name>/functions.json
    <root>/cache/<tool-or-agent>/     long-lived per-tool cache
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

import structlog
import yaml
from pydantic import ValidationError as PydanticValidationError

from fnkit.core.parsing import DIALECTS
from fnkit.shared.config import Settings
from fnkit.shared.errors import BuildError, NotFoundError
from fnkit.shared.schemas.agents import AgentManifest
from fnkit.shared.schemas.tools import SchemaDocument

logger = structlog.get_logger()

AGENT_MODULE_STEM = "tools"


class Workspace:
    """Resolves workspace paths from settings."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.root = Path(settings.root_dir)

    # -- paths ---------------------------------------------------------------

    @property
    def tools_dir(self) -> Path:
        return self.root / self.settings.tools_dir

    @property
    def agents_dir(self) -> Path:
        return self.root / self.settings.agents_dir

    @property
    def cache_root(self) -> Path:
        return self.root / self.settings.cache_dir

    @property
    def tools_list_path(self) -> Path:
        return self.root / self.settings.tools_list

    @property
    def agents_list_path(self) -> Path:
        return self.root / self.settings.agents_list

    @property
    def tools_schema_path(self) -> Path:
        return self.root / self.settings.functions_file

    def agent_dir(self, agent: str) -> Path:
        return self.agents_dir / agent

    def agent_schema_path(self, agent: str) -> Path:
        return self.agent_dir(agent) / self.settings.functions_file

    def agent_index_path(self, agent: str) -> Path:
        return self.agent_dir(agent) / self.settings.agent_index

    def agent_tools_list_path(self, agent: str) -> Path:
        return self.agent_dir(agent) / self.settings.tools_list

    def cache_dir(self, name: str) -> Path:
        """Per-tool cache directory, created on first use and never removed."""
        path = self.cache_root / name
        path.mkdir(parents=True, exist_ok=True)
        return path

    # -- listings ------------------------------------------------------------

    def listed_tools(self) -> list[str]:
        return read_listing(self.tools_list_path)

    def listed_agents(self) -> list[str]:
        return read_listing(self.agents_list_path)

    def agent_shared_tools(self, agent: str) -> list[str]:
        return read_listing(self.agent_tools_list_path(agent))

    def tool_source(self, entry: str) -> Path:
        return self.tools_dir / entry

    def find_tool_entry(self, name: str) -> Path:
        """Locate the source file of a tool by stem, preferring listed files."""
        for entry in self.listed_tools():
            if Path(entry).stem == name:
                path = self.tool_source(entry)
                if path.is_file():
                    return path
        for dialect in DIALECTS.values():
            for ext in dialect.extensions:
                candidate = self.tools_dir / f"{name}{ext}"
                if candidate.is_file():
                    return candidate
        raise NotFoundError("tool", name, "no source file with that stem")

    def find_agent_module(self, agent: str) -> Path | None:
        """The agent's action module (``tools.sh``/``tools.py``/``tools.js``), if any."""
        directory = self.agent_dir(agent)
        for dialect in DIALECTS.values():
            for ext in dialect.extensions:
                candidate = directory / f"{AGENT_MODULE_STEM}{ext}"
                if candidate.is_file():
                    return candidate
        return None

    # -- agent manifests -----------------------------------------------------

    def load_agent_manifest(self, agent: str) -> AgentManifest:
        path = self.agent_index_path(agent)
        if not path.is_file():
            raise NotFoundError("agent", agent, f"missing {path.name}")
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise BuildError(f"invalid YAML: {e}", source=str(path)) from e
        if not isinstance(data, dict):
            raise BuildError("agent manifest must be a mapping", source=str(path))
        data.setdefault("name", agent)
        try:
            return AgentManifest(**data)
        except PydanticValidationError as e:
            raise BuildError(f"invalid agent manifest: {e.errors()[0]['msg']}", source=str(path)) from e

    # -- schema documents ----------------------------------------------------

    def load_tools_schema(self) -> SchemaDocument:
        return load_schema(self.tools_schema_path, kind="tools", name="functions")

    def load_agent_schema(self, agent: str) -> SchemaDocument:
        return load_schema(self.agent_schema_path(agent), kind="agent", name=agent)


def read_listing(path: Path) -> list[str]:
    """Non-empty, non-comment lines of a listing file, in order."""
    if not path.is_file():
        return []
    entries = []
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            entries.append(line)
    return entries


def load_schema(path: Path, *, kind: str, name: str) -> SchemaDocument:
    if not path.is_file():
        raise NotFoundError(kind, name, f"{path} does not exist; run `fnkit build` first")
    return SchemaDocument.from_json(path.read_text(encoding="utf-8"))


def write_schema(path: Path, document: SchemaDocument) -> None:
    """Replace a schema document atomically; concurrent writers: last one wins."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(document.to_json())
        os.chmod(tmp, 0o644)
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise
    logger.debug("schema_written", path=str(path), declarations=len(document))
