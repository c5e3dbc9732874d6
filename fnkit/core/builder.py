"""Schema builder - turns parsed tags into declarations and schema documents.

Each tool file and each agent is an independent artifact: an error in one is
recorded in the build report and never stops the others from building.
"""

from __future__ import annotations

from pathlib import Path

import structlog
from pydantic import ValidationError as PydanticValidationError

from fnkit.core.parsing import TagRecord, dialect_for
from fnkit.core.parsing.grammar import ParamTag
from fnkit.core.workspace import Workspace, write_schema
from fnkit.shared.errors import (
    BuildError,
    DuplicateDeclarationError,
    DuplicateDescriptionError,
    DuplicateParameterError,
    FnkitError,
    MissingDescriptionError,
)
from fnkit.shared.schemas.results import ArtifactResult, BuildReport
from fnkit.shared.schemas.tools import Declaration, ParameterSpec, SchemaDocument

logger = structlog.get_logger()


def build_declaration(
    name: str,
    tags: list[TagRecord],
    *,
    source: str | None = None,
    cli_options: bool = False,
) -> Declaration:
    """Build one declaration from the tags of one tool or action.

    ``cli_options`` keeps declared option spellings, which only command-line
    tools (bash) need at call time.
    """
    describes = [t for t in tags if t.tag == "describe"]
    if not describes:
        raise MissingDescriptionError(name, source=source)
    if len(describes) > 1:
        raise DuplicateDescriptionError(name, source=source, line=describes[1].line)

    parameters: list[ParameterSpec] = []
    seen: set[str] = set()
    for record in tags:
        if record.param is None:
            continue
        if record.param.name in seen:
            raise DuplicateParameterError(name, record.param.name, source=source, line=record.line)
        seen.add(record.param.name)
        parameters.append(to_parameter(record.param, cli_option=cli_options))

    try:
        return Declaration(name=name, description=describes[0].text, parameters=parameters)
    except PydanticValidationError as e:
        raise BuildError(f"invalid declaration '{name}': {e.errors()[0]['msg']}", source=source) from e


def to_parameter(tag: ParamTag, *, cli_option: bool = False) -> ParameterSpec:
    kind = tag.kind
    # An optional scalar boolean behaves exactly like a flag
    is_flag = tag.is_flag or (kind == "boolean" and not tag.array and not tag.required)
    return ParameterSpec(
        name=tag.name,
        type="array" if tag.array else kind,
        items=kind if tag.array else None,
        description=tag.description,
        required=tag.required,
        is_flag=is_flag,
        enum=[_coerce_default(c, kind) for c in tag.choices] if tag.choices else None,
        default=None if tag.array else _coerce_default(tag.default, kind),
        option=tag.option if cli_option else None,
    )


def _coerce_default(value: str | None, kind: str):
    if value is None:
        return None
    try:
        if kind == "integer":
            return int(value)
        if kind == "number":
            return float(value)
    except ValueError:
        return value
    if kind == "boolean":
        return value.lower() in ("1", "true", "yes", "on")
    return value


def _read_source(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise BuildError("listed source file does not exist", source=str(path)) from e
    except (OSError, UnicodeDecodeError) as e:
        raise BuildError(f"cannot read source: {e}", source=str(path)) from e


def declaration_from_file(path: Path, name: str | None = None) -> Declaration:
    """Parse and build the declaration of a single-tool source file."""
    dialect = dialect_for(path)
    text = _read_source(path)
    try:
        tags = dialect.parse_tool(text)
        return build_declaration(
            name or path.stem, tags, source=str(path), cli_options=dialect.language == "bash"
        )
    except BuildError as e:
        raise e.with_source(str(path))


def declarations_from_agent_module(agent: str, path: Path) -> list[Declaration]:
    """One ``agent.action`` declaration per action of an agent module."""
    dialect = dialect_for(path)
    text = _read_source(path)
    try:
        return [
            build_declaration(
                f"{agent}.{action.name}",
                action.tags,
                source=str(path),
                cli_options=dialect.language == "bash",
            )
            for action in dialect.parse_actions(text)
        ]
    except BuildError as e:
        raise e.with_source(str(path))


# ---------------------------------------------------------------------------
# Whole-workspace builds
# ---------------------------------------------------------------------------


def build_tools(workspace: Workspace) -> tuple[SchemaDocument, BuildReport]:
    """Build every listed tool and write the tool schema document."""
    document = SchemaDocument()
    report = BuildReport()

    for entry in workspace.listed_tools():
        path = workspace.tool_source(entry)
        name = Path(entry).stem
        try:
            declaration = declaration_from_file(path, name)
            if declaration.name in document:
                raise DuplicateDeclarationError(declaration.name, source=str(path))
            document.add(declaration)
        except FnkitError as e:
            logger.warning("tool_build_failed", tool=name, source=str(path), error=str(e))
            report.artifacts.append(_failure("tool", name, str(path), e))
            continue
        logger.info("tool_built", tool=name, parameters=len(declaration.parameters))
        report.artifacts.append(
            ArtifactResult(kind="tool", name=name, success=True, source=str(path), declarations=[name])
        )

    write_schema(workspace.tools_schema_path, document)
    return document, report


def build_agent(workspace: Workspace, agent: str, tools: SchemaDocument) -> SchemaDocument:
    """Build one agent: its own actions first, then its shared tools."""
    workspace.load_agent_manifest(agent)
    document = SchemaDocument()

    module = workspace.find_agent_module(agent)
    if module is not None:
        for declaration in declarations_from_agent_module(agent, module):
            if declaration.name in document:
                raise DuplicateDeclarationError(declaration.name, source=str(module))
            document.add(declaration)

    listing = workspace.agent_tools_list_path(agent)
    for entry in workspace.agent_shared_tools(agent):
        tool = Path(entry).stem
        declaration = tools.get(tool)
        if declaration is None:
            raise BuildError(f"shared tool '{tool}' is not among the built tools", source=str(listing))
        if declaration.name in document:
            raise DuplicateDeclarationError(declaration.name, source=str(listing))
        document.add(declaration)

    write_schema(workspace.agent_schema_path(agent), document)
    return document


def build_agents(workspace: Workspace, tools: SchemaDocument | None = None) -> BuildReport:
    if tools is None:
        try:
            tools = workspace.load_tools_schema()
        except FnkitError:
            tools = SchemaDocument()

    report = BuildReport()
    for agent in workspace.listed_agents():
        try:
            document = build_agent(workspace, agent, tools)
        except FnkitError as e:
            logger.warning("agent_build_failed", agent=agent, error=str(e))
            # A stale schema must not outlive a failed build
            workspace.agent_schema_path(agent).unlink(missing_ok=True)
            report.artifacts.append(_failure("agent", agent, getattr(e, "source", None), e))
            continue
        logger.info("agent_built", agent=agent, declarations=len(document))
        report.artifacts.append(
            ArtifactResult(
                kind="agent",
                name=agent,
                success=True,
                source=str(workspace.agent_dir(agent)),
                declarations=document.names(),
            )
        )
    return report


def build_all(workspace: Workspace, *, tools: bool = True, agents: bool = True) -> BuildReport:
    report = BuildReport()
    tools_doc = None
    if tools:
        tools_doc, tools_report = build_tools(workspace)
        report = report.merge(tools_report)
    if agents:
        report = report.merge(build_agents(workspace, tools_doc))
    return report


def _failure(kind: str, name: str, source: str | None, error: FnkitError) -> ArtifactResult:
    return ArtifactResult(
        kind=kind,
        name=name,
        success=False,
        source=getattr(error, "source", None) or source,
        error=str(error),
        error_type=type(error).__name__,
    )
