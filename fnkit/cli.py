"""Command-line interface for building and calling LLM tools."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import click

from fnkit.core.builder import build_all, declaration_from_file, declarations_from_agent_module
from fnkit.core.checker import Checker
from fnkit.core.dispatcher import Dispatcher
from fnkit.core.scaffold import DEFAULT_DESCRIPTION, create_tool
from fnkit.core.workspace import Workspace
from fnkit.shared.config import Settings, get_settings
from fnkit.shared.errors import (
    BuildError,
    ExecutionError,
    FnkitError,
    NotFoundError,
    ValidationError,
)
from fnkit.shared.logs import configure_logging
from fnkit.shared.schemas.tools import SchemaDocument

# Failures detected before any child process is spawned. Reserved: a child
# that exits with this status is reported as 1.
EXIT_USAGE = 64


def run_async(coro):
    """Run an async function in a new event loop."""
    return asyncio.run(coro)


def child_exit_status(code: int) -> int:
    """Process status for a failed child, kept apart from EXIT_USAGE."""
    if code < 0:
        # Negative status means the child died from a signal
        return 128 - code
    return 1 if code == EXIT_USAGE else code


def fail(message: str, code: int = 1):
    click.echo(f"Error: {message}", err=True)
    sys.exit(code)


def _workspace(ctx: click.Context) -> Workspace:
    return ctx.obj["workspace"]


@click.group()
@click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Workspace root (defaults to FNKIT_ROOT_DIR or the current directory).",
)
@click.option("--log-level", default=None, help="Log level for stderr diagnostics.")
@click.option("--log-format", type=click.Choice(["console", "json"]), default=None)
@click.pass_context
def cli(ctx, root, log_level, log_format):
    """Build function-calling declarations and dispatch tool calls."""
    overrides = {}
    if root is not None:
        overrides["root_dir"] = root
    if log_level:
        overrides["log_level"] = log_level
    if log_format:
        overrides["log_format"] = log_format
    settings = Settings(**overrides) if overrides else get_settings()
    configure_logging(settings.log_level, settings.log_format)
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    ctx.obj["workspace"] = Workspace(settings)


# --- Build ---


@cli.command()
@click.option("--tools-only", is_flag=True, help="Build tools.txt only.")
@click.option("--agents-only", is_flag=True, help="Build agents.txt only.")
@click.pass_context
def build(ctx, tools_only, agents_only):
    """Build functions.json for every listed tool and agent."""
    if tools_only and agents_only:
        fail("--tools-only and --agents-only are mutually exclusive", EXIT_USAGE)
    report = build_all(_workspace(ctx), tools=not agents_only, agents=not tools_only)

    for artifact in report.succeeded:
        click.echo(f"Built {artifact.kind} {artifact.name} ({len(artifact.declarations)} declarations)")
    for artifact in report.failed:
        click.echo(f"Failed {artifact.kind} {artifact.name}: {artifact.error}", err=True)
    click.echo(f"{len(report.succeeded)} succeeded, {len(report.failed)} failed")

    if report.all_failed:
        sys.exit(1)


# --- Run ---


def _parse_arguments(raw: str | None) -> dict:
    if raw is None or not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        fail(f"arguments are not valid JSON: {e}", EXIT_USAGE)
    if not isinstance(data, dict):
        fail("arguments must be a JSON object", EXIT_USAGE)
    return data


def _parse_vars(pairs: tuple[str, ...]) -> dict[str, str]:
    values = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            fail(f"--var expects NAME=VALUE, got '{pair}'", EXIT_USAGE)
        values[name] = value
    return values


def _invoke(coro) -> None:
    try:
        result = run_async(coro)
    except (ValidationError, NotFoundError) as e:
        fail(str(e), EXIT_USAGE)
    except ExecutionError as e:
        fail(str(e), child_exit_status(e.exit_code))
    except FnkitError as e:
        fail(str(e))
    except ValueError as e:
        fail(f"schema document is unreadable: {e}")
    if result.stderr:
        click.echo(result.stderr, err=True, nl=False)
    if result.output:
        click.echo(result.output, nl=not result.output.endswith("\n"))


@cli.group()
def run():
    """Call a tool or an agent action."""
    pass


@run.command("tool")
@click.argument("name")
@click.argument("arguments", required=False)
@click.pass_context
def run_tool(ctx, name, arguments):
    """Run tool NAME with a JSON object of ARGUMENTS."""
    args = _parse_arguments(arguments)
    dispatcher = Dispatcher(ctx.obj["settings"], _workspace(ctx))
    _invoke(dispatcher.invoke("tool", name, arguments=args))


@run.command("agent")
@click.argument("name")
@click.argument("action")
@click.argument("arguments", required=False)
@click.option("--var", "variables", multiple=True, metavar="NAME=VALUE", help="Agent variable value.")
@click.pass_context
def run_agent(ctx, name, action, arguments, variables):
    """Run ACTION of agent NAME with a JSON object of ARGUMENTS."""
    args = _parse_arguments(arguments)
    values = _parse_vars(variables)
    dispatcher = Dispatcher(ctx.obj["settings"], _workspace(ctx))
    _invoke(dispatcher.invoke("agent", name, action, args, variables=values))


# --- Check ---


@cli.command()
@click.option("--strict", is_flag=True, help="Exit non-zero when any issue is found.")
@click.pass_context
def check(ctx, strict):
    """Report missing environment variables, binaries and agent variables."""
    issues = Checker(_workspace(ctx)).check_all()
    if not issues:
        click.echo("All tools and agents are ready.")
        return
    for issue in issues:
        click.echo(f"[{issue.kind}:{issue.owner}] {issue.item}: {issue.message}")
    click.echo(f"{len(issues)} issue(s) found")
    if strict:
        sys.exit(1)


# --- Inspection ---


@cli.command("list")
@click.option("--agent", default=None, help="List the declarations of one agent.")
@click.option("--json", "as_json", is_flag=True, help="Print the declarations as JSON.")
@click.pass_context
def list_declarations(ctx, agent, as_json):
    """List built declarations."""
    workspace = _workspace(ctx)
    try:
        document = workspace.load_agent_schema(agent) if agent else workspace.load_tools_schema()
    except NotFoundError as e:
        fail(str(e), EXIT_USAGE)
    except ValueError as e:
        fail(f"schema document is unreadable: {e}")

    if as_json:
        click.echo(document.to_json(), nl=False)
        return
    for declaration in document:
        click.echo(f"{declaration.name}: {declaration.description}")
    if not agent:
        for name in workspace.listed_agents():
            click.echo(f"{name} (agent)")


@cli.command()
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--agent", default=None, help="Parse the files as the action module of this agent.")
def declarations(files, agent):
    """Print the declarations parsed from FILES without writing anything."""
    document = SchemaDocument()
    failed = False
    for path in files:
        try:
            if agent:
                for declaration in declarations_from_agent_module(agent, path):
                    document.add(declaration)
            else:
                document.add(declaration_from_file(path))
        except (BuildError, ValueError) as e:
            click.echo(f"Error: {e}", err=True)
            failed = True
    click.echo(document.to_json(), nl=False)
    if failed:
        sys.exit(1)


@cli.command()
@click.argument("file", type=click.Path(dir_okay=False, path_type=Path))
@click.argument("params", nargs=-1)
@click.option("--description", "-d", default=DEFAULT_DESCRIPTION, help="Tool summary.")
@click.pass_context
def create(ctx, file, params, description):
    """Create a tool skeleton FILE with PARAMS (name, name!, name*, name+).

    Relative paths are placed in the workspace tools directory.
    """
    workspace = _workspace(ctx)
    path = file if file.is_absolute() else workspace.tools_dir / file
    try:
        created = create_tool(path, list(params), description)
    except FnkitError as e:
        fail(str(e), EXIT_USAGE)
    click.echo(f"Created {created}")
    click.echo(f"Add '{created.name}' to {workspace.tools_list_path.name} and run `fnkit build`.")


if __name__ == "__main__":
    cli()
