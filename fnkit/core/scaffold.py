"""Tool skeletons for ``fnkit create``.

Parameters are given as ``name`` (optional), ``name!`` (required), ``name*``
(optional list) or ``name+`` (required list); every parameter is a string.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from fnkit.core.parsing import dialect_for
from fnkit.core.parsing.grammar import SUFFIXES, normalize_name, render_param_tag
from fnkit.shared.errors import FnkitError

_PARAM_RE = re.compile(r"^(?P<name>[A-Za-z_][\w-]*)(?P<suffix>[!*+]?)$")

DEFAULT_DESCRIPTION = "Describe what this tool does"


@dataclass(frozen=True)
class ScaffoldParam:
    name: str
    required: bool = False
    array: bool = False

    @property
    def description(self) -> str:
        return "The " + self.name.replace("_", " ")

    @property
    def option(self) -> str:
        return "--" + self.name.replace("_", "-")


def parse_param(text: str) -> ScaffoldParam:
    match = _PARAM_RE.match(text.strip())
    if not match:
        raise FnkitError(f"invalid parameter '{text}': expected name, name!, name* or name+")
    required, array = SUFFIXES[match["suffix"]]
    return ScaffoldParam(normalize_name(match["name"]), required=required, array=array)


def render_tool(language: str, params: list[ScaffoldParam], description: str = DEFAULT_DESCRIPTION) -> str:
    renderers = {"bash": _render_bash, "python": _render_python, "javascript": _render_javascript}
    return renderers[language](params, description)


def create_tool(path: Path, params: list[str], description: str = DEFAULT_DESCRIPTION) -> Path:
    """Write a new tool skeleton; refuses to overwrite an existing file."""
    language = dialect_for(path).language
    parsed = [parse_param(p) for p in params]
    names = [p.name for p in parsed]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise FnkitError(f"parameter(s) given more than once: {', '.join(duplicates)}")
    if path.exists():
        raise FnkitError(f"{path} already exists")

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_tool(language, parsed, description), encoding="utf-8")
    if language == "bash":
        path.chmod(0o755)
    return path


# ---------------------------------------------------------------------------
# Renderers
# ---------------------------------------------------------------------------


def _render_bash(params: list[ScaffoldParam], description: str) -> str:
    lines = [
        "#!/usr/bin/env bash",
        "set -euo pipefail",
        "",
        f"# @describe {description}",
    ]
    for p in params:
        tag, args = render_param_tag(p.name, array=p.array, required=p.required, description=p.description)
        lines.append(f"# @{tag} {args}")
    lines += ["", "main() {"]
    for p in params:
        lines.append(f"    local {p.name}=()" if p.array else f'    local {p.name}=""')
    lines += ['    while [[ $# -gt 0 ]]; do', '        case "$1" in']
    for p in params:
        target = f'{p.name}+=("$2")' if p.array else f'{p.name}="$2"'
        lines.append(f"            {p.option}) {target}; shift 2 ;;")
    lines += [
        "            *) shift ;;",
        "        esac",
        "    done",
        "",
    ]
    for p in params:
        value = f'${{{p.name}[*]:-}}' if p.array else f"${p.name}"
        lines.append(f'    echo "{p.name}: {value}" >> "$LLM_OUTPUT"')
    if not params:
        lines.append('    echo "done" >> "$LLM_OUTPUT"')
    lines += ["}", "", 'main "$@"', ""]
    return "\n".join(lines)


def _python_annotation(p: ScaffoldParam) -> str:
    base = "list[str]" if p.array else "str"
    return base if p.required else f"{base} | None = None"


def _render_python(params: list[ScaffoldParam], description: str) -> str:
    # Python needs parameters with defaults last
    ordered = [p for p in params if p.required] + [p for p in params if not p.required]
    signature = ", ".join(f"{p.name}: {_python_annotation(p)}" for p in ordered)
    lines = [f"def run({signature}):", f'    """{description.rstrip(".")}.']
    if ordered:
        lines += ["", "    Args:"]
        lines += [f"        {p.name}: {p.description}" for p in ordered]
    lines.append('    """')
    if ordered:
        lines.append("    return {")
        lines += [f'        "{p.name}": {p.name},' for p in ordered]
        lines.append("    }")
    else:
        lines.append('    return "done"')
    return "\n".join(lines) + "\n"


def _render_javascript(params: list[ScaffoldParam], description: str) -> str:
    lines = ["/**", f" * {description.rstrip('.')}."]
    if params:
        lines.append(" * @typedef {Object} Args")
        for p in params:
            js_type = "string[]" if p.array else "string"
            name = p.name if p.required else f"[{p.name}]"
            lines.append(f" * @property {{{js_type}}} {name} - {p.description}")
        lines.append(" * @param {Args} args")
    lines += [
        " */",
        "exports.run = function run(args) {",
        "  return JSON.stringify(args, null, 2);" if params else '  return "done";',
        "};",
        "",
    ]
    return "\n".join(lines)
