"""Python dialect: Google-style docstrings plus type annotations.

The tool entry point is the module-level ``run`` function; an agent module
exposes every public module-level function as an action. The docstring
summary becomes ``@describe`` and each parameter becomes an ``@option`` or
``@flag`` rendered from its annotation, default and ``Args:`` entry.
"""

from __future__ import annotations

import ast
import inspect
import re
from dataclasses import dataclass

from fnkit.core.parsing.base import CommentDialect, RawTag
from fnkit.core.parsing.grammar import render_param_tag
from fnkit.shared.errors import BuildError

_SECTION_RE = re.compile(
    r"^(Args|Arguments|Parameters|Params|Returns|Return|Raises|Yields|Examples?|Notes?|Attributes)\s*:\s*$",
    re.IGNORECASE,
)
_ARG_SECTIONS = {"args", "arguments", "parameters", "params"}
_ARG_LINE_RE = re.compile(r"^(?P<name>\*{0,2}\w+)\s*(?:\((?P<type>[^)]*)\))?\s*:\s*(?P<desc>.*)$")

_SCALARS = {
    "str": "string",
    "int": "integer",
    "float": "number",
    "bool": "boolean",
}
_SEQUENCES = {"list", "List", "Sequence", "tuple", "Tuple", "set", "Set", "Iterable"}


@dataclass
class _TypeInfo:
    kind: str = "string"
    array: bool = False
    optional: bool = False
    choices: list[str] | None = None


class PythonDialect(CommentDialect):
    language = "python"
    extensions = (".py",)

    def tool_tag_lines(self, text: str) -> list[RawTag]:
        module = _parse_module(text)
        for node in module.body:
            if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)) and node.name == "run":
                return _function_tags(node)
        raise BuildError("python tool defines no module-level 'run' function")

    def action_tag_lines(self, text: str) -> list[tuple[str, int | None, list[RawTag]]]:
        module = _parse_module(text)
        return [
            (node.name, node.lineno, _function_tags(node))
            for node in module.body
            if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef))
            and not node.name.startswith("_")
        ]


def _parse_module(text: str) -> ast.Module:
    try:
        return ast.parse(text)
    except SyntaxError as e:
        raise BuildError(f"python syntax error: {e.msg}", line=e.lineno) from e


def _function_tags(node: ast.FunctionDef | ast.AsyncFunctionDef) -> list[RawTag]:
    summary, arg_docs = split_docstring(ast.get_docstring(node) or "")
    tags: list[RawTag] = []
    if summary:
        tags.append(("describe", summary, node.lineno))

    args = node.args
    positional = [*args.posonlyargs, *args.args]
    # Defaults align with the tail of the positional list
    pos_defaults: list[ast.expr | None] = [None] * (len(positional) - len(args.defaults)) + list(args.defaults)
    params = list(zip(positional, pos_defaults)) + list(zip(args.kwonlyargs, args.kw_defaults))

    for arg, default in params:
        if arg.arg in ("self", "cls"):
            continue
        info = _annotation_info(arg.annotation)
        default_value = _literal(default)
        has_default = default is not None
        required = not has_default and not info.optional
        rendered_default = None
        if has_default and default_value is not None and not isinstance(default_value, (list, dict, tuple)):
            rendered_default = _render_default(default_value)
        tag, tag_args = render_param_tag(
            arg.arg,
            kind=info.kind,
            array=info.array,
            required=required,
            choices=info.choices,
            default=rendered_default,
            description=arg_docs.get(arg.arg, ""),
        )
        tags.append((tag, tag_args, arg.lineno))
    return tags


def split_docstring(doc: str) -> tuple[str, dict[str, str]]:
    """Return the summary text and the ``Args:`` descriptions of a docstring."""
    summary_lines: list[str] = []
    arg_docs: dict[str, str] = {}
    section: str | None = None
    current: str | None = None
    entry_indent: int | None = None

    for line in inspect.cleandoc(doc).splitlines():
        stripped = line.strip()
        indent = len(line) - len(line.lstrip())
        header = _SECTION_RE.match(stripped)
        if header and indent == 0:
            section = header.group(1).lower()
            current = None
            entry_indent = None
            continue
        if section is None:
            summary_lines.append(stripped)
            continue
        if section not in _ARG_SECTIONS or not stripped:
            continue
        if entry_indent is None:
            entry_indent = indent
        entry = _ARG_LINE_RE.match(stripped)
        if entry and indent <= entry_indent:
            current = entry["name"].lstrip("*")
            arg_docs[current] = entry["desc"].strip()
        elif current is not None:
            # Continuation line of the previous entry
            arg_docs[current] = f"{arg_docs[current]} {stripped}".strip()

    summary = " ".join(part for part in summary_lines if part)
    return summary, arg_docs


def _annotation_info(node: ast.expr | None) -> _TypeInfo:
    if node is None:
        return _TypeInfo()
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        # String (forward-reference) annotation
        try:
            return _annotation_info(ast.parse(node.value, mode="eval").body)
        except SyntaxError:
            return _TypeInfo()
    if isinstance(node, ast.Constant) and node.value is None:
        return _TypeInfo(optional=True)
    if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
        return _union([node.left, node.right])

    name = _type_name(node)
    if name in _SCALARS:
        return _TypeInfo(kind=_SCALARS[name])
    if name in _SEQUENCES:
        return _TypeInfo(array=True)
    if not isinstance(node, ast.Subscript):
        return _TypeInfo()

    outer = _type_name(node.value)
    inner = node.slice
    elements = list(inner.elts) if isinstance(inner, ast.Tuple) else [inner]
    if outer == "Optional":
        info = _annotation_info(elements[0])
        info.optional = True
        return info
    if outer == "Union":
        return _union(elements)
    if outer == "Literal":
        values = [e.value for e in elements if isinstance(e, ast.Constant)]
        kind = "integer" if values and all(type(v) is int for v in values) else "string"
        choices = [str(v) for v in values]
        return _TypeInfo(kind=kind, choices=choices or None)
    if outer in _SEQUENCES:
        element = _annotation_info(elements[0])
        return _TypeInfo(kind=element.kind, array=True, choices=element.choices)
    return _TypeInfo()


def _union(members: list[ast.expr]) -> _TypeInfo:
    optional = any(isinstance(m, ast.Constant) and m.value is None for m in members)
    rest = [m for m in members if not (isinstance(m, ast.Constant) and m.value is None)]
    info = _annotation_info(rest[0]) if len(rest) == 1 else _TypeInfo()
    info.optional = info.optional or optional
    return info


def _type_name(node: ast.expr) -> str:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return node.attr
    return ""


def _literal(node: ast.expr | None):
    if node is None:
        return None
    try:
        return ast.literal_eval(node)
    except (ValueError, TypeError):
        return None


def _render_default(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
