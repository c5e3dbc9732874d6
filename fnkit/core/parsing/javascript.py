"""JavaScript dialect: JSDoc blocks in front of exported functions."""

from __future__ import annotations

import re

from fnkit.core.parsing.base import CommentDialect, RawTag
from fnkit.core.parsing.grammar import render_param_tag
from fnkit.shared.errors import BuildError

_JSDOC_RE = re.compile(r"/\*\*(?P<body>.*?)\*/", re.S)
_TARGET_RE = re.compile(
    r"""^\s*(?:
        (?:module\.)?exports\.(?P<exported>[A-Za-z_$][\w$]*)\s*=
      | export\s+(?:default\s+)?(?:async\s+)?function\s*\*?\s*(?P<esm>[A-Za-z_$][\w$]*)
      | export\s+(?:const|let|var)\s+(?P<esm_const>[A-Za-z_$][\w$]*)\s*=
      | (?:async\s+)?function\s*\*?\s*(?P<plain>[A-Za-z_$][\w$]*)
      | (?:const|let|var)\s+(?P<local>[A-Za-z_$][\w$]*)\s*=
    )""",
    re.X,
)
_TAG_RE = re.compile(r"^@(?P<tag>\w+)\s*(?P<rest>.*)$")
_PARAM_RE = re.compile(
    r"^\{(?P<type>[^}]*)\}\s+(?P<name>\[[^\]]*\]|[\w.$]+)(?:\s*-?\s*(?P<desc>.*))?$"
)
_LINE_COMMENT = re.compile(r"^\s*(?://|\*)\s*@(?P<tag>[\w-]+)(?:\s+(?P<args>.*?))?\s*$")

_KINDS = {
    "string": "string",
    "number": "number",
    "integer": "integer",
    "int": "integer",
    "boolean": "boolean",
    "bool": "boolean",
}


class JavaScriptDialect(CommentDialect):
    language = "javascript"
    extensions = (".js", ".cjs", ".mjs")
    line_comment = _LINE_COMMENT

    def tool_tag_lines(self, text: str) -> list[RawTag]:
        for name, _exported, line, body in _documented_functions(text):
            if name == "run":
                return _jsdoc_tags(body, line)
        raise BuildError("javascript tool has no documented 'run' function")

    def action_tag_lines(self, text: str) -> list[tuple[str, int | None, list[RawTag]]]:
        return [
            (name, line, _jsdoc_tags(body, line))
            for name, exported, line, body in _documented_functions(text)
            if exported and not name.startswith("_")
        ]


def _documented_functions(text: str):
    """Yield ``(name, exported, line, jsdoc body)`` for each JSDoc-led definition."""
    for match in _JSDOC_RE.finditer(text):
        rest = text[match.end():].lstrip("\n\r\t ")
        first_line = rest.splitlines()[0] if rest else ""
        target = _TARGET_RE.match(first_line)
        if not target:
            continue
        exported = bool(target["exported"] or target["esm"] or target["esm_const"])
        name = next(n for n in target.groups() if n)
        line = text.count("\n", 0, match.start()) + 1
        yield name, exported, line, match["body"]


def _jsdoc_lines(body: str) -> list[str]:
    lines = []
    for raw in body.splitlines():
        line = raw.strip()
        if line.startswith("*"):
            line = line[1:].strip()
        lines.append(line)
    return lines


def _jsdoc_tags(body: str, line: int) -> list[RawTag]:
    summary: list[str] = []
    entries: list[tuple[str, str]] = []
    for text in _jsdoc_lines(body):
        tag = _TAG_RE.match(text)
        if tag:
            entries.append((tag["tag"].lower(), tag["rest"]))
        elif entries:
            if text:
                name, rest = entries[-1]
                entries[-1] = (name, f"{rest} {text}")
        elif text:
            summary.append(text)

    tags: list[RawTag] = []
    if summary:
        tags.append(("describe", " ".join(summary), line))
    for tag, rest in entries:
        if tag in ("describe", "description"):
            tags.append(("describe", rest, line))
        elif tag in ("env", "meta"):
            continue
        elif tag in ("property", "prop", "param", "arg", "argument"):
            rendered = _render_param(tag, rest)
            if rendered is not None:
                tags.append((*rendered, line))
    return tags


def _render_param(tag: str, rest: str) -> tuple[str, str] | None:
    match = _PARAM_RE.match(rest.strip())
    if not match:
        # Keep the raw text so the grammar reports it as malformed
        return "option", rest
    raw_name = match["name"]
    optional = raw_name.startswith("[")
    default = None
    if optional:
        raw_name = raw_name.strip("[]")
        if "=" in raw_name:
            raw_name, default = (part.strip() for part in raw_name.split("=", 1))
    js_type = match["type"].strip()
    if tag not in ("property", "prop") and "." not in raw_name and _is_container(js_type):
        # "@param {Args} args" names the argument object, not a parameter
        return None
    name = raw_name.rsplit(".", 1)[-1]

    kind, array, choices, type_optional = _js_type(js_type)
    return render_param_tag(
        name,
        kind=kind,
        array=array,
        required=not (optional or type_optional),
        choices=choices,
        default=default.strip("\"'") if default else None,
        description=(match["desc"] or "").strip(),
    )


def _js_type(js_type: str) -> tuple[str, bool, list[str] | None, bool]:
    """Map a JSDoc type expression to ``(kind, array, choices, optional)``."""
    optional = False
    text = js_type.strip()
    if text.startswith("?"):
        optional, text = True, text[1:]
    if text.endswith("="):
        optional, text = True, text[:-1]
    members = [m.strip() for m in text.split("|")]
    if any(m in ("undefined", "null") for m in members):
        optional = True
        members = [m for m in members if m not in ("undefined", "null")]
    text = "|".join(members)

    array = False
    array_match = re.fullmatch(r"Array\.?<(.+)>", text) or re.fullmatch(r"\((.+)\)\[\]", text)
    if array_match:
        array, text = True, array_match.group(1)
    elif text.endswith("[]"):
        array, text = True, text[:-2]

    literals = [m.strip() for m in text.split("|")]
    if literals and all(len(m) >= 2 and m[0] == m[-1] and m[0] in "'\"" for m in literals):
        return "string", array, [m[1:-1] for m in literals], optional
    return _KINDS.get(text.lower(), "string"), array, None, optional


def _is_container(js_type: str) -> bool:
    base = re.sub(r"[?=\[\]]", "", js_type).strip()
    return base.lower() == "object" or (base[:1].isupper() and not base.startswith("Array"))
