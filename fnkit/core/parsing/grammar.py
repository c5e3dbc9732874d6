"""Tag grammar shared by every comment dialect.

Dialects reduce their source to ``(tag, args, line)`` triples written in one
grammar::

    @describe Summary of the tool
    @option -s --name![a|b] <INT> Description
    @flag --verbose Description
    @env API_KEY! Description
    @meta require-tools jq,curl

``parse_tag`` turns a triple into a ``TagRecord``; recognized tags whose
arguments cannot be split raise ``MalformedTagError``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from fnkit.shared.errors import MalformedTagError

DECLARATION_TAGS = frozenset({"describe", "option", "flag"})
ENVIRONMENT_TAGS = frozenset({"env", "meta"})
RECOGNIZED_TAGS = DECLARATION_TAGS | ENVIRONMENT_TAGS

# suffix -> (required, array)
SUFFIXES = {
    "!": (True, False),
    "+": (True, True),
    "*": (False, True),
    "": (False, False),
}

NOTATION_TYPES = {
    "INT": "integer",
    "INTEGER": "integer",
    "NUM": "number",
    "NUMBER": "number",
    "FLOAT": "number",
    "BOOL": "boolean",
    "BOOLEAN": "boolean",
}

_OPTION_RE = re.compile(
    r"""^(?:-[A-Za-z0-9]\s+)?
    --(?P<name>[A-Za-z_][\w-]*)
    (?P<suffix>[!*+]?)
    (?:\[(?P<choices>[^\]]*)\]|=(?P<default>"[^"]*"|'[^']*'|\S+))?
    (?:\s+<(?P<notation>[^>\s]+)>)?
    (?:\s+(?P<description>.*))?$""",
    re.X,
)

_FLAG_RE = re.compile(
    r"""^(?:-[A-Za-z0-9]\s+)?
    --(?P<name>[A-Za-z_][\w-]*)
    (?:\s+(?P<description>.*))?$""",
    re.X,
)

_ENV_RE = re.compile(
    r"""^(?P<name>[A-Za-z_]\w*)
    (?P<suffix>!?)
    (?:=(?P<default>\S*))?
    (?:\s+(?P<description>.*))?$""",
    re.X,
)

_META_RE = re.compile(r"^(?P<key>[\w-]+)(?:\s+(?P<value>.*))?$")


@dataclass(frozen=True)
class ParamTag:
    """The split arguments of an ``@option`` or ``@flag`` tag."""

    name: str
    required: bool = False
    array: bool = False
    is_flag: bool = False
    notation: str | None = None
    choices: tuple[str, ...] | None = None
    default: str | None = None
    description: str = ""
    # Declared spelling, kept only when it is not the hyphenated name
    option: str | None = None

    @property
    def kind(self) -> str:
        if self.is_flag:
            return "boolean"
        if self.notation:
            return NOTATION_TYPES.get(self.notation.upper(), "string")
        return "string"


@dataclass(frozen=True)
class EnvTag:
    name: str
    required: bool = False
    default: str | None = None
    description: str = ""


@dataclass(frozen=True)
class TagRecord:
    """One recognized tag found in a source file."""

    tag: str
    args: str
    line: int | None = None
    param: ParamTag | None = None
    env: EnvTag | None = None

    @property
    def text(self) -> str:
        """Unquoted argument text (the summary for ``@describe``)."""
        return unquote(self.args)


def unquote(text: str) -> str:
    text = text.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'":
        return text[1:-1].strip()
    return text


def normalize_name(name: str) -> str:
    """``--foo-bar`` and ``foo-bar`` both become ``foo_bar``."""
    return name.lstrip("-").replace("-", "_")


def declared_option(token: str) -> str | None:
    """The ``--token`` spelling when ``--name`` with hyphens would not match it."""
    token = token.lstrip("-")
    if token == normalize_name(token).replace("_", "-"):
        return None
    return f"--{token}"


def parse_tag(tag: str, args: str, line: int | None = None) -> TagRecord | None:
    """Parse one tag; returns None for tags outside the vocabulary."""
    tag = tag.lower()
    if tag not in RECOGNIZED_TAGS:
        return None
    args = (args or "").strip()

    if tag == "describe":
        if not unquote(args):
            raise MalformedTagError(tag, args, line=line, reason="empty description")
        return TagRecord(tag, args, line)

    if tag == "option":
        return TagRecord(tag, args, line, param=_parse_option(args, line))

    if tag == "flag":
        match = _FLAG_RE.match(args)
        if not match:
            raise MalformedTagError(tag, args, line=line, reason="expected --name [description]")
        param = ParamTag(
            name=normalize_name(match["name"]),
            is_flag=True,
            description=unquote(match["description"] or ""),
            option=declared_option(match["name"]),
        )
        return TagRecord(tag, args, line, param=param)

    if tag == "env":
        match = _ENV_RE.match(args)
        if not match:
            raise MalformedTagError(tag, args, line=line, reason="expected NAME[!] [description]")
        env = EnvTag(
            name=match["name"],
            required=match["suffix"] == "!",
            default=match["default"],
            description=unquote(match["description"] or ""),
        )
        return TagRecord(tag, args, line, env=env)

    # meta
    if not _META_RE.match(args):
        raise MalformedTagError(tag, args, line=line, reason="expected key [value]")
    return TagRecord(tag, args, line)


def _parse_option(args: str, line: int | None) -> ParamTag:
    match = _OPTION_RE.match(args)
    if not match:
        raise MalformedTagError(
            "option", args, line=line, reason="expected --name[!|*|+] [<TYPE>] [description]"
        )
    required, array = SUFFIXES[match["suffix"]]
    choices = None
    if match["choices"] is not None:
        choices = tuple(c.strip() for c in match["choices"].split("|") if c.strip())
        if not choices:
            raise MalformedTagError("option", args, line=line, reason="empty choice list")
    default = match["default"]
    if default is not None:
        default = unquote(default)
    return ParamTag(
        name=normalize_name(match["name"]),
        required=required,
        array=array,
        notation=match["notation"],
        choices=choices,
        default=default,
        description=unquote(match["description"] or ""),
        option=declared_option(match["name"]),
    )


def meta_values(record: TagRecord) -> tuple[str, list[str]]:
    """Split ``@meta require-tools a,b c`` into ``("require-tools", ["a", "b", "c"])``."""
    match = _META_RE.match(record.args)
    if not match:
        return "", []
    values = re.split(r"[\s,]+", (match["value"] or "").strip())
    return match["key"], [v for v in values if v]


def render_param_tag(
    name: str,
    *,
    kind: str = "string",
    array: bool = False,
    required: bool = False,
    choices: list[str] | tuple[str, ...] | None = None,
    default: str | None = None,
    description: str = "",
) -> tuple[str, str]:
    """Render a parameter as an ``(tag, args)`` pair in the common grammar.

    Optional booleans that default to false become ``@flag``; everything
    else is an ``@option``.
    """
    description = " ".join(description.split())
    if kind == "boolean" and not array and not required and default in (None, "false"):
        return "flag", f"--{name} {description}".rstrip()

    suffix = {(True, False): "!", (True, True): "+", (False, True): "*"}.get((required, array), "")
    args = f"--{name}{suffix}"
    if choices:
        args += "[" + "|".join(choices) + "]"
    elif default is not None and '"' not in default and default != "":
        args += f'="{default}"' if re.search(r"\s", default) else f"={default}"
    notation = {"integer": "INT", "number": "NUM", "boolean": "BOOL"}.get(kind)
    if notation:
        args += f" <{notation}>"
    if description:
        args += f" {description}"
    return "option", args
