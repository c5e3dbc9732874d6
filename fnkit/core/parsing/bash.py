"""Bash dialect: ``# @tag args`` comment lines."""

from __future__ import annotations

import re

from fnkit.core.parsing.base import CommentDialect, RawTag
from fnkit.shared.errors import MalformedTagError

_TAG_LINE = re.compile(r"^\s*#\s*@(?P<tag>[\w-]+)(?:\s+(?P<args>.*?))?\s*$")
_FUNCTION_LINE = re.compile(
    r"^\s*(?:function\s+(?P<kw>[A-Za-z_][\w:.-]*)\s*(?:\(\s*\))?|(?P<name>[A-Za-z_][\w:.-]*)\s*\(\s*\))\s*\{?"
)


class BashDialect(CommentDialect):
    language = "bash"
    extensions = (".sh",)

    def tool_tag_lines(self, text: str) -> list[RawTag]:
        tags: list[RawTag] = []
        for lineno, line in enumerate(text.splitlines(), start=1):
            match = _TAG_LINE.match(line)
            if match:
                tags.append((match["tag"], match["args"] or "", lineno))
        return tags

    def action_tag_lines(self, text: str) -> list[tuple[str, int | None, list[RawTag]]]:
        """Each ``@cmd`` opens an action that the next function definition names."""
        actions: list[tuple[str, int | None, list[RawTag]]] = []
        pending: list[RawTag] | None = None
        pending_line: int | None = None

        for lineno, line in enumerate(text.splitlines(), start=1):
            tag_match = _TAG_LINE.match(line)
            if tag_match:
                tag = tag_match["tag"].lower()
                args = tag_match["args"] or ""
                if tag == "cmd":
                    if pending is not None:
                        raise MalformedTagError(
                            "cmd", args, line=pending_line, reason="not followed by a function"
                        )
                    # @cmd carries the action summary
                    pending = [("describe", args, lineno)]
                    pending_line = lineno
                elif pending is not None:
                    pending.append((tag, args, lineno))
                continue

            if pending is None:
                continue
            func_match = _FUNCTION_LINE.match(line)
            if func_match:
                name = func_match["kw"] or func_match["name"]
                actions.append((name, pending_line, pending))
                pending = None
                pending_line = None

        if pending is not None:
            raise MalformedTagError("cmd", pending[0][1], line=pending_line, reason="not followed by a function")
        return actions
