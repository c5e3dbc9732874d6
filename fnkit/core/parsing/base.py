"""Comment dialect interface.

A dialect knows how one source language embeds declaration tags. It only
reduces source text to raw ``(tag, args, line)`` triples; the shared grammar
and the schema builder do the rest, so a new language adds one dialect and
touches nothing else.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from fnkit.core.parsing.grammar import (
    DECLARATION_TAGS,
    ENVIRONMENT_TAGS,
    TagRecord,
    parse_tag,
)

RawTag = tuple[str, str, int | None]


@dataclass
class ParsedAction:
    """Tags of one agent action (a function inside an agent module)."""

    name: str
    tags: list[TagRecord] = field(default_factory=list)
    line: int | None = None


class CommentDialect(ABC):
    """Extracts tag lines from one language's comments."""

    language: str = ""
    extensions: tuple[str, ...] = ()

    # Matches a tag written as a line comment, e.g. "# @env FOO!"
    line_comment: re.Pattern[str] = re.compile(r"^\s*#\s*@(?P<tag>[\w-]+)(?:\s+(?P<args>.*?))?\s*$")

    @abstractmethod
    def tool_tag_lines(self, text: str) -> list[RawTag]:
        """Raw tags declaring the single tool implemented by ``text``."""

    @abstractmethod
    def action_tag_lines(self, text: str) -> list[tuple[str, int | None, list[RawTag]]]:
        """``(action, line, raw tags)`` for each action of an agent module."""

    def environment_tag_lines(self, text: str) -> list[RawTag]:
        """``@env``/``@meta`` tags written as line comments anywhere in the file."""
        found: list[RawTag] = []
        for lineno, line in enumerate(text.splitlines(), start=1):
            match = self.line_comment.match(line)
            if match and match["tag"].lower() in ENVIRONMENT_TAGS:
                found.append((match["tag"], match["args"] or "", lineno))
        return found

    # -- shared entry points -------------------------------------------------

    def parse_tool(self, text: str) -> list[TagRecord]:
        return _records(self.tool_tag_lines(text), DECLARATION_TAGS)

    def parse_actions(self, text: str) -> list[ParsedAction]:
        return [
            ParsedAction(name=name, line=line, tags=_records(raw, DECLARATION_TAGS))
            for name, line, raw in self.action_tag_lines(text)
        ]

    def parse_environment(self, text: str) -> list[TagRecord]:
        return _records(self.environment_tag_lines(text), ENVIRONMENT_TAGS)


def _records(raw: list[RawTag], allowed: frozenset[str]) -> list[TagRecord]:
    records = []
    for tag, args, line in raw:
        if tag.lower() not in allowed:
            continue
        record = parse_tag(tag, args, line)
        if record is not None:
            records.append(record)
    return records
