"""Comment parsers, one dialect per source language."""

from __future__ import annotations

from pathlib import Path

from fnkit.core.parsing.base import CommentDialect, ParsedAction
from fnkit.core.parsing.bash import BashDialect
from fnkit.core.parsing.grammar import EnvTag, ParamTag, TagRecord
from fnkit.core.parsing.javascript import JavaScriptDialect
from fnkit.core.parsing.python import PythonDialect
from fnkit.shared.errors import UnsupportedLanguageError

DIALECTS: dict[str, CommentDialect] = {
    d.language: d for d in (BashDialect(), PythonDialect(), JavaScriptDialect())
}


def dialect_for(path: str | Path) -> CommentDialect:
    """Pick the dialect registered for a file's extension."""
    suffix = Path(path).suffix.lower()
    for dialect in DIALECTS.values():
        if suffix in dialect.extensions:
            return dialect
    raise UnsupportedLanguageError(str(path))


def parse_source(text: str, language: str) -> list[TagRecord]:
    """Parse the declaration tags of a single-tool source file."""
    return DIALECTS[language].parse_tool(text)


__all__ = [
    "DIALECTS",
    "CommentDialect",
    "EnvTag",
    "ParamTag",
    "ParsedAction",
    "TagRecord",
    "dialect_for",
    "parse_source",
]
