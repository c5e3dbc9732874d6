"""Language runners keyed like the comment dialects."""

from __future__ import annotations

from fnkit.runners.base import RunOutcome, Runner
from fnkit.runners.bash import BashRunner
from fnkit.runners.node import NodeRunner
from fnkit.runners.python import PythonRunner
from fnkit.shared.config import Settings

RUNNERS: dict[str, type[Runner]] = {
    r.language: r for r in (BashRunner, PythonRunner, NodeRunner)
}


def build_runners(settings: Settings) -> dict[str, Runner]:
    return {language: cls(settings) for language, cls in RUNNERS.items()}


__all__ = ["RUNNERS", "RunOutcome", "Runner", "build_runners"]
